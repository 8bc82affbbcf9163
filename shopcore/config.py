"""
Configuration — frozen settings read once from the environment.

Settings are passed explicitly to services and the app factory; nothing
reads the environment after startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "SHOPCORE_"

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
DEFAULT_GATEWAY_BASE_URL = "https://api.razorpay.com/v1"


# ═══════════════════════════════════════════════════════════════════════════════
# Gateway
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class GatewaySettings:
    """Credentials and transport knobs for the payment gateway."""

    key_id: str = ""
    key_secret: str = ""
    webhook_secret: str = ""
    base_url: str = DEFAULT_GATEWAY_BASE_URL
    currency: str = "INR"
    timeout: float = 10.0
    retries: int = 2
    provider: str = "razorpay"


# ═══════════════════════════════════════════════════════════════════════════════
# Settings
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "INFO"
    gateway: GatewaySettings = field(default_factory=GatewaySettings)

    @classmethod
    def from_env(
        cls,
        env: dict[str, str] | None = None,
        dotenv_path: str | Path | None = None,
    ) -> Settings:
        """
        Build settings from ``SHOPCORE_*`` variables.

        A ``.env`` file is loaded first when present; variables already set in
        the process environment win. Pass ``env`` to bypass the process
        environment entirely.
        """
        if env is None:
            load_dotenv(dotenv_path)
            env = dict(os.environ)

        def get(name: str, default: str) -> str:
            return env.get(ENV_PREFIX + name, default)

        return cls(
            database_url=get("DATABASE_URL", DEFAULT_DATABASE_URL),
            log_level=get("LOG_LEVEL", "INFO").upper(),
            gateway=GatewaySettings(
                key_id=get("GATEWAY_KEY_ID", ""),
                key_secret=get("GATEWAY_KEY_SECRET", ""),
                webhook_secret=get("GATEWAY_WEBHOOK_SECRET", ""),
                base_url=get("GATEWAY_BASE_URL", DEFAULT_GATEWAY_BASE_URL),
                currency=get("PAYMENT_CURRENCY", "INR"),
                timeout=float(get("GATEWAY_TIMEOUT", "10")),
                retries=int(get("GATEWAY_RETRIES", "2")),
            ),
        )


__all__ = ("GatewaySettings", "Settings", "ENV_PREFIX")
