"""Tests for settings and logging setup."""

import logging
import os

from shopcore.config import GatewaySettings, Settings
from shopcore.log import configure_logging, logging_config


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env(env={})
        assert settings.database_url == "sqlite+aiosqlite:///:memory:"
        assert settings.log_level == "INFO"
        assert settings.gateway == GatewaySettings()
        assert settings.gateway.currency == "INR"

    def test_reads_prefixed_variables(self):
        settings = Settings.from_env(env={
            "SHOPCORE_DATABASE_URL": "postgresql+asyncpg://shop@db/shop",
            "SHOPCORE_LOG_LEVEL": "debug",
            "SHOPCORE_GATEWAY_KEY_ID": "rzp_live_x",
            "SHOPCORE_GATEWAY_KEY_SECRET": "s3cret",
            "SHOPCORE_GATEWAY_WEBHOOK_SECRET": "wh",
            "SHOPCORE_PAYMENT_CURRENCY": "USD",
            "SHOPCORE_GATEWAY_TIMEOUT": "2.5",
            "SHOPCORE_GATEWAY_RETRIES": "0",
            "UNRELATED": "ignored",
        })
        assert settings.database_url == "postgresql+asyncpg://shop@db/shop"
        assert settings.log_level == "DEBUG"
        assert settings.gateway.key_id == "rzp_live_x"
        assert settings.gateway.key_secret == "s3cret"
        assert settings.gateway.webhook_secret == "wh"
        assert settings.gateway.currency == "USD"
        assert settings.gateway.timeout == 2.5
        assert settings.gateway.retries == 0

    def test_dotenv_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SHOPCORE_GATEWAY_KEY_ID", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("SHOPCORE_GATEWAY_KEY_ID=rzp_from_file\n")

        try:
            settings = Settings.from_env(dotenv_path=env_file)
        finally:
            os.environ.pop("SHOPCORE_GATEWAY_KEY_ID", None)

        assert settings.gateway.key_id == "rzp_from_file"


class TestLogging:
    def test_config_targets_shopcore_logger(self):
        config = logging_config("WARNING")
        assert config["loggers"]["shopcore"]["level"] == "WARNING"
        assert config["handlers"]["console"]["formatter"] == "verbose"

    def test_configure_logging(self):
        configure_logging("DEBUG")
        logger = logging.getLogger("shopcore")
        try:
            assert logger.level == logging.DEBUG
            assert logger.propagate is False
        finally:
            logger.handlers.clear()
            logger.propagate = True
            logger.setLevel(logging.NOTSET)
