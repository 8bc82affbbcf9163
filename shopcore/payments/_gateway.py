"""
Gateway adapters — create the remote order a client pays against.

    gateway = RazorpayGateway(settings.gateway)
    remote = await gateway.create_remote_order(4500, "INR", {"local_order_id": "17"})
    await gateway.aclose()

Any transport or protocol failure surfaces as GatewayError. Retries happen
only at the transport level (connection establishment), never on a request
the gateway may already have processed.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Protocol

import httpx

from shopcore.config import GatewaySettings
from shopcore.errors import GatewayError
from shopcore.payments._types import RemoteOrder

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class Gateway(Protocol):
    async def create_remote_order(
        self,
        amount_minor: int,
        currency: str,
        notes: dict[str, str],
    ) -> RemoteOrder: ...

    async def aclose(self) -> None: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Razorpay (HTTP)
# ═══════════════════════════════════════════════════════════════════════════════


def _describe(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("description"):
        return f"HTTP {response.status_code}: {error['description']}"
    return f"HTTP {response.status_code}"


def _parse_remote_order(data: Any) -> RemoteOrder:
    if not isinstance(data, dict):
        raise GatewayError("malformed order response")
    order_id, amount, currency = data.get("id"), data.get("amount"), data.get("currency")
    if not isinstance(order_id, str) or not isinstance(amount, int) or not isinstance(currency, str):
        raise GatewayError("malformed order response")
    return RemoteOrder(id=order_id, amount=amount, currency=currency, raw=data)


class RazorpayGateway:
    """Orders API over httpx with basic auth (key id / key secret)."""

    def __init__(
        self,
        settings: GatewaySettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=settings.base_url,
            auth=httpx.BasicAuth(settings.key_id, settings.key_secret),
            timeout=httpx.Timeout(settings.timeout),
            transport=transport or httpx.AsyncHTTPTransport(retries=settings.retries),
            headers={"Accept": "application/json"},
        )

    async def create_remote_order(
        self,
        amount_minor: int,
        currency: str,
        notes: dict[str, str],
    ) -> RemoteOrder:
        body: dict[str, Any] = {
            "amount": amount_minor,
            "currency": currency,
            "payment_capture": 1,
            "notes": notes,
        }
        receipt = notes.get("local_order_id")
        if receipt:
            body["receipt"] = f"order-{receipt}"

        try:
            response = await self._client.post("/orders", json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.warning("gateway timed out creating order for %s", notes)
            raise GatewayError("request timed out") from e
        except httpx.HTTPStatusError as e:
            reason = _describe(e.response)
            logger.warning("gateway refused order for %s: %s", notes, reason)
            raise GatewayError(reason, status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            logger.warning("gateway unreachable: %s", e.__class__.__name__)
            raise GatewayError(f"transport failure ({e.__class__.__name__})") from e
        except ValueError as e:
            raise GatewayError("response is not JSON") from e

        remote = _parse_remote_order(data)
        logger.info("gateway order %s created for %s %s", remote.id, remote.amount, remote.currency)
        return remote

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> RazorpayGateway:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()


# ═══════════════════════════════════════════════════════════════════════════════
# In-memory (tests, local development)
# ═══════════════════════════════════════════════════════════════════════════════


class InMemoryGateway:
    """
    Gateway that answers locally.

    ``fail_with`` makes every call raise that error until reset.
    """

    def __init__(self, *, fail_with: GatewayError | None = None) -> None:
        self.orders: list[RemoteOrder] = []
        self.fail_with = fail_with

    async def create_remote_order(
        self,
        amount_minor: int,
        currency: str,
        notes: dict[str, str],
    ) -> RemoteOrder:
        if self.fail_with is not None:
            raise self.fail_with

        order_id = f"order_{uuid.uuid4().hex[:14]}"
        remote = RemoteOrder(
            id=order_id,
            amount=amount_minor,
            currency=currency,
            raw={
                "id": order_id,
                "entity": "order",
                "amount": amount_minor,
                "currency": currency,
                "status": "created",
                "notes": dict(notes),
            },
        )
        self.orders.append(remote)
        return remote

    async def aclose(self) -> None:
        return None


__all__ = ("Gateway", "RazorpayGateway", "InMemoryGateway")
