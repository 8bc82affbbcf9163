"""Payment records exchanged with callers and the gateway adapter."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from shopcore._types import OrderId


@dataclass(frozen=True, slots=True)
class RemoteOrder:
    """The gateway's side of a checkout session."""

    id: str
    amount: int
    currency: str
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PaymentSession:
    """Everything the client needs to open the gateway's checkout widget."""

    key_id: str
    gateway_order_id: str
    amount_minor: int
    amount: Decimal
    currency: str
    local_order_id: OrderId


@dataclass(frozen=True, slots=True)
class PaymentProof:
    """What the gateway hands the client after a successful payment."""

    gateway_order_id: str
    gateway_payment_id: str
    gateway_signature: str


@dataclass(frozen=True, slots=True)
class WebhookReceipt:
    event: str | None
    gateway_order_id: str | None
    matched: bool
    """A local payment exists for the gateway order."""
    settled: bool
    """This delivery moved the order to paid."""


__all__ = ("RemoteOrder", "PaymentSession", "PaymentProof", "WebhookReceipt")
