"""
Order lifecycle.

    pending ──pay──▶ processing ──▶ shipped ──▶ delivered
       │
       └──cancel / expire──▶ cancelled

``delivered`` and ``cancelled`` are terminal; ``paid`` is terminal for
payment_status. Payment and cancellation only ever act on pending/unpaid.
"""

from __future__ import annotations

from dataclasses import dataclass

from shopcore.domain import Order, OrderStatus

FULFILMENT: dict[OrderStatus, OrderStatus] = {
    OrderStatus.PROCESSING: OrderStatus.SHIPPED,
    OrderStatus.SHIPPED: OrderStatus.DELIVERED,
}
"""Forward steps allowed after payment."""

TERMINAL = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


def next_status(status: OrderStatus) -> OrderStatus | None:
    return FULFILMENT.get(status)


@dataclass(frozen=True, slots=True)
class OrderPage:
    items: tuple[Order, ...]
    limit: int
    offset: int


__all__ = ("FULFILMENT", "TERMINAL", "next_status", "OrderPage")
