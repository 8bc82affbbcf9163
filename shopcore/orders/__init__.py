"""
Orders — immutable purchase records and their status transitions.

    from shopcore.orders import OrderService

    page = (await orders.list_orders(user_id, limit=10)).unwrap()
"""

from __future__ import annotations

from shopcore.orders._types import FULFILMENT, TERMINAL, OrderPage, next_status
from shopcore.orders._service import OrderService, cancel_open, load_order

__all__ = (
    "FULFILMENT",
    "TERMINAL",
    "OrderPage",
    "next_status",
    "OrderService",
    "cancel_open",
    "load_order",
)
