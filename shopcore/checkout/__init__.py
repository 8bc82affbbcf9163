"""
Checkout — cart → order, stock reservation.

    from shopcore.checkout import CheckoutService

    order = (await checkout.place_order(user_id, address_id)).unwrap()
"""

from __future__ import annotations

from shopcore.checkout._reserve import open_order, resolve_address, restock
from shopcore.checkout._service import CheckoutService

__all__ = (
    "CheckoutService",
    "open_order",
    "resolve_address",
    "restock",
)
