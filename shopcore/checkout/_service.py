"""
Checkout — convert the cart into an order in one transaction.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shopcore import lift as L
from shopcore._types import AddressId, Clock, Outcome, UserId, utcnow
from shopcore.checkout._reserve import open_order
from shopcore.db import transaction
from shopcore.domain import Order

logger = logging.getLogger(__name__)


class CheckoutService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utcnow,
    ) -> None:
        self._session = session_factory
        self._clock = clock

    def place_order(self, user_id: UserId, address_id: AddressId) -> Outcome[Order]:
        """
        Place an order for everything in the user's cart.

        All or nothing: on any error there is no order, no order line, no stock
        change and the cart is untouched. On success the cart is empty and the
        order is pending/unpaid.

        Example:
            match await checkout.place_order(user_id, address_id):
                case Ok(order):
                    order.total
                case Error(EmptyCartError()):
                    ...
        """
        return L.guarded(lambda: self._place_order(user_id, address_id))

    async def _place_order(self, user_id: UserId, address_id: AddressId) -> Order:
        async with transaction(self._session) as repos:
            order = await open_order(repos, user_id, address_id, self._clock(), clear_cart=True)

        logger.info(
            "order %s placed by user %s: subtotal=%s discount=%s total=%s",
            order.id, user_id, order.subtotal, order.discount, order.total,
        )
        return order


__all__ = ("CheckoutService",)
