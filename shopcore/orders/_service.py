"""
Order service — history, ownership-checked reads, cancellation, fulfilment.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shopcore import lift as L
from shopcore._types import Outcome, OrderId, UserId
from shopcore.checkout import restock
from shopcore.db import Repositories, transaction
from shopcore.domain import Order
from shopcore.errors import (
    NotAuthorizedError,
    OrderNotFoundError,
    OrderStateError,
    ValidationError,
)
from shopcore.orders._types import TERMINAL, OrderPage, next_status

logger = logging.getLogger(__name__)

MAX_PAGE = 100


async def load_order(
    repos: Repositories,
    order_id: OrderId,
    user_id: UserId | None = None,
    *,
    for_update: bool = False,
) -> Order:
    """Fetch an order, enforcing ownership when ``user_id`` is given."""
    order = await repos.orders.get(order_id, for_update=for_update)
    if order is None:
        raise OrderNotFoundError(order_id)
    if user_id is not None and order.user_id != user_id:
        logger.warning("user %s denied access to order %s of user %s", user_id, order_id, order.user_id)
        raise NotAuthorizedError("order", order_id)
    return order


async def cancel_open(repos: Repositories, order: Order) -> bool:
    """
    Cancel a pending/unpaid order and put its stock back.

    Guarded by compare-and-set: returns False, changing nothing, when the
    order was paid or cancelled concurrently.
    """
    if not await repos.orders.mark_cancelled(order.id):
        return False
    await restock(repos, order)
    return True


class OrderService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session = session_factory

    def list_orders(self, user_id: UserId, limit: int = 10, offset: int = 0) -> Outcome[OrderPage]:
        """The user's orders, newest first."""
        return L.guarded(lambda: self._list_orders(user_id, limit, offset))

    def get_order(self, user_id: UserId, order_id: OrderId) -> Outcome[Order]:
        return L.guarded(lambda: self._get_order(user_id, order_id))

    def cancel_order(self, order_id: OrderId, user_id: UserId | None = None) -> Outcome[Order]:
        """
        Release an unpaid pending order: status ``cancelled``, stock restored.

        ``user_id`` limits the call to the owner; omit it for back-office use.
        Paid orders are refused with OrderStateError.
        """
        return L.guarded(lambda: self._cancel_order(order_id, user_id))

    def advance(self, order_id: OrderId) -> Outcome[Order]:
        """Move a paid order one fulfilment step: processing → shipped → delivered."""
        return L.guarded(lambda: self._advance(order_id))

    async def _list_orders(self, user_id: UserId, limit: int, offset: int) -> OrderPage:
        if not 1 <= limit <= MAX_PAGE:
            raise ValidationError("limit", f"must be between 1 and {MAX_PAGE}")
        if offset < 0:
            raise ValidationError("offset", "must not be negative")

        async with transaction(self._session) as repos:
            orders = await repos.orders.list_for_user(user_id, limit=limit, offset=offset)
        return OrderPage(items=tuple(orders), limit=limit, offset=offset)

    async def _get_order(self, user_id: UserId, order_id: OrderId) -> Order:
        async with transaction(self._session) as repos:
            return await load_order(repos, order_id, user_id)

    async def _cancel_order(self, order_id: OrderId, user_id: UserId | None) -> Order:
        async with transaction(self._session) as repos:
            order = await load_order(repos, order_id, user_id, for_update=True)
            if not await cancel_open(repos, order):
                raise OrderStateError(order.id, order.status, order.payment_status)
            logger.info("order %s cancelled, %s line(s) restocked", order.id, len(order.lines))
            return await load_order(repos, order_id)

    async def _advance(self, order_id: OrderId) -> Order:
        async with transaction(self._session) as repos:
            order = await load_order(repos, order_id, for_update=True)
            target = next_status(order.status)
            if order.status in TERMINAL or target is None:
                raise OrderStateError(order.id, order.status, order.payment_status)
            if not await repos.orders.advance(order.id, order.status, target):
                raise OrderStateError(order.id, order.status, order.payment_status)
            logger.info("order %s moved %s → %s", order.id, order.status, target)
            return await load_order(repos, order_id)


__all__ = ("OrderService", "load_order", "cancel_open", "MAX_PAGE")
