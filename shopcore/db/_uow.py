"""
Unit of work — one session, one transaction, every repository bound to it.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shopcore.db._cart import CartRepository
from shopcore.db._catalog import AddressRepository, CatalogRepository, CouponRepository
from shopcore.db._engine import SHARED_CONNECTION_LOCK
from shopcore.db._orders import OrderRepository, PaymentRepository


@dataclass(frozen=True, slots=True)
class Repositories:
    session: AsyncSession
    catalog: CatalogRepository
    addresses: AddressRepository
    coupons: CouponRepository
    carts: CartRepository
    orders: OrderRepository
    payments: PaymentRepository

    @classmethod
    def bind(cls, session: AsyncSession) -> Repositories:
        return cls(
            session=session,
            catalog=CatalogRepository(session),
            addresses=AddressRepository(session),
            coupons=CouponRepository(session),
            carts=CartRepository(session),
            orders=OrderRepository(session),
            payments=PaymentRepository(session),
        )


@asynccontextmanager
async def transaction(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[Repositories]:
    """
    Commit on normal exit, roll back on any exception.

    When the factory shares one connection (in-memory SQLite) units of work
    take turns, so one rollback never discards another caller's writes.
    Do not nest ``transaction()`` on such a factory.

    Example:
        async with transaction(session_factory) as repos:
            cart = await repos.carts.load(user_id, for_update=True)
    """
    async with session_factory() as session:
        shared = session.info.get(SHARED_CONNECTION_LOCK)
        if shared is None:
            async with session.begin():
                yield Repositories.bind(session)
            return
        async with shared, session.begin():
            yield Repositories.bind(session)


__all__ = ("Repositories", "transaction")
