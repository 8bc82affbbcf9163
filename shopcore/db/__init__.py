"""
Persistence — SQLAlchemy async tables and repositories.

    from shopcore import db

    session_factory, engine = await db.create_database("sqlite+aiosqlite:///shop.db")

    async with db.transaction(session_factory) as repos:
        stock_taken = await repos.catalog.decrement_stock(product_id, 2)

Repositories take an open ``AsyncSession`` and return frozen domain records;
the caller owns the transaction.
"""

from __future__ import annotations

from shopcore.db._tables import (
    Base,
    ProductRow,
    AddressRow,
    CouponRow,
    CartRow,
    CartLineRow,
    OrderRow,
    OrderLineRow,
    PaymentRow,
)
from shopcore.db._engine import create_database
from shopcore.db._catalog import CatalogRepository, AddressRepository, CouponRepository
from shopcore.db._cart import CartRepository
from shopcore.db._orders import OrderRepository, PaymentRepository
from shopcore.db._uow import Repositories, transaction

__all__ = (
    "Base",
    "ProductRow",
    "AddressRow",
    "CouponRow",
    "CartRow",
    "CartLineRow",
    "OrderRow",
    "OrderLineRow",
    "PaymentRow",
    "create_database",
    "CatalogRepository",
    "AddressRepository",
    "CouponRepository",
    "CartRepository",
    "OrderRepository",
    "PaymentRepository",
    "Repositories",
    "transaction",
)
