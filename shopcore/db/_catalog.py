"""
Repositories over reference data: products, addresses, coupons.

Products and addresses are owned by other parts of the system. The only write
shopcore performs here is moving ``products.stock``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, cast

from sqlalchemy import select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession

from shopcore._types import AddressId, CouponId, ProductId
from shopcore.db._tables import AddressRow, CouponRow, ProductRow
from shopcore.domain import Address, Coupon, CouponType, Product


# ═══════════════════════════════════════════════════════════════════════════════
# Row → Domain
# ═══════════════════════════════════════════════════════════════════════════════


def to_product(row: ProductRow) -> Product:
    return Product(id=row.id, name=row.name, price=row.price, stock=row.stock)


def to_address(row: AddressRow) -> Address:
    return Address(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        phone=row.phone,
        line1=row.line1,
        line2=row.line2,
        city=row.city,
        state=row.state,
        postal_code=row.postal_code,
        country=row.country,
    )


def to_coupon(row: CouponRow) -> Coupon:
    return Coupon(
        id=row.id,
        code=row.code,
        type=CouponType(row.type),
        value=row.value,
        min_subtotal=row.min_subtotal,
        max_discount=row.max_discount,
        starts_at=row.starts_at,
        ends_at=row.ends_at,
        active=row.active,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog
# ═══════════════════════════════════════════════════════════════════════════════


class CatalogRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_product(self, product_id: ProductId) -> Product | None:
        stmt = (
            select(ProductRow)
            .where(ProductRow.id == product_id)
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return to_product(row) if row else None

    async def get_products(self, product_ids: Iterable[ProductId]) -> dict[ProductId, Product]:
        ids = set(product_ids)
        if not ids:
            return {}
        stmt = (
            select(ProductRow)
            .where(ProductRow.id.in_(ids))
            .execution_options(populate_existing=True)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return {row.id: to_product(row) for row in rows}

    async def decrement_stock(self, product_id: ProductId, quantity: int) -> bool:
        """
        Take ``quantity`` units off the shelf if that many are there.

        A single conditional UPDATE: concurrent callers on the same product
        serialize on the row and stock never goes negative. Returns False when
        the row did not match (not enough stock or no such product).
        """
        stmt = (
            update(ProductRow)
            .where(ProductRow.id == product_id, ProductRow.stock >= quantity)
            .values(stock=ProductRow.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        result = cast(CursorResult[Any], await self._session.execute(stmt))
        return result.rowcount == 1

    async def restore_stock(self, product_id: ProductId, quantity: int) -> None:
        stmt = (
            update(ProductRow)
            .where(ProductRow.id == product_id)
            .values(stock=ProductRow.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)


# ═══════════════════════════════════════════════════════════════════════════════
# Addresses
# ═══════════════════════════════════════════════════════════════════════════════


class AddressRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, address_id: AddressId) -> Address | None:
        row = await self._session.get(AddressRow, address_id)
        return to_address(row) if row else None


# ═══════════════════════════════════════════════════════════════════════════════
# Coupons
# ═══════════════════════════════════════════════════════════════════════════════


class CouponRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, coupon_id: CouponId) -> Coupon | None:
        row = await self._session.get(CouponRow, coupon_id)
        return to_coupon(row) if row else None

    async def get_by_code(self, code: str) -> Coupon | None:
        """Exact, case-sensitive match on the stored code."""
        stmt = select(CouponRow).where(CouponRow.code == code)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return to_coupon(row) if row else None


__all__ = (
    "CatalogRepository",
    "AddressRepository",
    "CouponRepository",
    "to_product",
    "to_address",
    "to_coupon",
)
