"""
Cart repository — one cart per user, lines unique per product.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shopcore._types import CartId, CartLineId, CouponId, ProductId, UserId
from shopcore.db._catalog import to_coupon
from shopcore.db._tables import CartLineRow, CartRow, CouponRow
from shopcore.domain import Cart, CartLine


def to_line(row: CartLineRow) -> CartLine:
    return CartLine(
        id=row.id,
        cart_id=row.cart_id,
        product_id=row.product_id,
        quantity=row.quantity,
        unit_price=row.unit_price,
    )


class CartRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # ─────────────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────────────

    async def _row_for(self, user_id: UserId, *, for_update: bool = False) -> CartRow:
        """Find-or-create the user's cart row. ``carts.user_id`` is unique."""
        stmt = (
            select(CartRow)
            .where(CartRow.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            row = CartRow(user_id=user_id)
            self._session.add(row)
            await self._session.flush()
        return row

    async def load(self, user_id: UserId, *, for_update: bool = False) -> Cart:
        """Cart with lines (oldest first) and the attached coupon, if any."""
        cart = await self._row_for(user_id, for_update=for_update)

        lines_stmt = (
            select(CartLineRow)
            .where(CartLineRow.cart_id == cart.id)
            .order_by(CartLineRow.id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            lines_stmt = lines_stmt.with_for_update()
        lines = (await self._session.execute(lines_stmt)).scalars().all()

        coupon = None
        if cart.coupon_id is not None:
            coupon_row = await self._session.get(CouponRow, cart.coupon_id)
            coupon = to_coupon(coupon_row) if coupon_row else None

        return Cart(
            id=cart.id,
            user_id=cart.user_id,
            lines=tuple(to_line(line) for line in lines),
            coupon=coupon,
        )

    async def get_line(self, line_id: CartLineId) -> tuple[CartLine, UserId] | None:
        """The line and the id of the user whose cart holds it."""
        stmt = (
            select(CartLineRow, CartRow.user_id)
            .join(CartRow, CartRow.id == CartLineRow.cart_id)
            .where(CartLineRow.id == line_id)
            .execution_options(populate_existing=True)
        )
        found = (await self._session.execute(stmt)).one_or_none()
        if found is None:
            return None
        line, owner = found
        return to_line(line), owner

    # ─────────────────────────────────────────────────────────────────────────
    # Writes
    # ─────────────────────────────────────────────────────────────────────────

    async def add_quantity(
        self,
        cart_id: CartId,
        product_id: ProductId,
        quantity: int,
        unit_price: Decimal,
    ) -> None:
        """Increment the product's line (creating it) and refresh its price snapshot."""
        stmt = (
            select(CartLineRow)
            .where(CartLineRow.cart_id == cart_id, CartLineRow.product_id == product_id)
            .execution_options(populate_existing=True)
        )
        line = (await self._session.execute(stmt)).scalar_one_or_none()
        if line is None:
            self._session.add(CartLineRow(
                cart_id=cart_id,
                product_id=product_id,
                quantity=quantity,
                unit_price=unit_price,
            ))
        else:
            line.quantity += quantity
            line.unit_price = unit_price
        await self._session.flush()

    async def set_quantity(self, line_id: CartLineId, quantity: int) -> None:
        await self._session.execute(
            update(CartLineRow)
            .where(CartLineRow.id == line_id)
            .values(quantity=quantity)
            .execution_options(synchronize_session=False)
        )

    async def delete_line(self, line_id: CartLineId) -> None:
        await self._session.execute(
            delete(CartLineRow)
            .where(CartLineRow.id == line_id)
            .execution_options(synchronize_session=False)
        )

    async def set_coupon(self, cart_id: CartId, coupon_id: CouponId | None) -> None:
        await self._session.execute(
            update(CartRow)
            .where(CartRow.id == cart_id)
            .values(coupon_id=coupon_id)
            .execution_options(synchronize_session=False)
        )

    async def clear(self, cart_id: CartId) -> None:
        """Delete every line and detach the coupon. The cart itself stays."""
        await self._session.execute(
            delete(CartLineRow)
            .where(CartLineRow.cart_id == cart_id)
            .execution_options(synchronize_session=False)
        )
        await self.set_coupon(cart_id, None)

    async def clear_for_user(self, user_id: UserId) -> None:
        cart = await self._row_for(user_id)
        await self.clear(cart.id)


__all__ = ("CartRepository", "to_line")
