"""
Cart service — the user's mutable basket.

Every operation is one transaction and hands back the fresh preview, priced
by the same engine checkout uses.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shopcore import lift as L
from shopcore._types import CartLineId, Clock, Outcome, ProductId, UserId, utcnow
from shopcore.cart._types import CartPreview, build_preview
from shopcore.db import Repositories, transaction
from shopcore.domain import CartLine
from shopcore.errors import (
    CartLineNotFoundError,
    CouponNotFoundError,
    NotAuthorizedError,
    ProductNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def require_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("quantity", "must be an integer of at least 1")


class CartService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utcnow,
    ) -> None:
        self._session = session_factory
        self._clock = clock

    # ═══════════════════════════════════════════════════════════════════════════
    # Public operations
    # ═══════════════════════════════════════════════════════════════════════════

    def preview(self, user_id: UserId) -> Outcome[CartPreview]:
        return L.guarded(lambda: self._preview(user_id))

    def add_item(self, user_id: UserId, product_id: ProductId, quantity: int) -> Outcome[CartPreview]:
        """
        Add ``quantity`` of a product. Repeated adds merge into one line and
        refresh its price snapshot. Stock is checked at checkout, not here.
        """
        return L.guarded(lambda: self._add_item(user_id, product_id, quantity))

    def update_item(self, user_id: UserId, line_id: CartLineId, quantity: int) -> Outcome[CartPreview]:
        """Set a line's quantity. The price snapshot is left as it is."""
        return L.guarded(lambda: self._update_item(user_id, line_id, quantity))

    def remove_item(self, user_id: UserId, line_id: CartLineId) -> Outcome[CartPreview]:
        return L.guarded(lambda: self._remove_item(user_id, line_id))

    def clear(self, user_id: UserId) -> Outcome[None]:
        """Delete every line and detach the coupon."""
        return L.guarded(lambda: self._clear(user_id))

    def apply_coupon(self, user_id: UserId, code: str) -> Outcome[CartPreview]:
        """
        Attach an active coupon by code.

        Attaching does not promise a discount: the window and threshold are
        evaluated on every preview and at checkout.
        """
        return L.guarded(lambda: self._apply_coupon(user_id, code))

    def remove_coupon(self, user_id: UserId) -> Outcome[CartPreview]:
        return L.guarded(lambda: self._remove_coupon(user_id))

    # ═══════════════════════════════════════════════════════════════════════════
    # Implementation
    # ═══════════════════════════════════════════════════════════════════════════

    async def _snapshot(self, repos: Repositories, user_id: UserId) -> CartPreview:
        cart = await repos.carts.load(user_id)
        products = await repos.catalog.get_products(line.product_id for line in cart.lines)
        return build_preview(cart, products, self._clock())

    async def _owned_line(self, repos: Repositories, user_id: UserId, line_id: CartLineId) -> CartLine:
        found = await repos.carts.get_line(line_id)
        if found is None:
            raise CartLineNotFoundError(line_id)
        line, owner = found
        if owner != user_id:
            logger.warning(
                "user %s tried to modify cart line %s owned by user %s", user_id, line_id, owner
            )
            raise NotAuthorizedError("cart line", line_id)
        return line

    async def _preview(self, user_id: UserId) -> CartPreview:
        async with transaction(self._session) as repos:
            return await self._snapshot(repos, user_id)

    async def _add_item(self, user_id: UserId, product_id: ProductId, quantity: int) -> CartPreview:
        require_quantity(quantity)
        async with transaction(self._session) as repos:
            product = await repos.catalog.get_product(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)

            cart = await repos.carts.load(user_id)
            await repos.carts.add_quantity(cart.id, product.id, quantity, product.price)
            logger.debug("user %s added %s x product %s", user_id, quantity, product_id)
            return await self._snapshot(repos, user_id)

    async def _update_item(self, user_id: UserId, line_id: CartLineId, quantity: int) -> CartPreview:
        require_quantity(quantity)
        async with transaction(self._session) as repos:
            await self._owned_line(repos, user_id, line_id)
            await repos.carts.set_quantity(line_id, quantity)
            return await self._snapshot(repos, user_id)

    async def _remove_item(self, user_id: UserId, line_id: CartLineId) -> CartPreview:
        async with transaction(self._session) as repos:
            await self._owned_line(repos, user_id, line_id)
            await repos.carts.delete_line(line_id)
            return await self._snapshot(repos, user_id)

    async def _clear(self, user_id: UserId) -> None:
        async with transaction(self._session) as repos:
            await repos.carts.clear_for_user(user_id)

    async def _apply_coupon(self, user_id: UserId, code: str) -> CartPreview:
        async with transaction(self._session) as repos:
            coupon = await repos.coupons.get_by_code(code)
            if coupon is None or not coupon.active:
                raise CouponNotFoundError(code)

            cart = await repos.carts.load(user_id)
            await repos.carts.set_coupon(cart.id, coupon.id)
            return await self._snapshot(repos, user_id)

    async def _remove_coupon(self, user_id: UserId) -> CartPreview:
        async with transaction(self._session) as repos:
            cart = await repos.carts.load(user_id)
            await repos.carts.set_coupon(cart.id, None)
            return await self._snapshot(repos, user_id)


__all__ = ("CartService", "require_quantity")
