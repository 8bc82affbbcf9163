"""Coupon lookup for "does this code work?" checks before attaching it."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shopcore import lift as L
from shopcore._types import Clock, Outcome, UserId, utcnow
from shopcore.db import transaction
from shopcore.domain import Coupon
from shopcore.errors import CouponNotFoundError
from shopcore.pricing import compute_totals, is_applicable


@dataclass(frozen=True, slots=True)
class CouponCheck:
    coupon: Coupon
    applies: bool | None
    """None when no user was given; otherwise whether it discounts their cart now."""
    discount: Decimal | None


class CouponService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utcnow,
    ) -> None:
        self._session = session_factory
        self._clock = clock

    def validate_code(self, code: str, user_id: UserId | None = None) -> Outcome[CouponCheck]:
        return L.guarded(lambda: self._validate_code(code, user_id))

    async def _validate_code(self, code: str, user_id: UserId | None) -> CouponCheck:
        async with transaction(self._session) as repos:
            coupon = await repos.coupons.get_by_code(code)
            if coupon is None or not coupon.active:
                raise CouponNotFoundError(code)
            if user_id is None:
                return CouponCheck(coupon=coupon, applies=None, discount=None)

            cart = await repos.carts.load(user_id)
            now = self._clock()
            totals = compute_totals(cart.lines, coupon, now)
            return CouponCheck(
                coupon=coupon,
                applies=is_applicable(coupon, totals.subtotal, now),
                discount=totals.discount,
            )


__all__ = ("CouponCheck", "CouponService")
