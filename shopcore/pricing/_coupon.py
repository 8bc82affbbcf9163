"""
Coupon applicability — the one predicate every call site uses.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from shopcore.domain import Coupon, CouponType


def is_applicable(coupon: Coupon, subtotal: Decimal, now: datetime) -> bool:
    """
    Whether ``coupon`` discounts a cart worth ``subtotal`` at ``now``.

    Window and threshold boundaries are inclusive: a coupon applies at the
    exact ``starts_at`` and ``ends_at`` instants and at exactly ``min_subtotal``.
    """
    if not coupon.active:
        return False
    if coupon.starts_at is not None and now < coupon.starts_at:
        return False
    if coupon.ends_at is not None and now > coupon.ends_at:
        return False
    if coupon.min_subtotal is not None and subtotal < coupon.min_subtotal:
        return False
    return True


def discount_for(coupon: Coupon, subtotal: Decimal) -> Decimal:
    """Raw discount of an applicable coupon, capped and floored at zero. Unrounded."""
    match coupon.type:
        case CouponType.PERCENT:
            raw = subtotal * coupon.value / Decimal(100)
        case CouponType.FIXED:
            raw = coupon.value

    if coupon.max_discount is not None:
        raw = min(raw, coupon.max_discount)

    return max(raw, Decimal(0))


__all__ = ("is_applicable", "discount_for")
