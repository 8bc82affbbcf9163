"""
Pricing engine — subtotal, discount and total for a set of priced lines.

Pure: no I/O, no clock. Preview and checkout call the same function on the
same snapshot, so they always agree.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from shopcore.domain import Coupon
from shopcore.pricing._coupon import discount_for, is_applicable

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# ═══════════════════════════════════════════════════════════════════════════════
# Types
# ═══════════════════════════════════════════════════════════════════════════════


class PricedLine(Protocol):
    """Anything with a quantity and a unit price (cart lines, test tuples...)."""

    @property
    def quantity(self) -> int: ...

    @property
    def unit_price(self) -> Decimal: ...


@dataclass(frozen=True, slots=True)
class Totals:
    subtotal: Decimal
    discount: Decimal
    total: Decimal


# ═══════════════════════════════════════════════════════════════════════════════
# Rounding
# ═══════════════════════════════════════════════════════════════════════════════


def quantize(amount: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    """Amount in the smallest currency unit (paise, cents) for the gateway."""
    return int((amount * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


# ═══════════════════════════════════════════════════════════════════════════════
# compute_totals()
# ═══════════════════════════════════════════════════════════════════════════════


def compute_totals(
    lines: Iterable[PricedLine],
    coupon: Coupon | None,
    now: datetime,
) -> Totals:
    """
    Price a set of lines with an optional coupon.

    Arithmetic stays exact until the output, which is rounded half-up to 2 dp.
    ``total`` is derived from the rounded parts, so
    ``total == max(subtotal - discount, 0)`` holds on the returned values.

    Example:
        totals = compute_totals(cart.lines, cart.coupon, datetime.now(UTC))
        totals.subtotal, totals.discount, totals.total
    """
    subtotal = sum((line.unit_price * line.quantity for line in lines), Decimal(0))

    discount = Decimal(0)
    if coupon is not None and is_applicable(coupon, subtotal, now):
        discount = discount_for(coupon, subtotal)

    subtotal = quantize(subtotal)
    discount = quantize(discount)
    return Totals(
        subtotal=subtotal,
        discount=discount,
        total=max(subtotal - discount, ZERO),
    )


__all__ = ("PricedLine", "Totals", "quantize", "to_minor_units", "compute_totals")
