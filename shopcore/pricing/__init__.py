"""
Pricing — pure cart arithmetic.

    from shopcore import pricing as P

    totals = P.compute_totals(lines, coupon, now)
    P.to_minor_units(totals.total)
"""

from __future__ import annotations

from shopcore.pricing._coupon import is_applicable, discount_for
from shopcore.pricing._engine import (
    PricedLine,
    Totals,
    compute_totals,
    quantize,
    to_minor_units,
)

__all__ = (
    "PricedLine",
    "Totals",
    "compute_totals",
    "quantize",
    "to_minor_units",
    "is_applicable",
    "discount_for",
)
