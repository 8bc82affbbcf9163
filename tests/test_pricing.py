"""Tests for the pricing engine and coupon predicate."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from shopcore import pricing as P
from shopcore.domain import Coupon, CouponType

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@dataclass(frozen=True)
class Line:
    unit_price: Decimal
    quantity: int


def coupon(type=CouponType.PERCENT, value="10", **kwargs) -> Coupon:
    return Coupon(id=1, code="TEST", type=type, value=Decimal(value), **kwargs)


class TestSubtotal:
    def test_sum_of_lines(self):
        lines = [Line(Decimal("25.00"), 2), Line(Decimal("9.99"), 3)]
        totals = P.compute_totals(lines, None, NOW)
        assert totals.subtotal == Decimal("79.97")
        assert totals.discount == Decimal("0.00")
        assert totals.total == Decimal("79.97")

    def test_empty(self):
        totals = P.compute_totals([], None, NOW)
        assert totals == P.Totals(Decimal("0.00"), Decimal("0.00"), Decimal("0.00"))

    def test_exact_decimal_arithmetic(self):
        lines = [Line(Decimal("0.10"), 1), Line(Decimal("0.20"), 1)]
        assert P.compute_totals(lines, None, NOW).subtotal == Decimal("0.30")


class TestPercentCoupon:
    def test_ten_percent(self):
        totals = P.compute_totals([Line(Decimal("200.00"), 1)], coupon(), NOW)
        assert totals.discount == Decimal("20.00")
        assert totals.total == Decimal("180.00")

    def test_rounds_half_up_at_output(self):
        # 10% of 0.45 is 0.045
        totals = P.compute_totals([Line(Decimal("0.45"), 1)], coupon(), NOW)
        assert totals.discount == Decimal("0.05")
        assert totals.total == Decimal("0.40")

    def test_max_discount_caps_percent(self):
        c = coupon(value="50", max_discount=Decimal("15"))
        totals = P.compute_totals([Line(Decimal("100.00"), 1)], c, NOW)
        assert totals.discount == Decimal("15.00")


class TestFixedCoupon:
    def test_capped_by_max_discount(self):
        c = coupon(type=CouponType.FIXED, value="30", max_discount=Decimal("20"))
        totals = P.compute_totals([Line(Decimal("100.00"), 1)], c, NOW)
        assert totals.discount == Decimal("20.00")
        assert totals.total == Decimal("80.00")

    def test_larger_than_subtotal_clamps_total(self):
        c = coupon(type=CouponType.FIXED, value="1000")
        totals = P.compute_totals([Line(Decimal("25.00"), 1)], c, NOW)
        assert totals.discount == Decimal("1000.00")
        assert totals.total == Decimal("0.00")


class TestNegativeValues:
    @pytest.mark.parametrize(
        "c",
        [
            coupon(type=CouponType.FIXED, value="-5"),
            coupon(type=CouponType.PERCENT, value="-10"),
            coupon(type=CouponType.FIXED, value="30", max_discount=Decimal("-20")),
        ],
        ids=["fixed", "percent", "max_discount"],
    )
    def test_discount_floors_at_zero(self, c):
        totals = P.compute_totals([Line(Decimal("100.00"), 1)], c, NOW)
        assert totals.discount == Decimal("0.00")
        assert totals.total == totals.subtotal == Decimal("100.00")

    def test_discount_for_never_negative(self):
        assert P.discount_for(coupon(type=CouponType.FIXED, value="-5"), Decimal("40")) == Decimal(0)


class TestApplicability:
    def test_min_subtotal_gates(self):
        c = coupon(min_subtotal=Decimal("500"))
        below = P.compute_totals([Line(Decimal("100.00"), 4)], c, NOW)
        assert below.discount == Decimal("0.00")
        assert below.total == Decimal("400.00")

        above = P.compute_totals([Line(Decimal("100.00"), 6)], c, NOW)
        assert above.discount == Decimal("60.00")
        assert above.total == Decimal("540.00")

    def test_min_subtotal_is_inclusive(self):
        c = coupon(min_subtotal=Decimal("500"))
        assert P.is_applicable(c, Decimal("500.00"), NOW)
        assert not P.is_applicable(c, Decimal("499.99"), NOW)

    def test_window_bounds_are_inclusive(self):
        c = coupon(starts_at=NOW, ends_at=NOW + timedelta(days=1))
        assert P.is_applicable(c, Decimal("10"), NOW)
        assert P.is_applicable(c, Decimal("10"), NOW + timedelta(days=1))
        assert not P.is_applicable(c, Decimal("10"), NOW - timedelta(seconds=1))
        assert not P.is_applicable(c, Decimal("10"), NOW + timedelta(days=1, seconds=1))

    def test_inactive_never_applies(self):
        assert not P.is_applicable(coupon(active=False), Decimal("100"), NOW)

    def test_inapplicable_coupon_gives_no_discount(self):
        c = coupon(ends_at=NOW - timedelta(days=1))
        totals = P.compute_totals([Line(Decimal("100.00"), 1)], c, NOW)
        assert totals.discount == Decimal("0.00")


class TestMinorUnits:
    @pytest.mark.parametrize(
        ("amount", "expected"),
        [
            (Decimal("45.00"), 4500),
            (Decimal("0.01"), 1),
            (Decimal("19.995"), 2000),
            (Decimal("0"), 0),
        ],
    )
    def test_to_minor_units(self, amount, expected):
        assert P.to_minor_units(amount) == expected
