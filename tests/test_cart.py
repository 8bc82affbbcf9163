"""Tests for the cart service."""

from decimal import Decimal

from kungfu import Error, Ok
from sqlalchemy import update

from shopcore.db import ProductRow
from shopcore.errors import (
    CartLineNotFoundError,
    CouponNotFoundError,
    NotAuthorizedError,
    ProductNotFoundError,
    ValidationError,
)

from conftest import MUG, OTHER_USER, TEE, USER


class TestAddItem:
    async def test_adds_line_with_price_snapshot(self, services):
        preview = (await services.carts.add_item(USER, MUG, 2)).unwrap()

        assert len(preview.lines) == 1
        line = preview.lines[0]
        assert line.product_id == MUG
        assert line.name == "Mug"
        assert line.quantity == 2
        assert line.unit_price == Decimal("25.00")
        assert preview.subtotal == Decimal("50.00")
        assert preview.total == Decimal("50.00")

    async def test_repeated_add_merges_and_refreshes_price(self, services, session_factory):
        await services.carts.add_item(USER, MUG, 1)
        async with session_factory() as session:
            async with session.begin():
                await session.execute(
                    update(ProductRow).where(ProductRow.id == MUG).values(price=Decimal("30.00"))
                )

        preview = (await services.carts.add_item(USER, MUG, 2)).unwrap()
        assert len(preview.lines) == 1
        assert preview.lines[0].quantity == 3
        assert preview.lines[0].unit_price == Decimal("30.00")
        assert preview.subtotal == Decimal("90.00")

    async def test_unknown_product(self, services, probe):
        result = await services.carts.add_item(USER, 999, 1)
        match result:
            case Error(e):
                assert isinstance(e, ProductNotFoundError)
                assert e.status == 404
            case Ok(_):
                raise AssertionError("expected an error")
        assert await probe.cart_lines(USER) == 0

    async def test_rejects_non_positive_quantity(self, services, probe):
        for quantity in (0, -1):
            result = await services.carts.add_item(USER, MUG, quantity)
            assert isinstance(result.unwrap_err(), ValidationError)
        assert await probe.cart_lines(USER) == 0

    async def test_stock_is_not_checked_when_adding(self, services):
        preview = (await services.carts.add_item(USER, TEE, 50)).unwrap()
        assert preview.lines[0].quantity == 50
        assert preview.lines[0].stock == 5


class TestUpdateAndRemove:
    async def test_update_quantity(self, services):
        line_id = (await services.carts.add_item(USER, MUG, 1)).unwrap().lines[0].line_id
        preview = (await services.carts.update_item(USER, line_id, 4)).unwrap()
        assert preview.lines[0].quantity == 4
        assert preview.subtotal == Decimal("100.00")

    async def test_update_rejects_zero(self, services):
        line_id = (await services.carts.add_item(USER, MUG, 1)).unwrap().lines[0].line_id
        result = await services.carts.update_item(USER, line_id, 0)
        assert isinstance(result.unwrap_err(), ValidationError)

    async def test_remove_line(self, services, probe):
        preview = (await services.carts.add_item(USER, MUG, 1)).unwrap()
        await services.carts.add_item(USER, TEE, 1)

        after = (await services.carts.remove_item(USER, preview.lines[0].line_id)).unwrap()
        assert [line.product_id for line in after.lines] == [TEE]
        assert await probe.cart_lines(USER) == 1

    async def test_unknown_line(self, services):
        result = await services.carts.remove_item(USER, 12345)
        assert isinstance(result.unwrap_err(), CartLineNotFoundError)

    async def test_foreign_line_is_forbidden(self, services, probe):
        line_id = (await services.carts.add_item(OTHER_USER, MUG, 1)).unwrap().lines[0].line_id

        update_result = await services.carts.update_item(USER, line_id, 5)
        remove_result = await services.carts.remove_item(USER, line_id)

        assert isinstance(update_result.unwrap_err(), NotAuthorizedError)
        assert update_result.unwrap_err().status == 403
        assert isinstance(remove_result.unwrap_err(), NotAuthorizedError)
        assert await probe.cart_lines(OTHER_USER) == 1

    async def test_clear(self, services, probe):
        await services.carts.add_item(USER, MUG, 1)
        await services.carts.apply_coupon(USER, "SAVE10")

        assert (await services.carts.clear(USER)).unwrap() is None
        assert await probe.cart_lines(USER) == 0
        assert await probe.cart_coupon(USER) is None


class TestCoupons:
    async def test_apply_percent_coupon(self, services):
        await services.carts.add_item(USER, TEE, 2)
        preview = (await services.carts.apply_coupon(USER, "SAVE10")).unwrap()

        assert preview.coupon.code == "SAVE10"
        assert preview.coupon_applied is True
        assert preview.discount == Decimal("20.00")
        assert preview.total == Decimal("180.00")

    async def test_below_threshold_attaches_without_discount(self, services):
        await services.carts.add_item(USER, TEE, 1)
        preview = (await services.carts.apply_coupon(USER, "BIG500")).unwrap()

        assert preview.coupon.code == "BIG500"
        assert preview.coupon_applied is False
        assert preview.discount == Decimal("0.00")

        # crossing the threshold turns the discount on
        line_id = preview.lines[0].line_id
        preview = (await services.carts.update_item(USER, line_id, 6)).unwrap()
        assert preview.coupon_applied is True
        assert preview.discount == Decimal("60.00")

    async def test_unknown_and_inactive_codes(self, services):
        for code in ("NOPE", "RETIRED"):
            result = await services.carts.apply_coupon(USER, code)
            assert isinstance(result.unwrap_err(), CouponNotFoundError)

    async def test_remove_coupon(self, services, probe):
        await services.carts.add_item(USER, TEE, 1)
        await services.carts.apply_coupon(USER, "SAVE10")

        preview = (await services.carts.remove_coupon(USER)).unwrap()
        assert preview.coupon is None
        assert preview.total == Decimal("100.00")
        assert await probe.cart_coupon(USER) is None


class TestPreview:
    async def test_empty_cart_preview(self, services):
        preview = (await services.carts.preview(USER)).unwrap()
        assert preview.lines == ()
        assert preview.total == Decimal("0.00")

    async def test_preview_is_lazy_and_repeatable(self, services):
        await services.carts.add_item(USER, MUG, 1)
        outcome = services.carts.preview(USER)

        first = (await outcome).unwrap()
        await services.carts.add_item(USER, MUG, 1)
        second = (await outcome).unwrap()

        assert first.subtotal == Decimal("25.00")
        assert second.subtotal == Decimal("50.00")
