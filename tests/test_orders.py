"""Tests for order history, cancellation, fulfilment and coupon checks."""

from datetime import timedelta
from decimal import Decimal

import pytest

from shopcore.domain import OrderStatus, PaymentStatus
from shopcore.errors import (
    CouponNotFoundError,
    NotAuthorizedError,
    OrderNotFoundError,
    OrderStateError,
    ValidationError,
)
from shopcore.payments import PaymentProof, checkout_signature

from conftest import ADDRESS, MUG, OTHER_USER, TEE, USER


async def place(services, product_id=MUG, quantity=1):
    await services.carts.add_item(USER, product_id, quantity)
    return (await services.checkout.place_order(USER, ADDRESS)).unwrap()


async def place_paid(services):
    await services.carts.add_item(USER, MUG, 1)
    session = (await services.payments.initiate_payment(USER, ADDRESS)).unwrap()
    proof = PaymentProof(
        session.gateway_order_id,
        "pay_1",
        checkout_signature(session.gateway_order_id, "pay_1", "key-secret"),
    )
    return (await services.payments.confirm_payment(proof)).unwrap()


class TestListAndGet:
    async def test_newest_first(self, services, clock):
        first = await place(services)
        clock.advance(timedelta(minutes=1))
        second = await place(services, TEE)

        page = (await services.orders.list_orders(USER)).unwrap()
        assert [o.id for o in page.items] == [second.id, first.id]
        assert (page.limit, page.offset) == (10, 0)

    async def test_pagination(self, services, clock):
        ids = []
        for _ in range(3):
            ids.append((await place(services)).id)
            clock.advance(timedelta(seconds=1))

        page = (await services.orders.list_orders(USER, limit=2, offset=1)).unwrap()
        assert [o.id for o in page.items] == [ids[1], ids[0]]

    async def test_only_own_orders(self, services):
        await place(services)
        page = (await services.orders.list_orders(OTHER_USER)).unwrap()
        assert page.items == ()

    @pytest.mark.parametrize(("limit", "offset"), [(0, 0), (101, 0), (10, -1)])
    async def test_bad_paging(self, services, limit, offset):
        result = await services.orders.list_orders(USER, limit, offset)
        assert isinstance(result.unwrap_err(), ValidationError)

    async def test_get_order(self, services):
        order = await place(services)
        fetched = (await services.orders.get_order(USER, order.id)).unwrap()
        assert fetched == order

    async def test_get_foreign_order(self, services):
        order = await place(services)
        result = await services.orders.get_order(OTHER_USER, order.id)
        assert isinstance(result.unwrap_err(), NotAuthorizedError)

    async def test_get_missing_order(self, services):
        result = await services.orders.get_order(USER, 999)
        assert isinstance(result.unwrap_err(), OrderNotFoundError)


class TestCancel:
    async def test_cancel_unpaid_order(self, services, probe):
        order = await place(services, MUG, 3)
        assert await probe.stock(MUG) == 7

        cancelled = (await services.orders.cancel_order(order.id, USER)).unwrap()

        assert cancelled.status is OrderStatus.CANCELLED
        assert await probe.stock(MUG) == 10

    async def test_cancel_twice(self, services, probe):
        order = await place(services, MUG, 3)
        (await services.orders.cancel_order(order.id)).unwrap()

        result = await services.orders.cancel_order(order.id)

        assert isinstance(result.unwrap_err(), OrderStateError)
        assert await probe.stock(MUG) == 10

    async def test_cancel_foreign_order(self, services):
        order = await place(services)
        result = await services.orders.cancel_order(order.id, OTHER_USER)
        assert isinstance(result.unwrap_err(), NotAuthorizedError)


class TestFulfilment:
    async def test_advance_paid_order(self, services):
        order = await place_paid(services)
        assert order.status is OrderStatus.PROCESSING

        shipped = (await services.orders.advance(order.id)).unwrap()
        delivered = (await services.orders.advance(order.id)).unwrap()

        assert shipped.status is OrderStatus.SHIPPED
        assert delivered.status is OrderStatus.DELIVERED
        assert delivered.payment_status is PaymentStatus.PAID

        result = await services.orders.advance(order.id)
        assert isinstance(result.unwrap_err(), OrderStateError)

    async def test_unpaid_order_cannot_advance(self, services):
        order = await place(services)
        result = await services.orders.advance(order.id)
        assert isinstance(result.unwrap_err(), OrderStateError)


class TestValidateCoupon:
    async def test_without_user(self, services):
        check = (await services.coupons.validate_code("SAVE10")).unwrap()
        assert check.coupon.code == "SAVE10"
        assert check.applies is None
        assert check.discount is None

    async def test_against_cart(self, services):
        await services.carts.add_item(USER, TEE, 1)

        applies = (await services.coupons.validate_code("SAVE10", USER)).unwrap()
        gated = (await services.coupons.validate_code("BIG500", USER)).unwrap()
        expired = (await services.coupons.validate_code("EXPIRED", USER)).unwrap()

        assert (applies.applies, applies.discount) == (True, Decimal("10.00"))
        assert (gated.applies, gated.discount) == (False, Decimal("0.00"))
        assert expired.applies is False

    @pytest.mark.parametrize("code", ["NOPE", "RETIRED"])
    async def test_missing_or_inactive(self, services, code):
        result = await services.coupons.validate_code(code)
        assert isinstance(result.unwrap_err(), CouponNotFoundError)
