"""Tests for payment initiation, confirmation and expiry."""

import asyncio
import logging
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import update

from shopcore.config import GatewaySettings
from shopcore.db import OrderRow, PaymentRow
from shopcore.domain import OrderStatus, PaymentStatus
from shopcore.errors import (
    EmptyCartError,
    GatewayError,
    InvalidSignatureError,
    InvalidTotalError,
    NotAuthorizedError,
    OrderStateError,
    PaymentNotFoundError,
)
from shopcore.payments import KeyedLock, PaymentProof, PaymentReconciler, RemoteOrder, checkout_signature

from conftest import ADDRESS, MUG, OTHER_ADDRESS, OTHER_USER, POSTER, USER

KEY_SECRET = "key-secret"


def proof_for(gateway_order_id: str, payment_id: str = "pay_001") -> PaymentProof:
    return PaymentProof(
        gateway_order_id=gateway_order_id,
        gateway_payment_id=payment_id,
        gateway_signature=checkout_signature(gateway_order_id, payment_id, KEY_SECRET),
    )


def settled_records(caplog) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.getMessage().startswith("order ") and " paid via " in r.getMessage()]


@pytest.fixture
async def session(services):
    """A user with 2 mugs and SAVE10 who has opened a gateway session."""
    await services.carts.add_item(USER, MUG, 2)
    await services.carts.apply_coupon(USER, "SAVE10")
    return (await services.payments.initiate_payment(USER, ADDRESS)).unwrap()


class TestInitiatePayment:
    async def test_opens_session_and_reserves(self, services, gateway, session, probe):
        assert session.key_id == "rzp_test_key"
        assert session.amount == Decimal("45.00")
        assert session.amount_minor == 4500
        assert session.currency == "INR"

        remote = gateway.orders[-1]
        assert remote.id == session.gateway_order_id
        assert remote.raw["notes"] == {"local_order_id": str(session.local_order_id)}

        order = (await services.orders.get_order(USER, session.local_order_id)).unwrap()
        assert order.status is OrderStatus.PENDING
        assert order.payment_status is PaymentStatus.UNPAID
        assert order.total == Decimal("45.00")

        # stock is held, the cart stays until the payment settles
        assert await probe.stock(MUG) == 8
        assert await probe.cart_lines(USER) == 1
        assert await probe.count(PaymentRow) == 1

    async def test_gateway_failure_compensates(self, services, gateway, probe):
        gateway.fail_with = GatewayError("HTTP 503")
        await services.carts.add_item(USER, MUG, 2)

        result = await services.payments.initiate_payment(USER, ADDRESS)

        assert isinstance(result.unwrap_err(), GatewayError)
        assert await probe.count(OrderRow) == 0
        assert await probe.count(PaymentRow) == 0
        assert await probe.stock(MUG) == 10
        assert await probe.cart_lines(USER) == 1

    async def test_amount_mismatch_compensates(
        self, services, session_factory, gateway_settings, clock, probe
    ):
        class ShortChanging:
            async def create_remote_order(self, amount_minor, currency, notes):
                return RemoteOrder(id="order_short", amount=amount_minor - 1, currency=currency)

            async def aclose(self):
                return None

        reconciler = PaymentReconciler(session_factory, ShortChanging(), gateway_settings, clock)
        await services.carts.add_item(USER, MUG, 1)

        result = await reconciler.initiate_payment(USER, ADDRESS)

        assert isinstance(result.unwrap_err(), GatewayError)
        assert await probe.count(OrderRow) == 0
        assert await probe.stock(MUG) == 10

    async def test_retry_replaces_abandoned_session(self, services, gateway, probe):
        await services.carts.add_item(USER, POSTER, 1)
        first = (await services.payments.initiate_payment(USER, ADDRESS)).unwrap()
        assert await probe.stock(POSTER) == 0

        second = (await services.payments.initiate_payment(USER, ADDRESS)).unwrap()

        assert second.local_order_id != first.local_order_id
        assert await probe.stock(POSTER) == 0
        dropped = (await services.orders.get_order(USER, first.local_order_id)).unwrap()
        assert dropped.status is OrderStatus.CANCELLED
        current = (await services.orders.get_order(USER, second.local_order_id)).unwrap()
        assert current.status is OrderStatus.PENDING
        assert len(gateway.orders) == 2

    async def test_retry_keeps_session_with_live_attempt(self, services, session, session_factory):
        async with session_factory() as db, db.begin():
            await db.execute(
                update(PaymentRow)
                .where(PaymentRow.gateway_order_id == session.gateway_order_id)
                .values(status="authorized")
            )

        (await services.payments.initiate_payment(USER, ADDRESS)).unwrap()

        order = (await services.orders.get_order(USER, session.local_order_id)).unwrap()
        assert order.status is OrderStatus.PENDING

    async def test_retry_does_not_touch_other_users(self, services, session):
        await services.carts.add_item(OTHER_USER, MUG, 1)
        (await services.payments.initiate_payment(OTHER_USER, OTHER_ADDRESS)).unwrap()

        order = (await services.orders.get_order(USER, session.local_order_id)).unwrap()
        assert order.status is OrderStatus.PENDING

    async def test_empty_cart(self, services, gateway):
        result = await services.payments.initiate_payment(USER, ADDRESS)
        assert isinstance(result.unwrap_err(), EmptyCartError)
        assert gateway.orders == []

    async def test_zero_total_is_refused(self, services, gateway, probe):
        await services.carts.add_item(USER, MUG, 1)
        await services.carts.apply_coupon(USER, "HUGE")

        result = await services.payments.initiate_payment(USER, ADDRESS)

        assert isinstance(result.unwrap_err(), InvalidTotalError)
        assert gateway.orders == []
        assert await probe.count(OrderRow) == 0


class TestConfirmPayment:
    async def test_settles_order_and_clears_cart(self, services, session, probe):
        order = (await services.payments.confirm_payment(proof_for(session.gateway_order_id))).unwrap()

        assert order.id == session.local_order_id
        assert order.status is OrderStatus.PROCESSING
        assert order.payment_status is PaymentStatus.PAID
        assert await probe.cart_lines(USER) == 0
        assert await probe.stock(MUG) == 8

    async def test_flipped_signature_character_is_rejected(self, services, session):
        good = proof_for(session.gateway_order_id)
        last = good.gateway_signature[-1]
        flipped = good.gateway_signature[:-1] + ("0" if last != "0" else "1")
        bad = PaymentProof(good.gateway_order_id, good.gateway_payment_id, flipped)

        result = await services.payments.confirm_payment(bad)

        assert isinstance(result.unwrap_err(), InvalidSignatureError)
        order = (await services.orders.get_order(USER, session.local_order_id)).unwrap()
        assert order.payment_status is PaymentStatus.UNPAID

    async def test_resubmission_is_a_no_op(self, services, session, caplog):
        caplog.set_level(logging.INFO, logger="shopcore")
        proof = proof_for(session.gateway_order_id)

        first = (await services.payments.confirm_payment(proof)).unwrap()
        second = (await services.payments.confirm_payment(proof)).unwrap()

        assert first == second
        assert len(settled_records(caplog)) == 1

    async def test_concurrent_confirmations_transition_once(self, services, session, caplog):
        caplog.set_level(logging.INFO, logger="shopcore")
        proof = proof_for(session.gateway_order_id)

        results = await asyncio.gather(*(services.payments.confirm_payment(proof) for _ in range(5)))

        orders = [r.unwrap() for r in results]
        assert {o.payment_status for o in orders} == {PaymentStatus.PAID}
        assert len(settled_records(caplog)) == 1

    async def test_unknown_gateway_order(self, services):
        result = await services.payments.confirm_payment(proof_for("order_unknown"))
        assert isinstance(result.unwrap_err(), PaymentNotFoundError)

    async def test_other_users_proof_is_refused(self, services, session):
        result = await services.payments.confirm_payment(
            proof_for(session.gateway_order_id), OTHER_USER
        )
        assert isinstance(result.unwrap_err(), NotAuthorizedError)

    async def test_empty_secret_never_verifies(self, services, session, gateway, session_factory, clock):
        reconciler = PaymentReconciler(session_factory, gateway, GatewaySettings(key_secret=""), clock)
        proof = PaymentProof(
            session.gateway_order_id, "pay_001",
            checkout_signature(session.gateway_order_id, "pay_001", ""),
        )

        result = await reconciler.confirm_payment(proof)
        assert isinstance(result.unwrap_err(), InvalidSignatureError)


class TestCancelAndExpire:
    async def test_cancel_releases_stock(self, services, session, probe):
        order = (await services.orders.cancel_order(session.local_order_id, USER)).unwrap()

        assert order.status is OrderStatus.CANCELLED
        assert await probe.stock(MUG) == 10

    async def test_paid_order_cannot_be_cancelled(self, services, session, probe):
        (await services.payments.confirm_payment(proof_for(session.gateway_order_id))).unwrap()

        result = await services.orders.cancel_order(session.local_order_id, USER)

        assert isinstance(result.unwrap_err(), OrderStateError)
        assert result.unwrap_err().status == 409
        assert await probe.stock(MUG) == 8

    async def test_expire_unpaid(self, services, session, clock, probe):
        fresh = (await services.payments.expire_unpaid(timedelta(minutes=30))).unwrap()
        assert fresh == []

        clock.advance(timedelta(minutes=31))
        expired = (await services.payments.expire_unpaid(timedelta(minutes=30))).unwrap()

        assert expired == [session.local_order_id]
        order = (await services.orders.get_order(USER, session.local_order_id)).unwrap()
        assert order.status is OrderStatus.CANCELLED
        assert await probe.stock(MUG) == 10

    async def test_expire_skips_direct_checkout_orders(self, services, clock):
        await services.carts.add_item(OTHER_USER, MUG, 1)
        (await services.checkout.place_order(OTHER_USER, 2)).unwrap()

        clock.advance(timedelta(hours=2))
        expired = (await services.payments.expire_unpaid(timedelta(minutes=30))).unwrap()
        assert expired == []

    async def test_capture_after_expiry_keeps_order_cancelled(self, services, session, clock, caplog):
        clock.advance(timedelta(hours=1))
        (await services.payments.expire_unpaid(timedelta(minutes=30))).unwrap()

        with caplog.at_level(logging.ERROR, logger="shopcore"):
            order = (await services.payments.confirm_payment(proof_for(session.gateway_order_id))).unwrap()

        assert order.status is OrderStatus.CANCELLED
        assert order.payment_status is PaymentStatus.UNPAID
        assert any("refund required" in r.getMessage() for r in caplog.records)


class TestKeyedLock:
    async def test_serializes_one_key(self):
        locks = KeyedLock()
        events: list[str] = []

        async def worker(tag: str) -> None:
            async with locks.hold("order_1"):
                events.append(f"{tag}:in")
                await asyncio.sleep(0)
                events.append(f"{tag}:out")

        await asyncio.gather(worker("a"), worker("b"))

        assert events == ["a:in", "a:out", "b:in", "b:out"]
        assert len(locks) == 0

    async def test_keys_are_independent(self):
        locks = KeyedLock()
        async with locks.hold("order_1"):
            async with locks.hold("order_2"):
                assert len(locks) == 2
        assert len(locks) == 0
