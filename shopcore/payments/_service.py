"""
Payment reconciler — gateway sessions in, exactly-once settlement out.

Two independent signals can report the same payment: the client's signed
proof and the gateway's webhook. Both funnel into one settle transition that
locks the payment and order rows and flips the order with a compare-and-set,
so whichever arrives first wins and the other is a no-op.
"""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from typing import Any

from combinators import traverse
from kungfu import Error, Ok
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shopcore import lift as L
from shopcore import saga as S
from shopcore._types import AddressId, Clock, OrderId, Outcome, UserId, utcnow
from shopcore.checkout import open_order, restock
from shopcore.config import GatewaySettings
from shopcore.db import Repositories, transaction
from shopcore.domain import Order, OrderStatus, Payment, PaymentState
from shopcore.errors import (
    GatewayError,
    InvalidSignatureError,
    NotAuthorizedError,
    PaymentNotFoundError,
    ValidationError,
    WebhookSignatureError,
)
from shopcore.orders import cancel_open, load_order
from shopcore.payments._gateway import Gateway
from shopcore.payments._locks import KeyedLock
from shopcore.payments._signature import verify_checkout, verify_webhook
from shopcore.payments._types import PaymentProof, PaymentSession, RemoteOrder, WebhookReceipt
from shopcore.pricing import to_minor_units

logger = logging.getLogger(__name__)

ORDER_PAID_EVENT = "order.paid"


def _entity(payload: dict[str, Any], kind: str) -> dict[str, Any]:
    """``payload.payload.<kind>.entity`` or an empty dict."""
    node: Any = payload.get("payload")
    for key in (kind, "entity"):
        node = node.get(key) if isinstance(node, dict) else None
    return node if isinstance(node, dict) else {}


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


class PaymentReconciler:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        gateway: Gateway,
        settings: GatewaySettings,
        clock: Clock = utcnow,
    ) -> None:
        self._session = session_factory
        self._gateway = gateway
        self._settings = settings
        self._clock = clock
        self._locks = KeyedLock()

    # ═══════════════════════════════════════════════════════════════════════════
    # Public operations
    # ═══════════════════════════════════════════════════════════════════════════

    def initiate_payment(self, user_id: UserId, address_id: AddressId) -> Outcome[PaymentSession]:
        """
        Open a gateway checkout session for the user's cart.

        Runs as a saga:
            1. reserve: pending order + line snapshots + stock taken, cart kept
            2. remote_order: gateway order for the total in minor units
            3. record_payment: local Payment row in ``created``
        If 2 or 3 fails, step 1 is undone (order deleted, stock restored).
        """
        return L.guarded(lambda: self._initiate(user_id, address_id))

    def confirm_payment(self, proof: PaymentProof, user_id: UserId | None = None) -> Outcome[Order]:
        """
        Settle from the client's signed proof.

        The signature is checked before anything is read. Resubmitting an
        accepted proof returns the order unchanged. With ``user_id`` the
        payment must belong to that user.
        """
        return L.guarded(lambda: self._confirm(proof, user_id))

    def handle_webhook(self, raw_body: bytes, signature: str | None) -> Outcome[WebhookReceipt]:
        """
        Apply a gateway event delivered to the webhook endpoint.

        The raw body is verified before it is parsed. Events for unknown
        gateway orders are acknowledged and ignored.
        """
        return L.guarded(lambda: self._handle_webhook(raw_body, signature))

    def expire_unpaid(self, older_than: timedelta) -> Outcome[list[OrderId]]:
        """Cancel gateway-session orders left unpaid for ``older_than`` and restock them."""
        return L.guarded(lambda: self._expire_unpaid(older_than))

    # ═══════════════════════════════════════════════════════════════════════════
    # Initiation saga
    # ═══════════════════════════════════════════════════════════════════════════

    async def _initiate(self, user_id: UserId, address_id: AddressId) -> PaymentSession:
        initiation = (
            S.from_async(
                lambda: self._reserve(user_id, address_id),
                compensate=self._release,
                name="reserve",
            )
            .then(lambda order: S.from_async(
                lambda: self._open_remote(order),
                name="remote_order",
            ))
            .then(lambda opened: S.from_async(
                lambda: self._record(*opened),
                name="record_payment",
            ))
        )

        match await S.run(initiation):
            case Ok(done):
                session = done.value
                logger.info(
                    "payment session %s opened for order %s (%s %s)",
                    session.gateway_order_id, session.local_order_id,
                    session.amount, session.currency,
                )
                return session
            case Error(failure):
                if not failure.rollback_complete:
                    logger.error(
                        "payment initiation for user %s failed at step %s and rollback is incomplete",
                        user_id, failure.step_failed,
                    )
                raise failure.error

    async def _reserve(self, user_id: UserId, address_id: AddressId) -> Order:
        async with transaction(self._session) as repos:
            # A retry replaces the user's abandoned sessions and their holds.
            for order_id in await repos.orders.abandoned_sessions(user_id):
                stale = await repos.orders.get(order_id, for_update=True)
                if stale is not None and await cancel_open(repos, stale):
                    logger.info("order %s superseded by a new payment session", order_id)
            return await open_order(
                repos,
                user_id,
                address_id,
                self._clock(),
                clear_cart=False,
                require_positive_total=True,
            )

    async def _release(self, order: Order) -> None:
        async with transaction(self._session) as repos:
            current = await repos.orders.get(order.id, for_update=True)
            if current is None or not current.is_open:
                return
            await restock(repos, current)
            await repos.orders.delete(current.id)
        logger.info("reservation for order %s released", order.id)

    async def _open_remote(self, order: Order) -> tuple[Order, RemoteOrder]:
        amount_minor = to_minor_units(order.total)
        remote = await self._gateway.create_remote_order(
            amount_minor,
            self._settings.currency,
            {"local_order_id": str(order.id)},
        )
        if remote.amount != amount_minor:
            raise GatewayError(f"gateway order amount {remote.amount} != {amount_minor}")
        return order, remote

    async def _record(self, order: Order, remote: RemoteOrder) -> PaymentSession:
        async with transaction(self._session) as repos:
            await repos.payments.create(
                order_id=order.id,
                user_id=order.user_id,
                provider=self._settings.provider,
                gateway_order_id=remote.id,
                amount=order.total,
                currency=remote.currency,
                payload=remote.raw,
                now=self._clock(),
            )
        return PaymentSession(
            key_id=self._settings.key_id,
            gateway_order_id=remote.id,
            amount_minor=remote.amount,
            amount=order.total,
            currency=remote.currency,
            local_order_id=order.id,
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # Settlement
    # ═══════════════════════════════════════════════════════════════════════════

    async def _settle(
        self,
        repos: Repositories,
        payment: Payment,
        *,
        gateway_payment_id: str | None,
        gateway_signature: str | None,
    ) -> tuple[Order, bool]:
        """
        Mark payment and order paid. Caller holds the payment row lock.

        Returns the fresh order and whether this call moved it out of
        pending/unpaid. Only that caller clears the user's cart.
        """
        order = await load_order(repos, payment.order_id, for_update=True)

        await repos.payments.mark_paid(
            payment.id,
            gateway_payment_id=gateway_payment_id,
            gateway_signature=gateway_signature,
            now=self._clock(),
        )

        transitioned = await repos.orders.mark_paid(order.id)
        if transitioned:
            await repos.carts.clear_for_user(order.user_id)
            logger.info("order %s paid via gateway order %s", order.id, payment.gateway_order_id)
        elif order.status is OrderStatus.CANCELLED:
            logger.error(
                "payment captured for cancelled order %s (gateway order %s); refund required",
                order.id, payment.gateway_order_id,
            )

        return await load_order(repos, order.id), transitioned

    async def _confirm(self, proof: PaymentProof, user_id: UserId | None) -> Order:
        if not verify_checkout(
            proof.gateway_order_id,
            proof.gateway_payment_id,
            proof.gateway_signature,
            self._settings.key_secret,
        ):
            logger.warning("rejected payment proof for gateway order %s", proof.gateway_order_id)
            raise InvalidSignatureError(proof.gateway_order_id)

        async with self._locks.hold(proof.gateway_order_id):
            async with transaction(self._session) as repos:
                payment = await repos.payments.get_by_gateway_order(
                    proof.gateway_order_id, for_update=True
                )
                if payment is None:
                    raise PaymentNotFoundError(proof.gateway_order_id)
                if user_id is not None and payment.user_id != user_id:
                    logger.warning(
                        "user %s submitted a proof for payment %s of user %s",
                        user_id, payment.id, payment.user_id,
                    )
                    raise NotAuthorizedError("payment", proof.gateway_order_id)
                order, _ = await self._settle(
                    repos,
                    payment,
                    gateway_payment_id=proof.gateway_payment_id,
                    gateway_signature=proof.gateway_signature,
                )
        return order

    # ═══════════════════════════════════════════════════════════════════════════
    # Webhook
    # ═══════════════════════════════════════════════════════════════════════════

    async def _handle_webhook(self, raw_body: bytes, signature: str | None) -> WebhookReceipt:
        if not verify_webhook(raw_body, signature, self._settings.webhook_secret):
            logger.warning("rejected webhook delivery: bad or missing signature")
            raise WebhookSignatureError()

        try:
            payload = json.loads(raw_body)
        except ValueError as e:
            raise ValidationError("body", "not valid JSON") from e
        if not isinstance(payload, dict):
            raise ValidationError("body", "expected a JSON object")

        event = _text(payload.get("event"))
        payment_entity = _entity(payload, "payment")
        gateway_order_id = _text(payment_entity.get("order_id")) or _text(_entity(payload, "order").get("id"))
        provider_status = _text(payment_entity.get("status"))
        logger.info("webhook %s for gateway order %s (status %s)", event, gateway_order_id, provider_status)

        if gateway_order_id is None:
            return WebhookReceipt(event=event, gateway_order_id=None, matched=False, settled=False)

        async with self._locks.hold(gateway_order_id):
            async with transaction(self._session) as repos:
                payment = await repos.payments.get_by_gateway_order(gateway_order_id, for_update=True)
                if payment is None:
                    logger.info("ignoring webhook for unknown gateway order %s", gateway_order_id)
                    return WebhookReceipt(
                        event=event, gateway_order_id=gateway_order_id, matched=False, settled=False
                    )

                await repos.payments.record_event(
                    payment.id, status=provider_status, payload=payload, now=self._clock()
                )

                settled = False
                if provider_status == PaymentState.CAPTURED or event == ORDER_PAID_EVENT:
                    _, settled = await self._settle(
                        repos,
                        payment,
                        gateway_payment_id=_text(payment_entity.get("id")),
                        gateway_signature=None,
                    )

        return WebhookReceipt(
            event=event, gateway_order_id=gateway_order_id, matched=True, settled=settled
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # Expiry
    # ═══════════════════════════════════════════════════════════════════════════

    async def _expire_unpaid(self, older_than: timedelta) -> list[OrderId]:
        if older_than < timedelta(0):
            raise ValidationError("older_than", "must not be negative")

        cutoff = self._clock() - older_than
        async with transaction(self._session) as repos:
            candidates = await repos.orders.stale_unpaid(cutoff)

        # Each order is cancelled in its own transaction.
        match await traverse(candidates, lambda oid: L.guarded(lambda: self._expire_one(oid))):
            case Ok(outcomes):
                expired = [oid for oid in outcomes if oid is not None]
            case Error(e):
                raise e

        if expired:
            logger.info("expired %s unpaid order(s): %s", len(expired), expired)
        return expired

    async def _expire_one(self, order_id: OrderId) -> OrderId | None:
        async with transaction(self._session) as repos:
            order = await repos.orders.get(order_id, for_update=True)
            if order is not None and await cancel_open(repos, order):
                return order_id
        return None


__all__ = ("PaymentReconciler", "ORDER_PAID_EVENT")
