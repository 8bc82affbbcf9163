"""
Order and payment repositories.

Status transitions are compare-and-set UPDATEs: the WHERE clause carries the
expected current state and the rowcount says whether this caller won.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any, cast

from sqlalchemy import case, delete, exists, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession

from shopcore._types import AddressId, CouponId, OrderId, PaymentId, UserId
from shopcore.db._tables import OrderLineRow, OrderRow, PaymentRow
from shopcore.domain import (
    Order,
    OrderLine,
    OrderStatus,
    Payment,
    PaymentState,
    PaymentStatus,
    ShippingAddress,
)
from shopcore.pricing import Totals

RELEASABLE_PAYMENT_STATES = (PaymentState.CREATED, PaymentState.FAILED)
"""Payment states whose session can be dropped when the user starts over."""


# ═══════════════════════════════════════════════════════════════════════════════
# Row → Domain
# ═══════════════════════════════════════════════════════════════════════════════


def to_order(row: OrderRow, lines: Sequence[OrderLineRow]) -> Order:
    return Order(
        id=row.id,
        user_id=row.user_id,
        status=OrderStatus(row.status),
        payment_status=PaymentStatus(row.payment_status),
        subtotal=row.subtotal,
        discount=row.discount,
        total=row.total,
        coupon_id=row.coupon_id,
        address_id=row.address_id,
        shipping_address=ShippingAddress.from_dict(row.shipping_address),
        lines=tuple(
            OrderLine(
                product_id=line.product_id,
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
            )
            for line in lines
        ),
        created_at=row.created_at,
    )


def to_payment(row: PaymentRow) -> Payment:
    return Payment(
        id=row.id,
        order_id=row.order_id,
        user_id=row.user_id,
        provider=row.provider,
        gateway_order_id=row.gateway_order_id,
        gateway_payment_id=row.gateway_payment_id,
        gateway_signature=row.gateway_signature,
        amount=row.amount,
        currency=row.currency,
        status=row.status,
        payload=row.payload,
    )


def _rowcount(result: Any) -> int:
    return cast(CursorResult[Any], result).rowcount


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


class OrderRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        user_id: UserId,
        totals: Totals,
        coupon_id: CouponId | None,
        address_id: AddressId,
        shipping_address: ShippingAddress,
        lines: Sequence[OrderLine],
        now: datetime,
    ) -> Order:
        """Insert a pending, unpaid order with its line snapshots."""
        row = OrderRow(
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.UNPAID.value,
            subtotal=totals.subtotal,
            discount=totals.discount,
            total=totals.total,
            coupon_id=coupon_id,
            address_id=address_id,
            shipping_address=shipping_address.to_dict(),
            created_at=now,
        )
        self._session.add(row)
        await self._session.flush()

        line_rows = [
            OrderLineRow(
                order_id=row.id,
                product_id=line.product_id,
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
            )
            for line in lines
        ]
        self._session.add_all(line_rows)
        await self._session.flush()
        return to_order(row, line_rows)

    async def get(self, order_id: OrderId, *, for_update: bool = False) -> Order | None:
        stmt = (
            select(OrderRow)
            .where(OrderRow.id == order_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return to_order(row, await self._lines(order_id))

    async def list_for_user(self, user_id: UserId, *, limit: int, offset: int) -> list[Order]:
        """Newest first."""
        stmt = (
            select(OrderRow)
            .where(OrderRow.user_id == user_id)
            .order_by(OrderRow.created_at.desc(), OrderRow.id.desc())
            .limit(limit)
            .offset(offset)
            .execution_options(populate_existing=True)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [to_order(row, await self._lines(row.id)) for row in rows]

    async def _lines(self, order_id: OrderId) -> Sequence[OrderLineRow]:
        stmt = (
            select(OrderLineRow)
            .where(OrderLineRow.order_id == order_id)
            .order_by(OrderLineRow.id)
        )
        return (await self._session.execute(stmt)).scalars().all()

    async def mark_paid(self, order_id: OrderId) -> bool:
        """pending/unpaid → processing/paid. True only for the caller that flipped it."""
        stmt = (
            update(OrderRow)
            .where(
                OrderRow.id == order_id,
                OrderRow.payment_status == PaymentStatus.UNPAID.value,
                OrderRow.status == OrderStatus.PENDING.value,
            )
            .values(
                payment_status=PaymentStatus.PAID.value,
                status=OrderStatus.PROCESSING.value,
            )
            .execution_options(synchronize_session=False)
        )
        return _rowcount(await self._session.execute(stmt)) == 1

    async def mark_cancelled(self, order_id: OrderId) -> bool:
        """pending/unpaid → cancelled. A paid order never matches."""
        stmt = (
            update(OrderRow)
            .where(
                OrderRow.id == order_id,
                OrderRow.payment_status == PaymentStatus.UNPAID.value,
                OrderRow.status == OrderStatus.PENDING.value,
            )
            .values(status=OrderStatus.CANCELLED.value)
            .execution_options(synchronize_session=False)
        )
        return _rowcount(await self._session.execute(stmt)) == 1

    async def advance(self, order_id: OrderId, current: OrderStatus, target: OrderStatus) -> bool:
        """Fulfilment step on a paid order, guarded on the status the caller saw."""
        stmt = (
            update(OrderRow)
            .where(
                OrderRow.id == order_id,
                OrderRow.status == current.value,
                OrderRow.payment_status == PaymentStatus.PAID.value,
            )
            .values(status=target.value)
            .execution_options(synchronize_session=False)
        )
        return _rowcount(await self._session.execute(stmt)) == 1

    async def delete(self, order_id: OrderId) -> None:
        """Remove an order with its lines and payments. Used only to undo a reservation."""
        for table in (PaymentRow, OrderLineRow):
            await self._session.execute(
                delete(table)
                .where(table.order_id == order_id)
                .execution_options(synchronize_session=False)
            )
        await self._session.execute(
            delete(OrderRow)
            .where(OrderRow.id == order_id)
            .execution_options(synchronize_session=False)
        )

    async def stale_unpaid(self, cutoff: datetime) -> list[OrderId]:
        """Pending unpaid orders created before ``cutoff`` that opened a gateway session."""
        return await self._awaiting_payment(OrderRow.created_at < cutoff)

    async def abandoned_sessions(self, user_id: UserId) -> list[OrderId]:
        """
        The user's pending unpaid orders whose gateway session saw no live attempt.

        Sessions with an authorized or captured payment are left alone.
        """
        return await self._awaiting_payment(
            OrderRow.user_id == user_id,
            payment_filter=PaymentRow.status.in_(RELEASABLE_PAYMENT_STATES),
        )

    async def _awaiting_payment(self, *criteria: Any, payment_filter: Any = None) -> list[OrderId]:
        has_payment = exists().where(PaymentRow.order_id == OrderRow.id)
        if payment_filter is not None:
            has_payment = has_payment.where(payment_filter)
        stmt = (
            select(OrderRow.id)
            .where(
                OrderRow.status == OrderStatus.PENDING.value,
                OrderRow.payment_status == PaymentStatus.UNPAID.value,
                has_payment,
                *criteria,
            )
            .order_by(OrderRow.id)
        )
        return list((await self._session.execute(stmt)).scalars().all())


# ═══════════════════════════════════════════════════════════════════════════════
# Payments
# ═══════════════════════════════════════════════════════════════════════════════


class PaymentRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        order_id: OrderId,
        user_id: UserId,
        provider: str,
        gateway_order_id: str,
        amount: Decimal,
        currency: str,
        payload: dict[str, Any] | None,
        now: datetime,
    ) -> Payment:
        row = PaymentRow(
            order_id=order_id,
            user_id=user_id,
            provider=provider,
            gateway_order_id=gateway_order_id,
            amount=amount,
            currency=currency,
            status=PaymentState.CREATED,
            payload=payload,
            created_at=now,
            updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return to_payment(row)

    async def get_by_gateway_order(
        self,
        gateway_order_id: str,
        *,
        for_update: bool = False,
    ) -> Payment | None:
        stmt = (
            select(PaymentRow)
            .where(PaymentRow.gateway_order_id == gateway_order_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return to_payment(row) if row else None

    async def mark_paid(
        self,
        payment_id: PaymentId,
        *,
        gateway_payment_id: str | None,
        gateway_signature: str | None,
        now: datetime,
    ) -> bool:
        """
        Record provider ids and flip the payment to ``paid``.

        Ids already recorded are kept when the caller has none (webhooks carry
        no signature). Returns False when the payment was already paid.
        """
        values: dict[str, Any] = {"status": PaymentState.PAID, "updated_at": now}
        if gateway_payment_id is not None:
            values["gateway_payment_id"] = gateway_payment_id
        if gateway_signature is not None:
            values["gateway_signature"] = gateway_signature

        stmt = (
            update(PaymentRow)
            .where(PaymentRow.id == payment_id, PaymentRow.status != PaymentState.PAID)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return _rowcount(await self._session.execute(stmt)) == 1

    async def record_event(
        self,
        payment_id: PaymentId,
        *,
        status: str | None,
        payload: dict[str, Any],
        now: datetime,
    ) -> None:
        """Store the latest provider event. A ``paid`` status is never overwritten."""
        values: dict[str, Any] = {"payload": payload, "updated_at": now}
        if status is not None:
            values["status"] = case(
                (PaymentRow.status == PaymentState.PAID, PaymentRow.status),
                else_=status,
            )
        await self._session.execute(
            update(PaymentRow)
            .where(PaymentRow.id == payment_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )


__all__ = ("OrderRepository", "PaymentRepository", "to_order", "to_payment")
