"""
HTTP codecs — request models decode into domain values (``to_domain``),
response models encode domain values (``from_domain``).

Money is carried as ``Decimal`` and serialized as a string ("45.00").
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from shopcore.cart import CartPreview, PreviewLine
from shopcore.coupons import CouponCheck
from shopcore.domain import Coupon, Order, OrderLine, ShippingAddress
from shopcore.orders import OrderPage
from shopcore.payments import PaymentProof, PaymentSession, WebhookReceipt


# ═══════════════════════════════════════════════════════════════════════════════
# Requests
# ═══════════════════════════════════════════════════════════════════════════════


class AddItemIn(BaseModel):
    product_id: int
    quantity: int = 1


class UpdateItemIn(BaseModel):
    quantity: int


class CouponCodeIn(BaseModel):
    code: str


class PlaceOrderIn(BaseModel):
    address_id: int


class VerifyPaymentIn(BaseModel):
    gateway_order_id: str
    gateway_payment_id: str
    gateway_signature: str

    def to_domain(self) -> PaymentProof:
        return PaymentProof(
            gateway_order_id=self.gateway_order_id,
            gateway_payment_id=self.gateway_payment_id,
            gateway_signature=self.gateway_signature,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


class CouponOut(BaseModel):
    id: int
    code: str
    type: str
    value: Decimal
    min_subtotal: Decimal | None
    max_discount: Decimal | None
    starts_at: datetime | None
    ends_at: datetime | None

    @classmethod
    def from_domain(cls, coupon: Coupon) -> CouponOut:
        return cls(
            id=coupon.id,
            code=coupon.code,
            type=coupon.type,
            value=coupon.value,
            min_subtotal=coupon.min_subtotal,
            max_discount=coupon.max_discount,
            starts_at=coupon.starts_at,
            ends_at=coupon.ends_at,
        )


class CartLineOut(BaseModel):
    id: int
    product_id: int
    name: str
    quantity: int
    unit_price: Decimal
    current_price: Decimal | None
    stock: int | None
    line_total: Decimal

    @classmethod
    def from_domain(cls, line: PreviewLine) -> CartLineOut:
        return cls(
            id=line.line_id,
            product_id=line.product_id,
            name=line.name,
            quantity=line.quantity,
            unit_price=line.unit_price,
            current_price=line.current_price,
            stock=line.stock,
            line_total=line.line_total,
        )


class CartOut(BaseModel):
    id: int
    items: list[CartLineOut]
    coupon: CouponOut | None
    coupon_applied: bool
    subtotal: Decimal
    discount: Decimal
    total: Decimal

    @classmethod
    def from_domain(cls, preview: CartPreview) -> CartOut:
        return cls(
            id=preview.cart_id,
            items=[CartLineOut.from_domain(line) for line in preview.lines],
            coupon=CouponOut.from_domain(preview.coupon) if preview.coupon else None,
            coupon_applied=preview.coupon_applied,
            subtotal=preview.subtotal,
            discount=preview.discount,
            total=preview.total,
        )


class CouponCheckOut(BaseModel):
    coupon: CouponOut
    applies: bool | None
    discount: Decimal | None

    @classmethod
    def from_domain(cls, check: CouponCheck) -> CouponCheckOut:
        return cls(
            coupon=CouponOut.from_domain(check.coupon),
            applies=check.applies,
            discount=check.discount,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


class AddressOut(BaseModel):
    name: str
    phone: str
    line1: str
    line2: str | None
    city: str
    state: str
    postal_code: str
    country: str

    @classmethod
    def from_domain(cls, address: ShippingAddress) -> AddressOut:
        return cls(**address.to_dict())


class OrderLineOut(BaseModel):
    product_id: int
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    @classmethod
    def from_domain(cls, line: OrderLine) -> OrderLineOut:
        return cls(
            product_id=line.product_id,
            name=line.product_name,
            quantity=line.quantity,
            unit_price=line.unit_price,
            line_total=line.line_total,
        )


class OrderOut(BaseModel):
    id: int
    status: str
    payment_status: str
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    coupon_id: int | None
    shipping_address: AddressOut
    items: list[OrderLineOut]
    created_at: datetime

    @classmethod
    def from_domain(cls, order: Order) -> OrderOut:
        return cls(
            id=order.id,
            status=order.status,
            payment_status=order.payment_status,
            subtotal=order.subtotal,
            discount=order.discount,
            total=order.total,
            coupon_id=order.coupon_id,
            shipping_address=AddressOut.from_domain(order.shipping_address),
            items=[OrderLineOut.from_domain(line) for line in order.lines],
            created_at=order.created_at,
        )


class OrderPageOut(BaseModel):
    items: list[OrderOut]
    limit: int
    offset: int

    @classmethod
    def from_domain(cls, page: OrderPage) -> OrderPageOut:
        return cls(
            items=[OrderOut.from_domain(order) for order in page.items],
            limit=page.limit,
            offset=page.offset,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Payments
# ═══════════════════════════════════════════════════════════════════════════════


class PaymentSessionOut(BaseModel):
    key_id: str
    gateway_order_id: str
    amount: int
    """Minor units, as the gateway's client widget expects."""
    display_amount: Decimal
    currency: str
    order_id: int

    @classmethod
    def from_domain(cls, session: PaymentSession) -> PaymentSessionOut:
        return cls(
            key_id=session.key_id,
            gateway_order_id=session.gateway_order_id,
            amount=session.amount_minor,
            display_amount=session.amount,
            currency=session.currency,
            order_id=session.local_order_id,
        )


class WebhookAckOut(BaseModel):
    ok: bool = True
    matched: bool
    settled: bool

    @classmethod
    def from_domain(cls, receipt: WebhookReceipt) -> WebhookAckOut:
        return cls(matched=receipt.matched, settled=receipt.settled)


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class ErrorOut(BaseModel):
    error: str
    message: str


__all__ = (
    "AddItemIn",
    "UpdateItemIn",
    "CouponCodeIn",
    "PlaceOrderIn",
    "VerifyPaymentIn",
    "CouponOut",
    "CartLineOut",
    "CartOut",
    "CouponCheckOut",
    "AddressOut",
    "OrderLineOut",
    "OrderOut",
    "OrderPageOut",
    "PaymentSessionOut",
    "WebhookAckOut",
    "ErrorOut",
)
