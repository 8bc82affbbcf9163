"""
Domain — the records shopcore reads, writes and returns.

All records are frozen snapshots: repositories build them from rows, services
pass them around, nothing mutates them in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any

from shopcore._types import (
    AddressId,
    CartId,
    CartLineId,
    CouponId,
    OrderId,
    PaymentId,
    ProductId,
    UserId,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════════


class CouponType(StrEnum):
    PERCENT = "percent"
    FIXED = "fixed"


class OrderStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(StrEnum):
    UNPAID = "unpaid"
    PAID = "paid"


class PaymentState:
    """Known values of ``Payment.status``; providers may report others."""

    CREATED = "created"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    FAILED = "failed"
    PAID = "paid"


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog (external, read-only apart from stock)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Product:
    id: ProductId
    name: str
    price: Decimal
    stock: int


@dataclass(frozen=True, slots=True)
class ShippingAddress:
    """Address fields frozen onto an order at creation."""

    name: str
    phone: str
    line1: str
    line2: str | None
    city: str
    state: str
    postal_code: str
    country: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "phone": self.phone,
            "line1": self.line1,
            "line2": self.line2,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShippingAddress:
        return cls(
            name=data["name"],
            phone=data["phone"],
            line1=data["line1"],
            line2=data.get("line2"),
            city=data["city"],
            state=data["state"],
            postal_code=data["postal_code"],
            country=data["country"],
        )


@dataclass(frozen=True, slots=True)
class Address:
    id: AddressId
    user_id: UserId
    name: str
    phone: str
    line1: str
    line2: str | None
    city: str
    state: str
    postal_code: str
    country: str

    def to_shipping(self) -> ShippingAddress:
        return ShippingAddress(
            name=self.name,
            phone=self.phone,
            line1=self.line1,
            line2=self.line2,
            city=self.city,
            state=self.state,
            postal_code=self.postal_code,
            country=self.country,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Coupons
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Coupon:
    id: CouponId
    code: str
    type: CouponType
    value: Decimal
    min_subtotal: Decimal | None = None
    max_discount: Decimal | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    active: bool = True


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartLine:
    id: CartLineId
    cart_id: CartId
    product_id: ProductId
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True, slots=True)
class Cart:
    id: CartId
    user_id: UserId
    lines: tuple[CartLine, ...]
    coupon: Coupon | None = None

    @property
    def is_empty(self) -> bool:
        return not self.lines


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderLine:
    product_id: ProductId
    product_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True, slots=True)
class Order:
    id: OrderId
    user_id: UserId
    status: OrderStatus
    payment_status: PaymentStatus
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    coupon_id: CouponId | None
    address_id: AddressId
    shipping_address: ShippingAddress
    lines: tuple[OrderLine, ...]
    created_at: datetime

    @property
    def is_open(self) -> bool:
        """Pending and unpaid: the only state payment or cancellation can change."""
        return self.status is OrderStatus.PENDING and self.payment_status is PaymentStatus.UNPAID


# ═══════════════════════════════════════════════════════════════════════════════
# Payments
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Payment:
    id: PaymentId
    order_id: OrderId
    user_id: UserId
    provider: str
    gateway_order_id: str
    gateway_payment_id: str | None
    gateway_signature: str | None
    amount: Decimal
    currency: str
    status: str
    payload: dict[str, Any] | None


__all__ = (
    "CouponType",
    "OrderStatus",
    "PaymentStatus",
    "PaymentState",
    "Product",
    "ShippingAddress",
    "Address",
    "Coupon",
    "CartLine",
    "Cart",
    "OrderLine",
    "Order",
    "Payment",
)
