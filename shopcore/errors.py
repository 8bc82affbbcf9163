"""
Errors — one hierarchy for every business failure.

Every class carries a machine-readable ``kind`` and the HTTP ``status`` the
API layer answers with. Services raise these inside a unit of work (so the
transaction rolls back) and hand them out as ``Error(...)`` values.
"""

from __future__ import annotations

from decimal import Decimal


# ═══════════════════════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════════════════════


class ShopError(Exception):
    """Base exception for all shopcore business errors."""

    kind: str = "shop_error"
    status: int = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ═══════════════════════════════════════════════════════════════════════════════
# Validation (422)
# ═══════════════════════════════════════════════════════════════════════════════


class ValidationError(ShopError):
    """Raised when input fails a precondition before any side effect."""

    kind = "validation"
    status = 422

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# ═══════════════════════════════════════════════════════════════════════════════
# Not found (404)
# ═══════════════════════════════════════════════════════════════════════════════


class NotFoundError(ShopError):
    """Base for lookups that found nothing."""

    kind = "not_found"
    status = 404

    entity: str = "Entity"

    def __init__(self, ident: int | str) -> None:
        self.ident = ident
        super().__init__(f"{self.entity} not found: {ident}")


class ProductNotFoundError(NotFoundError):
    kind = "product_not_found"
    entity = "Product"


class CartLineNotFoundError(NotFoundError):
    kind = "cart_line_not_found"
    entity = "Cart line"


class CouponNotFoundError(NotFoundError):
    """Missing and inactive coupons look the same to callers."""

    kind = "coupon_not_found"
    entity = "Coupon"


class AddressNotFoundError(NotFoundError):
    """Raised for missing addresses and for addresses owned by someone else."""

    kind = "address_not_found"
    entity = "Address"


class OrderNotFoundError(NotFoundError):
    kind = "order_not_found"
    entity = "Order"


class PaymentNotFoundError(NotFoundError):
    kind = "payment_not_found"
    entity = "Payment"


# ═══════════════════════════════════════════════════════════════════════════════
# Authorization (403)
# ═══════════════════════════════════════════════════════════════════════════════


class NotAuthorizedError(ShopError):
    """Raised when a resource exists but belongs to another user."""

    kind = "not_authorized"
    status = 403

    def __init__(self, resource: str, ident: int | str) -> None:
        self.resource = resource
        self.ident = ident
        super().__init__(f"Not allowed to access {resource} {ident}")


# ═══════════════════════════════════════════════════════════════════════════════
# Business rules (422 / 409)
# ═══════════════════════════════════════════════════════════════════════════════


class EmptyCartError(ShopError):
    kind = "empty_cart"
    status = 422

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__("Cart is empty")


class InsufficientStockError(ShopError):
    """Raised when the conditional stock decrement matched no row."""

    kind = "insufficient_stock"
    status = 422

    def __init__(self, product_id: int, name: str, requested: int) -> None:
        self.product_id = product_id
        self.name = name
        self.requested = requested
        super().__init__(f"Insufficient stock for {name} (requested {requested})")


class InvalidTotalError(ShopError):
    kind = "invalid_total"
    status = 422

    def __init__(self, total: Decimal) -> None:
        self.total = total
        super().__init__(f"Order total must be positive, got {total}")


class InvalidSignatureError(ShopError):
    """Raised when a client payment proof fails HMAC verification."""

    kind = "invalid_signature"
    status = 422

    def __init__(self, gateway_order_id: str) -> None:
        self.gateway_order_id = gateway_order_id
        super().__init__("Payment signature verification failed")


class OrderStateError(ShopError):
    """Raised when an order is not in a state that allows the transition."""

    kind = "order_state"
    status = 409

    def __init__(self, order_id: int, status: str, payment_status: str) -> None:
        self.order_id = order_id
        self.order_status = status
        self.payment_status = payment_status
        super().__init__(
            f"Order {order_id} is {status}/{payment_status} and cannot be changed"
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Webhook verification (400)
# ═══════════════════════════════════════════════════════════════════════════════


class WebhookSignatureError(ShopError):
    kind = "webhook_signature"
    status = 400

    def __init__(self, reason: str = "signature mismatch") -> None:
        self.reason = reason
        super().__init__(f"Webhook rejected: {reason}")


# ═══════════════════════════════════════════════════════════════════════════════
# External dependency (502)
# ═══════════════════════════════════════════════════════════════════════════════


class GatewayError(ShopError):
    """Raised when the payment gateway is unreachable or refuses a request."""

    kind = "gateway_error"
    status = 502

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Payment gateway error: {reason}")


__all__ = (
    "ShopError",
    "ValidationError",
    "NotFoundError",
    "ProductNotFoundError",
    "CartLineNotFoundError",
    "CouponNotFoundError",
    "AddressNotFoundError",
    "OrderNotFoundError",
    "PaymentNotFoundError",
    "NotAuthorizedError",
    "EmptyCartError",
    "InsufficientStockError",
    "InvalidTotalError",
    "InvalidSignatureError",
    "OrderStateError",
    "WebhookSignatureError",
    "GatewayError",
)
