"""
Cart preview — lines joined with live product detail, priced on the snapshot.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from shopcore._types import CartId, CartLineId, ProductId, UserId
from shopcore.domain import Cart, Coupon, Product
from shopcore.pricing import Totals, compute_totals, is_applicable


@dataclass(frozen=True, slots=True)
class PreviewLine:
    line_id: CartLineId
    product_id: ProductId
    name: str
    quantity: int
    unit_price: Decimal
    """Price snapshot taken when the line was last added to."""
    current_price: Decimal | None
    stock: int | None
    line_total: Decimal


@dataclass(frozen=True, slots=True)
class CartPreview:
    cart_id: CartId
    user_id: UserId
    lines: tuple[PreviewLine, ...]
    coupon: Coupon | None
    coupon_applied: bool
    totals: Totals

    @property
    def subtotal(self) -> Decimal:
        return self.totals.subtotal

    @property
    def discount(self) -> Decimal:
        return self.totals.discount

    @property
    def total(self) -> Decimal:
        return self.totals.total


def build_preview(cart: Cart, products: Mapping[ProductId, Product], now: datetime) -> CartPreview:
    """Products missing from the catalog still price at their snapshot."""
    lines = []
    for line in cart.lines:
        product = products.get(line.product_id)
        lines.append(PreviewLine(
            line_id=line.id,
            product_id=line.product_id,
            name=product.name if product else "",
            quantity=line.quantity,
            unit_price=line.unit_price,
            current_price=product.price if product else None,
            stock=product.stock if product else None,
            line_total=line.unit_price * line.quantity,
        ))

    totals = compute_totals(cart.lines, cart.coupon, now)
    return CartPreview(
        cart_id=cart.id,
        user_id=cart.user_id,
        lines=tuple(lines),
        coupon=cart.coupon,
        coupon_applied=(
            cart.coupon is not None and is_applicable(cart.coupon, totals.subtotal, now)
        ),
        totals=totals,
    )


__all__ = ("PreviewLine", "CartPreview", "build_preview")
