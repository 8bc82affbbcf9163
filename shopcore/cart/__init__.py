"""
Cart — add, update, remove, coupons, preview.

    from shopcore.cart import CartService

    match await carts.add_item(user_id, product_id=7, quantity=2):
        case Ok(preview):
            preview.subtotal, preview.discount, preview.total
        case Error(e):
            e.kind
"""

from __future__ import annotations

from shopcore.cart._types import PreviewLine, CartPreview, build_preview
from shopcore.cart._service import CartService

__all__ = (
    "PreviewLine",
    "CartPreview",
    "build_preview",
    "CartService",
)
