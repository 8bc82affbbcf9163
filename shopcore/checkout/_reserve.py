"""
Order reservation — turn the user's cart into a pending order and take stock.

Shared by direct checkout and payment initiation. Both helpers run inside a
caller-owned transaction: raising rolls every write back.
"""

from __future__ import annotations

import logging
from datetime import datetime

from shopcore._types import AddressId, UserId
from shopcore.db import Repositories
from shopcore.domain import Address, Order, OrderLine
from shopcore.errors import (
    AddressNotFoundError,
    EmptyCartError,
    InsufficientStockError,
    InvalidTotalError,
    ProductNotFoundError,
)
from shopcore.pricing import compute_totals, is_applicable

logger = logging.getLogger(__name__)


async def resolve_address(repos: Repositories, user_id: UserId, address_id: AddressId) -> Address:
    """A foreign address reads as missing to the caller; the log tells them apart."""
    address = await repos.addresses.get(address_id)
    if address is None:
        logger.info("user %s checked out with unknown address %s", user_id, address_id)
        raise AddressNotFoundError(address_id)
    if address.user_id != user_id:
        logger.warning(
            "user %s checked out with address %s owned by user %s",
            user_id, address_id, address.user_id,
        )
        raise AddressNotFoundError(address_id)
    return address


async def open_order(
    repos: Repositories,
    user_id: UserId,
    address_id: AddressId,
    now: datetime,
    *,
    clear_cart: bool,
    require_positive_total: bool = False,
) -> Order:
    """
    Create a pending/unpaid order from the locked cart and reserve its stock.

    Steps, all in the caller's transaction:
        1. lock the cart; empty → EmptyCartError
        2. resolve the address (ownership checked)
        3. price the snapshot with ``compute_totals``
        4. insert the order with line and address snapshots
        5. decrement stock per line with a conditional update
        6. clear the cart when ``clear_cart``
    """
    cart = await repos.carts.load(user_id, for_update=True)
    if cart.is_empty:
        raise EmptyCartError(user_id)

    address = await resolve_address(repos, user_id, address_id)

    totals = compute_totals(cart.lines, cart.coupon, now)
    if require_positive_total and totals.total <= 0:
        raise InvalidTotalError(totals.total)

    products = await repos.catalog.get_products(line.product_id for line in cart.lines)
    lines: list[OrderLine] = []
    for line in cart.lines:
        product = products.get(line.product_id)
        if product is None:
            raise ProductNotFoundError(line.product_id)
        lines.append(OrderLine(
            product_id=product.id,
            product_name=product.name,
            quantity=line.quantity,
            unit_price=line.unit_price,
            line_total=line.unit_price * line.quantity,
        ))

    coupon_id = None
    if cart.coupon is not None and is_applicable(cart.coupon, totals.subtotal, now):
        coupon_id = cart.coupon.id

    order = await repos.orders.create(
        user_id=user_id,
        totals=totals,
        coupon_id=coupon_id,
        address_id=address.id,
        shipping_address=address.to_shipping(),
        lines=lines,
        now=now,
    )

    for order_line in lines:
        if not await repos.catalog.decrement_stock(order_line.product_id, order_line.quantity):
            raise InsufficientStockError(
                order_line.product_id, order_line.product_name, order_line.quantity
            )

    if clear_cart:
        await repos.carts.clear(cart.id)

    return order


async def restock(repos: Repositories, order: Order) -> None:
    """Put an order's reserved units back on the shelf."""
    for line in order.lines:
        await repos.catalog.restore_stock(line.product_id, line.quantity)


__all__ = ("resolve_address", "open_order", "restock")
