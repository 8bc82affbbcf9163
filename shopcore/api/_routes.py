"""Routes under ``/v1``. The caller's identity arrives in ``X-User-Id``."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query, Request, Response, status
from kungfu import Error, Ok

from shopcore._types import Outcome
from shopcore.api._codecs import (
    AddItemIn,
    CartOut,
    CouponCheckOut,
    CouponCodeIn,
    OrderOut,
    OrderPageOut,
    PaymentSessionOut,
    PlaceOrderIn,
    UpdateItemIn,
    VerifyPaymentIn,
    WebhookAckOut,
)
from shopcore.services import Services

router = APIRouter(prefix="/v1")


def get_services(request: Request) -> Services:
    return request.app.state.services


def current_user(x_user_id: Annotated[int, Header()]) -> int:
    return x_user_id


Svc = Annotated[Services, Depends(get_services)]
User = Annotated[int, Depends(current_user)]


async def unwrap[T](outcome: Outcome[T]) -> T:
    """Await a service outcome; errors go to the ShopError handler."""
    match await outcome:
        case Ok(value):
            return value
        case Error(e):
            raise e


def no_content() -> Response:
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ═══════════════════════════════════════════════════════════════════════════════
# Health
# ═══════════════════════════════════════════════════════════════════════════════


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


@router.get("/cart")
async def get_cart(svc: Svc, user_id: User) -> CartOut:
    return CartOut.from_domain(await unwrap(svc.carts.preview(user_id)))


@router.post("/cart/items", status_code=status.HTTP_201_CREATED)
async def add_cart_item(body: AddItemIn, svc: Svc, user_id: User) -> CartOut:
    preview = await unwrap(svc.carts.add_item(user_id, body.product_id, body.quantity))
    return CartOut.from_domain(preview)


@router.patch("/cart/items/{line_id}")
async def update_cart_item(line_id: int, body: UpdateItemIn, svc: Svc, user_id: User) -> CartOut:
    preview = await unwrap(svc.carts.update_item(user_id, line_id, body.quantity))
    return CartOut.from_domain(preview)


@router.delete("/cart/items/{line_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_cart_item(line_id: int, svc: Svc, user_id: User) -> Response:
    await unwrap(svc.carts.remove_item(user_id, line_id))
    return no_content()


@router.delete("/cart", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cart(svc: Svc, user_id: User) -> Response:
    await unwrap(svc.carts.clear(user_id))
    return no_content()


@router.post("/cart/coupon")
async def apply_coupon(body: CouponCodeIn, svc: Svc, user_id: User) -> CartOut:
    return CartOut.from_domain(await unwrap(svc.carts.apply_coupon(user_id, body.code)))


@router.delete("/cart/coupon", status_code=status.HTTP_204_NO_CONTENT)
async def remove_coupon(svc: Svc, user_id: User) -> Response:
    await unwrap(svc.carts.remove_coupon(user_id))
    return no_content()


@router.post("/coupons/validate")
async def validate_coupon(body: CouponCodeIn, svc: Svc, user_id: User) -> CouponCheckOut:
    check = await unwrap(svc.coupons.validate_code(body.code, user_id))
    return CouponCheckOut.from_domain(check)


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


@router.post("/orders", status_code=status.HTTP_201_CREATED)
async def place_order(body: PlaceOrderIn, svc: Svc, user_id: User) -> OrderOut:
    return OrderOut.from_domain(await unwrap(svc.checkout.place_order(user_id, body.address_id)))


@router.get("/orders")
async def list_orders(
    svc: Svc,
    user_id: User,
    limit: Annotated[int, Query()] = 10,
    offset: Annotated[int, Query()] = 0,
) -> OrderPageOut:
    page = await unwrap(svc.orders.list_orders(user_id, limit, offset))
    return OrderPageOut.from_domain(page)


@router.get("/orders/{order_id}")
async def get_order(order_id: int, svc: Svc, user_id: User) -> OrderOut:
    return OrderOut.from_domain(await unwrap(svc.orders.get_order(user_id, order_id)))


@router.post("/orders/{order_id}/cancel")
async def cancel_order(order_id: int, svc: Svc, user_id: User) -> OrderOut:
    return OrderOut.from_domain(await unwrap(svc.orders.cancel_order(order_id, user_id)))


# ═══════════════════════════════════════════════════════════════════════════════
# Payments
# ═══════════════════════════════════════════════════════════════════════════════


@router.post("/payments/order", status_code=status.HTTP_201_CREATED)
async def create_payment_order(body: PlaceOrderIn, svc: Svc, user_id: User) -> PaymentSessionOut:
    session = await unwrap(svc.payments.initiate_payment(user_id, body.address_id))
    return PaymentSessionOut.from_domain(session)


@router.post("/payments/verify")
async def verify_payment(body: VerifyPaymentIn, svc: Svc, user_id: User) -> OrderOut:
    order = await unwrap(svc.payments.confirm_payment(body.to_domain(), user_id))
    return OrderOut.from_domain(order)


@router.post("/webhooks/payments")
async def payment_webhook(
    request: Request,
    svc: Svc,
    x_razorpay_signature: Annotated[str | None, Header()] = None,
) -> WebhookAckOut:
    raw_body = await request.body()
    receipt = await unwrap(svc.payments.handle_webhook(raw_body, x_razorpay_signature))
    return WebhookAckOut.from_domain(receipt)


__all__ = ("router", "get_services", "current_user", "unwrap")
