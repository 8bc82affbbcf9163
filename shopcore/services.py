"""Wiring: every service built over one session factory, gateway and clock."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shopcore._types import Clock, utcnow
from shopcore.cart import CartService
from shopcore.checkout import CheckoutService
from shopcore.config import GatewaySettings
from shopcore.coupons import CouponService
from shopcore.orders import OrderService
from shopcore.payments import Gateway, PaymentReconciler


@dataclass(frozen=True, slots=True)
class Services:
    carts: CartService
    coupons: CouponService
    checkout: CheckoutService
    orders: OrderService
    payments: PaymentReconciler


def build_services(
    session_factory: async_sessionmaker[AsyncSession],
    gateway: Gateway,
    settings: GatewaySettings,
    clock: Clock = utcnow,
) -> Services:
    return Services(
        carts=CartService(session_factory, clock),
        coupons=CouponService(session_factory, clock),
        checkout=CheckoutService(session_factory, clock),
        orders=OrderService(session_factory),
        payments=PaymentReconciler(session_factory, gateway, settings, clock),
    )


__all__ = ("Services", "build_services")
