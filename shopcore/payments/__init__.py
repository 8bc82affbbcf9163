"""
Payments — gateway sessions, signature checks, reconciliation.

    from shopcore import payments as P

    gateway = P.RazorpayGateway(settings.gateway)
    reconciler = P.PaymentReconciler(session_factory, gateway, settings.gateway)

    session = (await reconciler.initiate_payment(user_id, address_id)).unwrap()
    order = (await reconciler.confirm_payment(P.PaymentProof(...))).unwrap()
"""

from __future__ import annotations

from shopcore.payments._types import (
    RemoteOrder,
    PaymentSession,
    PaymentProof,
    WebhookReceipt,
)
from shopcore.payments._signature import (
    sign,
    checkout_signature,
    verify_checkout,
    verify_webhook,
)
from shopcore.payments._gateway import Gateway, RazorpayGateway, InMemoryGateway
from shopcore.payments._locks import KeyedLock
from shopcore.payments._service import PaymentReconciler, ORDER_PAID_EVENT

__all__ = (
    "RemoteOrder",
    "PaymentSession",
    "PaymentProof",
    "WebhookReceipt",
    "sign",
    "checkout_signature",
    "verify_checkout",
    "verify_webhook",
    "Gateway",
    "RazorpayGateway",
    "InMemoryGateway",
    "KeyedLock",
    "PaymentReconciler",
    "ORDER_PAID_EVENT",
)
