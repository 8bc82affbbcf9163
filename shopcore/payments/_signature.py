"""
HMAC-SHA256 signatures used by the gateway.

Client proof: hex HMAC of ``"{order_id}|{payment_id}"`` under the key secret.
Webhook: hex HMAC of the raw request body under the webhook secret.
Comparisons are constant-time; an empty secret never verifies.
"""

from __future__ import annotations

import hashlib
import hmac


def sign(message: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def checkout_signature(gateway_order_id: str, gateway_payment_id: str, secret: str) -> str:
    return sign(f"{gateway_order_id}|{gateway_payment_id}".encode(), secret)


def _matches(expected: str, provided: str | None) -> bool:
    if not provided:
        return False
    return hmac.compare_digest(expected.encode(), provided.encode())


def verify_checkout(
    gateway_order_id: str,
    gateway_payment_id: str,
    signature: str | None,
    secret: str,
) -> bool:
    if not secret:
        return False
    return _matches(checkout_signature(gateway_order_id, gateway_payment_id, secret), signature)


def verify_webhook(body: bytes, signature: str | None, secret: str) -> bool:
    if not secret:
        return False
    return _matches(sign(body, secret), signature)


__all__ = ("sign", "checkout_signature", "verify_checkout", "verify_webhook")
