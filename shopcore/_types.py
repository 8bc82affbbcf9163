"""
Core types for shopcore.

Identity aliases plus the outcome every service operation returns.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from kungfu import LazyCoroResult

from shopcore.errors import ShopError

# ═══════════════════════════════════════════════════════════════════════════════
# Outcome
# ═══════════════════════════════════════════════════════════════════════════════

type Outcome[T] = LazyCoroResult[T, ShopError]
"""What every public service operation returns: awaiting yields Ok or Error(ShopError)."""

# ═══════════════════════════════════════════════════════════════════════════════
# Identity
# ═══════════════════════════════════════════════════════════════════════════════

type UserId = int
type ProductId = int
type AddressId = int
type CouponId = int
type CartId = int
type CartLineId = int
type OrderId = int
type PaymentId = int

# ═══════════════════════════════════════════════════════════════════════════════
# Compensator Type (for Saga)
# ═══════════════════════════════════════════════════════════════════════════════

type Compensator[T] = Callable[[T], Awaitable[None]]
"""A compensation action that undoes a step, given the step's value."""

# ═══════════════════════════════════════════════════════════════════════════════
# Clock
# ═══════════════════════════════════════════════════════════════════════════════

type Clock = Callable[[], datetime]
"""Source of "now"; services take one so tests can pin time."""


def utcnow() -> datetime:
    return datetime.now(UTC)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Type aliases
    "Outcome",
    # Identity
    "UserId",
    "ProductId",
    "AddressId",
    "CouponId",
    "CartId",
    "CartLineId",
    "OrderId",
    "PaymentId",
    # Clock
    "Clock",
    "utcnow",
    # Saga types
    "Compensator",
)
