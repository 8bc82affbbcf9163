"""
Saga step creation.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from kungfu import LazyCoroResult

from shopcore import lift as L
from shopcore._types import Compensator
from shopcore.errors import ShopError
from shopcore.saga._types import SagaStep

# ═══════════════════════════════════════════════════════════════════════════════
# step() — Primary Constructor
# ═══════════════════════════════════════════════════════════════════════════════


def step[T, E](
    action: LazyCoroResult[T, E],
    compensate: Compensator[T] | None = None,
    *,
    name: str = "step",
) -> SagaStep[T, E]:
    """
    Create a compensated saga step.

    Example:
        from shopcore import saga as S

        reserve = S.step(
            action=L.guarded(lambda: open_order(cart)),
            compensate=lambda order: release(order.id),
            name="reserve",
        )
    """
    return SagaStep(action=action, compensate=compensate, name=name)


# ═══════════════════════════════════════════════════════════════════════════════
# from_async() — Create step from async callable
# ═══════════════════════════════════════════════════════════════════════════════


def from_async[T](
    action: Callable[[], Awaitable[T]],
    compensate: Compensator[T] | None = None,
    *,
    name: str = "step",
) -> SagaStep[T, ShopError]:
    """
    Create a step from an async callable; raised ShopErrors fail the step.

    Example:
        S.from_async(
            lambda: gateway.create_remote_order(amount, currency, notes),
            name="remote_order",
        )
    """
    return SagaStep(action=L.guarded(action), compensate=compensate, name=name)


__all__ = ("step", "from_async")
