"""
Saga building blocks: compensated steps, chaining, and run outcomes.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from kungfu import LazyCoroResult

from shopcore._types import Compensator

# ═══════════════════════════════════════════════════════════════════════════════
# SagaStep — Single Step with Compensation
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaStep[T, E]:
    """
    One unit of work plus the coroutine that undoes it.

    When action succeeds, compensator is recorded with the action's value.
    If a later step fails, recorded compensators run in reverse.
    """

    action: LazyCoroResult[T, E]
    compensate: Compensator[T] | None
    name: str = "step"

    def then[U](self, f: Callable[[T], SagaStep[U, E]]) -> Then[T, U, E]:
        """Chain another saga step after this one."""
        return Then(self, f)


# ═══════════════════════════════════════════════════════════════════════════════
# Then — Sequential Composition
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Then[T, U, E]:
    """Sequential composition (monadic bind). Chains nest to any depth."""

    inner: SagaStep[T, E] | Then[object, T, E]
    f: Callable[[T], SagaStep[U, E]]

    def then[V](self, g: Callable[[U], SagaStep[V, E]]) -> Then[U, V, E]:
        return Then(self, g)


type SagaExpr[T, E] = SagaStep[T, E] | Then[object, T, E]

# ═══════════════════════════════════════════════════════════════════════════════
# Outcomes
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaResult[T]:
    """Value of the last step, with how far the saga got."""

    value: T
    steps_executed: int
    compensators_recorded: int


@dataclass(frozen=True, slots=True)
class SagaError[E]:
    """
    Failure of the saga after rollback.

    ``step_failed`` is 1-based. Compensators that raised are counted in
    ``compensators_failed`` and logged by the runner.
    """

    error: E
    step_failed: int
    compensators_run: int
    compensators_failed: int

    @property
    def rollback_complete(self) -> bool:
        return self.compensators_failed == 0


__all__ = (
    "SagaStep",
    "Then",
    "SagaExpr",
    "SagaResult",
    "SagaError",
)
