"""
Saga execution with automatic rollback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from kungfu import Error, Ok, Result

from shopcore._types import Compensator
from shopcore.saga._types import SagaError, SagaExpr, SagaResult, SagaStep, Then

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Execution Log
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True)
class _Journal:
    """What ran so far: step count and compensators in execution order."""

    steps: int = 0
    compensators: list[tuple[str, Any, Compensator[Any]]] = field(default_factory=list)


# ═══════════════════════════════════════════════════════════════════════════════
# run_step() — Execute single step
# ═══════════════════════════════════════════════════════════════════════════════


async def run_step[T, E](step: SagaStep[T, E], journal: _Journal) -> Result[T, E]:
    """Execute single step, recording compensator on success."""
    journal.steps += 1
    result = await step.action
    match result:
        case Ok(value):
            if step.compensate is not None:
                journal.compensators.append((step.name, value, step.compensate))
            return Ok(value)
        case Error(e):
            logger.info("saga step %r failed: %s", step.name, e)
            return Error(e)


async def _execute(expr: SagaExpr[Any, Any], journal: _Journal) -> Result[Any, Any]:
    if isinstance(expr, SagaStep):
        return await run_step(expr, journal)

    inner = await _execute(expr.inner, journal)
    match inner:
        case Ok(value):
            return await _execute(expr.f(value), journal)
        case Error(_):
            return inner


# ═══════════════════════════════════════════════════════════════════════════════
# run_compensators() — Rollback
# ═══════════════════════════════════════════════════════════════════════════════


async def run_compensators(journal: _Journal) -> tuple[int, int]:
    """Run compensators in reverse. Returns (run, failed)."""
    comp_run = 0
    comp_failed = 0

    for name, value, comp in reversed(journal.compensators):
        try:
            await comp(value)
            comp_run += 1
        except Exception:
            comp_failed += 1
            logger.exception("compensation for saga step %r failed", name)

    return comp_run, comp_failed


# ═══════════════════════════════════════════════════════════════════════════════
# run() — Execute Saga
# ═══════════════════════════════════════════════════════════════════════════════


async def run[T, E](saga: SagaStep[T, E] | Then[Any, T, E]) -> Result[SagaResult[T], SagaError[E]]:
    """
    Execute a saga with automatic rollback on failure.

    On success: returns SagaResult with the last step's value.
    On ``Error``: runs compensators in reverse, returns SagaError.
    On an unexpected exception: runs compensators in reverse, then re-raises.

    Example:
        from shopcore import saga as S

        initiation = (
            S.step(reserve, release)
            .then(lambda order: S.from_async(lambda: create_remote(order)))
            .then(lambda remote: S.from_async(lambda: record(remote)))
        )

        match await S.run(initiation):
            case Ok(r):
                r.value
            case Error(e):
                e.error, e.rollback_complete
    """
    journal = _Journal()

    try:
        result = await _execute(saga, journal)
    except Exception:
        await run_compensators(journal)
        raise

    match result:
        case Ok(value):
            return Ok(SagaResult(
                value=value,
                steps_executed=journal.steps,
                compensators_recorded=len(journal.compensators),
            ))

        case Error(error):
            comp_run, comp_failed = await run_compensators(journal)

            return Error(SagaError(
                error=error,
                step_failed=journal.steps,
                compensators_run=comp_run,
                compensators_failed=comp_failed,
            ))


__all__ = ("run", "run_step", "run_compensators")
