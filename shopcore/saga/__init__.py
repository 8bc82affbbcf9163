"""
Saga — multi-step operations with compensation.

    from shopcore import saga as S

    saga = S.step(action, compensate).then(lambda v: S.from_async(lambda: next_call(v)))
    result = await S.run(saga)
"""

from __future__ import annotations

from shopcore.saga._types import (
    SagaStep,
    SagaResult,
    SagaError,
    SagaExpr,
    Then,
)
from shopcore.saga._step import step, from_async
from shopcore.saga._run import run

__all__ = (
    "SagaStep",
    "SagaResult",
    "SagaError",
    "SagaExpr",
    "Then",
    "step",
    "from_async",
    "run",
)
