"""
Lift — Turning service coroutines into LazyCoroResult.

Service internals raise ShopError subclasses; the public methods hand back
``LazyCoroResult`` values so callers can ``match`` on them or compose them
with the combinators library.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from kungfu import Error, LazyCoroResult, Ok, Result

from shopcore.errors import ShopError


def guarded[T](fn: Callable[[], Awaitable[T]]) -> LazyCoroResult[T, ShopError]:
    """
    Run ``fn`` lazily, turning a raised ShopError into ``Error``.

    Only business errors become values; anything else (database failures,
    bugs) propagates to the caller.

    Example:
        def add_item(self, user_id, product_id, quantity):
            return guarded(lambda: self._add_item(user_id, product_id, quantity))

        match await cart.add_item(1, 7, 2):
            case Ok(preview): ...
            case Error(e): ...
    """

    async def _run() -> Result[T, ShopError]:
        try:
            return Ok(await fn())
        except ShopError as e:
            return Error(e)

    return LazyCoroResult(_run)


__all__ = ("guarded",)
