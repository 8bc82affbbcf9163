"""
Application factory.

    app = create_app(Settings.from_env())

The lifespan opens the database, builds the services and, when it created
the gateway client itself, closes it on shutdown.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shopcore import __version__
from shopcore._types import Clock, utcnow
from shopcore.api._codecs import ErrorOut
from shopcore.api._routes import router
from shopcore.config import Settings
from shopcore.db import create_database
from shopcore.errors import NotAuthorizedError, NotFoundError, ShopError
from shopcore.log import configure_logging
from shopcore.payments import Gateway, RazorpayGateway
from shopcore.services import build_services

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Error mapping
# ═══════════════════════════════════════════════════════════════════════════════


def _error_response(status: int, kind: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content=ErrorOut(error=kind, message=message).model_dump())


async def _on_shop_error(request: Request, exc: ShopError) -> JSONResponse:
    if isinstance(exc, NotAuthorizedError):
        logger.warning("%s %s forbidden: %s", request.method, request.url.path, exc.message)
    elif isinstance(exc, NotFoundError):
        logger.info("%s %s not found: %s", request.method, request.url.path, exc.message)
    return _error_response(exc.status, exc.kind, exc.message)


async def _on_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        where = ".".join(str(part) for part in err.get("loc", ()))
        problems.append(f"{where}: {err.get('msg', 'invalid')}")
    return _error_response(422, "validation", "; ".join(problems) or "invalid request")


async def _on_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return _error_response(500, "internal", "internal server error")


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ShopError, _on_shop_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _on_request_validation)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _on_unexpected)


# ═══════════════════════════════════════════════════════════════════════════════
# Factory
# ═══════════════════════════════════════════════════════════════════════════════


def create_app(
    settings: Settings | None = None,
    *,
    gateway: Gateway | None = None,
    clock: Clock = utcnow,
) -> FastAPI:
    """
    Build the FastAPI app.

    Pass ``gateway`` to supply your own adapter (it is not closed on
    shutdown); otherwise a RazorpayGateway is created from settings.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        session_factory, engine = await create_database(settings.database_url)
        active = gateway if gateway is not None else RazorpayGateway(settings.gateway)
        app.state.session_factory = session_factory
        app.state.services = build_services(session_factory, active, settings.gateway, clock)
        logger.info("shopcore %s started", __version__)
        try:
            yield
        finally:
            if gateway is None:
                await active.aclose()
            await engine.dispose()

    app = FastAPI(title="shopcore", version=__version__, lifespan=lifespan)
    app.include_router(router)
    install_error_handlers(app)
    return app


def app_from_env() -> FastAPI:
    """Factory for ASGI servers: ``uvicorn --factory shopcore.api:app_from_env``."""
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    return create_app(settings)


__all__ = ("create_app", "app_from_env", "install_error_handlers")
