"""
HTTP surface — FastAPI routes over the service layer.

    from shopcore.api import create_app

    app = create_app(settings)
"""

from __future__ import annotations

from shopcore.api._app import create_app, app_from_env, install_error_handlers
from shopcore.api._routes import router

__all__ = (
    "create_app",
    "app_from_env",
    "install_error_handlers",
    "router",
)
