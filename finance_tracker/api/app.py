"""
FastAPI application factory.

The app holds one AppComponents instance on `app.state`; every route
reaches the record flows through it.
"""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from finance_tracker import __version__
from finance_tracker.activity import configure_logging
from finance_tracker.api.errors import register_exception_handlers
from finance_tracker.api.routes import build_api_router
from finance_tracker.config import get_settings, validate_all_settings
from finance_tracker.orchestrator import AppComponents, create_app_components


def create_app(components: Optional[AppComponents] = None) -> FastAPI:
    """
    Build the application.

    Args:
        components: Pre-built flows (tests pass their own). Defaults to
                    create_app_components() with the configured backend.

    Raises:
        RuntimeError: A settings group failed to load from the environment.
    """
    status = validate_all_settings()
    broken = sorted(name for name, ok in status.items() if ok is False)
    if broken:
        details = "; ".join(f"{name}: {status[name + '_error']}" for name in broken)
        raise RuntimeError(f"Invalid settings: {details}")

    settings = get_settings()
    configure_logging(settings.app)

    app = FastAPI(
        title="Finance Tracker",
        version=__version__,
        debug=settings.app.debug_mode,
    )
    app.state.components = components or create_app_components()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(build_api_router())

    return app
