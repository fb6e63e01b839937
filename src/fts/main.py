# fts/main.py
"""
Application factory.

Creates a FastAPI application serving one function: CORS, discovery routes,
and the function handler mounted at ``/`` for every method. Start and stop
are owned by the ASGI server running the app.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fts._version import __version__
from fts.contracts.definition import Definition
from fts.core.config import Settings, settings as default_settings
from fts.core.logging import configure_logging
from fts.core.validator import SchemaValidator
from fts.http.discovery import router as discovery_router
from fts.http.handler import HttpHandler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    definition: Definition = app.state.definition
    logger.info("Serving function '%s' (version=%s)", definition.title, definition.version or "-")
    yield
    logger.info("Function '%s' stopped", definition.title)


def create_app(
    definition: Definition,
    func: Callable[..., Any],
    *,
    settings: Settings | None = None,
    validator: SchemaValidator | None = None,
    configure_logs: bool = True,
) -> FastAPI:
    """Build the FastAPI application serving ``func`` under ``definition``."""
    settings = settings or default_settings
    if configure_logs:
        configure_logging(settings.log_level)
    logger.info("Creating function application (env=%s)", settings.app_env)

    handler = HttpHandler(definition, func, validator=validator, settings=settings)

    app = FastAPI(
        title=definition.title,
        version=definition.version or __version__,
        description=definition.description or "",
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.definition = definition
    app.state.handler = handler
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=settings.cors_allow_methods,
        allow_headers=["*"],
    )

    app.include_router(discovery_router)
    # ASGI endpoint without a method list: every method reaches the handler
    app.add_route("/", handler)

    logger.info(
        "Function application ready: '%s' mounted at /",
        definition.title,
    )
    return app
