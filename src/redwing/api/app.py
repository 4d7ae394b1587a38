"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from redwing.api.errors import register_error_handlers
from redwing.api.routes import authority, escalations, health
from redwing.core.logging_config import configure_logging
from redwing.services import EscalationServices, create_services


def create_app(services: EscalationServices | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Pass ``services`` to run against injected backends; otherwise they are
    built from ``AppSettings`` at startup with no origin agents registered.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if services is None:
            app.state.services = create_services()
        configure_logging(app.state.services.settings)
        yield

    app = FastAPI(
        title="Redwing Escalation Service",
        version="0.1.0",
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services
    register_error_handlers(app)
    app.include_router(health.router)
    app.include_router(escalations.router, prefix="/escalations")
    app.include_router(authority.router, prefix="/authority")
    return app
