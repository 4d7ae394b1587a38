"""Health check endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def ready(request: Request) -> dict[str, Any]:
    services = request.app.state.services
    return {
        "status": "ready",
        "backend": services.settings.backend,
        "missing_agents": [str(tag) for tag in services.registry.missing()],
    }
