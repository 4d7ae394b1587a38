"""Request-scoped dependencies."""

from __future__ import annotations

from fastapi import Request

from redwing.services import EscalationServices


def get_services(request: Request) -> EscalationServices:
    return request.app.state.services
