"""Exception handlers mapping the Redwing error taxonomy onto HTTP responses.

Every error body has the same shape: ``{"error": <code>, "message": <text>}``
plus optional detail keys.
"""

from __future__ import annotations

import logging
from typing import Any

import pydantic
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from redwing.core.exceptions import (
    InvalidStateError,
    NotFoundError,
    RedwingError,
    UnknownOriginAgentError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, code: str, message: str, **detail: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": code, "message": message, **detail})


def _field_names(errors: list[dict[str, Any]]) -> list[str]:
    fields = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        if loc:
            fields.append(".".join(loc))
    return sorted(set(fields))


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    logger.info("Rejected payload on %s: %s", request.url.path, exc)
    return _error(422, "VALIDATION_ERROR", str(exc), fields=exc.fields)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = _field_names(list(exc.errors()))
    logger.info("Rejected request on %s: %s", request.url.path, fields)
    return _error(422, "VALIDATION_ERROR", f"Invalid request: {', '.join(fields) or 'body'}", fields=fields)


async def pydantic_validation_handler(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    fields = _field_names(list(exc.errors()))
    logger.info("Rejected model on %s: %s", request.url.path, fields)
    return _error(422, "VALIDATION_ERROR", f"Invalid value: {', '.join(fields) or 'unknown'}", fields=fields)


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error(404, "NOT_FOUND", str(exc), escalation_id=exc.escalation_id)


async def invalid_state_handler(request: Request, exc: InvalidStateError) -> JSONResponse:
    logger.warning("Conflict on %s: %s", request.url.path, exc, extra={"escalation_id": exc.escalation_id})
    return _error(409, "INVALID_STATE", str(exc), escalation_id=exc.escalation_id, state=str(exc.state))


async def unknown_origin_agent_handler(request: Request, exc: UnknownOriginAgentError) -> JSONResponse:
    logger.error(
        "Unknown origin agent on %s: %s", request.url.path, exc,
        extra={"escalation_id": exc.escalation_id, "origin_agent": exc.origin_agent},
    )
    return _error(500, "UNKNOWN_ORIGIN_AGENT", str(exc), escalation_id=exc.escalation_id)


async def redwing_error_handler(request: Request, exc: RedwingError) -> JSONResponse:
    logger.error("Unhandled %s on %s", type(exc).__name__, request.url.path, exc_info=exc)
    return _error(500, "INTERNAL_ERROR", str(exc))


def register_error_handlers(app: FastAPI) -> None:
    """Register handlers; subclasses resolve to the most specific one."""
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(pydantic.ValidationError, pydantic_validation_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(InvalidStateError, invalid_state_handler)
    app.add_exception_handler(UnknownOriginAgentError, unknown_origin_agent_handler)
    app.add_exception_handler(RedwingError, redwing_error_handler)
