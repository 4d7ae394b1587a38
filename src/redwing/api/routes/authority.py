"""Inbound authority replies, already classified as a decision upstream."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from redwing.agents.orchestrator.resumption import ResumeStatus
from redwing.api.deps import get_services
from redwing.core.logging_config import sanitize_phone
from redwing.models.messages import AdminDecision
from redwing.services import EscalationServices

logger = logging.getLogger(__name__)

router = APIRouter(tags=["authority"])


class AuthorityMessage(BaseModel):
    authority_identity: str = Field(min_length=1)
    school_id: str = Field(min_length=1)
    decision: str
    instruction: str = ""
    escalation_id: Optional[str] = None


@router.post("/messages", response_model=None)
async def authority_message(
    body: AuthorityMessage,
    services: EscalationServices = Depends(get_services),
) -> dict[str, Any] | JSONResponse:
    """Resolve the referenced (or focused) escalation, then present the next one."""
    escalation_id = body.escalation_id or services.focus.resolve(body.authority_identity)
    if escalation_id is None:
        logger.info(
            "Authority reply with no focused escalation",
            extra={"authority": sanitize_phone(body.authority_identity), "school_id": body.school_id},
        )
        return JSONResponse(
            status_code=404,
            content={"error": "NO_FOCUS", "message": "No escalation is awaiting this authority's reply"},
        )

    outcome = await services.resumption.resume(
        AdminDecision(
            escalation_id=escalation_id,
            school_id=body.school_id,
            decision=body.decision,
            instruction=body.instruction,
            authority_identity=body.authority_identity,
        )
    )

    next_id = None
    if outcome.status is not ResumeStatus.SKIPPED:
        try:
            head = await services.escalations.present_next(
                body.school_id, body.authority_identity, exclude_id=escalation_id,
            )
            next_id = head.id if head else None
        except Exception:
            logger.warning(
                "Failed to present next pending escalation",
                exc_info=True,
                extra={"school_id": body.school_id, "authority": sanitize_phone(body.authority_identity)},
            )

    return {**outcome.model_dump(mode="json"), "next_escalation_id": next_id}
