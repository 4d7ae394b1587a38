"""Escalation endpoints: create, inspect, present, clarify and decide."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, Field

from redwing.agents.orchestrator.resumption import ResumeOutcome
from redwing.api.deps import get_services
from redwing.models.audit import AuditEvent
from redwing.models.escalation import Escalation, RoundLogEntry
from redwing.models.messages import AdminDecision
from redwing.services import EscalationServices

router = APIRouter(tags=["escalations"])


class NotifyRequest(BaseModel):
    school_id: str = Field(min_length=1)
    authority_identity: str = Field(min_length=1)


class ClarificationRequest(BaseModel):
    school_id: str = Field(min_length=1)
    authority_identity: str = Field(min_length=1)
    question: str = Field(min_length=1)


class DecisionRequest(BaseModel):
    school_id: str = Field(min_length=1)
    decision: str
    instruction: str = ""
    authority_identity: str = ""


@router.post("", status_code=201)
async def create_escalation(
    payload: dict[str, Any] = Body(...),
    services: EscalationServices = Depends(get_services),
) -> Escalation:
    return services.escalations.pause_for_escalation(payload)


@router.get("")
async def list_pending(
    school_id: str = Query(..., min_length=1),
    services: EscalationServices = Depends(get_services),
) -> list[Escalation]:
    return services.escalations.pending(school_id)


@router.get("/{escalation_id}")
async def get_escalation(
    escalation_id: str,
    school_id: str = Query(..., min_length=1),
    services: EscalationServices = Depends(get_services),
) -> Escalation:
    return services.persistence.escalations.get(escalation_id, school_id)


@router.get("/{escalation_id}/rounds")
async def list_rounds(
    escalation_id: str,
    school_id: str = Query(..., min_length=1),
    services: EscalationServices = Depends(get_services),
) -> list[RoundLogEntry]:
    store = services.persistence.escalations
    store.get(escalation_id, school_id)
    return store.list_rounds(escalation_id)


@router.get("/{escalation_id}/audit")
async def audit_trail(
    escalation_id: str,
    school_id: str = Query(..., min_length=1),
    services: EscalationServices = Depends(get_services),
) -> list[AuditEvent]:
    services.persistence.escalations.get(escalation_id, school_id)
    return services.audit.trail(escalation_id)


@router.post("/{escalation_id}/notify")
async def notify_authority(
    escalation_id: str,
    body: NotifyRequest,
    services: EscalationServices = Depends(get_services),
) -> dict[str, Any]:
    delivered = await services.escalations.notify_authority(
        escalation_id, body.school_id, body.authority_identity,
    )
    return {"escalation_id": escalation_id, "delivered": delivered, "focused": True}


@router.post("/{escalation_id}/clarification")
async def request_clarification(
    escalation_id: str,
    body: ClarificationRequest,
    services: EscalationServices = Depends(get_services),
) -> RoundLogEntry:
    return await services.escalations.request_clarification(
        escalation_id, body.school_id, body.authority_identity, body.question,
    )


@router.post("/{escalation_id}/decision")
async def decide(
    escalation_id: str,
    body: DecisionRequest,
    services: EscalationServices = Depends(get_services),
) -> ResumeOutcome:
    decision = AdminDecision(
        escalation_id=escalation_id,
        school_id=body.school_id,
        decision=body.decision,
        instruction=body.instruction,
        authority_identity=body.authority_identity,
    )
    return await services.resumption.resume(decision)
