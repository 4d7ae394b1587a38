"""Audit trail events for the escalation protocol."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from redwing.models.escalation import utcnow


class AuditEventType(StrEnum):
    ESCALATION_CREATED = "ESCALATION_CREATED"
    ADMIN_NOTIFIED = "ADMIN_NOTIFIED"
    ADMIN_RESPONSE_RECORDED = "ADMIN_RESPONSE_RECORDED"
    DECISION_MADE = "DECISION_MADE"
    ORIGIN_AGENT_RESUMED = "ORIGIN_AGENT_RESUMED"
    ESCALATION_RESOLVED = "ESCALATION_RESOLVED"


class AuditEvent(BaseModel):
    """Append-only record of one protocol step."""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: f"AUDIT-{uuid.uuid4().hex}")
    escalation_id: str
    school_id: str
    event_type: AuditEventType
    timestamp: datetime = Field(default_factory=utcnow)
    admin_phone: Optional[str] = None
    origin_agent: Optional[str] = None
    decision_summary: Optional[str] = None
    context_data: dict[str, Any] = Field(default_factory=dict)
