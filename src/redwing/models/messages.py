"""Messages exchanged with origin agents, authorities and the history sink."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from redwing.models.escalation import Decision, OriginAgent, utcnow


class InjectionPurpose(StrEnum):
    RESUME = "RESUME"
    CLARIFICATION = "CLARIFICATION"


class SyntheticResumeMessage(BaseModel):
    """System-authored message that wakes an origin agent as if the requester wrote.

    ``from_`` is the original requester so the agent loads the right
    conversation; ``system_injection`` tells it nobody actually typed this.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: str = Field(alias="from")
    body: str
    context: OriginAgent
    school_id: str
    system_injection: bool = True
    escalation_resume_id: Optional[str] = None
    purpose: InjectionPurpose = InjectionPurpose.RESUME
    user_role: str = "unknown"
    timestamp: datetime = Field(default_factory=utcnow)


class AgentReply(BaseModel):
    """What an origin agent hands back; anything beyond ``reply_text`` is kept."""

    model_config = ConfigDict(extra="allow")

    reply_text: str = ""


class AdminDecision(BaseModel):
    """A classified authority message that carries a decision."""

    escalation_id: str = Field(min_length=1)
    school_id: str = Field(min_length=1)
    decision: Decision
    instruction: str = ""
    authority_identity: str = ""

    @field_validator("decision", mode="before")
    @classmethod
    def _normalise_decision(cls, value: Any) -> Decision:
        if isinstance(value, Decision):
            return value
        return Decision.parse(value)


class HistoryEnvelope(BaseModel):
    """Message body handed to the history sink."""

    type: str = "text"
    body: str
    timestamp: datetime = Field(default_factory=utcnow)
    source: str = "system"


class ActionMetadata(BaseModel):
    action: str
    status: str
