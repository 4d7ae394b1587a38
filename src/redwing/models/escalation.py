"""Escalation, round log and focus lock models plus the escalation state graph."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_escalation_id(now: datetime | None = None) -> str:
    """``ESC-<epoch millis>-<8 hex>``."""
    now = now or utcnow()
    return f"ESC-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:8]}"


class OriginAgent(StrEnum):
    PA = "PA"  # parent agent
    TA = "TA"  # teacher agent
    GA = "GA"  # school group agent


class Priority(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        """Queue position; CRITICAL sorts first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.CRITICAL: 1,
    Priority.HIGH: 2,
    Priority.MEDIUM: 3,
    Priority.LOW: 4,
}


class EscalationState(StrEnum):
    PAUSED = "PAUSED"
    AWAITING_CLARIFICATION = "AWAITING_CLARIFICATION"
    APPROVED = "APPROVED"
    DENIED = "DENIED"
    RESOLVED = "RESOLVED"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"  # reserved for an external expiry policy

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES

    @property
    def is_open(self) -> bool:
        """Still waiting on the authority."""
        return self in OPEN_STATES

    def can_transition_to(self, new_state: EscalationState) -> bool:
        return new_state in ALLOWED_TRANSITIONS.get(self, frozenset())


TERMINAL_STATES = frozenset({EscalationState.RESOLVED, EscalationState.FAILED})
OPEN_STATES = frozenset({EscalationState.PAUSED, EscalationState.AWAITING_CLARIFICATION})
DECIDED_STATES = frozenset({EscalationState.APPROVED, EscalationState.DENIED})

ALLOWED_TRANSITIONS: dict[EscalationState, frozenset[EscalationState]] = {
    EscalationState.PAUSED: frozenset({
        EscalationState.AWAITING_CLARIFICATION,
        EscalationState.APPROVED,
        EscalationState.DENIED,
    }),
    EscalationState.AWAITING_CLARIFICATION: frozenset({
        EscalationState.APPROVED,
        EscalationState.DENIED,
    }),
    EscalationState.APPROVED: frozenset({EscalationState.RESOLVED, EscalationState.FAILED}),
    EscalationState.DENIED: frozenset({EscalationState.RESOLVED, EscalationState.FAILED}),
}


class AuthorityType(StrEnum):
    CLARIFICATION_REQUEST = "CLARIFICATION_REQUEST"
    NEEDS_DECISION = "NEEDS_DECISION"
    DECISION_MADE = "DECISION_MADE"


class Decision(StrEnum):
    APPROVED = "APPROVED"
    DENIED = "DENIED"

    @classmethod
    def parse(cls, value: str) -> Decision:
        """Normalise the spellings authorities and classifiers actually produce."""
        normalized = str(value).strip().upper()
        if normalized in _DECISION_ALIASES:
            return _DECISION_ALIASES[normalized]
        raise ValueError(f"Unrecognised decision {value!r}")

    @property
    def state(self) -> EscalationState:
        return EscalationState(self.value)


_DECISION_ALIASES = {
    "APPROVED": Decision.APPROVED,
    "APPROVE": Decision.APPROVED,
    "DENIED": Decision.DENIED,
    "DENY": Decision.DENIED,
    "REJECT": Decision.DENIED,
    "REJECTED": Decision.DENIED,
}

# Columns a transition may set alongside the new state.
RESOLUTION_FIELDS = frozenset({
    "admin_decision",
    "admin_instruction",
    "resolved_at",
    "resolved_by",
    "failure_reason",
})


class EscalationCreate(BaseModel):
    """Payload an origin agent submits when it pauses for authority."""

    origin_agent: OriginAgent
    escalation_type: str = "GENERAL_INQUIRY"
    priority: Priority = Priority.MEDIUM
    school_id: str = Field(min_length=1)
    from_phone: str = Field(min_length=1)
    from_identity: Optional[str] = None
    session_id: str = ""
    pause_message_id: str = ""
    user_name: Optional[str] = None
    user_role: str = "unknown"
    reason: str = Field(min_length=1)
    what_agent_needed: str = ""
    conversation_summary: str = ""
    context: dict[str, Any] = Field(default_factory=dict)

    @field_validator("school_id", "from_phone", "reason")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class Escalation(BaseModel):
    """One paused decision point."""

    id: str
    origin_agent: OriginAgent
    escalation_type: str = "GENERAL_INQUIRY"
    priority: Priority = Priority.MEDIUM
    school_id: str
    from_phone: str
    from_identity: Optional[str] = None
    session_id: str = ""
    pause_message_id: str = ""
    user_name: Optional[str] = None
    user_role: str = "unknown"
    state: EscalationState = EscalationState.PAUSED
    round_number: int = 1
    reason: str
    what_agent_needed: str = ""
    conversation_summary: str = ""
    context: dict[str, Any] = Field(default_factory=dict)
    admin_decision: Optional[Decision] = None
    admin_instruction: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    failure_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_create(
        cls, payload: EscalationCreate, escalation_id: str | None = None, now: datetime | None = None
    ) -> Escalation:
        now = now or utcnow()
        return cls(
            id=escalation_id or new_escalation_id(now),
            created_at=now,
            updated_at=now,
            **payload.model_dump(),
        )


class RoundEntry(BaseModel):
    """Caller-supplied content of a round; the store assigns the number."""

    authority_type: AuthorityType
    authority_request: str = ""
    authority_response: str
    agent_response: Optional[str] = None


class RoundLogEntry(BaseModel):
    """One authority/agent exchange, immutable once written."""

    model_config = ConfigDict(frozen=True)

    escalation_id: str
    round_number: int
    authority_type: AuthorityType
    authority_request: str = ""
    authority_response: str
    agent_response: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class FocusLock(BaseModel):
    """Which escalation an authority's next free-text reply refers to."""

    authority_identity: str
    locked_escalation_id: str
    school_id: str
    last_interaction_at: datetime = Field(default_factory=utcnow)
