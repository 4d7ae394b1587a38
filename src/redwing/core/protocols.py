"""Protocol interfaces for all Redwing abstractions.

All inter-layer communication uses these Protocols: structural typing,
no inheritance required, easy to test with isinstance().
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from redwing.models.audit import AuditEvent
    from redwing.models.escalation import (
        Escalation,
        EscalationCreate,
        EscalationState,
        FocusLock,
        RoundEntry,
        RoundLogEntry,
    )
    from redwing.models.messages import ActionMetadata, AgentReply, HistoryEnvelope, SyntheticResumeMessage


# ---------------------------------------------------------------------------
# Origin Agent
# ---------------------------------------------------------------------------

@runtime_checkable
class IOriginAgent(Protocol):
    """Conversational handler that paused and will be resumed with a decision."""

    async def handle(self, message: SyntheticResumeMessage) -> AgentReply | dict[str, Any] | None: ...


# ---------------------------------------------------------------------------
# Notification Transport
# ---------------------------------------------------------------------------

@runtime_checkable
class INotificationTransport(Protocol):
    """Push delivery to a phone number or group JID; at-least-once."""

    async def send_push(self, school_id: str, target: str, text: str) -> None: ...


# ---------------------------------------------------------------------------
# History Sink
# ---------------------------------------------------------------------------

@runtime_checkable
class IHistorySink(Protocol):
    """Conversation history so later turns remember a resolution."""

    async def record_message(
        self,
        school_id: str,
        user_id: str | None,
        from_phone: str,
        agent_tag: str,
        envelope: HistoryEnvelope,
        action: ActionMetadata | None = None,
    ) -> None: ...


# ---------------------------------------------------------------------------
# Persistence: Escalation Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IEscalationStore(Protocol):
    """Durable escalations and their round logs, with state-graph guards."""

    def create(self, payload: EscalationCreate | dict[str, Any]) -> str: ...

    def get(self, escalation_id: str, school_id: str) -> Escalation: ...

    def record_round(self, escalation_id: str, entry: RoundEntry) -> RoundLogEntry: ...

    def transition(
        self, escalation_id: str, new_state: EscalationState, **fields: Any
    ) -> Escalation: ...

    def list_rounds(self, escalation_id: str) -> list[RoundLogEntry]: ...

    def list_by_state(
        self, school_id: str, states: Iterable[EscalationState]
    ) -> list[Escalation]: ...

    def list_by_session(self, session_id: str) -> list[Escalation]: ...


# ---------------------------------------------------------------------------
# Persistence: Focus Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IFocusStore(Protocol):
    """One focus lock per authority identity; every write is atomic."""

    def put(self, lock: FocusLock, ttl_seconds: int) -> None: ...

    def get(self, authority_identity: str) -> FocusLock | None: ...

    def delete(self, authority_identity: str, expected_escalation_id: str | None = None) -> bool: ...


# ---------------------------------------------------------------------------
# Persistence: Audit Sink
# ---------------------------------------------------------------------------

@runtime_checkable
class IAuditSink(Protocol):
    """Append-only audit trail."""

    def append(self, event: AuditEvent) -> None: ...

    def list_for_escalation(self, escalation_id: str) -> list[AuditEvent]: ...
