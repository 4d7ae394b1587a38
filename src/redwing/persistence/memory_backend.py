"""In-memory backends for unit tests and single-process development, dict-backed."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable

from redwing.core.exceptions import NotFoundError
from redwing.core.masking import render_history_body
from redwing.models.audit import AuditEvent
from redwing.models.escalation import (
    Escalation,
    EscalationCreate,
    EscalationState,
    FocusLock,
    RoundEntry,
    RoundLogEntry,
    utcnow,
)
from redwing.models.messages import ActionMetadata, HistoryEnvelope
from redwing.persistence.guards import check_round_allowed, check_transition, validate_create_payload


class MemoryEscalationStore:
    """Dict-backed IEscalationStore; one lock serialises every mutation."""

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._escalations: dict[str, Escalation] = {}
        self._rounds: dict[str, list[RoundLogEntry]] = {}

    def _load(self, escalation_id: str) -> Escalation:
        try:
            return self._escalations[escalation_id]
        except KeyError:
            raise NotFoundError(escalation_id) from None

    def create(self, payload: EscalationCreate | dict[str, Any]) -> str:
        data = validate_create_payload(payload)
        escalation = Escalation.from_create(data, now=self._clock())
        with self._lock:
            self._escalations[escalation.id] = escalation
            self._rounds[escalation.id] = []
        return escalation.id

    def get(self, escalation_id: str, school_id: str) -> Escalation:
        with self._lock:
            escalation = self._escalations.get(escalation_id)
            if escalation is None or escalation.school_id != school_id:
                raise NotFoundError(escalation_id, school_id)
            return escalation.model_copy(deep=True)

    def record_round(self, escalation_id: str, entry: RoundEntry) -> RoundLogEntry:
        with self._lock:
            escalation = self._load(escalation_id)
            check_round_allowed(escalation)
            row = RoundLogEntry(
                escalation_id=escalation_id,
                round_number=escalation.round_number,
                created_at=self._clock(),
                **entry.model_dump(),
            )
            self._rounds[escalation_id].append(row)
            self._escalations[escalation_id] = escalation.model_copy(update={
                "round_number": escalation.round_number + 1,
                "updated_at": self._clock(),
            })
            return row

    def transition(self, escalation_id: str, new_state: EscalationState, **fields: Any) -> Escalation:
        new_state = EscalationState(new_state)
        with self._lock:
            escalation = self._load(escalation_id)
            check_transition(escalation, new_state, fields)
            updated = escalation.model_copy(update={
                **fields,
                "state": new_state,
                "updated_at": self._clock(),
            })
            self._escalations[escalation_id] = updated
            return updated.model_copy(deep=True)

    def list_rounds(self, escalation_id: str) -> list[RoundLogEntry]:
        with self._lock:
            return list(self._rounds.get(escalation_id, []))

    def list_by_state(self, school_id: str, states: Iterable[EscalationState]) -> list[Escalation]:
        wanted = set(states)
        with self._lock:
            return [
                e.model_copy(deep=True) for e in self._escalations.values()
                if e.school_id == school_id and e.state in wanted
            ]

    def list_by_session(self, session_id: str) -> list[Escalation]:
        with self._lock:
            return [
                e.model_copy(deep=True) for e in self._escalations.values()
                if e.session_id == session_id
            ]


class MemoryFocusStore:
    """Dict-backed IFocusStore honouring TTLs against an injectable clock."""

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._locks: dict[str, tuple[FocusLock, datetime]] = {}

    def put(self, lock: FocusLock, ttl_seconds: int) -> None:
        expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        with self._lock:
            self._locks[lock.authority_identity] = (lock, expires_at)

    def get(self, authority_identity: str) -> FocusLock | None:
        with self._lock:
            entry = self._locks.get(authority_identity)
            if entry is None:
                return None
            lock, expires_at = entry
            if expires_at <= self._clock():
                del self._locks[authority_identity]
                return None
            return lock

    def delete(self, authority_identity: str, expected_escalation_id: str | None = None) -> bool:
        with self._lock:
            entry = self._locks.get(authority_identity)
            if entry is None:
                return False
            if expected_escalation_id is not None and entry[0].locked_escalation_id != expected_escalation_id:
                return False
            del self._locks[authority_identity]
            return True


class MemoryAuditSink:
    """List-backed IAuditSink."""

    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    def append(self, event: AuditEvent) -> None:
        self.events.append(event)

    def list_for_escalation(self, escalation_id: str) -> list[AuditEvent]:
        return [e for e in self.events if e.escalation_id == escalation_id]


class MemoryHistorySink:
    """List-backed IHistorySink storing the rows a database sink would write."""

    def __init__(self, mask_sensitive: bool = True) -> None:
        self._mask = mask_sensitive
        self.records: list[dict[str, Any]] = []

    async def record_message(
        self,
        school_id: str,
        user_id: str | None,
        from_phone: str,
        agent_tag: str,
        envelope: HistoryEnvelope,
        action: ActionMetadata | None = None,
    ) -> None:
        body, is_internal = render_history_body(envelope, mask=self._mask)
        self.records.append({
            "school_id": school_id,
            "user_id": user_id,
            "from_phone": from_phone,
            "context": agent_tag,
            "type": envelope.type,
            "body": body,
            "timestamp": envelope.timestamp,
            "action_performed": action.action if action else None,
            "action_status": action.status if action else None,
            "is_internal": is_internal,
        })
