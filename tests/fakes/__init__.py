"""Shared test doubles: memory backends plus scripted agents and transports."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from redwing.core.exceptions import DeliveryError
from redwing.models.messages import AgentReply, SyntheticResumeMessage
from redwing.persistence.memory_backend import (
    MemoryAuditSink,
    MemoryEscalationStore,
    MemoryFocusStore,
    MemoryHistorySink,
)


class FakeOriginAgent:
    """Records every injected message and answers with a fixed reply."""

    def __init__(self, reply: Any = "Your request has been handled.") -> None:
        self.reply = reply
        self.messages: list[SyntheticResumeMessage] = []

    async def handle(self, message: SyntheticResumeMessage) -> Any:
        self.messages.append(message)
        if isinstance(self.reply, str):
            return AgentReply(reply_text=self.reply)
        return self.reply


class FailingOriginAgent:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error or RuntimeError("agent crashed")
        self.calls = 0

    async def handle(self, message: SyntheticResumeMessage) -> Any:
        self.calls += 1
        raise self.error


class RecordingTransport:
    """INotificationTransport that keeps every push as ``(school_id, target, text)``."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    async def send_push(self, school_id: str, target: str, text: str) -> None:
        self.sent.append((school_id, target, text))

    def to(self, target: str) -> list[str]:
        return [text for _, t, text in self.sent if t == target]


class FailingTransport:
    def __init__(self) -> None:
        self.attempts = 0

    async def send_push(self, school_id: str, target: str, text: str) -> None:
        self.attempts += 1
        raise DeliveryError(target, "gateway unavailable")


class FailingAuditSink:
    def append(self, event: Any) -> None:
        raise RuntimeError("audit table unavailable")

    def list_for_escalation(self, escalation_id: str) -> list[Any]:
        raise RuntimeError("audit table unavailable")


class FakeClock:
    """Manually advanced clock for TTL and staleness tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 3, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


ADMIN = "2348099999999"


def escalation_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "origin_agent": "TA",
        "escalation_type": "MARK_AMENDMENT",
        "priority": "HIGH",
        "school_id": "SCH-001",
        "from_phone": "2348012345678",
        "from_identity": "teacher-17",
        "session_id": "sess-1",
        "pause_message_id": "msg-1",
        "user_name": "Mrs Okafor",
        "user_role": "teacher",
        "reason": "Change JSS2 maths score for Ada from 45 to 65",
        "what_agent_needed": "Admin approval to amend a locked term result",
        "conversation_summary": "Teacher reported a transcription error.",
        "context": {
            "student_name": "Ada Obi",
            "subject": "Mathematics",
            "class_level": "JSS2",
            "term_id": "2024-T2",
            "old_score": 45,
            "new_score": 65,
        },
    }
    payload.update(overrides)
    return payload


__all__ = [
    "ADMIN",
    "FailingAuditSink",
    "FailingOriginAgent",
    "FailingTransport",
    "FakeClock",
    "FakeOriginAgent",
    "MemoryAuditSink",
    "MemoryEscalationStore",
    "MemoryFocusStore",
    "MemoryHistorySink",
    "RecordingTransport",
    "escalation_payload",
]
