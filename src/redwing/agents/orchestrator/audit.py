"""Best-effort audit trail for every protocol step."""

from __future__ import annotations

import logging
from typing import Any

from redwing.core.protocols import IAuditSink
from redwing.models.audit import AuditEvent, AuditEventType
from redwing.models.escalation import Escalation

logger = logging.getLogger(__name__)


class AuditLogger:
    """Writes ``AuditEvent`` rows; sink failures are logged and never raised."""

    def __init__(self, sink: IAuditSink, instruction_max_chars: int = 500) -> None:
        self._sink = sink
        self._instruction_max_chars = instruction_max_chars

    def _emit(
        self,
        escalation_id: str,
        school_id: str,
        event_type: AuditEventType,
        *,
        admin_phone: str | None = None,
        origin_agent: str | None = None,
        decision_summary: str | None = None,
        **context_data: Any,
    ) -> bool:
        event = AuditEvent(
            escalation_id=escalation_id,
            school_id=school_id,
            event_type=event_type,
            admin_phone=admin_phone,
            origin_agent=origin_agent,
            decision_summary=decision_summary,
            context_data=context_data,
        )
        try:
            self._sink.append(event)
        except Exception:
            logger.warning(
                "Failed to write audit event %s", event_type,
                exc_info=True,
                extra={"escalation_id": escalation_id, "school_id": school_id, "event_type": event_type},
            )
            return False
        logger.debug("Audit event %s logged", event_type, extra={"escalation_id": escalation_id})
        return True

    def escalation_created(self, escalation: Escalation) -> bool:
        return self._emit(
            escalation.id, escalation.school_id, AuditEventType.ESCALATION_CREATED,
            origin_agent=escalation.origin_agent,
            pause_message_id=escalation.pause_message_id,
            escalation_type=escalation.escalation_type,
            priority=escalation.priority,
        )

    def admin_notified(self, escalation: Escalation, admin_phone: str, delivered: bool) -> bool:
        return self._emit(
            escalation.id, escalation.school_id, AuditEventType.ADMIN_NOTIFIED,
            admin_phone=admin_phone,
            delivered=delivered,
        )

    def admin_response_recorded(
        self, escalation: Escalation, response_type: str, admin_phone: str, round_number: int
    ) -> bool:
        return self._emit(
            escalation.id, escalation.school_id, AuditEventType.ADMIN_RESPONSE_RECORDED,
            admin_phone=admin_phone,
            response_type=response_type,
            round_number=round_number,
        )

    def decision_made(self, escalation: Escalation, decision: str, admin_phone: str, instruction: str) -> bool:
        return self._emit(
            escalation.id, escalation.school_id, AuditEventType.DECISION_MADE,
            admin_phone=admin_phone,
            decision_summary=decision,
            decision=decision,
            instruction=(instruction or "")[: self._instruction_max_chars],
        )

    def origin_agent_resumed(self, escalation: Escalation, replied: bool) -> bool:
        return self._emit(
            escalation.id, escalation.school_id, AuditEventType.ORIGIN_AGENT_RESUMED,
            origin_agent=escalation.origin_agent,
            decision_summary=escalation.origin_agent,
            replied=replied,
        )

    def escalation_resolved(self, escalation: Escalation, delivered: bool) -> bool:
        return self._emit(
            escalation.id, escalation.school_id, AuditEventType.ESCALATION_RESOLVED,
            delivered=delivered,
        )

    def trail(self, escalation_id: str) -> list[AuditEvent]:
        """Events for one escalation in timestamp order; empty if the sink fails."""
        try:
            events = self._sink.list_for_escalation(escalation_id)
        except Exception:
            logger.error("Failed to fetch audit trail", exc_info=True, extra={"escalation_id": escalation_id})
            return []
        return sorted(events, key=lambda e: e.timestamp)
