"""EscalationService: pausing, presenting and clarifying escalations.

The resumption half of the protocol lives in ``resumption.py``; this module
covers everything that happens before a decision exists.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from redwing.agents.base import coerce_reply
from redwing.agents.orchestrator.audit import AuditLogger
from redwing.agents.orchestrator.focus import FocusManager
from redwing.agents.orchestrator.messages import clarification_body, synthetic_message
from redwing.agents.registry import OriginAgentRegistry
from redwing.core.config import EscalationConfig
from redwing.core.exceptions import InvalidStateError, InvalidTransitionError, UnknownOriginAgentError
from redwing.core.logging_config import sanitize_phone
from redwing.core.protocols import IEscalationStore, INotificationTransport
from redwing.models.escalation import (
    OPEN_STATES,
    AuthorityType,
    Escalation,
    EscalationCreate,
    EscalationState,
    RoundEntry,
    RoundLogEntry,
    utcnow,
)
from redwing.models.messages import InjectionPurpose

logger = logging.getLogger(__name__)


def describe_for_authority(escalation: Escalation) -> str:
    """Situation summary pushed to the authority."""
    requester = escalation.user_name or sanitize_phone(escalation.from_phone)
    lines = [
        f"*Escalation {escalation.id}* ({escalation.priority})",
        f"Agent: {escalation.origin_agent} / {escalation.escalation_type}",
        f"From: {requester} ({escalation.user_role})",
        f"Reason: {escalation.reason}",
    ]
    if escalation.what_agent_needed:
        lines.append(f"Needs: {escalation.what_agent_needed}")
    if escalation.conversation_summary:
        lines.append(f"Summary: {escalation.conversation_summary}")
    lines.append("")
    lines.append("Reply APPROVE or DENY with any instruction, or ask a question.")
    return "\n".join(lines)


def _queue_key(escalation: Escalation) -> tuple[int, datetime]:
    return escalation.priority.rank, escalation.created_at


class EscalationService:
    """Entry points for origin agents and the authority-facing channel."""

    def __init__(
        self,
        *,
        escalations: IEscalationStore,
        registry: OriginAgentRegistry,
        transport: INotificationTransport,
        audit: AuditLogger,
        focus: FocusManager,
        config: EscalationConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._escalations = escalations
        self._registry = registry
        self._transport = transport
        self._audit = audit
        self._focus = focus
        self._config = config or EscalationConfig()
        self._clock = clock

    # ---- pause ----

    def pause_for_escalation(self, payload: EscalationCreate | dict[str, Any]) -> Escalation:
        escalation_id = self._escalations.create(payload)
        school_id = payload.school_id if isinstance(payload, EscalationCreate) else payload["school_id"]
        escalation = self._escalations.get(escalation_id, school_id)
        self._audit.escalation_created(escalation)
        logger.info(
            "Origin agent paused for escalation (%s, %s)", escalation.escalation_type, escalation.priority,
            extra={
                "escalation_id": escalation.id,
                "school_id": escalation.school_id,
                "origin_agent": escalation.origin_agent,
            },
        )
        return escalation

    # ---- present ----

    async def notify_authority(self, escalation_id: str, school_id: str, authority_identity: str) -> bool:
        """Push the escalation summary to an authority and focus their thread on it.

        Focus is locked even if the push fails, so a reply through another
        channel still lands on the right escalation.
        """
        escalation = self._escalations.get(escalation_id, school_id)
        if not escalation.state.is_open:
            raise InvalidStateError(
                escalation.id, escalation.state,
                f"Escalation {escalation.id} is {escalation.state}; nothing to present",
            )

        delivered = True
        try:
            await self._transport.send_push(school_id, authority_identity, describe_for_authority(escalation))
        except Exception:
            delivered = False
            logger.error(
                "Failed to notify authority",
                exc_info=True,
                extra={"escalation_id": escalation.id, "authority": sanitize_phone(authority_identity)},
            )

        self._focus.lock(authority_identity, escalation.id, school_id)
        self._audit.admin_notified(escalation, authority_identity, delivered)
        return delivered

    async def present_next(
        self, school_id: str, authority_identity: str, exclude_id: str | None = None
    ) -> Escalation | None:
        """Re-present the head of the pending queue after an escalation closes."""
        head = self.next_pending(school_id, exclude_id=exclude_id)
        if head is None:
            return None
        await self.notify_authority(head.id, school_id, authority_identity)
        return head

    # ---- clarify ----

    async def request_clarification(
        self,
        escalation_id: str,
        school_id: str,
        authority_identity: str,
        question: str,
    ) -> RoundLogEntry:
        escalation = self._escalations.get(escalation_id, school_id)
        if not escalation.state.is_open:
            raise InvalidStateError(
                escalation.id, escalation.state,
                f"Escalation {escalation.id} is {escalation.state}; clarification is closed",
            )

        handler = self._registry.resolve(escalation.origin_agent)
        if handler is None:
            raise UnknownOriginAgentError(escalation.origin_agent, escalation.id)

        if escalation.state == EscalationState.PAUSED:
            try:
                self._escalations.transition(escalation.id, EscalationState.AWAITING_CLARIFICATION)
            except InvalidTransitionError as exc:
                raise InvalidStateError(
                    escalation.id, exc.current,
                    f"Escalation {escalation.id} is {exc.current}; clarification is closed",
                ) from exc

        message = synthetic_message(
            escalation, clarification_body(escalation, question), InjectionPurpose.CLARIFICATION,
        )
        reply = coerce_reply(await handler.handle(message))
        answer = reply.reply_text.strip() if reply and reply.reply_text else ""

        # A decision may have landed while the agent was answering.
        current = self._escalations.get(escalation.id, school_id)
        if not current.state.is_open:
            logger.warning(
                "Escalation %s while clarifying; answer dropped", current.state,
                extra={"escalation_id": escalation.id, "school_id": school_id},
            )
            raise InvalidStateError(
                escalation.id, current.state,
                f"Escalation {escalation.id} is {current.state}; clarification is closed",
            )

        round_entry = self._escalations.record_round(
            escalation.id,
            RoundEntry(
                authority_type=AuthorityType.CLARIFICATION_REQUEST,
                authority_request="Clarification requested",
                authority_response=question,
                agent_response=answer or None,
            ),
        )

        if answer:
            try:
                await self._transport.send_push(school_id, authority_identity, answer)
            except Exception:
                logger.error(
                    "Failed to forward clarification to authority",
                    exc_info=True,
                    extra={"escalation_id": escalation.id, "authority": sanitize_phone(authority_identity)},
                )
        self._focus.lock(authority_identity, escalation.id, school_id)
        self._audit.admin_response_recorded(
            escalation, AuthorityType.CLARIFICATION_REQUEST, authority_identity, round_entry.round_number,
        )
        return round_entry

    # ---- queue ----

    def pending(self, school_id: str) -> list[Escalation]:
        """Open escalations, CRITICAL first, then oldest first."""
        return sorted(self._escalations.list_by_state(school_id, OPEN_STATES), key=_queue_key)

    def next_pending(self, school_id: str, exclude_id: str | None = None) -> Escalation | None:
        for escalation in self.pending(school_id):
            if escalation.id != exclude_id:
                return escalation
        return None

    def list_stale(self, school_id: str, older_than: timedelta | None = None) -> list[Escalation]:
        if older_than is None:
            older_than = timedelta(hours=self._config.stale_after_hours)
        cutoff = self._clock() - older_than
        return [e for e in self.pending(school_id) if e.created_at < cutoff]
