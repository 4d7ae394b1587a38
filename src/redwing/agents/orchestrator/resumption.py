"""ResumptionOrchestrator: turns an authority decision into a delivered reply.

Flow for one decision:

1. Load the escalation inside the authority's school (``NotFoundError`` if absent).
2. Skip with a warning if it was already decided or closed (duplicate webhook).
3. Claim it with a compare-and-set transition to APPROVED/DENIED, then log the
   DECISION_MADE round.
4. Audit, then resolve the origin agent.
5. Wake the origin agent with a synthetic message; on success send any
   side notification and deliver what the agent wrote.
6. Record the outcome in history, mark RESOLVED, release focus, audit.

Once claimed, a decision ends RESOLVED or FAILED: a missing or raising
origin agent, or a store error before it runs, fails the resumption. Pushes,
history and audit are best effort.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Mapping, Optional

from pydantic import BaseModel

from redwing.agents.base import coerce_reply
from redwing.agents.orchestrator.audit import AuditLogger
from redwing.agents.orchestrator.focus import FocusManager
from redwing.agents.orchestrator.messages import (
    delivery_target,
    resolution_record,
    resume_body,
    synthetic_message,
)
from redwing.agents.orchestrator.side_notifications import DEFAULT_SIDE_NOTIFIERS, SideNotifier
from redwing.agents.registry import OriginAgentRegistry
from redwing.core.config import EscalationConfig
from redwing.core.exceptions import DeliveryError, InvalidTransitionError, UnknownOriginAgentError
from redwing.core.logging_config import sanitize_phone, truncate_message
from redwing.core.protocols import IEscalationStore, IHistorySink, INotificationTransport
from redwing.models.escalation import (
    DECIDED_STATES,
    AuthorityType,
    Escalation,
    EscalationState,
    OriginAgent,
    RoundEntry,
    utcnow,
)
from redwing.models.messages import ActionMetadata, AdminDecision, HistoryEnvelope

logger = logging.getLogger(__name__)


class ResumeStatus(StrEnum):
    RESOLVED = "RESOLVED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class ResumeOutcome(BaseModel):
    escalation_id: str
    status: ResumeStatus
    state: EscalationState
    delivered: bool = False
    reply_text: Optional[str] = None
    detail: str = ""


class ResumptionOrchestrator:
    """Stateless service; every collaborator is injected."""

    def __init__(
        self,
        *,
        escalations: IEscalationStore,
        registry: OriginAgentRegistry,
        transport: INotificationTransport,
        audit: AuditLogger,
        focus: FocusManager,
        history: IHistorySink | None = None,
        config: EscalationConfig | None = None,
        side_notifiers: Mapping[tuple[OriginAgent, str], SideNotifier] | None = None,
    ) -> None:
        self._escalations = escalations
        self._registry = registry
        self._transport = transport
        self._audit = audit
        self._focus = focus
        self._history = history
        self._config = config or EscalationConfig()
        self._side_notifiers = DEFAULT_SIDE_NOTIFIERS if side_notifiers is None else side_notifiers

    async def resume(self, decision: AdminDecision) -> ResumeOutcome:
        log_ctx = {"escalation_id": decision.escalation_id, "school_id": decision.school_id}
        logger.info(
            "Decision received: %s (%s)", decision.decision, truncate_message(decision.instruction, 100),
            extra=log_ctx,
        )

        escalation = self._escalations.get(decision.escalation_id, decision.school_id)

        if escalation.state.is_terminal or escalation.state in DECIDED_STATES:
            logger.warning(
                "Escalation already %s; ignoring duplicate decision", escalation.state, extra=log_ctx,
            )
            return self._skipped(escalation, f"already {escalation.state}")

        try:
            escalation = self._escalations.transition(
                escalation.id,
                decision.decision.state,
                admin_decision=decision.decision,
                admin_instruction=decision.instruction,
                resolved_by=decision.authority_identity or None,
                resolved_at=utcnow(),
            )
        except InvalidTransitionError as exc:
            logger.warning(
                "Lost decision race (%s); another resumption owns it", exc.current, extra=log_ctx,
            )
            return self._skipped(escalation, f"already {exc.current}")

        # Past the claim, any error before the origin agent runs closes the
        # escalation as FAILED.
        try:
            round_entry = self._escalations.record_round(
                escalation.id,
                RoundEntry(
                    authority_type=AuthorityType.DECISION_MADE,
                    authority_request="Admin decision requested",
                    authority_response=(
                        f"{decision.decision}: {decision.instruction}" if decision.instruction else decision.decision
                    ),
                ),
            )
            self._audit.admin_response_recorded(
                escalation, AuthorityType.DECISION_MADE, decision.authority_identity, round_entry.round_number,
            )
            self._audit.decision_made(
                escalation, decision.decision, decision.authority_identity, decision.instruction,
            )
            handler = self._registry.resolve(escalation.origin_agent)
            message = synthetic_message(escalation, resume_body(escalation, decision))
        except Exception as exc:
            logger.error("Resumption aborted after claim", exc_info=True, extra=log_ctx)
            failed = self._fail(escalation, decision, f"resumption error: {exc}")
            return ResumeOutcome(
                escalation_id=escalation.id,
                status=ResumeStatus.FAILED,
                state=failed.state,
                detail=str(exc),
            )

        if handler is None:
            logger.error(
                "Unknown origin agent %s; cannot resume", escalation.origin_agent,
                extra={**log_ctx, "origin_agent": escalation.origin_agent},
            )
            self._fail(escalation, decision, f"no handler for {escalation.origin_agent}")
            raise UnknownOriginAgentError(escalation.origin_agent, escalation.id)

        try:
            reply = coerce_reply(await handler.handle(message))
        except Exception as exc:
            logger.error(
                "Origin agent %s failed to resume", escalation.origin_agent,
                exc_info=True,
                extra={**log_ctx, "origin_agent": escalation.origin_agent},
            )
            failed = self._fail(escalation, decision, f"origin agent error: {exc}")
            return ResumeOutcome(
                escalation_id=escalation.id,
                status=ResumeStatus.FAILED,
                state=failed.state,
                detail=str(exc),
            )

        reply_text = reply.reply_text.strip() if reply and reply.reply_text else ""
        if not reply_text:
            logger.warning("Origin agent returned no reply_text for resumption", extra=log_ctx)
        self._audit.origin_agent_resumed(escalation, replied=bool(reply_text))

        await self._send_side_notification(escalation, decision)

        delivered = False
        if reply_text:
            delivered = await self._deliver(escalation, reply_text)

        await self._record_history(escalation, decision, reply_text)

        resolved = self._escalations.transition(escalation.id, EscalationState.RESOLVED)
        if decision.authority_identity:
            self._focus.release(decision.authority_identity, escalation.id)
        self._audit.escalation_resolved(resolved, delivered=delivered)

        logger.info("Escalation resolved", extra={**log_ctx, "state": resolved.state})
        return ResumeOutcome(
            escalation_id=resolved.id,
            status=ResumeStatus.RESOLVED,
            state=resolved.state,
            delivered=delivered,
            reply_text=reply_text or None,
        )

    # ---- steps ----

    def _skipped(self, escalation: Escalation, detail: str) -> ResumeOutcome:
        return ResumeOutcome(
            escalation_id=escalation.id,
            status=ResumeStatus.SKIPPED,
            state=escalation.state,
            detail=detail,
        )

    def _fail(self, escalation: Escalation, decision: AdminDecision, reason: str) -> Escalation:
        failed = self._escalations.transition(escalation.id, EscalationState.FAILED, failure_reason=reason)
        if decision.authority_identity:
            self._focus.release(decision.authority_identity, escalation.id)
        logger.warning(
            "Escalation marked FAILED: %s", reason,
            extra={"escalation_id": escalation.id, "school_id": escalation.school_id},
        )
        return failed

    async def _send_side_notification(self, escalation: Escalation, decision: AdminDecision) -> None:
        notifier = self._side_notifiers.get((escalation.origin_agent, escalation.escalation_type))
        if notifier is None:
            return
        try:
            text = notifier(escalation, decision)
            if text:
                await self._transport.send_push(escalation.school_id, escalation.from_phone, text)
                logger.info(
                    "Side notification sent for %s", escalation.escalation_type,
                    extra={"escalation_id": escalation.id, "target": sanitize_phone(escalation.from_phone)},
                )
        except Exception:
            logger.warning(
                "Side notification failed; relying on origin agent",
                exc_info=True,
                extra={"escalation_id": escalation.id},
            )

    async def _deliver(self, escalation: Escalation, reply_text: str) -> bool:
        target = delivery_target(escalation, self._config)
        try:
            await self._transport.send_push(escalation.school_id, target, reply_text)
        except DeliveryError:
            logger.error(
                "Resumption reply not delivered", exc_info=True,
                extra={"escalation_id": escalation.id, "target": sanitize_phone(target)},
            )
            return False
        except Exception as exc:
            err = DeliveryError(target, str(exc))
            logger.error(
                "%s", err, exc_info=True,
                extra={"escalation_id": escalation.id, "target": sanitize_phone(target)},
            )
            return False
        logger.info(
            "Resumption reply delivered",
            extra={"escalation_id": escalation.id, "target": sanitize_phone(target)},
        )
        return True

    async def _record_history(self, escalation: Escalation, decision: AdminDecision, reply_text: str) -> None:
        if self._history is None:
            return
        try:
            await self._history.record_message(
                escalation.school_id,
                escalation.from_identity,
                escalation.from_phone,
                escalation.origin_agent,
                HistoryEnvelope(body=resolution_record(decision, reply_text), source="system"),
                ActionMetadata(action="ESCALATION_RESOLVED", status="COMPLETED"),
            )
        except Exception:
            logger.warning(
                "Failed to record escalation resolution to history",
                exc_info=True,
                extra={"escalation_id": escalation.id},
            )
