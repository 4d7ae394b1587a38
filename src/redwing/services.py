"""Composition root: wires persistence, transport and origin agents into the protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from redwing.agents.orchestrator.audit import AuditLogger
from redwing.agents.orchestrator.escalation import EscalationService
from redwing.agents.orchestrator.focus import FocusManager
from redwing.agents.orchestrator.resumption import ResumptionOrchestrator
from redwing.agents.registry import OriginAgentRegistry
from redwing.core.config import AppSettings
from redwing.core.protocols import INotificationTransport, IOriginAgent
from redwing.models.escalation import OriginAgent
from redwing.persistence import Persistence, create_persistence
from redwing.transport.http_push import HttpPushTransport


@dataclass
class EscalationServices:
    settings: AppSettings
    persistence: Persistence
    registry: OriginAgentRegistry
    transport: INotificationTransport
    audit: AuditLogger
    focus: FocusManager
    escalations: EscalationService
    resumption: ResumptionOrchestrator


def create_services(
    settings: AppSettings | None = None,
    agents: Mapping[OriginAgent | str, IOriginAgent] | None = None,
    *,
    transport: INotificationTransport | None = None,
    persistence: Persistence | None = None,
) -> EscalationServices:
    """Build the full protocol from settings; any collaborator can be injected."""
    if settings is None:
        settings = AppSettings()
    if persistence is None:
        persistence = create_persistence(settings)
    if transport is None:
        transport = HttpPushTransport(settings.transport)

    registry = OriginAgentRegistry(agents)
    audit = AuditLogger(persistence.audit, settings.escalation.audit_instruction_max_chars)
    focus = FocusManager(persistence.focus, persistence.escalations, settings.escalation.focus_ttl_seconds)

    return EscalationServices(
        settings=settings,
        persistence=persistence,
        registry=registry,
        transport=transport,
        audit=audit,
        focus=focus,
        escalations=EscalationService(
            escalations=persistence.escalations,
            registry=registry,
            transport=transport,
            audit=audit,
            focus=focus,
            config=settings.escalation,
        ),
        resumption=ResumptionOrchestrator(
            escalations=persistence.escalations,
            registry=registry,
            transport=transport,
            audit=audit,
            focus=focus,
            history=persistence.history,
            config=settings.escalation,
        ),
    )
