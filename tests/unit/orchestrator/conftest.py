"""Fixtures wiring the protocol onto memory backends."""

from __future__ import annotations

import pytest

from redwing.core.config import AppSettings
from redwing.persistence import Persistence
from redwing.services import create_services
from tests.fakes import (
    FakeClock,
    FakeOriginAgent,
    MemoryAuditSink,
    MemoryEscalationStore,
    MemoryFocusStore,
    MemoryHistorySink,
    RecordingTransport,
)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def persistence(clock):
    return Persistence(
        escalations=MemoryEscalationStore(clock=clock),
        focus=MemoryFocusStore(clock=clock),
        audit=MemoryAuditSink(),
        history=MemoryHistorySink(),
    )


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def agents():
    return {"PA": FakeOriginAgent("PA reply"), "TA": FakeOriginAgent("TA reply"), "GA": FakeOriginAgent("GA reply")}


@pytest.fixture
def services(persistence, transport, agents):
    return create_services(AppSettings(), agents, transport=transport, persistence=persistence)
