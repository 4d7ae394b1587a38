"""Tests for FocusManager: last-notified-wins locks and stale-lock handling."""

from __future__ import annotations

from redwing.agents.orchestrator.focus import FocusManager
from redwing.models.escalation import EscalationState
from tests.fakes import ADMIN, FakeClock, MemoryEscalationStore, MemoryFocusStore, escalation_payload


def _manager(clock: FakeClock | None = None, ttl: int = 3600):
    clock = clock or FakeClock()
    store = MemoryEscalationStore(clock=clock)
    return FocusManager(MemoryFocusStore(clock=clock), store, ttl_seconds=ttl, clock=clock), store


class TestLock:
    def test_lock_then_resolve(self):
        focus, store = _manager()
        escalation_id = store.create(escalation_payload())
        lock = focus.lock(ADMIN, escalation_id, "SCH-001")
        assert lock.locked_escalation_id == escalation_id
        assert focus.resolve(ADMIN) == escalation_id

    def test_latest_lock_wins(self):
        focus, store = _manager()
        a = store.create(escalation_payload())
        b = store.create(escalation_payload())
        focus.lock(ADMIN, a, "SCH-001")
        focus.lock(ADMIN, b, "SCH-001")
        assert focus.resolve(ADMIN) == b

    def test_locks_are_per_authority(self):
        focus, store = _manager()
        a = store.create(escalation_payload())
        b = store.create(escalation_payload())
        focus.lock(ADMIN, a, "SCH-001")
        focus.lock("2348000000000", b, "SCH-001")
        assert focus.resolve(ADMIN) == a

    def test_lock_expires(self):
        clock = FakeClock()
        focus, store = _manager(clock, ttl=60)
        focus.lock(ADMIN, store.create(escalation_payload()), "SCH-001")
        clock.advance(seconds=61)
        assert focus.resolve(ADMIN) is None


class TestResolve:
    def test_no_lock(self):
        focus, _ = _manager()
        assert focus.resolve(ADMIN) is None

    def test_terminal_escalation_releases_lock(self):
        focus, store = _manager()
        escalation_id = store.create(escalation_payload())
        focus.lock(ADMIN, escalation_id, "SCH-001")
        store.transition(escalation_id, EscalationState.APPROVED)
        store.transition(escalation_id, EscalationState.RESOLVED)

        assert focus.resolve(ADMIN) is None
        assert focus.current(ADMIN) is None

    def test_decided_but_open_resumption_keeps_lock(self):
        focus, store = _manager()
        escalation_id = store.create(escalation_payload())
        focus.lock(ADMIN, escalation_id, "SCH-001")
        store.transition(escalation_id, EscalationState.APPROVED)
        assert focus.resolve(ADMIN) == escalation_id

    def test_missing_escalation_releases_lock(self):
        focus, _ = _manager()
        focus.lock(ADMIN, "ESC-gone", "SCH-001")
        assert focus.resolve(ADMIN) is None
        assert focus.current(ADMIN) is None


class TestRelease:
    def test_release_matching(self):
        focus, store = _manager()
        escalation_id = store.create(escalation_payload())
        focus.lock(ADMIN, escalation_id, "SCH-001")
        assert focus.release(ADMIN, escalation_id) is True
        assert focus.current(ADMIN) is None

    def test_release_for_old_escalation_keeps_new_lock(self):
        focus, store = _manager()
        old = store.create(escalation_payload())
        new = store.create(escalation_payload())
        focus.lock(ADMIN, new, "SCH-001")
        assert focus.release(ADMIN, old) is False
        assert focus.current(ADMIN).locked_escalation_id == new
