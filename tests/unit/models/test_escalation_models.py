"""Tests for escalation models, the state graph and decision parsing."""

from __future__ import annotations

import re
from datetime import UTC, datetime

import pydantic
import pytest

from redwing.models.escalation import (
    ALLOWED_TRANSITIONS,
    Decision,
    Escalation,
    EscalationCreate,
    EscalationState,
    Priority,
    new_escalation_id,
)
from redwing.models.messages import AdminDecision, SyntheticResumeMessage
from tests.fakes import escalation_payload


class TestStateGraph:
    @pytest.mark.parametrize("state", [EscalationState.RESOLVED, EscalationState.FAILED])
    def test_terminal_states_have_no_exits(self, state):
        assert state.is_terminal
        assert not any(state.can_transition_to(s) for s in EscalationState)

    def test_paused_can_go_to_clarification_or_decision(self):
        paused = EscalationState.PAUSED
        assert paused.can_transition_to(EscalationState.AWAITING_CLARIFICATION)
        assert paused.can_transition_to(EscalationState.APPROVED)
        assert paused.can_transition_to(EscalationState.DENIED)
        assert not paused.can_transition_to(EscalationState.RESOLVED)

    def test_clarification_does_not_loop(self):
        awaiting = EscalationState.AWAITING_CLARIFICATION
        assert not awaiting.can_transition_to(EscalationState.AWAITING_CLARIFICATION)
        assert not awaiting.can_transition_to(EscalationState.PAUSED)

    def test_decided_states_only_close(self):
        for state in (EscalationState.APPROVED, EscalationState.DENIED):
            assert ALLOWED_TRANSITIONS[state] == {EscalationState.RESOLVED, EscalationState.FAILED}

    def test_expired_is_never_entered(self):
        assert not any(EscalationState.EXPIRED in targets for targets in ALLOWED_TRANSITIONS.values())

    def test_open_states(self):
        assert EscalationState.PAUSED.is_open
        assert EscalationState.AWAITING_CLARIFICATION.is_open
        assert not EscalationState.APPROVED.is_open


class TestDecision:
    @pytest.mark.parametrize("raw,expected", [
        ("APPROVED", Decision.APPROVED),
        ("approve", Decision.APPROVED),
        (" Denied ", Decision.DENIED),
        ("REJECT", Decision.DENIED),
        ("rejected", Decision.DENIED),
    ])
    def test_parse_aliases(self, raw, expected):
        assert Decision.parse(raw) is expected

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError):
            Decision.parse("MAYBE")

    def test_maps_to_state(self):
        assert Decision.APPROVED.state is EscalationState.APPROVED
        assert Decision.DENIED.state is EscalationState.DENIED

    def test_admin_decision_normalises(self):
        decision = AdminDecision(escalation_id="ESC-1", school_id="S", decision="deny")
        assert decision.decision is Decision.DENIED

    def test_admin_decision_rejects_garbage(self):
        with pytest.raises(pydantic.ValidationError):
            AdminDecision(escalation_id="ESC-1", school_id="S", decision="perhaps")


class TestEscalationCreate:
    def test_defaults(self):
        payload = EscalationCreate(origin_agent="PA", school_id="S", from_phone="234", reason="why")
        assert payload.priority is Priority.MEDIUM
        assert payload.escalation_type == "GENERAL_INQUIRY"
        assert payload.context == {}

    @pytest.mark.parametrize("field", ["school_id", "from_phone", "reason"])
    def test_blank_required_field_rejected(self, field):
        with pytest.raises(pydantic.ValidationError):
            EscalationCreate.model_validate(escalation_payload(**{field: "   "}))

    def test_unknown_origin_agent_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            EscalationCreate.model_validate(escalation_payload(origin_agent="XX"))

    def test_from_create_starts_paused_at_round_one(self):
        escalation = Escalation.from_create(EscalationCreate.model_validate(escalation_payload()))
        assert escalation.state is EscalationState.PAUSED
        assert escalation.round_number == 1
        assert escalation.created_at == escalation.updated_at
        assert escalation.id.startswith("ESC-")


def test_escalation_id_format():
    now = datetime(2025, 1, 1, tzinfo=UTC)
    escalation_id = new_escalation_id(now)
    assert re.fullmatch(r"ESC-\d+-[0-9a-f]{8}", escalation_id)
    assert escalation_id.split("-")[1] == str(int(now.timestamp() * 1000))


def test_priority_rank_puts_critical_first():
    ranked = sorted(Priority, key=lambda p: p.rank)
    assert ranked[0] is Priority.CRITICAL
    assert ranked[-1] is Priority.LOW


def test_synthetic_message_serialises_from_alias():
    message = SyntheticResumeMessage(from_="234", body="hi", context="PA", school_id="S")
    assert message.model_dump(by_alias=True)["from"] == "234"
    assert message.system_injection is True
