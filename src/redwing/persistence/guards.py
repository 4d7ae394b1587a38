"""State-graph and payload checks shared by every escalation store backend."""

from __future__ import annotations

from typing import Any

import pydantic

from redwing.core.exceptions import InvalidStateError, InvalidTransitionError, ValidationError
from redwing.models.escalation import RESOLUTION_FIELDS, Escalation, EscalationCreate, EscalationState


def validate_create_payload(payload: EscalationCreate | dict[str, Any]) -> EscalationCreate:
    """Coerce a creation payload, raising ``ValidationError`` naming the bad fields."""
    if isinstance(payload, EscalationCreate):
        return payload
    try:
        return EscalationCreate.model_validate(payload)
    except pydantic.ValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        raise ValidationError(
            f"Invalid escalation payload: {', '.join(fields) or 'unknown fields'}",
            fields=fields,
        ) from exc


def check_transition(escalation: Escalation, new_state: EscalationState, fields: dict[str, Any]) -> None:
    unknown = set(fields) - RESOLUTION_FIELDS
    if unknown:
        raise ValueError(f"Transition cannot set {sorted(unknown)}")
    if not escalation.state.can_transition_to(new_state):
        raise InvalidTransitionError(escalation.id, escalation.state, new_state)


def check_round_allowed(escalation: Escalation) -> None:
    if escalation.state.is_terminal:
        raise InvalidStateError(
            escalation.id, escalation.state,
            f"Escalation {escalation.id} is {escalation.state}; rounds are closed",
        )
