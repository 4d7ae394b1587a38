"""Typed views over the opaque escalation ``context`` payload.

The core passes ``context`` through untouched. Side notifiers and displays
that need structure call :func:`parse_context`, which picks the variant for
the escalation type and falls back to :class:`GenericContext`.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class MarkAmendmentContext(BaseModel):
    model_config = ConfigDict(extra="allow")

    student_name: str = "Student"
    subject: str = "subject"
    class_level: Optional[str] = None
    term_id: Optional[str] = None
    old_score: Optional[float] = None
    new_score: Optional[float] = None


class FeeWaiverContext(BaseModel):
    model_config = ConfigDict(extra="allow")

    student_name: str = "Student"
    payment_amount: Optional[float] = None
    term_id: Optional[str] = None


class AttendanceContext(BaseModel):
    model_config = ConfigDict(extra="allow")

    student_name: str = "Student"
    class_level: Optional[str] = None
    attendance_date: Optional[str] = None
    absent_count: Optional[int] = None


class GenericContext(BaseModel):
    """Agent-specific payload with no schema."""

    data: dict[str, Any] = Field(default_factory=dict)


EscalationContext = Union[MarkAmendmentContext, FeeWaiverContext, AttendanceContext, GenericContext]

CONTEXT_SCHEMAS: dict[str, type[BaseModel]] = {
    "MARK_AMENDMENT": MarkAmendmentContext,
    "TEACHER_MARK_DISPUTE": MarkAmendmentContext,
    "FEE_WAIVER_REQUEST": FeeWaiverContext,
    "PARTIAL_PAYMENT_REQUEST": FeeWaiverContext,
    "ATTENDANCE_ALERT": AttendanceContext,
    "ABSENCE_VERIFICATION_REQUEST": AttendanceContext,
    "TEACHER_ABSENCE_ALERT": AttendanceContext,
}


def parse_context(escalation_type: str, data: dict[str, Any] | None) -> EscalationContext:
    data = data or {}
    schema = CONTEXT_SCHEMAS.get(escalation_type)
    if schema is None:
        return GenericContext(data=data)
    try:
        return schema.model_validate(data)
    except ValidationError:
        return GenericContext(data=data)
