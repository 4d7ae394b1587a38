"""Redwing exception hierarchy."""

from __future__ import annotations


class RedwingError(Exception):
    """Base exception for all Redwing errors."""


class ValidationError(RedwingError):
    """Malformed escalation payload; rejected before any state is created."""

    def __init__(self, message: str, fields: list[str] | None = None) -> None:
        self.fields = fields or []
        super().__init__(message)


class NotFoundError(RedwingError):
    """Escalation does not exist or belongs to another school."""

    def __init__(self, escalation_id: str, school_id: str | None = None) -> None:
        self.escalation_id = escalation_id
        self.school_id = school_id
        scope = f" in school {school_id}" if school_id else ""
        super().__init__(f"Escalation {escalation_id} not found{scope}")


class InvalidStateError(RedwingError):
    """Mutation attempted on an escalation whose state does not allow it."""

    def __init__(self, escalation_id: str, state: str, message: str = "") -> None:
        self.escalation_id = escalation_id
        self.state = state
        super().__init__(message or f"Escalation {escalation_id} is {state}")


class InvalidTransitionError(InvalidStateError):
    """Requested state change is not an edge of the escalation state graph."""

    def __init__(self, escalation_id: str, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            escalation_id, current,
            f"Escalation {escalation_id}: transition {current} -> {requested} not allowed",
        )


class UnknownOriginAgentError(RedwingError):
    """Resume target agent tag has no registered handler."""

    def __init__(self, origin_agent: str, escalation_id: str = "") -> None:
        self.origin_agent = origin_agent
        self.escalation_id = escalation_id
        super().__init__(f"No handler registered for origin agent {origin_agent!r}")


class DeliveryError(RedwingError):
    """Push notification could not be delivered."""

    def __init__(self, target: str, message: str) -> None:
        self.target = target
        super().__init__(f"Delivery to {target} failed: {message}")


class AuditWriteError(RedwingError):
    """Audit sink rejected an event."""


class StoreError(RedwingError):
    """Escalation record store operation failed."""


class CacheError(RedwingError):
    """Redis operation failed."""
