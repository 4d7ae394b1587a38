"""Per-authority focus lock: which escalation the next free-text reply resolves."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from redwing.core.exceptions import NotFoundError
from redwing.core.logging_config import sanitize_phone
from redwing.core.protocols import IEscalationStore, IFocusStore
from redwing.models.escalation import FocusLock, utcnow

logger = logging.getLogger(__name__)


class FocusManager:
    """Last-notified-wins focus locks with stale-lock detection.

    ``lock`` always overwrites: the authority talks in a single chat thread,
    so the escalation presented most recently is the one being answered.
    ``resolve`` re-reads the locked escalation and drops the lock when it was
    already closed through another channel.
    """

    def __init__(
        self,
        store: IFocusStore,
        escalations: IEscalationStore,
        ttl_seconds: int = 86400,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._escalations = escalations
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    def lock(self, authority_identity: str, escalation_id: str, school_id: str) -> FocusLock:
        previous = self._store.get(authority_identity)
        lock = FocusLock(
            authority_identity=authority_identity,
            locked_escalation_id=escalation_id,
            school_id=school_id,
            last_interaction_at=self._clock(),
        )
        self._store.put(lock, self._ttl_seconds)
        if previous is not None and previous.locked_escalation_id != escalation_id:
            logger.info(
                "Focus moved from %s to %s", previous.locked_escalation_id, escalation_id,
                extra={"authority": sanitize_phone(authority_identity), "escalation_id": escalation_id},
            )
        else:
            logger.info(
                "Focus locked", extra={"authority": sanitize_phone(authority_identity), "escalation_id": escalation_id},
            )
        return lock

    def current(self, authority_identity: str) -> FocusLock | None:
        return self._store.get(authority_identity)

    def resolve(self, authority_identity: str) -> str | None:
        lock = self._store.get(authority_identity)
        if lock is None:
            return None
        try:
            escalation = self._escalations.get(lock.locked_escalation_id, lock.school_id)
        except NotFoundError:
            logger.warning(
                "Focus pointed at a missing escalation; releasing",
                extra={"authority": sanitize_phone(authority_identity), "escalation_id": lock.locked_escalation_id},
            )
            self._store.delete(authority_identity, lock.locked_escalation_id)
            return None
        if escalation.state.is_terminal:
            logger.info(
                "Focused escalation already %s; releasing stale lock", escalation.state,
                extra={"authority": sanitize_phone(authority_identity), "escalation_id": escalation.id},
            )
            self._store.delete(authority_identity, escalation.id)
            return None
        return escalation.id

    def release(self, authority_identity: str, escalation_id: str | None = None) -> bool:
        released = self._store.delete(authority_identity, escalation_id)
        if released:
            logger.info(
                "Focus released", extra={"authority": sanitize_phone(authority_identity), "escalation_id": escalation_id},
            )
        return released
