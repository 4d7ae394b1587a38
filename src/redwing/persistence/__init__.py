"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from typing import NamedTuple

from redwing.core.config import AppSettings
from redwing.core.protocols import IAuditSink, IEscalationStore, IFocusStore, IHistorySink
from redwing.persistence.dynamodb_backend import (
    DynamoDBAuditSink,
    DynamoDBEscalationStore,
    DynamoDBHistorySink,
)
from redwing.persistence.memory_backend import (
    MemoryAuditSink,
    MemoryEscalationStore,
    MemoryFocusStore,
    MemoryHistorySink,
)
from redwing.persistence.redis_backend import RedisFocusStore


class Persistence(NamedTuple):
    escalations: IEscalationStore
    focus: IFocusStore
    audit: IAuditSink
    history: IHistorySink


def create_persistence(settings: AppSettings | None = None) -> Persistence:
    """Create wired-up persistence backends from application settings.

    ``backend="memory"`` gives process-local dict stores; ``"aws"`` gives
    DynamoDB for records and Redis for focus locks.
    """
    if settings is None:
        settings = AppSettings()

    if settings.backend == "memory":
        return Persistence(
            escalations=MemoryEscalationStore(),
            focus=MemoryFocusStore(),
            audit=MemoryAuditSink(),
            history=MemoryHistorySink(mask_sensitive=settings.history.mask_sensitive),
        )

    ddb = settings.dynamodb
    return Persistence(
        escalations=DynamoDBEscalationStore(
            table_suffix=ddb.table_suffix,
            region=ddb.region,
            endpoint_url=ddb.endpoint_url,
            page_size=ddb.page_size,
        ),
        focus=RedisFocusStore(
            host=settings.redis.host,
            port=settings.redis.port,
            db=settings.redis.db,
            key_prefix=settings.redis.key_prefix,
        ),
        audit=DynamoDBAuditSink(
            table_suffix=ddb.table_suffix,
            region=ddb.region,
            endpoint_url=ddb.endpoint_url,
            page_size=ddb.page_size,
        ),
        history=DynamoDBHistorySink(
            table_suffix=ddb.table_suffix,
            region=ddb.region,
            endpoint_url=ddb.endpoint_url,
            mask_sensitive=settings.history.mask_sensitive,
        ),
    )


__all__ = [
    "DynamoDBAuditSink",
    "DynamoDBEscalationStore",
    "DynamoDBHistorySink",
    "MemoryAuditSink",
    "MemoryEscalationStore",
    "MemoryFocusStore",
    "MemoryHistorySink",
    "Persistence",
    "RedisFocusStore",
    "create_persistence",
]
