"""DynamoDB backends: escalation store, audit sink and message history sink."""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any, Iterable

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from redwing.core.exceptions import AuditWriteError, NotFoundError, StoreError
from redwing.core.masking import render_history_body
from redwing.models.audit import AuditEvent
from redwing.models.escalation import (
    Escalation,
    EscalationCreate,
    EscalationState,
    RoundEntry,
    RoundLogEntry,
    utcnow,
)
from redwing.models.messages import ActionMetadata, HistoryEnvelope
from redwing.persistence.guards import check_round_allowed, check_transition, validate_create_payload

logger = logging.getLogger(__name__)

ESCALATIONS_TABLE = "redwing-escalations"
AUDIT_TABLE = "redwing-escalation-audit"
HISTORY_TABLE = "redwing-message-history"

STATE_INDEX = "GSI1"  # SCHOOL#{school_id}#STATE#{state}
SESSION_INDEX = "GSI2"  # SESSION#{session_id}

_META_SK = "META"
_KEY_ATTRS = ("PK", "SK", "GSI1PK", "GSI1SK", "GSI2PK", "GSI2SK")


def _to_dynamodb(obj: Any) -> Any:
    """Convert JSON-mode floats to Decimal and drop ``None`` for DynamoDB."""
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _to_dynamodb(v) for k, v in obj.items() if v is not None}
    if isinstance(obj, list):
        return [_to_dynamodb(i) for i in obj]
    return obj


def _decode_decimals(obj: Any) -> Any:
    """Convert Decimal values in a DynamoDB item back to int/float."""
    if isinstance(obj, Decimal):
        return int(obj) if obj == int(obj) else float(obj)
    if isinstance(obj, dict):
        return {k: _decode_decimals(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_decode_decimals(i) for i in obj]
    return obj


def _strip_keys(item: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in _decode_decimals(item).items() if k not in _KEY_ATTRS}


def _esc_pk(escalation_id: str) -> str:
    return f"ESC#{escalation_id}"


def _state_pk(school_id: str, state: str) -> str:
    return f"SCHOOL#{school_id}#STATE#{state}"


def _query_all(table, page_size: int | None = None, **kwargs: Any) -> list[dict[str, Any]]:
    """Run a query to completion, following ``LastEvaluatedKey`` across pages."""
    if page_size:
        kwargs["Limit"] = page_size
    items: list[dict[str, Any]] = []
    while True:
        resp = table.query(**kwargs)
        items.extend(resp.get("Items", []))
        last_key = resp.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


def _is_conditional_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


def _resource(region: str, endpoint_url: str | None):
    kwargs: dict = {"region_name": region}
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    return boto3.resource("dynamodb", **kwargs)


class DynamoDBEscalationStore:
    """Production IEscalationStore.

    Escalation and its rounds share a partition (``PK=ESC#{id}``): the record
    lives at ``SK=META`` and round ``n`` at ``SK=ROUND#{n:04d}``. State changes
    and round numbering are conditional writes on the META item, so concurrent
    callers cannot both win a transition or share a round number.
    """

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None, page_size: int | None = None) -> None:
        self._page_size = page_size
        self._table_suffix = table_suffix
        self._ddb = _resource(region, endpoint_url)
        self._table = self._ddb.Table(f"{ESCALATIONS_TABLE}{table_suffix}")

    # ---- helpers ----

    def _item_for(self, escalation: Escalation) -> dict[str, Any]:
        data = escalation.model_dump(mode="json")
        item = {
            "PK": _esc_pk(escalation.id),
            "SK": _META_SK,
            "GSI1PK": _state_pk(escalation.school_id, escalation.state),
            "GSI1SK": data["created_at"],
            **data,
        }
        if escalation.session_id:
            item["GSI2PK"] = f"SESSION#{escalation.session_id}"
            item["GSI2SK"] = data["created_at"]
        return _to_dynamodb(item)

    def _load(self, escalation_id: str) -> Escalation:
        try:
            resp = self._table.get_item(Key={"PK": _esc_pk(escalation_id), "SK": _META_SK})
        except ClientError as exc:
            raise StoreError(f"DynamoDB read failed for escalation {escalation_id}: {exc}") from exc
        item = resp.get("Item")
        if item is None:
            raise NotFoundError(escalation_id)
        return Escalation.model_validate(_strip_keys(item))

    # ---- IEscalationStore methods ----

    def create(self, payload: EscalationCreate | dict[str, Any]) -> str:
        data = validate_create_payload(payload)
        escalation = Escalation.from_create(data)
        try:
            self._table.put_item(
                Item=self._item_for(escalation),
                ConditionExpression="attribute_not_exists(PK)",
            )
        except ClientError as exc:
            raise StoreError(f"DynamoDB create failed for escalation {escalation.id}: {exc}") from exc
        return escalation.id

    def get(self, escalation_id: str, school_id: str) -> Escalation:
        escalation = self._load(escalation_id)
        if escalation.school_id != school_id:
            raise NotFoundError(escalation_id, school_id)
        return escalation

    def record_round(self, escalation_id: str, entry: RoundEntry) -> RoundLogEntry:
        now = utcnow()
        try:
            resp = self._table.update_item(
                Key={"PK": _esc_pk(escalation_id), "SK": _META_SK},
                UpdateExpression="SET round_number = round_number + :one, updated_at = :now",
                ConditionExpression="attribute_exists(PK) AND #st <> :resolved AND #st <> :failed",
                ExpressionAttributeNames={"#st": "state"},
                ExpressionAttributeValues={
                    ":one": 1,
                    ":now": now.isoformat(),
                    ":resolved": EscalationState.RESOLVED.value,
                    ":failed": EscalationState.FAILED.value,
                },
                ReturnValues="UPDATED_OLD",
            )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                # Missing record raises NotFoundError, terminal raises InvalidStateError.
                check_round_allowed(self._load(escalation_id))
            raise StoreError(f"DynamoDB round update failed for {escalation_id}: {exc}") from exc

        round_number = int(resp["Attributes"]["round_number"])
        row = RoundLogEntry(
            escalation_id=escalation_id,
            round_number=round_number,
            created_at=now,
            **entry.model_dump(),
        )
        try:
            self._table.put_item(
                Item=_to_dynamodb({
                    "PK": _esc_pk(escalation_id),
                    "SK": f"ROUND#{round_number:04d}",
                    **row.model_dump(mode="json"),
                }),
                ConditionExpression="attribute_not_exists(SK)",
            )
        except ClientError as exc:
            raise StoreError(f"DynamoDB round write failed for {escalation_id}#{round_number}: {exc}") from exc
        return row

    def transition(self, escalation_id: str, new_state: EscalationState, **fields: Any) -> Escalation:
        new_state = EscalationState(new_state)
        current = self._load(escalation_id)
        check_transition(current, new_state, fields)

        values = {
            ":new": new_state.value,
            ":expected": current.state.value,
            ":gsi": _state_pk(current.school_id, new_state),
            ":now": utcnow().isoformat(),
        }
        assignments = ["#st = :new", "GSI1PK = :gsi", "updated_at = :now"]
        names = {"#st": "state"}
        json_fields = current.model_copy(update=fields).model_dump(mode="json", include=set(fields))
        for i, (name, value) in enumerate(sorted(json_fields.items())):
            if value is None:
                continue
            assignments.append(f"#f{i} = :f{i}")
            names[f"#f{i}"] = name
            values[f":f{i}"] = _to_dynamodb(value)

        try:
            resp = self._table.update_item(
                Key={"PK": _esc_pk(escalation_id), "SK": _META_SK},
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression="#st = :expected",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                # Someone moved the record first; report against what is there now.
                logger.info(
                    "Transition conflict on %s (%s -> %s)", escalation_id, current.state, new_state,
                    extra={"escalation_id": escalation_id, "state": current.state},
                )
                check_transition(self._load(escalation_id), new_state, fields)
            raise StoreError(f"DynamoDB transition failed for {escalation_id}: {exc}") from exc
        return Escalation.model_validate(_strip_keys(resp["Attributes"]))

    def list_rounds(self, escalation_id: str) -> list[RoundLogEntry]:
        items = _query_all(
            self._table, self._page_size,
            KeyConditionExpression=Key("PK").eq(_esc_pk(escalation_id)) & Key("SK").begins_with("ROUND#"),
        )
        return [RoundLogEntry.model_validate(_strip_keys(item)) for item in items]

    def list_by_state(self, school_id: str, states: Iterable[EscalationState]) -> list[Escalation]:
        out: list[Escalation] = []
        for state in states:
            items = _query_all(
                self._table, self._page_size,
                IndexName=STATE_INDEX,
                KeyConditionExpression=Key("GSI1PK").eq(_state_pk(school_id, state)),
            )
            out.extend(Escalation.model_validate(_strip_keys(i)) for i in items)
        return out

    def list_by_session(self, session_id: str) -> list[Escalation]:
        items = _query_all(
            self._table, self._page_size,
            IndexName=SESSION_INDEX,
            KeyConditionExpression=Key("GSI2PK").eq(f"SESSION#{session_id}"),
        )
        return [Escalation.model_validate(_strip_keys(i)) for i in items]


class DynamoDBAuditSink:
    """Production IAuditSink; one item per event under the escalation partition."""

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None, page_size: int | None = None) -> None:
        self._page_size = page_size
        self._table = _resource(region, endpoint_url).Table(f"{AUDIT_TABLE}{table_suffix}")

    def append(self, event: AuditEvent) -> None:
        data = event.model_dump(mode="json")
        item = {
            "PK": _esc_pk(event.escalation_id),
            "SK": f"EVENT#{data['timestamp']}#{event.event_id}",
            "GSI1PK": f"SCHOOL#{event.school_id}#EVENT#{event.event_type}",
            "GSI1SK": data["timestamp"],
            **data,
        }
        try:
            self._table.put_item(Item=_to_dynamodb(item))
        except ClientError as exc:
            raise AuditWriteError(f"Audit write failed for {event.escalation_id}/{event.event_type}: {exc}") from exc

    def list_for_escalation(self, escalation_id: str) -> list[AuditEvent]:
        items = _query_all(
            self._table, self._page_size, KeyConditionExpression=Key("PK").eq(_esc_pk(escalation_id)),
        )
        return [AuditEvent.model_validate(_strip_keys(i)) for i in items]


class DynamoDBHistorySink:
    """Production IHistorySink writing masked rows per requester conversation."""

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None, mask_sensitive: bool = True) -> None:
        self._table = _resource(region, endpoint_url).Table(f"{HISTORY_TABLE}{table_suffix}")
        self._mask = mask_sensitive

    async def record_message(
        self,
        school_id: str,
        user_id: str | None,
        from_phone: str,
        agent_tag: str,
        envelope: HistoryEnvelope,
        action: ActionMetadata | None = None,
    ) -> None:
        body, is_internal = render_history_body(envelope, mask=self._mask)
        timestamp = envelope.timestamp.isoformat()
        item = {
            "PK": f"SCHOOL#{school_id}#PHONE#{from_phone}",
            "SK": f"MSG#{timestamp}#{uuid.uuid4().hex[:12]}",
            "school_id": school_id,
            "user_id": user_id,
            "from_phone": from_phone,
            "context": agent_tag,
            "type": envelope.type,
            "body": body,
            "timestamp": timestamp,
            "is_internal": is_internal,
        }
        if action is not None:
            item["action_performed"] = action.action
            item["action_status"] = action.status
        try:
            self._table.put_item(Item=_to_dynamodb(item))
        except ClientError as exc:
            raise StoreError(f"History write failed for {school_id}: {exc}") from exc
