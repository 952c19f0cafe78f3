"""DynamoDB-backed session store.

Single-table layout: every item of a session shares ``pk = SESSION#<id>``.
The session itself is ``sk = META``; messages are ``sk = MSG#<iso-ts>#<id>``
so a key-condition query returns them in timestamp order.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

import boto3
from boto3.dynamodb.conditions import Key

from chat_relay.constants import Role

from .base import MessageRecord, SessionRecord

_META_SK = "META"
_MESSAGE_SK_PREFIX = "MSG#"


def _session_pk(session_id: str) -> str:
    return f"SESSION#{session_id}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _session_from_item(item: dict[str, Any]) -> SessionRecord:
    return SessionRecord(
        id=item["session_id"],
        user_id=item.get("user_id"),
        created_at=datetime.fromisoformat(item["created_at"]),
        updated_at=datetime.fromisoformat(item["updated_at"]),
        session_name=item.get("session_name"),
    )


def _message_from_item(item: dict[str, Any]) -> MessageRecord:
    return MessageRecord(
        id=item["message_id"],
        session_id=item["session_id"],
        role=item["role"],
        content=item["content"],
        created_at=datetime.fromisoformat(item["created_at"]),
        model=item.get("model"),
    )


class DynamoDBSessionStore:
    def __init__(self, table_name: str, region_name: str, table: Any | None = None) -> None:
        self._table = table or boto3.resource("dynamodb", region_name=region_name).Table(
            table_name
        )

    def get_session(self, session_id: str) -> SessionRecord | None:
        response = self._table.get_item(Key={"pk": _session_pk(session_id), "sk": _META_SK})
        item = response.get("Item")
        return _session_from_item(item) if item else None

    def create_session(self, user_id: str | None, session_name: str | None = None) -> SessionRecord:
        now = _now().isoformat()
        session_id = uuid.uuid4().hex
        item: dict[str, Any] = {
            "pk": _session_pk(session_id),
            "sk": _META_SK,
            "session_id": session_id,
            "created_at": now,
            "updated_at": now,
        }
        if user_id is not None:
            item["user_id"] = user_id
        if session_name is not None:
            item["session_name"] = session_name
        self._table.put_item(Item=item)
        return _session_from_item(item)

    def create_message(
        self, session_id: str, role: Role, content: str, model: str | None = None
    ) -> MessageRecord:
        created_at = _now().isoformat()
        message_id = uuid.uuid4().hex
        item: dict[str, Any] = {
            "pk": _session_pk(session_id),
            "sk": f"{_MESSAGE_SK_PREFIX}{created_at}#{message_id}",
            "message_id": message_id,
            "session_id": session_id,
            "role": role,
            "content": content,
            "created_at": created_at,
        }
        if model is not None:
            item["model"] = model
        self._table.put_item(Item=item)
        return _message_from_item(item)

    def list_messages(self, session_id: str) -> list[MessageRecord]:
        condition = Key("pk").eq(_session_pk(session_id)) & Key("sk").begins_with(
            _MESSAGE_SK_PREFIX
        )
        query_kwargs: dict[str, Any] = {"KeyConditionExpression": condition}
        items: list[dict[str, Any]] = []
        while True:
            response = self._table.query(**query_kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            query_kwargs["ExclusiveStartKey"] = last_key
        return [_message_from_item(item) for item in items]

    def touch_session(self, session_id: str) -> None:
        self._table.update_item(
            Key={"pk": _session_pk(session_id), "sk": _META_SK},
            UpdateExpression="SET updated_at = :now",
            ConditionExpression="attribute_exists(pk)",
            ExpressionAttributeValues={":now": _now().isoformat()},
        )
