"""Process-local session store."""

import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone

from chat_relay.constants import Role

from .base import MessageRecord, SessionRecord


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemorySessionStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, SessionRecord] = {}
        self._messages: dict[str, list[MessageRecord]] = {}

    def get_session(self, session_id: str) -> SessionRecord | None:
        with self._lock:
            return self._sessions.get(session_id)

    def create_session(self, user_id: str | None, session_name: str | None = None) -> SessionRecord:
        now = _now()
        session = SessionRecord(
            id=uuid.uuid4().hex,
            user_id=user_id,
            created_at=now,
            updated_at=now,
            session_name=session_name,
        )
        with self._lock:
            self._sessions[session.id] = session
            self._messages[session.id] = []
        return session

    def create_message(
        self, session_id: str, role: Role, content: str, model: str | None = None
    ) -> MessageRecord:
        message = MessageRecord(
            id=uuid.uuid4().hex,
            session_id=session_id,
            role=role,
            content=content,
            created_at=_now(),
            model=model,
        )
        with self._lock:
            if session_id not in self._sessions:
                raise KeyError(f"Chat session not found: {session_id}")
            self._messages[session_id].append(message)
        return message

    def list_messages(self, session_id: str) -> list[MessageRecord]:
        with self._lock:
            return sorted(self._messages.get(session_id, []), key=lambda m: m.created_at)

    def touch_session(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise KeyError(f"Chat session not found: {session_id}")
            self._sessions[session_id] = replace(session, updated_at=_now())
