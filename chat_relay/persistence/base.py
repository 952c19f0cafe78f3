"""Session storage interface used by the persistence hooks."""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from chat_relay.constants import Role


@dataclass(frozen=True)
class SessionRecord:
    id: str
    user_id: str | None
    created_at: datetime
    updated_at: datetime
    session_name: str | None = None


@dataclass(frozen=True)
class MessageRecord:
    id: str
    session_id: str
    role: Role
    content: str
    created_at: datetime
    model: str | None = None


class SessionStore(Protocol):
    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return the session, or ``None`` when it does not exist."""
        ...

    def create_session(
        self, user_id: str | None, session_name: str | None = None
    ) -> SessionRecord: ...

    def create_message(
        self, session_id: str, role: Role, content: str, model: str | None = None
    ) -> MessageRecord: ...

    def list_messages(self, session_id: str) -> list[MessageRecord]:
        """Messages ordered by storage-assigned timestamp."""
        ...

    def touch_session(self, session_id: str) -> None: ...
