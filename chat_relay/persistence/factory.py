"""Select the session store backend from runtime settings."""

from chat_relay.infra.runtime import RuntimeSettings

from .base import SessionStore
from .dynamodb import DynamoDBSessionStore
from .in_memory import InMemorySessionStore


def build_session_store(settings: RuntimeSettings) -> SessionStore:
    if settings.persistence_backend == "dynamodb":
        return DynamoDBSessionStore(settings.sessions_table, settings.aws_region)
    return InMemorySessionStore()
