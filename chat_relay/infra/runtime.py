"""Runtime infrastructure helpers for settings, tracing, and provider calls."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Literal

from langsmith import traceable
from langsmith.run_trees import get_cached_client
from openai import AsyncOpenAI

from chat_relay.constants import (
    AWS_REGION,
    LANGSMITH_PROJECT,
    PROVIDER_MAX_RETRIES,
    PROVIDER_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

OrchestratorMode = Literal["direct", "langgraph"]
PersistenceBackend = Literal["memory", "dynamodb"]


@dataclass(frozen=True)
class RuntimeSettings:
    orchestrator: OrchestratorMode
    persistence_backend: PersistenceBackend
    sessions_table: str
    aws_region: str


def _choice(env_name: str, allowed: tuple[str, ...], default: str) -> str:
    value = os.environ.get(env_name, default).strip().lower()
    if value not in allowed:
        logger.warning(
            "Ignoring unsupported setting value",
            extra={"setting": env_name, "value": value, "default": default},
        )
        return default
    return value


@lru_cache(maxsize=1)
def get_runtime_settings() -> RuntimeSettings:
    return RuntimeSettings(
        orchestrator=_choice(  # type: ignore[arg-type]
            "CHAT_ORCHESTRATOR", ("direct", "langgraph"), "direct"
        ),
        persistence_backend=_choice(  # type: ignore[arg-type]
            "CHAT_PERSISTENCE_BACKEND", ("memory", "dynamodb"), "memory"
        ),
        sessions_table=os.environ.get("CHAT_SESSIONS_TABLE", "chat-relay-sessions"),
        aws_region=AWS_REGION,
    )


def _configure_langsmith(langsmith_api_key: str | None) -> None:
    if not langsmith_api_key:
        os.environ.pop("LANGSMITH_TRACING", None)
        logger.info("LangSmith tracing disabled because API key is unavailable")
        return

    os.environ["LANGSMITH_TRACING"] = "true"
    os.environ.setdefault("LANGSMITH_PROJECT", LANGSMITH_PROJECT)


@lru_cache(maxsize=1)
def ensure_langsmith_configured() -> None:
    """Configure LangSmith environment variables (called once via lru_cache)."""
    _configure_langsmith(os.environ.get("LANGSMITH_API_KEY"))


def flush_langsmith_traces() -> None:
    if os.environ.get("LANGSMITH_TRACING", "").lower() != "true":
        return
    if not os.environ.get("LANGSMITH_API_KEY"):
        return
    try:
        get_cached_client().flush()
    except Exception:
        logger.warning("Failed to flush LangSmith traces", exc_info=True)


def create_openai_client(
    api_key: str,
    base_url: str,
    default_headers: dict[str, str] | None = None,
) -> AsyncOpenAI:
    """Create an OpenAI-protocol client bounded by the provider timeout."""
    return AsyncOpenAI(
        api_key=api_key,
        base_url=base_url,
        timeout=PROVIDER_TIMEOUT_SECONDS,
        max_retries=PROVIDER_MAX_RETRIES,
        default_headers=default_headers,
    )


@traceable(run_type="llm", name="openai.chat.completions.create")
async def invoke_chat_completions(client: AsyncOpenAI, request_params: dict[str, Any]) -> Any:
    return await client.chat.completions.create(**request_params)
