"""Dispatch request/result types and the orchestration interface."""

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol

from chat_relay.constants import DEFAULT_TEMPERATURE
from chat_relay.providers.base import Usage
from chat_relay.turns import ChatTurn


@dataclass(frozen=True)
class DispatchRequest:
    turns: tuple[ChatTurn, ...]
    model_id: str
    streaming: bool = True
    temperature: float = DEFAULT_TEMPERATURE
    session_ref: str | None = None


@dataclass(frozen=True)
class CompletedResult:
    text: str
    model_id_used: str
    usage: Usage | None = None
    fallback_applied: bool = False
    original_error: str | None = None


@dataclass(frozen=True)
class StreamedResult:
    """A stream whose first chunk has already been received from the provider."""

    chunks: AsyncIterator[str]
    model_id_used: str
    fallback_applied: bool = False
    original_error: str | None = None


DispatchResult = CompletedResult | StreamedResult


class ChatOrchestrator(Protocol):
    async def run(self, request: DispatchRequest) -> DispatchResult:
        """Dispatch the request, applying at most one fallback attempt."""
        ...
