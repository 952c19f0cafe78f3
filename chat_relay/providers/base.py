"""Provider adapter interface and shared value types."""

from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from chat_relay.errors import CredentialMissingError
from chat_relay.infra.credentials import CredentialSnapshot
from chat_relay.turns import ChatTurn


@dataclass(frozen=True)
class Usage:
    prompt_tokens: int | None
    completion_tokens: int | None
    total_tokens: int | None


@dataclass(frozen=True)
class ProviderHandle:
    """A callable binding of one model id to a configured provider client.

    ``client`` is the SDK client for OpenAI-protocol providers and a chat model
    factory for LangChain-backed providers. Handles live for one dispatch.
    """

    provider: str
    model_id: str
    client: Any


@dataclass(frozen=True)
class ProviderCompletion:
    text: str
    usage: Usage | None = None


def require_api_key(
    provider: str,
    credential_env: tuple[str, ...],
    credentials: CredentialSnapshot,
    model_id: str,
) -> str:
    api_key = credentials.api_key(provider)
    if not api_key:
        raise CredentialMissingError(
            provider,
            credential_env,
            model=model_id,
            alternatives=credentials.configured_providers(),
        )
    return api_key


class ChatProvider(Protocol):
    provider: str
    credential_env: tuple[str, ...]

    def build_handle(self, model_id: str, credentials: CredentialSnapshot) -> ProviderHandle:
        """Bind ``model_id``; raises ``CredentialMissingError`` without a key."""
        ...

    async def complete(
        self, handle: ProviderHandle, turns: Sequence[ChatTurn], temperature: float
    ) -> ProviderCompletion:
        """Return the full completion for ``turns``."""
        ...

    def complete_streaming(
        self, handle: ProviderHandle, turns: Sequence[ChatTurn], temperature: float
    ) -> AsyncIterator[str]:
        """Yield completion text incrementally."""
        ...

    def postprocess(self, text: str) -> str:
        """Provider-specific cleanup of a buffered completion."""
        ...
