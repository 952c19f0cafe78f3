"""OpenAI-protocol provider implementation for chat requests."""

import logging
import time
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any

from openai import AsyncOpenAI

from chat_relay.constants import OPENAI_BASE_URL, PROVIDER_CREDENTIAL_ENV
from chat_relay.infra.credentials import CredentialSnapshot
from chat_relay.infra.runtime import create_openai_client, invoke_chat_completions
from chat_relay.message_mappers import build_openai_messages
from chat_relay.turns import ChatTurn

from .base import ProviderCompletion, ProviderHandle, Usage, require_api_key

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, str, dict[str, str] | None], AsyncOpenAI]


class OpenAICompatibleProvider:
    """Adapter for any endpoint speaking the Chat Completions protocol."""

    default_headers: dict[str, str] | None = None

    def __init__(
        self,
        provider: str,
        base_url: str,
        create_client: ClientFactory = create_openai_client,
    ) -> None:
        self.provider = provider
        self.credential_env = PROVIDER_CREDENTIAL_ENV[provider]  # type: ignore[index]
        self._base_url = base_url
        self._create_client = create_client

    def build_handle(self, model_id: str, credentials: CredentialSnapshot) -> ProviderHandle:
        api_key = require_api_key(self.provider, self.credential_env, credentials, model_id)
        client = self._create_client(api_key, self._base_url, self.default_headers)
        return ProviderHandle(provider=self.provider, model_id=model_id, client=client)

    def _request_params(
        self, handle: ProviderHandle, turns: Sequence[ChatTurn], temperature: float
    ) -> dict[str, Any]:
        return {
            "model": handle.model_id,
            "messages": build_openai_messages(turns),
            "temperature": temperature,
        }

    async def complete(
        self, handle: ProviderHandle, turns: Sequence[ChatTurn], temperature: float
    ) -> ProviderCompletion:
        start = time.time()
        completion = await invoke_chat_completions(
            handle.client, self._request_params(handle, turns, temperature)
        )
        duration_ms = int((time.time() - start) * 1000)

        content = ""
        if completion.choices:
            content = completion.choices[0].message.content or ""

        usage = None
        if completion.usage:
            usage = Usage(
                prompt_tokens=completion.usage.prompt_tokens,
                completion_tokens=completion.usage.completion_tokens,
                total_tokens=completion.usage.total_tokens,
            )

        logger.info(
            "Provider completion generated",
            extra={
                "provider": self.provider,
                "model": handle.model_id,
                "duration_ms": duration_ms,
                "usage_prompt_tokens": usage.prompt_tokens if usage else None,
                "usage_completion_tokens": usage.completion_tokens if usage else None,
                "response_length": len(content),
            },
        )
        return ProviderCompletion(text=content, usage=usage)

    async def complete_streaming(
        self, handle: ProviderHandle, turns: Sequence[ChatTurn], temperature: float
    ) -> AsyncIterator[str]:
        params = self._request_params(handle, turns, temperature)
        params["stream"] = True
        stream = await handle.client.chat.completions.create(**params)
        try:
            async for chunk in stream:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        finally:
            await stream.close()

    def postprocess(self, text: str) -> str:
        return text


class OpenAIChatProvider(OpenAICompatibleProvider):
    def __init__(self, create_client: ClientFactory = create_openai_client) -> None:
        super().__init__("openai", OPENAI_BASE_URL, create_client)
