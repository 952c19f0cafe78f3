"""LangChain chat-model provider implementation for chat requests."""

import logging
import time
from collections.abc import AsyncIterator, Callable, Sequence
from functools import partial

from langchain_core.language_models import BaseChatModel

from chat_relay.constants import PROVIDER_CREDENTIAL_ENV
from chat_relay.infra.credentials import CredentialSnapshot
from chat_relay.message_mappers import build_langchain_messages, message_content_text
from chat_relay.turns import ChatTurn

from .base import ProviderCompletion, ProviderHandle, Usage, require_api_key

logger = logging.getLogger(__name__)

# (model_id, api_key, temperature) -> chat model
ChatModelFactory = Callable[[str, str, float], BaseChatModel]


class LangChainChatProvider:
    def __init__(self, provider: str, create_chat_model: ChatModelFactory) -> None:
        self.provider = provider
        self.credential_env = PROVIDER_CREDENTIAL_ENV[provider]  # type: ignore[index]
        self._create_chat_model = create_chat_model

    def build_handle(self, model_id: str, credentials: CredentialSnapshot) -> ProviderHandle:
        api_key = require_api_key(self.provider, self.credential_env, credentials, model_id)
        return ProviderHandle(
            provider=self.provider,
            model_id=model_id,
            client=partial(self._create_chat_model, model_id, api_key),
        )

    async def complete(
        self, handle: ProviderHandle, turns: Sequence[ChatTurn], temperature: float
    ) -> ProviderCompletion:
        chat_model: BaseChatModel = handle.client(temperature)

        start = time.time()
        response = await chat_model.ainvoke(
            build_langchain_messages(turns),
            config={"run_name": "chat_relay_request", "tags": ["chat-relay", handle.model_id]},
        )
        duration_ms = int((time.time() - start) * 1000)

        content = message_content_text(response.content)
        usage_metadata = getattr(response, "usage_metadata", None)
        usage = None
        if usage_metadata:
            usage = Usage(
                prompt_tokens=usage_metadata.get("input_tokens"),
                completion_tokens=usage_metadata.get("output_tokens"),
                total_tokens=usage_metadata.get("total_tokens"),
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
        chat_model: BaseChatModel = handle.client(temperature)
        async for chunk in chat_model.astream(build_langchain_messages(turns)):
            text = message_content_text(chunk.content)
            if text:
                yield text

    def postprocess(self, text: str) -> str:
        return text
