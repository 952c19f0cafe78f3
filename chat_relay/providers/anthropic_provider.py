"""Anthropic provider backed by ``langchain-anthropic``."""

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel

from chat_relay.constants import PROVIDER_MAX_RETRIES, PROVIDER_TIMEOUT_SECONDS

from .langchain_provider import ChatModelFactory, LangChainChatProvider


def create_anthropic_chat_model(model_id: str, api_key: str, temperature: float) -> BaseChatModel:
    return ChatAnthropic(
        model=model_id,
        api_key=api_key,
        temperature=temperature,
        timeout=PROVIDER_TIMEOUT_SECONDS,
        max_retries=PROVIDER_MAX_RETRIES,
    )


class AnthropicChatProvider(LangChainChatProvider):
    def __init__(self, create_chat_model: ChatModelFactory = create_anthropic_chat_model) -> None:
        super().__init__("anthropic", create_chat_model)
