"""Cohere provider backed by ``langchain-cohere``.

Cohere only ever receives a single user turn; see ``normalize_turns``.
"""

from langchain_cohere import ChatCohere
from langchain_core.language_models import BaseChatModel

from chat_relay.constants import PROVIDER_TIMEOUT_SECONDS

from .langchain_provider import ChatModelFactory, LangChainChatProvider


def create_cohere_chat_model(model_id: str, api_key: str, temperature: float) -> BaseChatModel:
    return ChatCohere(
        model=model_id,
        cohere_api_key=api_key,
        temperature=temperature,
        timeout_seconds=int(PROVIDER_TIMEOUT_SECONDS),
    )


class CohereChatProvider(LangChainChatProvider):
    def __init__(self, create_chat_model: ChatModelFactory = create_cohere_chat_model) -> None:
        super().__init__("cohere", create_chat_model)
