"""Google Gemini provider backed by ``langchain-google-genai``."""

from langchain_core.language_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI

from chat_relay.constants import PROVIDER_MAX_RETRIES, PROVIDER_TIMEOUT_SECONDS

from .langchain_provider import ChatModelFactory, LangChainChatProvider


def create_google_chat_model(model_id: str, api_key: str, temperature: float) -> BaseChatModel:
    return ChatGoogleGenerativeAI(
        model=model_id,
        google_api_key=api_key,
        temperature=temperature,
        timeout=PROVIDER_TIMEOUT_SECONDS,
        max_retries=PROVIDER_MAX_RETRIES,
    )


class GoogleChatProvider(LangChainChatProvider):
    def __init__(self, create_chat_model: ChatModelFactory = create_google_chat_model) -> None:
        super().__init__("google", create_chat_model)
