"""Groq provider, served through Groq's OpenAI-compatible endpoint."""

from chat_relay.constants import GROQ_BASE_URL
from chat_relay.infra.runtime import create_openai_client

from .openai_provider import ClientFactory, OpenAICompatibleProvider


class GroqChatProvider(OpenAICompatibleProvider):
    def __init__(self, create_client: ClientFactory = create_openai_client) -> None:
        super().__init__("groq", GROQ_BASE_URL, create_client)
