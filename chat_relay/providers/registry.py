"""Provider id -> adapter mapping."""

from collections.abc import Mapping

from .anthropic_provider import AnthropicChatProvider
from .base import ChatProvider
from .cohere_provider import CohereChatProvider
from .google_provider import GoogleChatProvider
from .groq_provider import GroqChatProvider
from .openai_provider import OpenAIChatProvider
from .openrouter_provider import OpenRouterChatProvider


def build_default_providers() -> Mapping[str, ChatProvider]:
    providers: list[ChatProvider] = [
        OpenAIChatProvider(),
        AnthropicChatProvider(),
        GoogleChatProvider(),
        GroqChatProvider(),
        CohereChatProvider(),
        OpenRouterChatProvider(),
    ]
    return {provider.provider: provider for provider in providers}
