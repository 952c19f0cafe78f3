"""OpenRouter gateway provider.

Aggregated open-weight models sometimes leak chat-template tokens into their
output, so buffered completions from this provider are cleaned before they
are returned.
"""

from chat_relay.constants import (
    BLANK_LINE_RUN_PATTERN,
    GATEWAY_ARTIFACT_PATTERN,
    OPENROUTER_BASE_URL,
    OPENROUTER_REFERER,
    OPENROUTER_TITLE,
)
from chat_relay.infra.runtime import create_openai_client

from .openai_provider import ClientFactory, OpenAICompatibleProvider


def strip_gateway_artifacts(text: str) -> str:
    cleaned = GATEWAY_ARTIFACT_PATTERN.sub("", text)
    cleaned = BLANK_LINE_RUN_PATTERN.sub("\n\n", cleaned)
    return cleaned.strip()


class OpenRouterChatProvider(OpenAICompatibleProvider):
    default_headers = {"HTTP-Referer": OPENROUTER_REFERER, "X-Title": OPENROUTER_TITLE}

    def __init__(self, create_client: ClientFactory = create_openai_client) -> None:
        super().__init__("openrouter", OPENROUTER_BASE_URL, create_client)

    def postprocess(self, text: str) -> str:
        return strip_gateway_artifacts(text)
