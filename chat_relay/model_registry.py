"""Model catalog and availability filtering."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from .constants import Provider
from .errors import InvalidModelError
from .infra.credentials import CredentialSnapshot


@dataclass(frozen=True)
class ModelDescriptor:
    id: str
    display_name: str
    provider: Provider
    max_tokens: int
    supports_streaming: bool
    description: str


_DESCRIPTORS: tuple[ModelDescriptor, ...] = (
    # --- Google models ---
    ModelDescriptor(
        id="gemini-2.5-flash",
        display_name="Gemini 2.5 Flash",
        provider="google",
        max_tokens=1_000_000,
        supports_streaming=True,
        description="Fast and efficient Gemini model - Free tier",
    ),
    # --- Groq models ---
    ModelDescriptor(
        id="llama-3.1-8b-instant",
        display_name="Llama 3.1 8B Instant",
        provider="groq",
        max_tokens=8192,
        supports_streaming=True,
        description="Meta Llama 3.1 8B - Ultra fast responses",
    ),
    ModelDescriptor(
        id="llama3-groq-8b-8192-tool-use-preview",
        display_name="Llama 3 Groq 8B Tool Use",
        provider="groq",
        max_tokens=8192,
        supports_streaming=True,
        description="Llama 3 Groq 8B with tool use capabilities",
    ),
    ModelDescriptor(
        id="gemma2-9b-it",
        display_name="Gemma 2 9B",
        provider="groq",
        max_tokens=8192,
        supports_streaming=True,
        description="Google Gemma 2 9B - Efficient and fast",
    ),
    # --- Cohere models ---
    ModelDescriptor(
        id="command-r7b-12-2024",
        display_name="Command R7B (Dec 2024)",
        provider="cohere",
        max_tokens=128_000,
        supports_streaming=True,
        description="Cohere model with improved reasoning",
    ),
    # --- OpenRouter models ---
    ModelDescriptor(
        id="google/gemini-2.0-flash-exp",
        display_name="Gemini 2.0 Flash Exp",
        provider="openrouter",
        max_tokens=1_000_000,
        supports_streaming=True,
        description="Google Gemini 2.0 Flash Experimental via OpenRouter",
    ),
    ModelDescriptor(
        id="meta-llama/llama-4-maverick",
        display_name="Llama 4 Maverick",
        provider="openrouter",
        max_tokens=128_000,
        supports_streaming=True,
        description="Meta Llama 4 Maverick via OpenRouter",
    ),
    ModelDescriptor(
        id="deepseek/deepseek-chat-v3-0324",
        display_name="DeepSeek V3",
        provider="openrouter",
        max_tokens=64_000,
        supports_streaming=True,
        description="DeepSeek V3 - Advanced reasoning and coding",
    ),
    ModelDescriptor(
        id="mistralai/mistral-small-3.1-24b-instruct",
        display_name="Mistral Small 3.1 24B",
        provider="openrouter",
        max_tokens=96_000,
        supports_streaming=True,
        description="Mistral Small 3.1 24B - Efficient and powerful",
    ),
    # --- OpenAI models ---
    ModelDescriptor(
        id="gpt-4o-mini",
        display_name="GPT-4o mini",
        provider="openai",
        max_tokens=128_000,
        supports_streaming=True,
        description="Small, fast OpenAI model",
    ),
    ModelDescriptor(
        id="gpt-4.1-mini",
        display_name="GPT-4.1 mini",
        provider="openai",
        max_tokens=1_000_000,
        supports_streaming=True,
        description="OpenAI GPT-4.1 mini with long context",
    ),
    # --- Anthropic models ---
    ModelDescriptor(
        id="claude-3-5-haiku-latest",
        display_name="Claude 3.5 Haiku",
        provider="anthropic",
        max_tokens=200_000,
        supports_streaming=True,
        description="Fast Anthropic model",
    ),
    ModelDescriptor(
        id="claude-sonnet-4-20250514",
        display_name="Claude Sonnet 4",
        provider="anthropic",
        max_tokens=200_000,
        supports_streaming=True,
        description="Balanced Anthropic model for reasoning and coding",
    ),
)

MODEL_DESCRIPTORS: dict[str, ModelDescriptor] = {d.id: d for d in _DESCRIPTORS}


class ModelRegistry:
    def __init__(self, descriptors: Iterable[ModelDescriptor] = _DESCRIPTORS) -> None:
        self._descriptors: Mapping[str, ModelDescriptor] = {d.id: d for d in descriptors}

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._descriptors

    def all(self) -> list[ModelDescriptor]:
        return list(self._descriptors.values())

    def lookup(self, model_id: str) -> ModelDescriptor:
        descriptor = self._descriptors.get(model_id)
        if descriptor is None:
            raise InvalidModelError(model_id)
        return descriptor

    def by_provider(self, provider: str) -> list[ModelDescriptor]:
        return [d for d in self._descriptors.values() if d.provider == provider]

    def list_available(self, credentials: CredentialSnapshot) -> list[ModelDescriptor]:
        """Models whose provider credential is present; may be empty."""
        return [d for d in self._descriptors.values() if credentials.has(d.provider)]
