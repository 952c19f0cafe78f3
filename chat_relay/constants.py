"""Shared constants and literal types for the chat relay."""

import os
import re
from typing import Literal

Provider = Literal["openai", "anthropic", "google", "groq", "cohere", "openrouter"]
Role = Literal["user", "assistant", "system"]

AWS_REGION = os.environ.get("AWS_REGION", "ap-northeast-1")
LANGSMITH_PROJECT = "chat-relay"
DEFAULT_MODEL = os.environ.get("DEFAULT_MODEL", "deepseek/deepseek-chat-v3-0324")
DEFAULT_TEMPERATURE = 0.7
PROVIDER_TIMEOUT_SECONDS = 60.0
PROVIDER_MAX_RETRIES = 1
PERSISTENCE_TIMEOUT_SECONDS = 2.0

# Any one of the listed variables satisfies the provider.
PROVIDER_CREDENTIAL_ENV: dict[Provider, tuple[str, ...]] = {
    "openai": ("OPENAI_API_KEY",),
    "anthropic": ("ANTHROPIC_API_KEY",),
    "google": ("GOOGLE_GENERATIVE_AI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "groq": ("GROQ_API_KEY",),
    "cohere": ("COHERE_API_KEY",),
    "openrouter": ("OPENROUTER_API_KEY",),
}

PROVIDER_DISPLAY_NAMES: dict[Provider, str] = {
    "openai": "OpenAI",
    "anthropic": "Anthropic",
    "google": "Google",
    "groq": "Groq",
    "cohere": "Cohere",
    "openrouter": "OpenRouter",
}

# Providers that reject multi-turn or system-role payloads.
STRICT_SINGLE_TURN_PROVIDERS: frozenset[str] = frozenset({"cohere"})

OPENAI_BASE_URL = "https://api.openai.com/v1"
GROQ_BASE_URL = "https://api.groq.com/openai/v1"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENROUTER_REFERER = "https://github.com/chat-relay/chat-relay"
OPENROUTER_TITLE = "Chat Relay"

# Ordered substitutes tried once when a model id is reported unavailable.
FALLBACK_MODELS: dict[Provider, tuple[str, ...]] = {
    "openai": ("gpt-4o-mini", "gpt-4.1-mini"),
    "anthropic": ("claude-3-5-haiku-latest", "claude-sonnet-4-20250514"),
    "google": ("gemini-2.5-flash", "gemini-2.0-flash"),
    "groq": ("llama-3.1-8b-instant", "llama-3.3-70b-versatile"),
    "cohere": ("command-r7b-12-2024", "command-r-08-2024"),
    "openrouter": ("mistralai/mistral-7b-instruct", "openrouter/auto"),
}

GATEWAY_ARTIFACT_PATTERN = re.compile(
    r"<\|(?:im_end|im_start|eot_id|end|endoftext|end_of_turn|start_header_id|end_header_id)\|>"
    r"|</?s>|\[/?INST\]|<<\/?SYS>>"
)
BLANK_LINE_RUN_PATTERN = re.compile(r"\n{3,}")
