"""Domain-level exceptions for the chat relay."""

from typing import Any

from .constants import PROVIDER_DISPLAY_NAMES


class ChatRelayError(Exception):
    """Base class for errors rendered as the JSON error envelope."""

    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        model: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.model = model
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message}
        if self.provider is not None:
            payload["provider"] = self.provider
        if self.model is not None:
            payload["model"] = self.model
        if self.details is not None:
            payload["details"] = self.details
        return payload


class BadRequestError(ChatRelayError):
    """Raised for client-side invalid requests at the domain layer."""

    status_code = 400


class InvalidModelError(BadRequestError):
    def __init__(self, model_id: str) -> None:
        super().__init__(f"Invalid model ID: {model_id}", model=model_id)


class NoUserMessageError(BadRequestError):
    def __init__(self) -> None:
        super().__init__("No user message found")


class NoValidMessagesError(BadRequestError):
    def __init__(self) -> None:
        super().__init__("No valid messages")


class CredentialMissingError(ChatRelayError):
    """A provider has no API key in the environment.

    Carries the provider and the variable names it accepts so the caller can
    be told exactly what to configure.
    """

    status_code = 500

    def __init__(
        self,
        provider: str,
        env_names: tuple[str, ...],
        *,
        model: str | None = None,
        alternatives: tuple[str, ...] = (),
    ) -> None:
        self.env_names = env_names
        self.alternatives = alternatives
        display_name = PROVIDER_DISPLAY_NAMES.get(provider, provider)  # type: ignore[call-overload]
        message = f"{display_name} API key not configured. Set {' or '.join(env_names)}"
        if alternatives:
            message += f", or switch to a model from: {', '.join(alternatives)}"
        else:
            message += ", or switch to a model from another provider"
        super().__init__(message, provider=provider, model=model)


class CredentialRejectedError(CredentialMissingError):
    """The provider refused the configured key."""

    def __init__(
        self,
        provider: str,
        env_names: tuple[str, ...],
        *,
        model: str | None = None,
        details: str | None = None,
    ) -> None:
        self.env_names = env_names
        self.alternatives = ()
        display_name = PROVIDER_DISPLAY_NAMES.get(provider, provider)  # type: ignore[call-overload]
        ChatRelayError.__init__(
            self,
            f"{display_name} API key is invalid or missing. Check {' or '.join(env_names)}",
            provider=provider,
            model=model,
            details=details,
        )


class RateLimitedError(ChatRelayError):
    status_code = 429


class ModelUnavailableError(ChatRelayError):
    status_code = 400


class ProviderError(ChatRelayError):
    """Unclassified provider failure; the raw message is kept for diagnosis."""

    status_code = 500
