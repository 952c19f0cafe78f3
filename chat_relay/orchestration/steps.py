"""Dispatch steps shared by the orchestration strategies.

Each orchestrator drives the same sequence: prepare (validate, look up the
model, normalize turns), build a provider handle, invoke, and on an
availability-class failure invoke once more against a fallback model.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from dataclasses import dataclass

from chat_relay.constants import FALLBACK_MODELS, PROVIDER_DISPLAY_NAMES, PROVIDER_TIMEOUT_SECONDS
from chat_relay.error_classifier import ErrorKind, classify_error, error_message
from chat_relay.errors import (
    BadRequestError,
    ChatRelayError,
    CredentialRejectedError,
    ModelUnavailableError,
    ProviderError,
    RateLimitedError,
)
from chat_relay.infra.credentials import CredentialSnapshot
from chat_relay.message_mappers import normalize_turns
from chat_relay.model_registry import ModelDescriptor, ModelRegistry
from chat_relay.providers.base import ChatProvider, ProviderHandle
from chat_relay.turns import ChatTurn

from .base import CompletedResult, DispatchRequest, DispatchResult, StreamedResult

logger = logging.getLogger(__name__)

_STREAM_END = object()


@dataclass(frozen=True)
class PreparedDispatch:
    request: DispatchRequest
    descriptor: ModelDescriptor
    provider: ChatProvider
    turns: tuple[ChatTurn, ...]
    credentials: CredentialSnapshot


class DispatchSteps:
    def __init__(
        self,
        registry: ModelRegistry,
        providers: Mapping[str, ChatProvider],
        get_credentials: Callable[[], CredentialSnapshot] = CredentialSnapshot.from_environ,
        fallback_models: Mapping[str, tuple[str, ...]] = FALLBACK_MODELS,
        timeout_seconds: float = PROVIDER_TIMEOUT_SECONDS,
    ) -> None:
        self._registry = registry
        self._providers = providers
        self._get_credentials = get_credentials
        self._fallback_models = fallback_models
        self._timeout_seconds = timeout_seconds

    def prepare(self, request: DispatchRequest) -> PreparedDispatch:
        if not request.turns:
            raise BadRequestError("Messages are required")

        descriptor = self._registry.lookup(request.model_id)
        provider = self._providers.get(descriptor.provider)
        if provider is None:
            raise BadRequestError(
                f"Unsupported model provider: {descriptor.provider}",
                provider=descriptor.provider,
                model=descriptor.id,
            )

        turns = normalize_turns(request.turns, descriptor)
        return PreparedDispatch(
            request=request,
            descriptor=descriptor,
            provider=provider,
            turns=tuple(turns),
            credentials=self._get_credentials(),
        )

    def build_handle(self, prepared: PreparedDispatch, model_id: str) -> ProviderHandle:
        return prepared.provider.build_handle(model_id, prepared.credentials)

    async def invoke(self, prepared: PreparedDispatch, handle: ProviderHandle) -> DispatchResult:
        """Call the provider once; provider exceptions propagate unclassified."""
        request = prepared.request
        if request.streaming:
            chunks = prepared.provider.complete_streaming(
                handle, prepared.turns, request.temperature
            )
            try:
                first = await asyncio.wait_for(anext(chunks, _STREAM_END), self._timeout_seconds)
            except BaseException:
                await chunks.aclose()  # type: ignore[attr-defined]
                raise
            return StreamedResult(
                chunks=self._relay_stream(first, chunks),
                model_id_used=handle.model_id,
            )

        completion = await asyncio.wait_for(
            prepared.provider.complete(handle, prepared.turns, request.temperature),
            self._timeout_seconds,
        )
        return CompletedResult(
            text=prepared.provider.postprocess(completion.text),
            model_id_used=handle.model_id,
            usage=completion.usage,
        )

    async def _relay_stream(self, first: object, chunks: AsyncIterator[str]) -> AsyncIterator[str]:
        try:
            if first is _STREAM_END:
                return
            yield first  # type: ignore[misc]
            while True:
                chunk = await asyncio.wait_for(anext(chunks, _STREAM_END), self._timeout_seconds)
                if chunk is _STREAM_END:
                    return
                yield chunk  # type: ignore[misc]
        finally:
            await chunks.aclose()  # type: ignore[attr-defined]

    def fallback_model_for(self, prepared: PreparedDispatch, error: BaseException) -> str | None:
        """First fallback for the provider when ``error`` is availability-class."""
        if classify_error(error) is not ErrorKind.MODEL_UNAVAILABLE:
            return None
        for candidate in self._fallback_models.get(prepared.descriptor.provider, ()):
            if candidate != prepared.request.model_id:
                return candidate
        return None

    def to_failure(
        self,
        error: BaseException,
        prepared: PreparedDispatch,
        failed_model_id: str | None = None,
        original_error: str | None = None,
    ) -> ChatRelayError:
        """Map a terminal provider error to the externally visible error class."""
        provider = prepared.descriptor.provider
        display_name = PROVIDER_DISPLAY_NAMES.get(provider, provider)  # type: ignore[call-overload]
        model_id = failed_model_id or prepared.request.model_id
        raw = error_message(error)
        details = raw
        if original_error:
            details = f"{raw} (fallback {model_id} after original error: {original_error})"

        kind = classify_error(error)
        logger.warning(
            "Provider dispatch failed",
            extra={
                "provider": provider,
                "model": model_id,
                "error_kind": kind.value,
                "fallback_attempted": original_error is not None,
            },
        )

        if kind is ErrorKind.CREDENTIAL_MISSING:
            return CredentialRejectedError(
                provider,
                prepared.provider.credential_env,
                model=prepared.request.model_id,
                details=details,
            )
        if kind is ErrorKind.RATE_LIMITED:
            return RateLimitedError(
                f"{display_name} quota or rate limit exceeded. "
                "Please try again later or switch to a different model.",
                provider=provider,
                model=prepared.request.model_id,
                details=details,
            )
        if kind is ErrorKind.MODEL_UNAVAILABLE:
            return ModelUnavailableError(
                f"Model {model_id} is not available or not supported by {display_name}. "
                "Please switch to a different model.",
                provider=provider,
                model=prepared.request.model_id,
                details=details,
            )
        return ProviderError(
            f"{display_name} error: {raw}",
            provider=provider,
            model=prepared.request.model_id,
            details=details,
        )
