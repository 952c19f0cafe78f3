"""Application service for chat requests."""

import logging
from collections.abc import Callable
from functools import partial

from fastapi.responses import StreamingResponse

from chat_relay.constants import PROVIDER_CREDENTIAL_ENV
from chat_relay.infra.credentials import CredentialSnapshot
from chat_relay.model_registry import ModelRegistry
from chat_relay.orchestration.base import ChatOrchestrator, CompletedResult
from chat_relay.persistence.hooks import PersistenceHooks
from chat_relay.schemas import ChatRequest, ChatResponse, ModelListResponse, ModelMetadata
from chat_relay.transport import render_completed, render_streamed

logger = logging.getLogger(__name__)


class ChatService:
    def __init__(
        self,
        registry: ModelRegistry,
        orchestrator: ChatOrchestrator,
        persistence: PersistenceHooks,
        get_credentials: Callable[[], CredentialSnapshot] = CredentialSnapshot.from_environ,
    ) -> None:
        self._registry = registry
        self._orchestrator = orchestrator
        self._persistence = persistence
        self._get_credentials = get_credentials

    async def handle_chat(self, request: ChatRequest) -> ChatResponse | StreamingResponse:
        dispatch_request = request.to_dispatch_request()
        logger.info(
            "Chat request received",
            extra={
                "message_count": len(dispatch_request.turns),
                "model": dispatch_request.model_id,
                "stream": dispatch_request.streaming,
            },
        )

        session_ref = dispatch_request.session_ref
        persisted = await self._persistence.record_inbound(session_ref, dispatch_request.turns)

        result = await self._orchestrator.run(dispatch_request)

        if isinstance(result, CompletedResult):
            if persisted and session_ref:
                self._persistence.record_outbound(session_ref, result.text, result.model_id_used)
            if result.fallback_applied:
                logger.info(
                    "Chat response served by fallback model",
                    extra={
                        "model": dispatch_request.model_id,
                        "fallback_model": result.model_id_used,
                    },
                )
            return render_completed(result)

        on_complete: Callable[[str], None] | None = None
        if persisted and session_ref:
            on_complete = partial(
                self._persistence.record_outbound, session_ref, model_id=result.model_id_used
            )
        return render_streamed(result, on_complete)

    def list_models(self) -> ModelListResponse:
        available = self._registry.list_available(self._get_credentials())
        if available:
            message = f"Found {len(available)} available models"
        else:
            env_names = [names[0] for names in PROVIDER_CREDENTIAL_ENV.values()]
            message = f"No API keys configured. Please add at least one of: {', '.join(env_names)}"
        return ModelListResponse(
            models=[ModelMetadata.from_descriptor(d) for d in available],
            count=len(available),
            message=message,
        )
