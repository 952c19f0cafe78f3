"""Direct provider dispatch orchestration."""

import logging
from dataclasses import replace

from chat_relay.error_classifier import error_message

from .base import ChatOrchestrator, DispatchRequest, DispatchResult
from .steps import DispatchSteps

logger = logging.getLogger(__name__)


class DirectChatOrchestrator(ChatOrchestrator):
    def __init__(self, steps: DispatchSteps) -> None:
        self._steps = steps

    async def run(self, request: DispatchRequest) -> DispatchResult:
        prepared = self._steps.prepare(request)
        handle = self._steps.build_handle(prepared, request.model_id)

        try:
            return await self._steps.invoke(prepared, handle)
        except Exception as error:
            first_error = error

        fallback_model_id = self._steps.fallback_model_for(prepared, first_error)
        if fallback_model_id is None:
            raise self._steps.to_failure(first_error, prepared) from first_error

        original_error = error_message(first_error)
        logger.warning(
            "Model unavailable, retrying with fallback model",
            extra={
                "provider": prepared.descriptor.provider,
                "model": request.model_id,
                "fallback_model": fallback_model_id,
                "original_error": original_error,
            },
        )

        fallback_handle = self._steps.build_handle(prepared, fallback_model_id)
        try:
            result = await self._steps.invoke(prepared, fallback_handle)
        except Exception as retry_error:
            raise self._steps.to_failure(
                retry_error,
                prepared,
                failed_model_id=fallback_model_id,
                original_error=original_error,
            ) from retry_error

        return replace(result, fallback_applied=True, original_error=original_error)
