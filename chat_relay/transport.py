"""Rendering of dispatch results as HTTP responses."""

import logging
import uuid
from collections.abc import AsyncIterator, Callable
from datetime import datetime, timezone

from fastapi.responses import StreamingResponse

from .error_classifier import error_message
from .orchestration.base import CompletedResult, StreamedResult
from .schemas import AssistantMessage, ChatResponse, UsagePayload

logger = logging.getLogger(__name__)

STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"


def render_completed(result: CompletedResult) -> ChatResponse:
    return ChatResponse(
        message=AssistantMessage(
            id=uuid.uuid4().hex,
            content=result.text,
            timestamp=datetime.now(timezone.utc),
            model=result.model_id_used,
        ),
        model=result.model_id_used,
        usage=UsagePayload.from_usage(result.usage),
        fallback_used=True if result.fallback_applied else None,
        original_model_error=result.original_error if result.fallback_applied else None,
    )


async def _stream_body(
    result: StreamedResult, on_complete: Callable[[str], None] | None
) -> AsyncIterator[str]:
    parts: list[str] = []
    try:
        async for chunk in result.chunks:
            parts.append(chunk)
            yield chunk
    except Exception as error:
        # Bytes are already on the wire, so the failure can only be reported inline.
        logger.warning(
            "Provider stream failed mid-response",
            extra={"model": result.model_id_used, "chunks_sent": len(parts)},
            exc_info=True,
        )
        yield f"\n\n[Error: {error_message(error)}]"
        return
    finally:
        await result.chunks.aclose()  # type: ignore[attr-defined]

    logger.info(
        "Chat stream completed",
        extra={"model": result.model_id_used, "chunks_sent": len(parts)},
    )
    if on_complete is not None:
        on_complete("".join(parts))


def render_streamed(
    result: StreamedResult, on_complete: Callable[[str], None] | None = None
) -> StreamingResponse:
    """Forward chunks as they arrive; ``on_complete`` gets the full text at clean end."""
    headers = {
        "X-Model-Used": result.model_id_used,
        "X-Fallback-Used": "true" if result.fallback_applied else "false",
        "Cache-Control": "no-cache",
    }
    return StreamingResponse(
        _stream_body(result, on_complete), media_type=STREAM_MEDIA_TYPE, headers=headers
    )
