"""Chat relay API backend using FastAPI + Mangum for AWS Lambda."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import APIRouter, FastAPI, Response
from fastapi.responses import JSONResponse
from mangum import Mangum

from chat_relay.errors import ChatRelayError
from chat_relay.infra.runtime import (
    ensure_langsmith_configured,
    flush_langsmith_traces,
    get_runtime_settings,
)
from chat_relay.model_registry import ModelRegistry
from chat_relay.orchestration.base import ChatOrchestrator
from chat_relay.orchestration.direct import DirectChatOrchestrator
from chat_relay.orchestration.langgraph_flow import LangGraphChatOrchestrator
from chat_relay.orchestration.steps import DispatchSteps
from chat_relay.persistence.factory import build_session_store
from chat_relay.persistence.hooks import PersistenceHooks, PersistenceWorker
from chat_relay.providers.registry import build_default_providers
from chat_relay.schemas import ChatRequest, ChatResponse, ModelListResponse
from chat_relay.services.chat_service import ChatService

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

persistence_worker = PersistenceWorker()


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    await persistence_worker.aclose()


app = FastAPI(lifespan=lifespan)
router = APIRouter(prefix="/api")


@lru_cache(maxsize=1)
def get_chat_service() -> ChatService:
    settings = get_runtime_settings()
    registry = ModelRegistry()
    steps = DispatchSteps(registry, build_default_providers())
    orchestrator: ChatOrchestrator
    if settings.orchestrator == "langgraph":
        orchestrator = LangGraphChatOrchestrator(steps)
    else:
        orchestrator = DirectChatOrchestrator(steps)
    persistence = PersistenceHooks(build_session_store(settings), persistence_worker)
    logger.info(
        "Chat service initialized",
        extra={
            "orchestrator": settings.orchestrator,
            "persistence_backend": settings.persistence_backend,
        },
    )
    return ChatService(registry=registry, orchestrator=orchestrator, persistence=persistence)


@router.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(request: ChatRequest) -> Response | ChatResponse:
    """Dispatch the conversation to the model's provider, streaming unless disabled."""
    ensure_langsmith_configured()
    try:
        return await get_chat_service().handle_chat(request)
    except ChatRelayError as e:
        logger.warning(
            "Chat request failed",
            extra={"status_code": e.status_code, "provider": e.provider, "model": e.model},
        )
        return JSONResponse(status_code=e.status_code, content=e.to_payload())
    except Exception:
        logger.exception("Chat request failed unexpectedly")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
    finally:
        flush_langsmith_traces()


@router.get("/models", response_model=ModelListResponse)
def list_models() -> ModelListResponse:
    """List models whose provider credential is configured."""
    return get_chat_service().list_models()


@router.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


app.include_router(router)


handler = Mangum(app)
