"""Pydantic schemas for the chat relay API."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .constants import DEFAULT_MODEL, DEFAULT_TEMPERATURE, Role
from .model_registry import ModelDescriptor
from .orchestration.base import DispatchRequest
from .providers.base import Usage
from .turns import ChatTurn


class Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    role: Role
    content: str = ""
    id: str | None = None
    model: str | None = None

    def to_turn(self) -> ChatTurn:
        return ChatTurn(role=self.role, content=self.content, model_tag=self.model)


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: list[Message]
    model: str = DEFAULT_MODEL
    stream: bool = True
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0, le=1)
    chat_session_id: str | None = Field(default=None, alias="chatSessionId")

    def to_dispatch_request(self) -> DispatchRequest:
        return DispatchRequest(
            turns=tuple(message.to_turn() for message in self.messages),
            model_id=self.model,
            streaming=self.stream,
            temperature=self.temperature,
            session_ref=self.chat_session_id,
        )


class UsagePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt_tokens: int | None = Field(default=None, alias="promptTokens")
    completion_tokens: int | None = Field(default=None, alias="completionTokens")
    total_tokens: int | None = Field(default=None, alias="totalTokens")

    @classmethod
    def from_usage(cls, usage: Usage | None) -> "UsagePayload | None":
        if usage is None:
            return None
        return cls(
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            total_tokens=usage.total_tokens,
        )


class AssistantMessage(BaseModel):
    id: str
    role: Literal["assistant"] = "assistant"
    content: str
    timestamp: datetime
    model: str


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: AssistantMessage
    model: str
    usage: UsagePayload | None = None
    fallback_used: bool | None = Field(default=None, alias="fallbackUsed")
    original_model_error: str | None = Field(default=None, alias="originalModelError")


class ModelMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    provider: str
    max_tokens: int = Field(alias="maxTokens")
    supports_streaming: bool = Field(alias="supportsStreaming")
    description: str

    @classmethod
    def from_descriptor(cls, descriptor: ModelDescriptor) -> "ModelMetadata":
        return cls(
            id=descriptor.id,
            name=descriptor.display_name,
            provider=descriptor.provider,
            max_tokens=descriptor.max_tokens,
            supports_streaming=descriptor.supports_streaming,
            description=descriptor.description,
        )


class ModelListResponse(BaseModel):
    models: list[ModelMetadata]
    count: int
    message: str


class ErrorResponse(BaseModel):
    error: str
    provider: str | None = None
    model: str | None = None
    details: str | None = None
