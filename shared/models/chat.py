"""Pydantic models for chat requests and the streamed chat response."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exchanging camelCase field names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatMessage(CamelModel):
    role: Literal["user", "assistant", "system"]
    content: str = Field(min_length=1)


class ChatRequest(CamelModel):
    """An ordered, non-empty conversation. The last message is the question used for RAG.

    rag_limit is accepted as any integer here and clamped to [1, 10] by the orchestrator.
    """

    messages: list[ChatMessage] = Field(min_length=1)
    model: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1, le=4000)
    use_rag: bool = False
    rag_limit: int = 3


class AssistantMessage(CamelModel):
    role: Literal["assistant"] = "assistant"
    content: str


class ChatChoice(CamelModel):
    index: int = 0
    message: AssistantMessage
    finish_reason: str | None = "stop"


class ChatCompletion(CamelModel):
    """Final envelope sent once the whole answer was streamed."""

    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int
    model: str
    choices: list[ChatChoice]


class ChatDelta(CamelModel):
    content: str


class ChatChunkChoice(CamelModel):
    index: int = 0
    delta: ChatDelta
    finish_reason: str | None = None


class ChatCompletionChunk(CamelModel):
    """One streamed token."""

    id: str
    object: Literal["chat.completion.chunk"] = "chat.completion.chunk"
    created: int
    model: str
    choices: list[ChatChunkChoice]
