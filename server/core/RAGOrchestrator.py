"""RAG orchestrator: turns a chat request into a stream of server-sent events.

Request lifecycle:

    Idle -> ContextResolved | Skipped -> PromptBuilt -> Streaming -> Completed | Failed

Context lookup is best effort and never fails the request. A chat backend
failure before the first token propagates to the transport layer; after the
first token it ends the stream with an error frame. Nothing is retried.
"""

from contextlib import aclosing
from datetime import datetime, timezone
from enum import Enum
from typing import AsyncIterator
import asyncio
import json
import time

from server.core.ChatAgent import ChatAgent
from server.core.ContextRetriever import ContextRetriever
from server.core.PromptAssembler import build_prompt
from shared.errors.AppErrors import ChatBackendError, InvalidRequestError
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import (
    AssistantMessage,
    ChatChoice,
    ChatChunkChoice,
    ChatCompletion,
    ChatCompletionChunk,
    ChatDelta,
    ChatRequest,
)
from shared.models.document import SearchResult

MIN_RAG_LIMIT = 1
MAX_RAG_LIMIT = 10
DEFAULT_RAG_LIMIT = 3

DONE_FRAME = "data: [DONE]\n\n"


class OrchestrationState(str, Enum):
    IDLE = "idle"
    CONTEXT_RESOLVED = "context_resolved"
    SKIPPED = "skipped"
    PROMPT_BUILT = "prompt_built"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


def clamp_rag_limit(rag_limit: int | None) -> int:
    """Clamp a requested context size into [1, 10]; None means the default of 3."""
    if rag_limit is None:
        return DEFAULT_RAG_LIMIT
    return max(MIN_RAG_LIMIT, min(MAX_RAG_LIMIT, rag_limit))


def to_sse(data: str) -> str:
    return f"data: {data}\n\n"


class RAGOrchestrator:
    """Composes context retrieval, prompt building and the streamed chat answer."""

    def __init__(self, helper_config: HelperConfig, retriever: ContextRetriever, agent: ChatAgent) -> None:
        self.logging = helper_config.get_logger()
        self._retriever = retriever
        self._agent = agent

    ##########################################
    ################ CORE ####################
    ##########################################

    async def resolve_context(self, request: ChatRequest) -> list[SearchResult]:
        """Return the context documents for the last message, or [] when RAG is off or the lookup fails."""
        if not request.use_rag:
            self._transition(OrchestrationState.SKIPPED)
            return []

        question = request.messages[-1].content
        results = await self._retriever.retrieve(question, clamp_rag_limit(request.rag_limit))
        self._transition(OrchestrationState.CONTEXT_RESOLVED, "%d document(s)", len(results))
        return results

    async def build_chat_prompt(self, request: ChatRequest) -> str:
        """Validate the request and assemble the prompt for the chat agent.

        Raises:
            InvalidRequestError: If the request carries no messages.
        """
        self._transition(OrchestrationState.IDLE)
        if not request.messages:
            raise InvalidRequestError("messages must contain at least one message")

        context = await self.resolve_context(request)
        prompt = build_prompt(request.messages[-1].content, context)
        self._transition(OrchestrationState.PROMPT_BUILT)
        return prompt

    async def stream_chat(self, request: ChatRequest) -> AsyncIterator[str]:
        """Yield SSE frames: one chunk per token, the final envelope, then [DONE].

        Raises:
            InvalidRequestError: If the request carries no messages.
            ChatBackendError: If the backend fails before the first token.
        """
        completion_id = f"chatcmpl-{int(time.time() * 1000)}"
        created = int(time.time())
        model = request.model or self._agent.get_config().model

        prompt = await self.build_chat_prompt(request)

        self._transition(OrchestrationState.STREAMING)
        parts: list[str] = []
        tokens = self._agent.stream(
            prompt,
            model=request.model,
            temperature=request.temperature,
            max_tokens=request.max_tokens,
        )
        try:
            async with aclosing(tokens):
                async for token in tokens:
                    parts.append(token)
                    chunk = ChatCompletionChunk(
                        id=completion_id,
                        created=created,
                        model=model,
                        choices=[ChatChunkChoice(delta=ChatDelta(content=token))],
                    )
                    yield to_sse(chunk.model_dump_json(by_alias=True))
        except ChatBackendError as e:
            self._transition(OrchestrationState.FAILED, "%s", e)
            if not parts:
                raise
            self.logging.error("Chat stream %s interrupted after %d token(s): %s", completion_id, len(parts), e)
            yield to_sse(json.dumps({"error": self._error_payload(e)}))
            return
        except (GeneratorExit, asyncio.CancelledError):
            self.logging.info("Chat stream %s cancelled by the client after %d token(s)", completion_id, len(parts))
            raise

        self._transition(OrchestrationState.COMPLETED, "%d token(s)", len(parts))
        completion = ChatCompletion(
            id=completion_id,
            created=created,
            model=model,
            choices=[ChatChoice(message=AssistantMessage(content="".join(parts)), finish_reason="stop")],
        )
        yield to_sse(completion.model_dump_json(by_alias=True))
        yield DONE_FRAME

    async def health_check(self) -> bool:
        """Check the chat backend with a trivial prompt."""
        try:
            await self._agent.generate("Hello")
            return True
        except ChatBackendError as e:
            self.logging.error("LLM health check failed: %s", e)
            return False

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _transition(self, state: OrchestrationState, detail: str = "", *args) -> None:
        if detail:
            self.logging.debug("RAG orchestration -> %s (" + detail + ")", state.value, *args)
        else:
            self.logging.debug("RAG orchestration -> %s", state.value)

    @staticmethod
    def _error_payload(error: ChatBackendError) -> dict:
        return {
            "message": error.message,
            "code": error.code,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
