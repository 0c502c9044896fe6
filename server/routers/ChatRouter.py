from contextlib import aclosing
from datetime import datetime, timezone
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

from server.dependencies.auth import verify_api_key
from server.models.responses import HealthResponse
from shared.models.chat import ChatRequest

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("")
async def chat(
    request: Request,
    body: ChatRequest,
    _: None = Depends(verify_api_key),
) -> StreamingResponse:
    """Answer the conversation as a server-sent event stream.

    The first event is produced before the response starts, so failures
    that happen before any token was generated still reach the client as a
    regular error response.

    Args:
        request (Request): FastAPI request (provides app.state.rag_orchestrator).
        body (ChatRequest): Messages plus optional model, sampling and RAG settings.
        _ (None): Auth dependency result (unused).

    Returns:
        StreamingResponse: text/event-stream ending with "data: [DONE]".
    """
    request.app.state.logging.info(
        "Chat request: messages=%d use_rag=%s rag_limit=%d",
        len(body.messages), body.use_rag, body.rag_limit,
    )
    events = request.app.state.rag_orchestrator.stream_chat(body)
    first_event = await anext(events, None)

    return StreamingResponse(
        _forward_events(request, first_event, events),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


async def _forward_events(request: Request, first_event: str | None, events: AsyncIterator[str]) -> AsyncIterator[str]:
    async with aclosing(events):
        if first_event is None:
            return
        yield first_event
        async for event in events:
            if await request.is_disconnected():
                request.app.state.logging.info("Client disconnected, closing chat stream.")
                break
            yield event


@router.get("/health")
async def chat_health(request: Request, _: None = Depends(verify_api_key)) -> JSONResponse:
    """Report whether the chat backend answers a trivial prompt (200) or not (503)."""
    healthy = await request.app.state.rag_orchestrator.health_check()
    timestamp = datetime.now(timezone.utc).isoformat()
    if healthy:
        body = HealthResponse(status="healthy", timestamp=timestamp, service="llm")
        return JSONResponse(status_code=200, content=body.model_dump(exclude_none=True))
    body = HealthResponse(
        status="unhealthy",
        timestamp=timestamp,
        service="llm",
        error="LLM service health check failed",
    )
    return JSONResponse(status_code=503, content=body.model_dump())
