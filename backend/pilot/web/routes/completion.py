"""Completion, chat and model routes."""

import asyncio
from typing import List

from fastapi import APIRouter, Depends, Request

from ...scheduling import CancellationTokenSource, Outcome
from ...session import WorkspaceSession
from ..deps import get_session
from ..schemas import (
    CancelResponse,
    ChatMessage,
    ChatRequest,
    ChatResponse,
    CompletionRequest,
    CompletionResponse,
    ModelActionResponse,
)

router = APIRouter()

DISCONNECT_POLL_SECONDS = 0.1


async def cancel_on_disconnect(http_request: Request, source: CancellationTokenSource,
                               interval: float = DISCONNECT_POLL_SECONDS) -> None:
    """Cancel ``source`` once the client that made ``http_request`` goes away."""
    while not source.is_cancellation_requested:
        if await http_request.is_disconnected():
            source.cancel()
            return
        await asyncio.sleep(interval)


@router.post("/complete", response_model=CompletionResponse)
async def complete(
    request: CompletionRequest,
    http_request: Request,
    session: WorkspaceSession = Depends(get_session),
):
    host = CancellationTokenSource()
    watcher = asyncio.ensure_future(cancel_on_disconnect(http_request, host))
    try:
        result = await session.completions.provide(
            request.document,
            request.text_before_cursor,
            host_token=host.token,
            key=request.request_key,
        )
    finally:
        watcher.cancel()
    if result.outcome is Outcome.FAILED:
        raise result.error
    return CompletionResponse(status=result.outcome.value, completion=result.value)


@router.post("/complete/{request_key}/cancel", response_model=CancelResponse)
async def cancel_completion(request_key: str, session: WorkspaceSession = Depends(get_session)):
    return CancelResponse(cancelled=session.completions.cancel(request_key))


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, session: WorkspaceSession = Depends(get_session)):
    reply = await session.chat.ask(request.prompt)
    if reply is None:
        return ChatResponse(cancelled=True)
    return ChatResponse(message=ChatMessage(**reply))


@router.get("/chat/messages", response_model=List[ChatMessage])
async def chat_messages(session: WorkspaceSession = Depends(get_session)):
    return [ChatMessage(**m) for m in session.chat.messages()]


@router.delete("/chat/messages")
async def reset_chat(session: WorkspaceSession = Depends(get_session)):
    session.chat.reset()
    return {"success": True}


@router.post("/models/{name}/load", response_model=ModelActionResponse)
async def load_model(name: str, session: WorkspaceSession = Depends(get_session)):
    await session.service.load_model(name)
    return ModelActionResponse(model=name, action="load")


@router.post("/models/{name}/unload", response_model=ModelActionResponse)
async def unload_model(name: str, session: WorkspaceSession = Depends(get_session)):
    await session.service.unload_model(name)
    return ModelActionResponse(model=name, action="unload")
