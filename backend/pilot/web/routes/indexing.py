"""Host event, indexing and notification routes."""

import asyncio
import dataclasses
import json

from fastapi import APIRouter, Depends, Request
from sse_starlette.sse import EventSourceResponse

from ...session import WorkspaceSession
from ..deps import get_session
from ..schemas import EventRequest, EventResponse, IndexStatusResponse

router = APIRouter()


@router.post("/events", response_model=EventResponse)
async def post_event(request: EventRequest, session: WorkspaceSession = Depends(get_session)):
    summary = await session.handle(request.event.to_event())
    return EventResponse(summary=summary.to_dict() if summary else None)


@router.post("/index", response_model=EventResponse)
async def reindex(session: WorkspaceSession = Depends(get_session)):
    """Explicit full re-index."""
    summary = await session.reindex()
    return EventResponse(accepted=summary is not None, summary=summary.to_dict() if summary else None)


@router.get("/index/status", response_model=IndexStatusResponse)
async def index_status(session: WorkspaceSession = Depends(get_session)):
    return IndexStatusResponse(**session.status())


@router.get("/notifications")
async def notifications(request: Request, session: WorkspaceSession = Depends(get_session)):
    """SSE stream of index and completion notifications."""
    queue = session.subscribe()

    async def event_generator():
        try:
            while True:
                if await request.is_disconnected():
                    break
                try:
                    notification = await asyncio.wait_for(queue.get(), timeout=1.0)
                except asyncio.TimeoutError:
                    continue
                yield {
                    "event": notification.kind,
                    "data": json.dumps(dataclasses.asdict(notification)),
                }
        finally:
            session.unsubscribe(queue)

    return EventSourceResponse(event_generator())
