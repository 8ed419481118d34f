from __future__ import annotations

from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from ..core.events import FileSaved, FilesDeleted, HostEvent, ReindexRequested, WorkspaceOpened


class WorkspaceOpenedEvent(BaseModel):
    type: Literal["workspace_opened"]

    def to_event(self) -> HostEvent:
        return WorkspaceOpened()


class FileSavedEvent(BaseModel):
    type: Literal["file_saved"]
    path: str

    def to_event(self) -> HostEvent:
        return FileSaved(path=self.path)


class FilesDeletedEvent(BaseModel):
    type: Literal["files_deleted"]
    paths: List[str]

    def to_event(self) -> HostEvent:
        return FilesDeleted(paths=tuple(self.paths))


class ReindexRequestedEvent(BaseModel):
    type: Literal["reindex_requested"]

    def to_event(self) -> HostEvent:
        return ReindexRequested()


HostEventPayload = Annotated[
    Union[WorkspaceOpenedEvent, FileSavedEvent, FilesDeletedEvent, ReindexRequestedEvent],
    Field(discriminator="type"),
]


class EventRequest(BaseModel):
    event: HostEventPayload


class EventResponse(BaseModel):
    accepted: bool = True
    summary: Optional[Dict] = None


class IndexStatusResponse(BaseModel):
    chunk_count: int
    file_count: int
    indexing_pending: bool = False


class CompletionRequest(BaseModel):
    document: str
    text_before_cursor: str
    request_key: str = "inline"


class CompletionResponse(BaseModel):
    status: Literal["ok", "cancelled", "superseded"]
    completion: Optional[str] = None


class CancelResponse(BaseModel):
    cancelled: bool


class ChatRequest(BaseModel):
    prompt: str = Field(min_length=1)


class ChatMessage(BaseModel):
    role: str
    content: str


class ChatResponse(BaseModel):
    message: Optional[ChatMessage] = None
    cancelled: bool = False


class ModelActionResponse(BaseModel):
    model: str
    action: Literal["load", "unload"]
    done: bool = True
