"""Host events consumed and notifications produced by a workspace session."""

from __future__ import annotations

import dataclasses
from typing import Tuple, Union


@dataclasses.dataclass(frozen=True)
class WorkspaceOpened:
    pass


@dataclasses.dataclass(frozen=True)
class FileSaved:
    path: str


@dataclasses.dataclass(frozen=True)
class FilesDeleted:
    paths: Tuple[str, ...]


@dataclasses.dataclass(frozen=True)
class ReindexRequested:
    pass


HostEvent = Union[WorkspaceOpened, FileSaved, FilesDeleted, ReindexRequested]


@dataclasses.dataclass(frozen=True)
class IndexUpdated:
    chunk_count: int
    file_count: int
    kind: str = "index_updated"


@dataclasses.dataclass(frozen=True)
class IndexingFailed:
    reason: str
    path: str = ""
    kind: str = "indexing_failed"


@dataclasses.dataclass(frozen=True)
class CompletionAvailable:
    document: str
    length: int
    kind: str = "completion_available"


@dataclasses.dataclass(frozen=True)
class CompletionEmpty:
    document: str
    kind: str = "completion_empty"


Notification = Union[IndexUpdated, IndexingFailed, CompletionAvailable, CompletionEmpty]
