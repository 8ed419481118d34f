"""Abstract chunk storage interface."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from typing import Callable, List, Sequence, Union

from ..core.models import Chunk, IndexSnapshot

FileExists = Callable[[str], bool]
ChunksLike = Union[IndexSnapshot, Sequence[Chunk]]


class ChunkStore(ABC):
    """Abstract base class for chunk storage backends.

    The store keeps one published in-memory snapshot for readers. Writers
    build a new snapshot and swap it in with ``publish``; readers holding
    an older snapshot keep a consistent, if stale, view.
    """

    @abstractmethod
    def load(self) -> List[Chunk]:
        """Read persisted chunks, publish them and return them.

        A missing or unreadable index loads as empty.
        """

    @abstractmethod
    def save(self, chunks: ChunksLike) -> bool:
        """Persist chunks atomically. Returns False if the write failed."""

    @abstractmethod
    def snapshot(self) -> IndexSnapshot:
        """Return the currently published snapshot."""

    @abstractmethod
    def publish(self, snapshot: IndexSnapshot) -> None:
        """Make ``snapshot`` visible to readers."""

    def prune(self, existing: ChunksLike, file_exists: FileExists = os.path.exists) -> IndexSnapshot:
        """Drop chunks of files that no longer exist, then persist and publish."""
        snapshot = IndexSnapshot.coerce(existing)
        gone = {p for p in snapshot.paths if not file_exists(p)}
        if not gone:
            return snapshot
        pruned = snapshot.without(gone)
        self.save(pruned)
        self.publish(pruned)
        return pruned

    def count(self) -> int:
        return len(self.snapshot())

    def exists(self) -> bool:
        """Check if the store holds any chunks."""
        return self.count() > 0
