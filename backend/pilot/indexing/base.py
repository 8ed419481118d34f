"""Indexer Interface."""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from ..core import IndexSnapshot
from ..scheduling import CancellationToken


class Indexer:
    """Abstract base class for incremental indexing."""

    async def run(
        self,
        files: Sequence[Tuple[str, int]],
        existing: IndexSnapshot,
        cancellation: Optional[CancellationToken] = None,
    ):
        """Re-index the files whose mtime changed and merge with ``existing``.

        Args:
            files: (path, current mtime) pairs
            existing: Snapshot produced by the previous pass

        Returns:
            Tuple of (merged IndexSnapshot, IndexSummary)
        """
        raise NotImplementedError
