"""Retriever Interface."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from ..core import Chunk
from ..scheduling import CancellationToken


class Retriever:
    """Abstract base class for semantic retrieval."""

    def rank(
        self,
        query_vector: Sequence[float],
        chunks: Sequence[Chunk],
        top_k: int,
    ) -> List[Tuple[float, Chunk]]:
        """Rank chunks against a query vector.

        Args:
            query_vector: Embedding of the query
            chunks: Candidate chunks
            top_k: Number of results to return

        Returns:
            List of (score, Chunk) tuples sorted by descending score
        """
        raise NotImplementedError

    async def search(
        self,
        query: str,
        top_k: Optional[int] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> List[Tuple[float, Chunk]]:
        """Embed ``query`` and rank the current index against it."""
        raise NotImplementedError
