"""Semantic search functionality."""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

from ..core import Chunk, Embedder, IndexSnapshot
from ..scheduling import CancellationToken, run_cancellable
from ..storage import ChunkStore
from .base import Retriever

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity, 0.0 for empty, zero-magnitude or mismatched vectors."""
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def rank_chunks(
    query_vector: Sequence[float],
    chunks: Sequence[Chunk],
    top_k: int = DEFAULT_TOP_K,
) -> List[Tuple[float, Chunk]]:
    """Brute-force scan. Unembedded chunks and chunks of another dimension are skipped."""
    if not query_vector or top_k <= 0:
        return []
    dim = len(query_vector)
    scored = [
        (cosine_similarity(query_vector, c.embedding), c)
        for c in chunks
        if len(c.embedding) == dim
    ]
    # sorted() is stable, so equal scores keep insertion order.
    scored = sorted(scored, key=lambda x: x[0], reverse=True)
    return scored[:top_k]


def retrieve(
    query_vector: Sequence[float],
    store: "IndexSnapshot | Sequence[Chunk]",
    top_k: int = DEFAULT_TOP_K,
) -> List[Tuple[float, Chunk]]:
    """Rank a store snapshot against a query vector (Functional Wrapper)."""
    return rank_chunks(query_vector, list(store), top_k)


class DefaultRetriever(Retriever):

    def __init__(self, store: ChunkStore, embedder: Embedder, top_k: int = DEFAULT_TOP_K):
        self.store = store
        self.embedder = embedder
        self.top_k = top_k

    def rank(self, query_vector, chunks, top_k):
        return rank_chunks(query_vector, chunks, top_k)

    async def search(
        self,
        query: str,
        top_k: Optional[int] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> List[Tuple[float, Chunk]]:
        snapshot = self.store.snapshot()
        if not len(snapshot) or not query or not query.strip():
            return []

        qv = await run_cancellable(self.embedder.embed(query), cancellation)
        if qv is None:
            return []
        hits = self.rank(qv, snapshot.chunks, top_k if top_k is not None else self.top_k)
        logger.debug(f"Retrieved {len(hits)} chunks out of {len(snapshot)}")
        return hits


def format_context(hits: Sequence[Tuple[float, Chunk]]) -> str:
    """Render hits as ``File: <path>`` blocks separated by blank lines."""
    return "\n\n".join(f"File: {c.file_path}\n{c.text}" for _, c in hits)

