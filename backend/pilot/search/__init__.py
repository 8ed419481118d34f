"""Semantic retrieval over the chunk store."""

from .base import Retriever
from .searcher import (
    DEFAULT_TOP_K,
    DefaultRetriever,
    cosine_similarity,
    format_context,
    rank_chunks,
    retrieve,
)

__all__ = [
    "DEFAULT_TOP_K",
    "Retriever",
    "DefaultRetriever",
    "cosine_similarity",
    "format_context",
    "rank_chunks",
    "retrieve",
]
