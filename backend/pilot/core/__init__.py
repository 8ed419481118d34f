"""Core functionality for pilot."""

from .models import Chunk, IndexSnapshot
from .chunking import chunk_text, Chunker, LineWindowChunker
from .embeddings import Embedder, ServiceEmbedder, SentenceTransformersEmbedder, make_embedder
from .errors import (
    PilotError,
    ConfigError,
    TransientIOError,
    PersistenceCorruptionError,
    ModelServiceError,
    ServiceUnavailableError,
    ModelError,
    EmbeddingError,
    ModelLoadError,
)

__all__ = [
    "Chunk",
    "IndexSnapshot",
    "chunk_text",
    "Chunker",
    "LineWindowChunker",
    "Embedder",
    "ServiceEmbedder",
    "SentenceTransformersEmbedder",
    "make_embedder",
    "PilotError",
    "ConfigError",
    "TransientIOError",
    "PersistenceCorruptionError",
    "ModelServiceError",
    "ServiceUnavailableError",
    "ModelError",
    "EmbeddingError",
    "ModelLoadError",
]
