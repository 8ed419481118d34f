"""Embedding providers for semantic search."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Protocol

from .errors import ConfigError, EmbeddingError

logger = logging.getLogger(__name__)


class SupportsEmbed(Protocol):
    async def embed(self, text: str) -> List[float]: ...


class Embedder:
    """Abstract base class for embedding models."""

    async def embed(self, text: str) -> List[float]:
        """Embed a single text into a vector.

        Raises:
            EmbeddingError: If this call failed. Callers decide whether to
                skip the text or keep it unembedded.
        """
        raise NotImplementedError


class ServiceEmbedder(Embedder):
    """Embedder backed by the model service's embeddings endpoint."""

    def __init__(self, service: SupportsEmbed) -> None:
        self.service = service

    async def embed(self, text: str) -> List[float]:
        return await self.service.embed(text)


class SentenceTransformersEmbedder(Embedder):
    """Embedder using SentenceTransformers library, run off the event loop."""

    def __init__(self, model_name: str) -> None:
        from sentence_transformers import SentenceTransformer  # type: ignore
        self.model = SentenceTransformer(model_name)

    def _encode(self, text: str) -> List[float]:
        arr = self.model.encode([text], normalize_embeddings=True, show_progress_bar=False)
        return arr[0].tolist()

    async def embed(self, text: str) -> List[float]:
        try:
            return await asyncio.to_thread(self._encode, text)
        except Exception as e:
            raise EmbeddingError(f"sentence-transformers failed to embed text: {e}") from e


def make_embedder(cfg: Dict, service: SupportsEmbed) -> Embedder:
    """Create embedder from config.

    Args:
        cfg: Configuration dictionary
        service: Model service used by the ``ollama`` backend

    Returns:
        Embedder instance

    Raises:
        ConfigError: If backend is invalid or dependencies are missing
    """
    backend = str(cfg.get("embedding", {}).get("backend", "ollama")).strip().lower()
    if backend == "ollama":
        return ServiceEmbedder(service)
    if backend != "sentence_transformers":
        raise ConfigError(f"Invalid embedding.backend: {backend!r}")

    model_name = cfg.get("embedding", {}).get("sentence_transformers_model", "all-MiniLM-L6-v2")
    try:
        return SentenceTransformersEmbedder(model_name)
    except Exception as e:
        raise ConfigError(
            "Could not load sentence-transformers. "
            "Install it with: pip install 'pilot-rag[local]'"
        ) from e
