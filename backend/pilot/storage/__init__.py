"""Chunk storage backends."""

from .base import ChunkStore
from .json_store import JsonChunkStore
from .factory import make_chunk_store

__all__ = ["ChunkStore", "JsonChunkStore", "make_chunk_store"]
