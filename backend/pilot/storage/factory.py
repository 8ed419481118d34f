"""Factory for creating chunk store instances."""

from __future__ import annotations

from pathlib import Path
from typing import Dict

from ..config import embedding_fingerprint
from .base import ChunkStore
from .json_store import JsonChunkStore


def make_chunk_store(cfg: Dict) -> ChunkStore:
    index_path = cfg.get("index_path")
    if not index_path:
        workspace = Path(cfg.get("workspace", "."))
        index_path = workspace / ".pilot" / "index.json"
    return JsonChunkStore(Path(index_path), embedding_model=embedding_fingerprint(cfg))
