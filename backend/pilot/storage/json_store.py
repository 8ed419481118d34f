"""JSON file chunk store."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.errors import PersistenceCorruptionError
from ..core.models import Chunk, IndexSnapshot
from ..utils.file_utils import atomic_write_text
from .base import ChunkStore, ChunksLike

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class JsonChunkStore(ChunkStore):
    """Chunk store persisted as one JSON document.

    The document is an envelope ``{"version", "embeddingModel", "files",
    "chunks"}`` where ``chunks`` is the array of chunk records. A bare array
    of chunk records is read as a legacy index. An envelope written with a
    different embedding model is discarded on load, since its vectors live
    in another space.
    """

    def __init__(self, path: Path, embedding_model: str = "") -> None:
        self.path = Path(path)
        self.embedding_model = embedding_model
        self._snapshot = IndexSnapshot()
        self._write_lock = threading.Lock()

    def snapshot(self) -> IndexSnapshot:
        return self._snapshot

    def publish(self, snapshot: IndexSnapshot) -> None:
        self._snapshot = snapshot

    def load(self) -> List[Chunk]:
        try:
            snapshot = self._read()
        except PersistenceCorruptionError as e:
            logger.warning(f"Ignoring unreadable index at {self.path}: {e}")
            snapshot = IndexSnapshot()
        self.publish(snapshot)
        logger.info(f"Loaded {len(snapshot)} chunks for {snapshot.file_count} files from {self.path}")
        return list(snapshot.chunks)

    def _read(self) -> IndexSnapshot:
        if not self.path.exists():
            return IndexSnapshot()
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValueError) as e:
            raise PersistenceCorruptionError(f"cannot decode {self.path}: {e}") from e
        return self._decode(payload)

    def _decode(self, payload: Any) -> IndexSnapshot:
        files: Optional[Dict[str, int]] = None
        if isinstance(payload, list):
            records = payload
        elif isinstance(payload, dict):
            stored_model = payload.get("embeddingModel", "")
            if self.embedding_model and stored_model != self.embedding_model:
                logger.info(
                    f"Index at {self.path} was built with another embedding model, starting from scratch"
                )
                return IndexSnapshot()
            records = payload.get("chunks")
            if not isinstance(records, list):
                raise PersistenceCorruptionError("'chunks' is not an array")
            raw_files = payload.get("files")
            if raw_files is not None:
                if not isinstance(raw_files, dict):
                    raise PersistenceCorruptionError("'files' is not an object")
                try:
                    files = {str(k): int(v) for k, v in raw_files.items()}
                except (TypeError, ValueError) as e:
                    raise PersistenceCorruptionError(f"bad file watermark: {e}") from e
        else:
            raise PersistenceCorruptionError(f"unexpected root type {type(payload).__name__}")

        try:
            chunks = [Chunk.from_record(r) for r in records]
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceCorruptionError(f"bad chunk record: {e}") from e
        return IndexSnapshot.from_chunks(chunks, files)

    def _encode(self, snapshot: IndexSnapshot) -> str:
        return json.dumps({
            "version": FORMAT_VERSION,
            "embeddingModel": self.embedding_model,
            "files": dict(snapshot.files),
            "chunks": [c.to_record() for c in snapshot.chunks],
        })

    def save(self, chunks: ChunksLike) -> bool:
        snapshot = IndexSnapshot.coerce(chunks)
        with self._write_lock:
            try:
                atomic_write_text(self.path, self._encode(snapshot))
            except OSError as e:
                logger.warning(f"Failed to persist index to {self.path}: {e}")
                return False
        logger.debug(f"Saved {len(snapshot)} chunks to {self.path}")
        return True

    def clear(self) -> None:
        """Forget all chunks, on disk and in memory."""
        with self._write_lock:
            try:
                self.path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Error clearing index '{self.path}': {e}")
        self.publish(IndexSnapshot())
