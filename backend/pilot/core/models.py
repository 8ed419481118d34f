"""Data models for pilot."""

from __future__ import annotations

import dataclasses
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple


@dataclasses.dataclass(frozen=True)
class Chunk:
    """A slice of a file with its embedding and the file mtime it was cut from.

    An empty embedding marks a chunk whose embedding call failed; such
    chunks are kept in the store but never scored.
    """

    file_path: str
    text: str
    embedding: Tuple[float, ...]
    mtime: int

    @property
    def is_embedded(self) -> bool:
        return len(self.embedding) > 0

    def to_record(self) -> Dict:
        return {
            "filePath": self.file_path,
            "text": self.text,
            "embedding": list(self.embedding),
            "mtime": self.mtime,
        }

    @classmethod
    def from_record(cls, payload: Mapping) -> "Chunk":
        return cls(
            file_path=str(payload["filePath"]),
            text=str(payload["text"]),
            embedding=tuple(float(x) for x in payload.get("embedding") or ()),
            mtime=int(payload.get("mtime", 0)),
        )


@dataclasses.dataclass(frozen=True)
class IndexSnapshot:
    """Immutable view of the chunk store.

    ``files`` holds the mtime watermark of every file whose last indexing
    pass succeeded, including files that produced no chunks. Chunks keep
    their per-file source order.
    """

    chunks: Tuple[Chunk, ...] = ()
    files: Mapping[str, int] = dataclasses.field(default_factory=dict)

    @classmethod
    def from_chunks(cls, chunks: Iterable[Chunk], files: Optional[Mapping[str, int]] = None) -> "IndexSnapshot":
        chunks = tuple(chunks)
        if files is None:
            derived: Dict[str, int] = {}
            for c in chunks:
                derived.setdefault(c.file_path, c.mtime)
            files = derived
        return cls(chunks=chunks, files=dict(files))

    @classmethod
    def coerce(cls, value: "IndexSnapshot | Sequence[Chunk]") -> "IndexSnapshot":
        if isinstance(value, IndexSnapshot):
            return value
        return cls.from_chunks(value)

    def __iter__(self) -> Iterator[Chunk]:
        return iter(self.chunks)

    def __len__(self) -> int:
        return len(self.chunks)

    @property
    def paths(self) -> set[str]:
        return set(self.files) | {c.file_path for c in self.chunks}

    @property
    def file_count(self) -> int:
        return len(self.paths)

    def chunks_by_file(self) -> Dict[str, List[Chunk]]:
        grouped: Dict[str, List[Chunk]] = {}
        for c in self.chunks:
            grouped.setdefault(c.file_path, []).append(c)
        return grouped

    def without(self, paths: Iterable[str]) -> "IndexSnapshot":
        drop = set(paths)
        return IndexSnapshot(
            chunks=tuple(c for c in self.chunks if c.file_path not in drop),
            files={p: m for p, m in self.files.items() if p not in drop},
        )
