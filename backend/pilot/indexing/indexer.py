"""Incremental code indexing logic."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..core import Chunk, Chunker, Embedder, IndexSnapshot, LineWindowChunker
from ..core.errors import EmbeddingError, ServiceUnavailableError, TransientIOError
from ..scheduling import CancellationToken
from ..storage import ChunkStore
from .base import Indexer
from .files import WorkspaceFiles

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class IndexingIssue:
    path: str
    reason: str


@dataclasses.dataclass
class IndexSummary:
    """What one indexing pass did."""

    files_seen: int = 0
    files_indexed: int = 0
    files_unchanged: int = 0
    files_failed: int = 0
    files_removed: int = 0
    chunks_created: int = 0
    embedding_failures: int = 0
    chunk_count: int = 0
    file_count: int = 0
    cancelled: bool = False
    duration_seconds: float = 0.0
    issues: List[IndexingIssue] = dataclasses.field(default_factory=list)
    # Set when the backend went away mid-pass; files done before it are kept.
    aborted: Optional[ServiceUnavailableError] = dataclasses.field(default=None, repr=False, compare=False)

    def to_dict(self) -> Dict:
        d = {f.name: getattr(self, f.name) for f in dataclasses.fields(self) if f.name != "aborted"}
        d["issues"] = [dataclasses.asdict(i) for i in self.issues]
        return d


class DefaultIndexer(Indexer):
    """Keeps the chunk store in step with the workspace.

    A file is re-chunked and re-embedded if and only if its mtime differs
    from the watermark of its last successful pass. A file whose chunks did
    not all embed keeps its chunks (unembedded ones are never scored) but
    gets no watermark, so the next pass retries it.

    Writers are serialized; readers use whatever snapshot the store has
    published.
    """

    def __init__(
        self,
        store: ChunkStore,
        embedder: Embedder,
        files: WorkspaceFiles,
        chunker: Optional[Chunker] = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.files = files
        self.chunker = chunker or LineWindowChunker()
        self._write_lock = asyncio.Lock()

    async def run(
        self,
        files: Sequence[Tuple[str, int]],
        existing: IndexSnapshot,
        cancellation: Optional[CancellationToken] = None,
    ) -> Tuple[IndexSnapshot, IndexSummary]:
        summary = IndexSummary(files_seen=len(files))
        last_indexed = dict(existing.files)
        previous = existing.chunks_by_file()

        fresh: Dict[str, List[Chunk]] = {}
        watermarks: Dict[str, int] = {}
        replaced: set[str] = set()

        for path, mtime in files:
            if cancellation is not None and cancellation.is_cancellation_requested:
                summary.cancelled = True
                break
            if last_indexed.get(path) == mtime:
                summary.files_unchanged += 1
                continue
            try:
                chunks, complete = await self._index_one(path, mtime, summary)
            except ServiceUnavailableError as e:
                logger.warning(f"Stopping pass at {path}: {e}")
                summary.aborted = e
                break
            except TransientIOError as e:
                logger.warning(f"Skipping {path}: {e}")
                summary.files_failed += 1
                summary.issues.append(IndexingIssue(path=path, reason=str(e)))
                continue
            replaced.add(path)
            fresh[path] = chunks
            if complete:
                watermarks[path] = mtime
            summary.files_indexed += 1
            summary.chunks_created += len(chunks)

        merged_chunks: List[Chunk] = []
        for path, chunks in previous.items():
            if path not in replaced:
                merged_chunks.extend(chunks)
        for chunks in fresh.values():
            merged_chunks.extend(chunks)

        merged_files = {p: m for p, m in last_indexed.items() if p not in replaced}
        merged_files.update(watermarks)

        snapshot = IndexSnapshot(chunks=tuple(merged_chunks), files=merged_files)
        summary.chunk_count = len(snapshot)
        summary.file_count = snapshot.file_count
        return snapshot, summary

    async def _index_one(self, path: str, mtime: int, summary: IndexSummary) -> Tuple[List[Chunk], bool]:
        content = await self.files.read(path)
        chunks: List[Chunk] = []
        complete = True
        for text in self.chunker.chunk(content):
            try:
                embedding = await self.embedder.embed(text)
            except ServiceUnavailableError:
                raise
            except EmbeddingError as e:
                logger.warning(f"Embedding failed for a chunk of {path}: {e}")
                summary.embedding_failures += 1
                complete = False
                embedding = []
            chunks.append(Chunk(file_path=path, text=text, embedding=tuple(embedding), mtime=mtime))
        logger.debug(f"Indexed {path}: {len(chunks)} chunks")
        return chunks, complete

    async def _commit(self, snapshot: IndexSnapshot) -> None:
        await asyncio.to_thread(self.store.save, snapshot)
        self.store.publish(snapshot)

    async def _stat_all(self, paths: Iterable[str], summary: IndexSummary) -> List[Tuple[str, int]]:
        stamped: List[Tuple[str, int]] = []
        for path in paths:
            try:
                stamped.append((path, await self.files.stat(path)))
            except TransientIOError as e:
                summary.files_failed += 1
                summary.issues.append(IndexingIssue(path=path, reason=str(e)))
        return stamped

    async def _prune(self) -> IndexSnapshot:
        return await asyncio.to_thread(self.store.prune, self.store.snapshot(), self.files.exists)

    async def index_workspace(self, cancellation: Optional[CancellationToken] = None) -> IndexSummary:
        """Full scan: prune deleted files, then index everything that changed."""
        start = time.time()
        async with self._write_lock:
            existing = await self._prune()
            paths = await asyncio.to_thread(self.files.find_files)
            pre = IndexSummary()
            stamped = await self._stat_all(paths, pre)
            snapshot, summary = await self.run(stamped, existing, cancellation)
            summary.files_failed += pre.files_failed
            summary.issues = pre.issues + summary.issues
            await self._commit(snapshot)
        summary.duration_seconds = time.time() - start
        logger.info(
            f"Indexed {summary.chunk_count} chunks from {summary.file_count} files "
            f"({summary.files_indexed} re-indexed, {summary.files_unchanged} unchanged, "
            f"{summary.files_failed} failed) in {summary.duration_seconds:.2f}s"
        )
        if summary.aborted is not None:
            raise summary.aborted
        return summary

    async def index_files(
        self, paths: Iterable[str], cancellation: Optional[CancellationToken] = None
    ) -> IndexSummary:
        """Scan only ``paths``, e.g. the files saved since the last scan."""
        start = time.time()
        wanted = sorted({str(Path(p).resolve()) for p in paths})
        async with self._write_lock:
            existing = await self._prune()
            indexable = []
            for path in wanted:
                if self.files.matches(path) and await asyncio.to_thread(self.files.exists, path):
                    indexable.append(path)
                else:
                    logger.debug(f"Ignoring save of {path}: not an indexable workspace file")
            if not indexable:
                return IndexSummary(chunk_count=len(existing), file_count=existing.file_count)
            pre = IndexSummary()
            stamped = await self._stat_all(indexable, pre)
            snapshot, summary = await self.run(stamped, existing, cancellation)
            summary.files_failed += pre.files_failed
            summary.issues = pre.issues + summary.issues
            if summary.files_indexed:
                await self._commit(snapshot)
        summary.duration_seconds = time.time() - start
        if summary.aborted is not None:
            raise summary.aborted
        return summary

    async def index_file(self, path: str, cancellation: Optional[CancellationToken] = None) -> IndexSummary:
        """Single-file scan for a save event."""
        return await self.index_files([path], cancellation)

    async def remove_files(self, paths: Iterable[str]) -> IndexSummary:
        """Drop the chunks of deleted files."""
        paths = set(str(Path(p).resolve()) for p in paths)
        async with self._write_lock:
            existing = self.store.snapshot()
            present = paths & existing.paths
            snapshot = existing.without(present)
            if present:
                await self._commit(snapshot)
        logger.info(f"Removed {len(present)} deleted files from the index")
        return IndexSummary(
            files_removed=len(present),
            chunk_count=len(snapshot),
            file_count=snapshot.file_count,
        )


async def build_index(indexer: DefaultIndexer, cancellation: Optional[CancellationToken] = None) -> IndexSummary:
    """Build or update the workspace index (Wrapper)."""
    return await indexer.index_workspace(cancellation)
