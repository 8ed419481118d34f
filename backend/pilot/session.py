"""Per-workspace wiring of index, retrieval, completion and chat."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional, Set

from .completion import CompletionOrchestrator, InlineCompletionProvider
from .config import load_config
from .core import LineWindowChunker, make_embedder
from .core.errors import PilotError
from .core.events import (
    CompletionAvailable,
    CompletionEmpty,
    FileSaved,
    FilesDeleted,
    HostEvent,
    IndexingFailed,
    IndexUpdated,
    Notification,
    ReindexRequested,
    WorkspaceOpened,
)
from .indexing import DefaultIndexer, IndexSummary, WorkspaceFiles
from .prompt import CompletionPromptBuilder, PromptConfig
from .scheduling import CancellationToken, Debouncer, OperationResult, Outcome
from .search import DefaultRetriever
from .service import ChatSession, ModelService, create_client
from .storage import ChunkStore, make_chunk_store

logger = logging.getLogger(__name__)


class WorkspaceSession:
    """Everything pilot keeps for one open workspace.

    The session consumes host events through ``handle`` and publishes
    notifications to every queue handed out by ``subscribe``.
    """

    def __init__(
        self,
        cfg: Dict,
        service: Optional[ModelService] = None,
        store: Optional[ChunkStore] = None,
    ):
        self.cfg = cfg
        self.service = service if service is not None else create_client(cfg)
        self.store = store if store is not None else make_chunk_store(cfg)
        self.embedder = make_embedder(cfg, self.service)
        self.files = WorkspaceFiles.from_config(cfg)
        self.indexer = DefaultIndexer(
            self.store,
            self.embedder,
            self.files,
            LineWindowChunker(
                chunk_size=int(cfg.get("chunk_size_lines", 50)),
                min_len=int(cfg.get("chunk_min_chars", 10)),
                max_len=int(cfg.get("chunk_max_chars", 4000)),
            ),
        )
        self.retriever = DefaultRetriever(self.store, self.embedder, top_k=int(cfg.get("search", {}).get("top_k", 5)))

        completion_cfg = cfg.get("completion", {})
        self.orchestrator = CompletionOrchestrator(
            self.service,
            self.retriever,
            CompletionPromptBuilder(PromptConfig(
                system_message=cfg.get("auto_complete_system_message", ""),
                max_context_tokens=int(completion_cfg.get("max_context_tokens", 2000)),
            )),
        )
        self.completions = InlineCompletionProvider(
            self.orchestrator,
            context_lines=int(completion_cfg.get("context_lines", 20)),
            debounce_delay=int(completion_cfg.get("debounce_ms", 300)) / 1000.0,
            on_result=self._on_completion,
        )
        self.chat = ChatSession(
            self.service,
            self.retriever,
            system_message=cfg.get("chat_system_message", ""),
            history_limit=int(cfg.get("chat", {}).get("history_limit", 0)),
        )
        # Paths saved since the last save-triggered scan ran.
        self._saved_paths: Set[str] = set()
        self._save_debouncer: Debouncer[IndexSummary] = Debouncer(
            self._index_saved_files, int(cfg.get("index", {}).get("debounce_ms", 1000)) / 1000.0
        )
        self._subscribers: List["asyncio.Queue[Notification]"] = []

    @classmethod
    def open(cls, workspace: Path, service: Optional[ModelService] = None) -> "WorkspaceSession":
        return cls(load_config(workspace), service=service)

    # ── Notifications ────────────────────────────

    def subscribe(self) -> "asyncio.Queue[Notification]":
        queue: "asyncio.Queue[Notification]" = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: "asyncio.Queue[Notification]") -> None:
        try:
            self._subscribers.remove(queue)
        except ValueError:
            pass

    def publish(self, notification: Notification) -> None:
        for queue in list(self._subscribers):
            queue.put_nowait(notification)

    def _publish_summary(self, summary: IndexSummary) -> None:
        for issue in summary.issues:
            self.publish(IndexingFailed(reason=issue.reason, path=issue.path))
        self.publish(IndexUpdated(chunk_count=summary.chunk_count, file_count=summary.file_count))

    def _on_completion(self, document: str, result: OperationResult[str]) -> None:
        if result.outcome is Outcome.OK and result.value:
            self.publish(CompletionAvailable(document=document, length=len(result.value)))
        elif result.outcome is Outcome.OK:
            self.publish(CompletionEmpty(document=document))

    # ── Host events ──────────────────────────────

    async def handle(self, event: HostEvent) -> Optional[IndexSummary]:
        """Apply one host event.

        Returns the indexing summary for events that index synchronously;
        saves are debounced and return None.
        """
        if isinstance(event, (WorkspaceOpened, ReindexRequested)):
            if isinstance(event, WorkspaceOpened):
                await asyncio.to_thread(self.store.load)
            return await self.reindex()
        if isinstance(event, FileSaved):
            self.schedule_file_index(event.path)
            return None
        if isinstance(event, FilesDeleted):
            summary = await self.indexer.remove_files(event.paths)
            self._publish_summary(summary)
            return summary
        raise TypeError(f"Unknown host event: {event!r}")

    async def reindex(self, cancellation: Optional[CancellationToken] = None) -> Optional[IndexSummary]:
        try:
            summary = await self.indexer.index_workspace(cancellation)
        except PilotError as e:
            logger.error(f"Indexing failed: {e}")
            self.publish(IndexingFailed(reason=str(e)))
            if e.user_visible:
                raise
            return None
        self._publish_summary(summary)
        return summary

    def schedule_file_index(self, path: str) -> "asyncio.Future[OperationResult[IndexSummary]]":
        """Queue ``path`` for re-indexing once saves go quiet.

        A superseded call hands its paths on to the call that replaces it,
        so every file saved within one debounce window gets scanned.
        """
        self._saved_paths.add(path)
        return self._save_debouncer()

    async def _index_saved_files(self, cancellation: Optional[CancellationToken] = None) -> IndexSummary:
        paths, self._saved_paths = self._saved_paths, set()
        try:
            summary = await self.indexer.index_files(paths, cancellation)
        except PilotError as e:
            self._saved_paths |= paths
            logger.error(f"Indexing {len(paths)} saved files failed: {e}")
            for path in sorted(paths):
                self.publish(IndexingFailed(reason=str(e), path=path))
            raise
        self._publish_summary(summary)
        return summary

    # ── Status ───────────────────────────────────

    def status(self) -> Dict:
        snapshot = self.store.snapshot()
        return {
            "chunk_count": len(snapshot),
            "file_count": snapshot.file_count,
            "indexing_pending": self._save_debouncer.pending,
        }

    async def close(self) -> None:
        self._save_debouncer.cancel()
        await self._save_debouncer.drain()
        self.completions.cancel_all()
        close = getattr(self.service, "close", None)
        if close is not None:
            await close()
