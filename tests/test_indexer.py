"""Tests for incremental workspace indexing."""
import asyncio
import threading

import pytest

from pilot.core import TransientIOError
from pilot.core.errors import ServiceUnavailableError
from pilot.indexing import DefaultIndexer, WorkspaceFiles, build_index
from pilot.scheduling import CancellationTokenSource
from pilot.storage import JsonChunkStore

from .conftest import FakeEmbedder, js_source, write_file


@pytest.fixture
def indexer(store, embedder, files):
    return DefaultIndexer(store, embedder, files)


class TestFullIndex:
    def test_120_line_file_gives_three_chunks(self, indexer, workspace, store):
        path = write_file(workspace / "a.js", js_source(120))
        summary = asyncio.run(indexer.index_workspace())

        chunks = list(store.snapshot())
        assert len(chunks) == 3
        assert all(c.file_path == path for c in chunks)
        assert all(c.is_embedded for c in chunks)
        assert summary.files_indexed == 1
        assert summary.chunk_count == 3
        assert summary.file_count == 1

    def test_chunks_persist_across_restarts(self, indexer, workspace, store):
        write_file(workspace / "a.js", js_source(60))
        asyncio.run(indexer.index_workspace())

        reopened = JsonChunkStore(store.path, embedding_model="fake-model")
        assert len(reopened.load()) == 2

    def test_excluded_and_unmatched_files_ignored(self, indexer, workspace, store):
        write_file(workspace / "a.js", js_source(10))
        write_file(workspace / "node_modules" / "lib.js", js_source(10))
        write_file(workspace / "notes.bin", js_source(10))
        asyncio.run(indexer.index_workspace())
        assert {c.file_path for c in store.snapshot()} == {str(workspace / "a.js")}

    def test_unchanged_file_is_not_re_embedded(self, indexer, workspace, embedder):
        write_file(workspace / "a.js", js_source(120), mtime_ns=1_000_000_000)
        asyncio.run(indexer.index_workspace())
        calls = len(embedder.calls)

        summary = asyncio.run(indexer.index_workspace())
        assert len(embedder.calls) == calls
        assert summary.files_unchanged == 1
        assert summary.files_indexed == 0

    def test_changed_file_replaces_its_chunks(self, indexer, workspace, store):
        path = write_file(workspace / "a.js", js_source(120), mtime_ns=1_000_000_000)
        asyncio.run(indexer.index_workspace())

        write_file(workspace / "a.js", js_source(20, prefix="other"), mtime_ns=2_000_000_000)
        asyncio.run(indexer.index_workspace())

        chunks = [c for c in store.snapshot() if c.file_path == path]
        assert len(chunks) == 1
        assert "other0" in chunks[0].text
        assert chunks[0].mtime == 2_000_000_000

    def test_deleted_file_is_pruned(self, indexer, workspace, store):
        write_file(workspace / "a.js", js_source(120))
        keep = write_file(workspace / "b.js", js_source(10))
        asyncio.run(indexer.index_workspace())

        (workspace / "a.js").unlink()
        summary = asyncio.run(indexer.index_workspace())
        assert {c.file_path for c in store.snapshot()} == {keep}
        assert summary.chunk_count == 1

    def test_file_without_chunks_still_gets_watermark(self, indexer, workspace, store, embedder):
        path = write_file(workspace / "tiny.js", "x=1\n")
        asyncio.run(indexer.index_workspace())
        assert store.snapshot().files[path] > 0

        asyncio.run(indexer.index_workspace())
        assert embedder.calls == []

    def test_build_index_wrapper(self, indexer, workspace):
        write_file(workspace / "a.js", js_source(10))
        summary = asyncio.run(build_index(indexer))
        assert summary.chunk_count == 1


class TestPartialFailure:
    def test_embedding_failure_keeps_other_chunks(self, store, files, workspace):
        content = js_source(50) + "// BROKEN line in the second window\n" + js_source(49, prefix="tail")
        path = write_file(workspace / "a.js", content, mtime_ns=1_000_000_000)
        embedder = FakeEmbedder(fail_on="BROKEN")
        summary = asyncio.run(DefaultIndexer(store, embedder, files).index_workspace())

        chunks = list(store.snapshot())
        assert len(chunks) == 2
        assert chunks[0].is_embedded
        assert not chunks[1].is_embedded
        assert summary.embedding_failures == 1
        assert path not in store.snapshot().files

    def test_incomplete_file_is_retried(self, store, files, workspace):
        content = js_source(50) + "// BROKEN line in the second window\n"
        write_file(workspace / "a.js", content, mtime_ns=1_000_000_000)
        embedder = FakeEmbedder(fail_on="BROKEN")
        indexer = DefaultIndexer(store, embedder, files)
        asyncio.run(indexer.index_workspace())

        embedder.fail_on = ""
        embedder.calls.clear()
        asyncio.run(indexer.index_workspace())
        assert len(embedder.calls) == 2
        assert all(c.is_embedded for c in store.snapshot())

    def test_unreadable_file_is_skipped(self, store, embedder, workspace):
        good = write_file(workspace / "good.js", js_source(10))
        bad = write_file(workspace / "bad.js", js_source(10))

        class FlakyFiles(WorkspaceFiles):
            async def read(self, path):
                if path == bad:
                    raise TransientIOError("locked", path=path)
                return await super().read(path)

        files = FlakyFiles(workspace, include_globs=["*.js"], exclude_globs=[])
        summary = asyncio.run(DefaultIndexer(store, embedder, files).index_workspace())

        assert {c.file_path for c in store.snapshot()} == {good}
        assert summary.files_failed == 1
        assert summary.issues[0].path == bad

    def test_service_unavailable_aborts_the_pass(self, store, files, workspace):
        write_file(workspace / "a.js", js_source(10))
        indexer = DefaultIndexer(store, FakeEmbedder(unavailable=True), files)
        with pytest.raises(ServiceUnavailableError):
            asyncio.run(indexer.index_workspace())
        assert len(store.snapshot()) == 0

    def test_files_done_before_backend_loss_are_kept(self, store, files, workspace):
        done = write_file(workspace / "a.js", js_source(10), mtime_ns=1_000_000_000)
        write_file(workspace / "b.js", "// OFFLINE marker in this file\n" + js_source(10), mtime_ns=1_000_000_000)

        class FlakyBackend(FakeEmbedder):
            async def embed(self, text):
                if "OFFLINE" in text:
                    raise ServiceUnavailableError("ollama went away")
                return await super().embed(text)

        with pytest.raises(ServiceUnavailableError):
            asyncio.run(DefaultIndexer(store, FlakyBackend(), files).index_workspace())

        assert {c.file_path for c in store.snapshot()} == {done}
        reloaded = JsonChunkStore(store.path, embedding_model="fake-model")
        assert {c.file_path for c in reloaded.load()} == {done}
        assert reloaded.snapshot().files == {done: 1_000_000_000}


class TestSingleFile:
    def test_index_file_only_touches_that_file(self, indexer, workspace, store, embedder):
        write_file(workspace / "a.js", js_source(10), mtime_ns=1_000_000_000)
        b = write_file(workspace / "b.js", js_source(10), mtime_ns=1_000_000_000)
        asyncio.run(indexer.index_workspace())
        embedder.calls.clear()

        write_file(workspace / "b.js", js_source(10, prefix="changed"), mtime_ns=2_000_000_000)
        summary = asyncio.run(indexer.index_file(b))

        assert summary.files_indexed == 1
        assert len(embedder.calls) == 1
        assert "changed0" in [c for c in store.snapshot() if c.file_path == b][0].text
        assert store.snapshot().file_count == 2

    def test_index_file_ignores_excluded_path(self, indexer, workspace, store, embedder):
        path = write_file(workspace / "node_modules" / "x.js", js_source(10))
        summary = asyncio.run(indexer.index_file(path))
        assert summary.files_indexed == 0
        assert embedder.calls == []
        assert not store.path.exists()

    def test_remove_files(self, indexer, workspace, store):
        a = write_file(workspace / "a.js", js_source(10))
        b = write_file(workspace / "b.js", js_source(10))
        asyncio.run(indexer.index_workspace())

        summary = asyncio.run(indexer.remove_files([a, "/nowhere.js"]))
        assert summary.files_removed == 1
        assert {c.file_path for c in store.snapshot()} == {b}


class TestCancellation:
    def test_cancelled_pass_keeps_previous_chunks(self, indexer, workspace, store, embedder):
        a = write_file(workspace / "a.js", js_source(10), mtime_ns=1_000_000_000)
        asyncio.run(indexer.index_workspace())

        write_file(workspace / "b.js", js_source(10))
        source = CancellationTokenSource()
        source.cancel()
        summary = asyncio.run(indexer.index_workspace(source.token))

        assert summary.cancelled
        assert {c.file_path for c in store.snapshot()} == {a}


class TestReadersSeeConsistentSnapshots:
    def test_snapshot_held_by_reader_is_unchanged(self, indexer, workspace, store):
        write_file(workspace / "a.js", js_source(10), mtime_ns=1_000_000_000)
        asyncio.run(indexer.index_workspace())
        held = store.snapshot()

        write_file(workspace / "a.js", js_source(10, prefix="new"), mtime_ns=2_000_000_000)
        asyncio.run(indexer.index_workspace())
        assert "value0" in held.chunks[0].text
        assert store.snapshot() is not held


class TestEventLoopStaysFree:
    def test_prune_runs_in_a_worker_thread(self, tmp_path, embedder, files, workspace):
        class RecordingStore(JsonChunkStore):
            def __init__(self, *args, **kwargs):
                super().__init__(*args, **kwargs)
                self.prune_threads = []

            def prune(self, existing, file_exists):
                self.prune_threads.append(threading.get_ident())
                return super().prune(existing, file_exists)

        store = RecordingStore(tmp_path / "index" / "index.json", embedding_model="fake-model")
        gone = write_file(workspace / "gone.js", js_source(10))
        path = write_file(workspace / "a.js", js_source(10))
        indexer = DefaultIndexer(store, embedder, files)

        async def go():
            await indexer.index_workspace()
            (workspace / "gone.js").unlink()
            await indexer.index_file(path)
            return threading.get_ident()

        loop_thread = asyncio.run(go())
        assert len(store.prune_threads) == 2
        assert loop_thread not in store.prune_threads
        assert gone not in store.snapshot().paths


class TestIndexFiles:
    def test_several_paths_in_one_pass(self, indexer, workspace, store):
        a = write_file(workspace / "a.js", js_source(10))
        b = write_file(workspace / "b.js", js_source(10))
        skipped = write_file(workspace / "node_modules" / "c.js", js_source(10))
        summary = asyncio.run(indexer.index_files([a, b, skipped]))
        assert summary.files_indexed == 2
        assert {c.file_path for c in store.snapshot()} == {a, b}
