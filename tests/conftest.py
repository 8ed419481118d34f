import asyncio
import hashlib
import os
from pathlib import Path

import pytest

from pilot.config import load_config
from pilot.core import Embedder, EmbeddingError
from pilot.core.errors import ServiceUnavailableError
from pilot.indexing import WorkspaceFiles
from pilot.scheduling import run_cancellable
from pilot.storage import JsonChunkStore

DIM = 8


def fake_vector(text: str):
    """Deterministic non-zero vector derived from the text."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [float(b % 17) + 1.0 for b in digest[:DIM]]


class FakeEmbedder(Embedder):
    def __init__(self, fail_on: str = "", unavailable: bool = False):
        self.calls = []
        self.fail_on = fail_on
        self.unavailable = unavailable

    async def embed(self, text):
        self.calls.append(text)
        if self.unavailable:
            raise ServiceUnavailableError("embedding backend down")
        if self.fail_on and self.fail_on in text:
            raise EmbeddingError("bad chunk")
        return fake_vector(text)


class FakeModelService:
    """In-memory stand-in for the Ollama server."""

    def __init__(self, response="", delay=0.0, error=None):
        self.response = response
        self.delay = delay
        self.error = error
        self.prompts = []
        self.chats = []
        self.embedded = []
        self.loaded = []
        self.unloaded = []

    async def _answer(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response

    async def generate_completion(self, prompt, cancellation=None, system=None):
        self.prompts.append(prompt)
        return await run_cancellable(self._answer(), cancellation)

    async def chat(self, messages, cancellation=None):
        self.chats.append([dict(m) for m in messages])
        content = await run_cancellable(self._answer(), cancellation)
        if content is None:
            return None
        return {"role": "assistant", "content": content}

    async def embed(self, text):
        self.embedded.append(text)
        return fake_vector(text)

    async def load_model(self, name):
        self.loaded.append(name)
        return {"done": True}

    async def unload_model(self, name):
        self.unloaded.append(name)
        return {"done": True}


def js_source(lines: int, prefix: str = "value") -> str:
    return "\n".join(f"const {prefix}{i} = {i} * 2;" for i in range(lines)) + "\n"


def write_file(path: Path, content: str, mtime_ns: int = None) -> str:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    if mtime_ns is not None:
        os.utime(path, ns=(mtime_ns, mtime_ns))
    return str(path.resolve())


@pytest.fixture
def workspace(tmp_path):
    ws = tmp_path / "workspace"
    ws.mkdir()
    return ws.resolve()


@pytest.fixture
def cfg(workspace, tmp_path):
    config = load_config(workspace)
    config["index_path"] = str(tmp_path / "index" / "index.json")
    config["index"]["debounce_ms"] = 50
    config["completion"]["debounce_ms"] = 0
    return config


@pytest.fixture
def store(tmp_path):
    return JsonChunkStore(tmp_path / "index" / "index.json", embedding_model="fake-model")


@pytest.fixture
def files(workspace):
    return WorkspaceFiles(workspace, include_globs=["*.js", "**/*.js"], exclude_globs=["node_modules/**"])


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def service():
    return FakeModelService(response="return 1;")
