"""Async Ollama client.

Talks to a local Ollama server (``/api/generate``, ``/api/chat``,
``/api/embeddings``). One client instance is created per workspace session
and shared by the components that need it; it owns a pooled
``httpx.AsyncClient``.

Cancelling a request cancels the task awaiting the HTTP call, which closes
the underlying connection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Dict, List, Optional, Type

import httpx

from ..core.errors import (
    EmbeddingError,
    ModelError,
    ModelLoadError,
    ModelServiceError,
    ServiceUnavailableError,
)
from ..scheduling import CancellationToken, run_cancellable

logger = logging.getLogger(__name__)


@dataclass
class OllamaConfig:
    server_url: str = "http://localhost:11434"
    model: str = "codellama:7b-code"
    embedding_model: str = "nomic-embed-text"
    temperature: float = 0.0
    timeout: float = 120.0

    @classmethod
    def from_dict(cls, cfg: Dict) -> "OllamaConfig":
        return cls(
            server_url=str(cfg.get("server_url", cls.server_url)),
            model=str(cfg.get("model", cls.model)),
            embedding_model=str(cfg.get("embedding_model", cls.embedding_model)),
            timeout=float(cfg.get("request_timeout", cls.timeout)),
        )


class OllamaClient:

    def __init__(self, config: OllamaConfig | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config or OllamaConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.server_url.rstrip("/"),
                timeout=httpx.Timeout(self.config.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "OllamaClient":
        return self

    async def __aexit__(
        self,
        exc_type: Type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def _post(self, path: str, body: Dict[str, Any], error_cls: Type[ModelServiceError]) -> Dict:
        try:
            response = await self.client.post(path, json=body)
            response.raise_for_status()
            data = response.json()
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            raise ServiceUnavailableError(
                f"Ollama server at {self.config.server_url} is unreachable: {e}"
            ) from e
        except httpx.HTTPStatusError as e:
            raise error_cls(
                f"Ollama API error on {path}: {e.response.status_code} {e.response.reason_phrase}",
                status=e.response.status_code,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise error_cls(f"Ollama request to {path} failed: {e}") from e
        if not isinstance(data, dict):
            raise error_cls(f"Unexpected response format from {path}: {type(data).__name__}")
        return data

    async def generate_completion(
        self,
        prompt: str,
        cancellation: Optional[CancellationToken] = None,
        system: Optional[str] = None,
    ) -> Optional[str]:
        body: Dict[str, Any] = {
            "model": self.config.model,
            "prompt": prompt,
            "options": {"temperature": self.config.temperature},
            "stream": False,
        }
        if system:
            body["system"] = system
        data = await run_cancellable(self._post("/api/generate", body, ModelError), cancellation)
        if data is None:
            logger.debug("Completion request cancelled")
            return None
        return str(data.get("response", ""))

    async def chat(
        self,
        messages: List[Dict[str, str]],
        cancellation: Optional[CancellationToken] = None,
    ) -> Optional[Dict[str, str]]:
        body = {
            "model": self.config.model,
            "messages": messages,
            "stream": False,
        }
        data = await run_cancellable(self._post("/api/chat", body, ModelError), cancellation)
        if data is None:
            logger.debug("Chat request cancelled")
            return None
        message = data.get("message")
        if not isinstance(message, dict) or "content" not in message:
            raise ModelError(f"Unexpected chat response format: {data}")
        return {"role": str(message.get("role", "assistant")), "content": str(message["content"])}

    async def embed(self, text: str) -> List[float]:
        body = {"model": self.config.embedding_model, "prompt": text}
        data = await self._post("/api/embeddings", body, EmbeddingError)
        embedding = data.get("embedding")
        if not isinstance(embedding, list):
            raise EmbeddingError(f"Unexpected embedding response format: {list(data)}")
        return [float(x) for x in embedding]

    async def load_model(self, name: str) -> Dict:
        try:
            return await self._post("/api/generate", {"model": name}, ModelLoadError)
        except ServiceUnavailableError as e:
            raise ModelLoadError(
                f"Failed to load model {name!r}. Make sure your local LLM is running"
            ) from e

    async def unload_model(self, name: str) -> Dict:
        try:
            return await self._post("/api/generate", {"model": name, "keep_alive": 0}, ModelLoadError)
        except ServiceUnavailableError as e:
            raise ModelLoadError(f"Failed to unload model {name!r}: {e}") from e


def create_client(cfg: Dict) -> OllamaClient:
    return OllamaClient(OllamaConfig.from_dict(cfg))
