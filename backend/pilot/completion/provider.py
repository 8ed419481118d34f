"""Inline completion requests: supersession, debounce and cancellation."""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional

from ..core.errors import PilotError
from ..prompt import context_window
from ..scheduling import (
    CancellationToken,
    CancellationTokenSource,
    OperationResult,
    merge_tokens,
    sleep_or_cancelled,
)
from .orchestrator import CompletionOrchestrator

logger = logging.getLogger(__name__)

_request_ids = itertools.count(1)


class RequestState(Enum):
    CREATED = "created"
    ISSUED = "issued"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = {RequestState.CANCELLED, RequestState.COMPLETED, RequestState.FAILED}


@dataclass
class CompletionRequest:
    key: str
    document: str
    token: CancellationToken
    source: CancellationTokenSource
    id: int = field(default_factory=lambda: next(_request_ids))
    state: RequestState = RequestState.CREATED
    superseded: bool = False
    done: bool = False

    def cancel(self) -> None:
        self.source.cancel()
        if self.state not in TERMINAL_STATES:
            self.state = RequestState.CANCELLED

    def supersede(self) -> None:
        self.superseded = True
        self.cancel()

    def interrupted(self) -> OperationResult[str]:
        """Outcome of a request that stopped before producing a completion."""
        self.state = RequestState.CANCELLED
        if self.superseded:
            return OperationResult.superseded()
        return OperationResult.cancelled()


class InlineCompletionProvider:
    """Serves inline completion requests for one editor.

    Each request for a key cancels the previous request for that key,
    whether it is still waiting out the debounce delay or already issued
    to the model. A request's cancellation token merges the host's token
    with that internal supersede signal.
    """

    def __init__(
        self,
        orchestrator: CompletionOrchestrator,
        context_lines: int = 20,
        debounce_delay: float = 0.0,
        on_result: Optional[Callable[[str, OperationResult[str]], None]] = None,
    ):
        self.orchestrator = orchestrator
        self.context_lines = context_lines
        self.debounce_delay = debounce_delay
        self.on_result = on_result
        self._current: Dict[str, CompletionRequest] = {}

    def current(self, key: str = "inline") -> Optional[CompletionRequest]:
        return self._current.get(key)

    def cancel(self, key: str = "inline") -> bool:
        """Cancel the in-flight request for ``key``, if any."""
        request = self._current.get(key)
        if request is None:
            return False
        request.cancel()
        return True

    def cancel_all(self) -> None:
        for request in list(self._current.values()):
            request.cancel()
        self._current.clear()

    def _finish(self, request: CompletionRequest, result: OperationResult[str]) -> OperationResult[str]:
        request.done = True
        if self._current.get(request.key) is request:
            del self._current[request.key]
        if self.on_result is not None:
            self.on_result(request.document, result)
        return result

    async def provide(
        self,
        document: str,
        text_before_cursor: str,
        host_token: Optional[CancellationToken] = None,
        key: str = "inline",
    ) -> OperationResult[str]:
        previous = self._current.get(key)
        if previous is not None:
            previous.supersede()

        source = CancellationTokenSource()
        request = CompletionRequest(
            key=key,
            document=document,
            token=merge_tokens(host_token, source.token),
            source=source,
        )
        self._current[key] = request

        try:
            return await self._issue(request, text_before_cursor)
        except asyncio.CancelledError:
            if not request.done:
                request.state = RequestState.CANCELLED
                self._finish(request, OperationResult.cancelled())
            raise
        except Exception as e:
            if not request.done:
                logger.exception(f"Completion request {request.id} crashed")
                request.state = RequestState.FAILED
                self._finish(request, OperationResult.failed(e))
            raise

    async def _issue(self, request: CompletionRequest, text_before_cursor: str) -> OperationResult[str]:
        if self.debounce_delay > 0:
            await sleep_or_cancelled(self.debounce_delay, request.token)
        if request.token.is_cancellation_requested:
            return self._finish(request, request.interrupted())

        request.state = RequestState.ISSUED
        window = context_window(text_before_cursor, self.context_lines)
        try:
            completion = await self.orchestrator.complete(window, request.document, request.token)
        except PilotError as e:
            if request.token.is_cancellation_requested:
                return self._finish(request, request.interrupted())
            logger.error(f"Completion failed for {request.document}: {e}")
            request.state = RequestState.FAILED
            return self._finish(request, OperationResult.failed(e))

        if completion is None or request.token.is_cancellation_requested:
            logger.debug(f"Completion request {request.id} stopped before completing")
            return self._finish(request, request.interrupted())

        request.state = RequestState.COMPLETED
        return self._finish(request, OperationResult.success(completion))
