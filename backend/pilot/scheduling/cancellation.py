"""Cooperative cancellation tokens."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
Callback = Callable[[], None]


class CancellationToken:
    """A one-way flag signalling that a result is no longer wanted.

    Once cancelled a token never reverts. Callbacks registered after
    cancellation run immediately.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: List[Callback] = []

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def on_cancellation_requested(self, callback: Callback) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""
        if self._cancelled:
            callback()
            return lambda: None
        self._callbacks.append(callback)

        def unregister() -> None:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

        return unregister

    def _cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            try:
                cb()
            except Exception:
                logger.exception("Cancellation callback failed")

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled})"


class CancellationTokenSource:
    """Owner side of a token: only the source can cancel it."""

    def __init__(self) -> None:
        self.token = CancellationToken()

    def cancel(self) -> None:
        self.token._cancel()

    @property
    def is_cancellation_requested(self) -> bool:
        return self.token.is_cancellation_requested


NEVER_CANCELLED = CancellationToken()


def merge_tokens(*tokens: Optional[CancellationToken]) -> CancellationToken:
    """Token that is cancelled as soon as any of ``tokens`` is."""
    source = CancellationTokenSource()
    for token in tokens:
        if token is None:
            continue
        token.on_cancellation_requested(source.cancel)
    return source.token


async def run_cancellable(awaitable: Awaitable[T], token: Optional[CancellationToken]) -> Optional[T]:
    """Await ``awaitable`` unless ``token`` fires first.

    Cancelling the token cancels the underlying task, which aborts any
    transport it is blocked on. Returns None in that case.
    """
    if token is None:
        return await awaitable
    if token.is_cancellation_requested:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        return None

    task = asyncio.ensure_future(awaitable)
    unregister = token.on_cancellation_requested(task.cancel)
    try:
        return await task
    except asyncio.CancelledError:
        if token.is_cancellation_requested and task.cancelled():
            return None
        raise
    finally:
        unregister()


async def sleep_or_cancelled(delay: float, token: Optional[CancellationToken]) -> bool:
    """Sleep for ``delay`` seconds; returns False if cancelled meanwhile."""
    await run_cancellable(asyncio.sleep(delay), token)
    return not (token is not None and token.is_cancellation_requested)
