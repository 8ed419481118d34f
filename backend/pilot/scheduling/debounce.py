"""Trailing debounce for async operations with explicit outcomes."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Tuple, TypeVar

from .cancellation import CancellationTokenSource

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Outcome(Enum):
    OK = "ok"
    SUPERSEDED = "superseded"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclasses.dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Result of a scheduled operation.

    Superseded and cancelled outcomes are normal terminal states; callers
    that do not care about them can simply check ``ok``.
    """

    outcome: Outcome
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK

    @classmethod
    def success(cls, value: T) -> "OperationResult[T]":
        return cls(Outcome.OK, value=value)

    @classmethod
    def superseded(cls) -> "OperationResult[T]":
        return cls(Outcome.SUPERSEDED)

    @classmethod
    def cancelled(cls) -> "OperationResult[T]":
        return cls(Outcome.CANCELLED)

    @classmethod
    def failed(cls, error: BaseException) -> "OperationResult[T]":
        return cls(Outcome.FAILED, error=error)


@dataclasses.dataclass
class PendingOperation(Generic[T]):
    """One debounced call waiting for its quiet window to elapse."""

    args: Tuple[Any, ...]
    kwargs: Dict[str, Any]
    future: "asyncio.Future[OperationResult[T]]"
    source: CancellationTokenSource = dataclasses.field(default_factory=CancellationTokenSource)
    timer: Optional[asyncio.TimerHandle] = None
    on_superseded: Optional[Callable[[], None]] = None

    def resolve(self, result: OperationResult[T]) -> None:
        if not self.future.done():
            self.future.set_result(result)


class Debouncer(Generic[T]):
    """Run only the last of a burst of calls, once ``delay`` seconds pass quietly.

    Every call returns a future of ``OperationResult``. A call replaced by a
    newer one before its timer fired resolves as ``SUPERSEDED``; the call
    that runs resolves with its value, or ``FAILED``/``CANCELLED``.

    ``func`` receives the operation's cancellation token as the keyword
    argument ``cancellation``.
    """

    def __init__(self, func: Callable[..., Awaitable[T]], delay: float) -> None:
        self.func = func
        self.delay = delay
        self._pending: Optional[PendingOperation[T]] = None
        self._running: Dict[asyncio.Task, PendingOperation[T]] = {}

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def __call__(self, *args: Any, on_superseded: Optional[Callable[[], None]] = None,
                 **kwargs: Any) -> "asyncio.Future[OperationResult[T]]":
        loop = asyncio.get_running_loop()
        self._supersede()
        op: PendingOperation[T] = PendingOperation(
            args=args, kwargs=kwargs, future=loop.create_future(), on_superseded=on_superseded,
        )
        op.timer = loop.call_later(self.delay, self._fire, op)
        self._pending = op
        return op.future

    def _supersede(self) -> None:
        op = self._pending
        if op is None:
            return
        self._pending = None
        if op.timer is not None:
            op.timer.cancel()
        op.source.cancel()
        op.resolve(OperationResult.superseded())
        if op.on_superseded is not None:
            op.on_superseded()
        logger.debug(f"Debounced call to {getattr(self.func, '__name__', self.func)!s} superseded")

    def _fire(self, op: PendingOperation[T]) -> None:
        if self._pending is op:
            self._pending = None
        task = asyncio.ensure_future(self._run(op))
        self._running[task] = op
        task.add_done_callback(lambda t: self._running.pop(t, None))

    async def _run(self, op: PendingOperation[T]) -> None:
        token = op.source.token
        if token.is_cancellation_requested:
            op.resolve(OperationResult.cancelled())
            return
        try:
            value = await self.func(*op.args, cancellation=token, **op.kwargs)
        except asyncio.CancelledError:
            op.resolve(OperationResult.cancelled())
            raise
        except Exception as e:
            logger.warning(f"Debounced operation failed: {e}")
            op.resolve(OperationResult.failed(e))
            return
        if token.is_cancellation_requested:
            op.resolve(OperationResult.cancelled())
        else:
            op.resolve(OperationResult.success(value))

    def cancel(self) -> None:
        """Cancel the waiting call and signal any running one."""
        op = self._pending
        self._pending = None
        if op is not None:
            if op.timer is not None:
                op.timer.cancel()
            op.source.cancel()
            op.resolve(OperationResult.cancelled())
        for running in list(self._running.values()):
            running.source.cancel()

    async def drain(self) -> None:
        """Wait for running operations to finish."""
        tasks = list(self._running)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


def debounce(delay: float) -> Callable[[Callable[..., Awaitable[T]]], Debouncer[T]]:
    """Decorator form of ``Debouncer``."""

    def wrap(func: Callable[..., Awaitable[T]]) -> Debouncer[T]:
        return Debouncer(func, delay)

    return wrap
