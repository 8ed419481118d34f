"""Request scheduling: debounce and cooperative cancellation."""

from .cancellation import (
    NEVER_CANCELLED,
    CancellationToken,
    CancellationTokenSource,
    merge_tokens,
    run_cancellable,
    sleep_or_cancelled,
)
from .debounce import Debouncer, OperationResult, Outcome, PendingOperation, debounce

__all__ = [
    "NEVER_CANCELLED",
    "CancellationToken",
    "CancellationTokenSource",
    "merge_tokens",
    "run_cancellable",
    "sleep_or_cancelled",
    "Debouncer",
    "OperationResult",
    "Outcome",
    "PendingOperation",
    "debounce",
]
