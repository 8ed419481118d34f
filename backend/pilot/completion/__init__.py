"""Inline completion."""

from .orchestrator import CompletionOrchestrator
from .provider import CompletionRequest, InlineCompletionProvider, RequestState

__all__ = ["CompletionOrchestrator", "CompletionRequest", "InlineCompletionProvider", "RequestState"]
