"""Prompt assembly and response post-processing."""

from .base import PromptBuilder
from .builder import CompletionPromptBuilder, PromptConfig, build_prompt, context_window, estimate_tokens
from .postprocess import clean_completion, extract_code, trim_overlap

__all__ = [
    "PromptBuilder",
    "CompletionPromptBuilder",
    "PromptConfig",
    "build_prompt",
    "context_window",
    "estimate_tokens",
    "clean_completion",
    "extract_code",
    "trim_overlap",
]
