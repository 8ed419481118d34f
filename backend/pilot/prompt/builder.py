"""Completion prompt building."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, List, Tuple

from ..core import Chunk
from .base import PromptBuilder


# ----------------------------
# Token estimation
# ----------------------------

@lru_cache(maxsize=4)
def _get_token_counter(model: str | None = None) -> Callable[[str], int]:
    """
    Return a token counting function.
    - Use tiktoken if the encoding can be loaded.
    - Fallback to heuristic otherwise (encodings are downloaded on first use).
    """
    try:
        import tiktoken

        encoding = tiktoken.encoding_for_model(model) if model else tiktoken.get_encoding("cl100k_base")

        def count_tokens(text: str) -> int:
            return len(encoding.encode(text))

        return count_tokens
    except Exception:
        # ~3.5 chars/token for code, +1 to avoid zero on short strings
        def count_tokens(text: str) -> int:
            return max(1, int(len(text) / 3.5))

        return count_tokens


def estimate_tokens(text: str) -> int:
    """Estimate token count with fallback heuristic."""
    counter = _get_token_counter()
    return counter(text)


def context_window(text_before_cursor: str, lines: int) -> str:
    """Last ``lines`` lines of the text before the cursor, cursor line included."""
    if lines <= 0:
        return ""
    parts = text_before_cursor.split("\n")
    return "\n".join(parts[-(lines + 1):]) if len(parts) > lines else text_before_cursor


# ----------------------------
# Prompt building
# ----------------------------

@dataclass(frozen=True)
class PromptConfig:
    system_message: str = ""
    max_context_tokens: int = 2000
    model: str | None = None


def _format_context_item(c: Chunk) -> str:
    return f"File: {c.file_path}\n{c.text.rstrip()}"


def _fit_context(
    hits: List[Tuple[float, Chunk]],
    count_tokens: Callable[[str], int],
    budget: int,
) -> List[str]:
    """Keep the best-ranked items whose total stays within ``budget`` tokens."""
    items: List[str] = []
    used = 0
    for _, c in hits:
        item = _format_context_item(c)
        t = count_tokens(item)
        if used + t > budget:
            break
        items.append(item)
        used += t
    return items


class CompletionPromptBuilder(PromptBuilder):
    """Prompt with clearly delimited instructions, project context and code.

    Sections are wrapped in tags so the model does not mistake code that is
    already present for instructions.
    """

    def __init__(self, config: PromptConfig | None = None):
        self.config = config or PromptConfig()

    def build_prompt(
        self,
        document: str,
        context_window: str,
        hits: List[Tuple[float, Chunk]],
    ) -> str:
        count_tokens = _get_token_counter(self.config.model)
        items = _fit_context(hits, count_tokens, self.config.max_context_tokens)

        lines: List[str] = []
        lines.append("<<SYS>>")
        if self.config.system_message.strip():
            lines.append(self.config.system_message.strip())
        lines.append(f"The code is written in this file {document}")
        lines.append("<</SYS>>")
        lines.append("")
        if items:
            lines.append("<code_from_other_files>")
            lines.append("\n\n".join(items))
            lines.append("</code_from_other_files>")
            lines.append("")
        lines.append("Complete the following code based on the context:")
        lines.append("<code_before_cursor>")
        lines.append(context_window)
        lines.append("</code_before_cursor>")
        return "\n".join(lines)


def build_prompt(
    document: str,
    context_window: str,
    hits: List[Tuple[float, Chunk]],
    config: PromptConfig | None = None,
) -> str:
    """Wrapper for CompletionPromptBuilder."""
    builder = CompletionPromptBuilder(config)
    return builder.build_prompt(document, context_window, hits)
