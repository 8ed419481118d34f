"""PromptBuilder Interface."""

from __future__ import annotations

from typing import List, Tuple

from ..core import Chunk


class PromptBuilder:
    """Abstract base class for prompt building."""

    def build_prompt(
        self,
        document: str,
        context_window: str,
        hits: List[Tuple[float, Chunk]],
    ) -> str:
        """Build a completion prompt.

        Args:
            document: Identity (path) of the document being edited
            context_window: Code before the cursor
            hits: Retrieved project context (score, chunk)

        Returns:
            Prompt text
        """
        raise NotImplementedError
