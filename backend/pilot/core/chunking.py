"""Line-window chunking of source files."""

from __future__ import annotations

import logging
from typing import Iterator, List

logger = logging.getLogger(__name__)

CHUNK_SIZE = 50
MIN_LEN = 10
MAX_LEN = 4000


# -----------------------------------------------------------------------------
# Interfaces
# -----------------------------------------------------------------------------

class Chunker:
    """Abstract base class for text chunking."""

    def chunk(self, content: str) -> Iterator[str]:
        """Split file content into candidate chunk texts.

        Args:
            content: Full text of a file

        Returns:
            Iterator over chunk texts, in source order
        """
        raise NotImplementedError


class LineWindowChunker(Chunker):
    """Fixed windows of ``chunk_size`` lines, without overlap.

    A window is emitted only if its trimmed text is non-empty and its
    length lies strictly between ``min_len`` and ``max_len``. The emitted
    text itself is left untrimmed so indentation survives.
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE, min_len: int = MIN_LEN, max_len: int = MAX_LEN):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size
        self.min_len = min_len
        self.max_len = max_len

    def accepts(self, text: str) -> bool:
        stripped = text.strip()
        return bool(stripped) and self.min_len < len(stripped) < self.max_len

    def chunk(self, content: str) -> Iterator[str]:
        if not isinstance(content, str) or not content:
            return
        lines = content.split("\n")
        dropped = 0
        for start in range(0, len(lines), self.chunk_size):
            text = "\n".join(lines[start:start + self.chunk_size])
            if self.accepts(text):
                yield text
            elif text.strip():
                dropped += 1
        if dropped:
            logger.debug(f"Dropped {dropped} windows outside ({self.min_len}, {self.max_len}) chars")


def chunk_text(content: str, chunk_size: int = CHUNK_SIZE, min_len: int = MIN_LEN, max_len: int = MAX_LEN) -> List[str]:
    """Chunk text into line windows (Functional Wrapper)."""
    chunker = LineWindowChunker(chunk_size=chunk_size, min_len=min_len, max_len=max_len)
    return list(chunker.chunk(content))
