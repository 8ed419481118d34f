"""Cleanup of raw model output before it is inserted at the cursor."""

from __future__ import annotations

import re

_FENCE_RE = re.compile(r"```[^\n`]*\n?(.*?)```", re.DOTALL)


def extract_code(response: str) -> str:
    """Body of the first fenced code block, or the whole response trimmed."""
    if not response:
        return ""
    match = _FENCE_RE.search(response)
    if match:
        return match.group(1).strip("\n")
    return response.strip()


def _common_prefix_len(a: str, b: str) -> int:
    n = min(len(a), len(b))
    i = 0
    while i < n and a[i] == b[i]:
        i += 1
    return i


def trim_overlap(typed: str, completion: str) -> str:
    """Drop the part of ``completion`` that repeats what is already typed.

    The longest common prefix is taken against the whole typed context
    first and, when that shares nothing, against its last line, since
    models usually echo the line being completed.
    """
    if not typed or not completion:
        return completion
    n = _common_prefix_len(typed, completion)
    if n == 0:
        last_line = typed.rsplit("\n", 1)[-1]
        n = _common_prefix_len(last_line, completion)
    return completion[n:]


def clean_completion(typed: str, response: str) -> str:
    return trim_overlap(typed, extract_code(response))
