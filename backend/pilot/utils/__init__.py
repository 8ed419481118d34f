"""Utility functions for pilot."""

from .file_utils import (
    ensure_dir,
    is_binary_file,
    file_mtime,
    atomic_write_text,
)

__all__ = [
    "ensure_dir",
    "is_binary_file",
    "file_mtime",
    "atomic_write_text",
]
