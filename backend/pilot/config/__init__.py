"""Configuration management for pilot."""

from .manager import (
    DEFAULT_CONFIG,
    DEFAULT_INCLUDE_PATTERNS,
    DEFAULT_EXCLUDE_PATTERNS,
    load_config,
    validate_config,
    cfg_fingerprint,
    embedding_fingerprint,
    expand_pattern,
)

__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_INCLUDE_PATTERNS",
    "DEFAULT_EXCLUDE_PATTERNS",
    "load_config",
    "validate_config",
    "cfg_fingerprint",
    "embedding_fingerprint",
    "expand_pattern",
]
