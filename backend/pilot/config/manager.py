"""Configuration management for pilot."""

from __future__ import annotations

import copy
import hashlib
import json
import os
from pathlib import Path
from typing import Dict, List

from ..core.errors import ConfigError


DEFAULT_INCLUDE_PATTERNS: List[str] = [
    "*.ts", "*.js", "*.jsx", "*.tsx", "*.py", "*.cs", "*.java",
    "*.cpp", "*.h", "*.json", "*.md", "*.txt", "*.vue", "*.svelte",
    "*.html", "*.css", "*.scss", "*.less", "*.go", "*.rs", "*.rb",
    "*.php", "*.kt", "*.swift",
]

DEFAULT_EXCLUDE_PATTERNS: List[str] = [
    "node_modules/**",
    ".git/**",
    "dist/**",
    "build/**",
    "out/**",
    "__pycache__/**",
    "*.min.js",
    "*.map",
    ".vscode/**",
    ".idea/**",
    "coverage/**",
    "test/**",
    "tests/**",
    "tmp/**",
    "temp/**",
    "vendor/**",
    ".pilot/**",
    "*.log",
    "*.lock",
    "*.bak",
    "*.tmp",
    "*.DS_Store",
]

DEFAULT_CONFIG: Dict = {
    "server_url": "http://localhost:11434",
    "model": "codellama:7b-code",
    "embedding_model": "nomic-embed-text",
    "request_timeout": 120.0,
    "auto_complete_system_message": (
        "You are a code completion engine. Continue the code at the cursor. "
        "Reply with code only, without explanations."
    ),
    "chat_system_message": (
        "You are Pilot, a helpful coding assistant. Answer questions about "
        "the user's project using the code they share with you."
    ),
    "max_files": 5000,
    "max_file_size_kb": 512,
    "chunk_size_lines": 50,
    "chunk_min_chars": 10,
    "chunk_max_chars": 4000,
    "embedding": {
        "backend": "ollama",
        "sentence_transformers_model": "sentence-transformers/all-MiniLM-L6-v2",
    },
    "search": {"top_k": 5},
    "completion": {
        "context_lines": 20,
        "max_context_tokens": 2000,
        "debounce_ms": 300,
    },
    "index": {"debounce_ms": 1000},
    "chat": {"history_limit": 0},
}

ENV_OVERRIDES: Dict[str, str] = {
    "PILOT_SERVER_URL": "server_url",
    "PILOT_MODEL": "model",
    "PILOT_EMBEDDING_MODEL": "embedding_model",
    "PILOT_INDEX_PATH": "index_path",
}


def expand_pattern(pattern: str) -> List[str]:
    """Expand pattern to include both root and nested versions.

    Examples:
        '*.py' -> ['*.py', '**/*.py']
        'venv/**' -> ['venv/**', '**/venv/**']
    """
    pattern = pattern.strip()
    if not pattern or pattern.startswith("#"):
        return []

    if pattern.startswith("**/"):
        return [pattern]

    if pattern.startswith("*."):
        return [pattern, "**/" + pattern]

    if "/**" in pattern:
        return [pattern, "**/" + pattern]

    return [pattern]


def _expand_patterns(patterns: List[str]) -> List[str]:
    """Expand and deduplicate patterns while preserving order."""
    out: List[str] = []
    seen: set[str] = set()
    for p in patterns:
        for ep in expand_pattern(p):
            if ep not in seen:
                seen.add(ep)
                out.append(ep)
    return out


def load_config(workspace: Path) -> Dict:
    """Load configuration for a workspace.

    Starts from DEFAULT_CONFIG, applies PILOT_* environment overrides and
    expands the include/exclude patterns.

    Raises:
        ConfigError: If the model names end up empty or a numeric override
            cannot be parsed.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["workspace"] = str(workspace)
    config["index_path"] = str(workspace / ".pilot" / "index.json")

    for env_name, key in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is not None:
            config[key] = value

    history_limit = os.getenv("PILOT_CHAT_HISTORY_LIMIT")
    if history_limit is not None:
        try:
            config["chat"]["history_limit"] = int(history_limit)
        except ValueError as e:
            raise ConfigError(f"PILOT_CHAT_HISTORY_LIMIT must be an integer, got {history_limit!r}") from e

    config["include_globs"] = _expand_patterns(DEFAULT_INCLUDE_PATTERNS)
    config["exclude_globs"] = _expand_patterns(DEFAULT_EXCLUDE_PATTERNS)

    validate_config(config)
    return config


def validate_config(cfg: Dict) -> None:
    if not str(cfg.get("model", "")).strip():
        raise ConfigError("No completion model configured (set PILOT_MODEL)")
    backend = str(cfg.get("embedding", {}).get("backend", "ollama")).strip().lower()
    if backend not in ("ollama", "sentence_transformers"):
        raise ConfigError(f"Unknown embedding backend: {backend!r}")
    if backend == "ollama" and not str(cfg.get("embedding_model", "")).strip():
        raise ConfigError("No embedding model configured (set PILOT_EMBEDDING_MODEL)")


def cfg_fingerprint(cfg: Dict) -> str:
    """Generate fingerprint hash for config."""
    payload = json.dumps(cfg, sort_keys=True, ensure_ascii=False).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def embedding_fingerprint(cfg: Dict) -> str:
    """Identity of the embedding model that produced stored vectors.

    Two configs with the same fingerprint produce vectors of the same space,
    so a persisted index is reusable across them.
    """
    backend = str(cfg.get("embedding", {}).get("backend", "ollama")).strip().lower()
    if backend == "sentence_transformers":
        model = cfg.get("embedding", {}).get("sentence_transformers_model", "")
    else:
        model = cfg.get("embedding_model", "")
    return cfg_fingerprint({"backend": backend, "model": model})
