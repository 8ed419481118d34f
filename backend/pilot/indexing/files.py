"""Workspace file enumeration and access."""

from __future__ import annotations

import asyncio
import fnmatch
import logging
from pathlib import Path
from typing import Dict, Iterable, List

from ..config import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_INCLUDE_PATTERNS
from ..config.manager import _expand_patterns
from ..core.errors import TransientIOError
from ..utils import file_mtime, is_binary_file

logger = logging.getLogger(__name__)


def _match_any(path: str, globs: List[str]) -> bool:
    return any(fnmatch.fnmatch(path, g) for g in globs)


class WorkspaceFiles:
    """Local-filesystem view of a workspace.

    Paths handed out and accepted are absolute path strings, matching what
    the chunk store records.
    """

    def __init__(
        self,
        root: Path,
        include_globs: List[str],
        exclude_globs: List[str],
        max_files: int = 5000,
        max_file_size_kb: int = 512,
    ) -> None:
        self.root = Path(root).resolve()
        self.include_globs = include_globs
        self.exclude_globs = exclude_globs
        self.max_files = max_files
        self.max_file_size_kb = max_file_size_kb

    @classmethod
    def from_config(cls, cfg: Dict) -> "WorkspaceFiles":
        return cls(
            root=Path(cfg.get("workspace", ".")),
            include_globs=cfg.get("include_globs", _expand_patterns(DEFAULT_INCLUDE_PATTERNS)),
            exclude_globs=cfg.get("exclude_globs", _expand_patterns(DEFAULT_EXCLUDE_PATTERNS)),
            max_files=int(cfg.get("max_files", 5000)),
            max_file_size_kb=int(cfg.get("max_file_size_kb", 512)),
        )

    def matches(self, path: str) -> bool:
        """True if ``path`` lies in the workspace and passes the glob rules."""
        try:
            rel = Path(path).resolve().relative_to(self.root).as_posix()
        except ValueError:
            return False
        if _match_any(rel, self.exclude_globs):
            return False
        return _match_any(rel, self.include_globs)

    def iter_files(self) -> Iterable[Path]:
        for p in sorted(self.root.rglob("*")):
            if not p.is_file():
                continue
            if not self.matches(str(p)):
                continue
            try:
                if (p.stat().st_size / 1024.0) > self.max_file_size_kb:
                    continue
            except OSError:
                continue
            if is_binary_file(p):
                continue
            yield p

    def find_files(self) -> List[str]:
        """Candidate paths under the include/exclude rules, capped at ``max_files``."""
        found: List[str] = []
        for p in self.iter_files():
            if len(found) >= self.max_files:
                logger.warning(f"File cap of {self.max_files} reached, ignoring the rest of {self.root}")
                break
            found.append(str(p))
        return found

    def exists(self, path: str) -> bool:
        return Path(path).is_file()

    async def stat(self, path: str) -> int:
        try:
            return await asyncio.to_thread(file_mtime, Path(path))
        except OSError as e:
            raise TransientIOError(f"cannot stat {path}: {e}", path=path) from e

    async def read(self, path: str) -> str:
        try:
            return await asyncio.to_thread(Path(path).read_text, encoding="utf-8", errors="replace")
        except OSError as e:
            raise TransientIOError(f"cannot read {path}: {e}", path=path) from e
