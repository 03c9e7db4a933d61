"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_PROFILE = "core"


def _get_default_cache_root() -> Path:
    """Get the default cache root from the environment or the user cache dir."""
    explicit = os.environ.get("EDGAR_CACHE_DIR", "").strip()
    if explicit:
        return Path(explicit).expanduser()

    xdg_cache = os.environ.get("XDG_CACHE_HOME", "").strip()
    if xdg_cache:
        return Path(xdg_cache).expanduser() / "edgarlens"

    return Path.home() / ".cache" / "edgarlens"


def _get_default_user_agent() -> str | None:
    value = os.environ.get("EDGAR_USER_AGENT", "").strip()
    return value or None


@dataclass(slots=True)
class AppConfig:
    cache_root: Path | None = None
    user_agent: str | None = None
    profile: str = DEFAULT_PROFILE
    top_k: int = 8
    chunk_lines: int = 40
    chunk_overlap: int = 10
    max_workers: int = 8

    def __post_init__(self) -> None:
        if self.cache_root is None:
            self.cache_root = _get_default_cache_root()
        if self.user_agent is None:
            self.user_agent = _get_default_user_agent()

    def resolve_cache_root(self, base_dir: Path | None = None) -> Path:
        if self.cache_root is None:
            self.cache_root = _get_default_cache_root()
        if Path(self.cache_root).is_absolute() or base_dir is None:
            return Path(self.cache_root)
        return base_dir / self.cache_root
