"""Centralized configuration caching.

Provides a single source of truth for loaded configuration across all domain
configs. The cache key fingerprints ``FORKERY_*`` environment overrides and
overlay file mtimes so long-running processes (and test suites) never read a
stale merge.
"""
from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Any, Dict, Optional

_config_cache: Dict[str, Dict[str, Any]] = {}


def _normalize_repo_root(repo_root: Optional[Path]) -> Path:
    """Resolve repo_root to a canonical absolute Path."""
    if repo_root is None:
        from forkery.core.utils.paths import resolve_project_root

        return resolve_project_root()

    return Path(repo_root).expanduser().resolve()


def _fingerprint_dir(d: Path) -> list[tuple[str, int, int]]:
    from forkery.core.utils.io import iter_yaml_files

    files: list[tuple[str, int, int]] = []
    for p in iter_yaml_files(d):
        try:
            st = p.stat()
            files.append((p.name, int(st.st_mtime_ns), int(st.st_size)))
        except OSError:
            files.append((p.name, 0, 0))
    return files


def _cache_key(repo_root: Path) -> str:
    env_items = sorted(
        (k, os.environ.get(k, ""))
        for k in os.environ.keys()
        if k.startswith("FORKERY_")
    )
    env_fp = hashlib.sha256(repr(env_items).encode("utf-8")).hexdigest()[:12]

    from forkery.core.utils.paths import get_project_config_dir, get_user_config_dir

    cfg_files = {
        "project": _fingerprint_dir(get_project_config_dir(repo_root) / "config"),
        "user": _fingerprint_dir(get_user_config_dir() / "config"),
    }
    cfg_fp = hashlib.sha256(repr(cfg_files).encode("utf-8")).hexdigest()[:12]

    return f"{repo_root}:env={env_fp}:cfg={cfg_fp}"


def get_cached_config(repo_root: Optional[Path] = None, validate: bool = True) -> Dict[str, Any]:
    """Get configuration with caching.

    Returns the same config dict instance for the same repo_root while
    neither the environment overrides nor the overlay files change.

    Args:
        repo_root: Project root path. Uses auto-detection if None.
        validate: Whether to validate against the bundled schema on a miss.

    Returns:
        Configuration dictionary (cached, treat as immutable).
    """
    normalized_root = _normalize_repo_root(repo_root)
    key = _cache_key(normalized_root)

    if key not in _config_cache:
        from .manager import ConfigManager

        manager = ConfigManager(repo_root=normalized_root)
        _config_cache[key] = manager._load_config_uncached(validate=validate)
    return _config_cache[key]


def clear_all_caches() -> None:
    """Drop every cached configuration merge."""
    _config_cache.clear()


def is_cached(repo_root: Optional[Path] = None) -> bool:
    """Check if config for repo_root is cached."""
    return _cache_key(_normalize_repo_root(repo_root)) in _config_cache


__all__ = [
    "get_cached_config",
    "clear_all_caches",
    "is_cached",
]
