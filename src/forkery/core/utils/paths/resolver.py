"""Project root resolution.

Resolution priority:
1. ``FORKERY_PROJECT_ROOT`` environment variable
2. Nearest ancestor of the current directory holding a root marker
   (``.forkery/``, ``package.json`` or ``.git``)
3. The current directory
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from forkery.core.exceptions import ForkeryPathError

PROJECT_ROOT_ENV = "FORKERY_PROJECT_ROOT"
PROJECT_ROOT_MARKERS = (".forkery", "package.json", ".git")

_PROJECT_ROOT_CACHE: Optional[Path] = None


def _find_marked_ancestor(start: Path) -> Optional[Path]:
    for candidate in (start, *start.parents):
        if any((candidate / marker).exists() for marker in PROJECT_ROOT_MARKERS):
            return candidate
    return None


def resolve_project_root() -> Path:
    """Resolve the project root for configuration lookups.

    Raises:
        ForkeryPathError: If the environment override points at a missing path.
    """
    global _PROJECT_ROOT_CACHE

    env_root = os.environ.get(PROJECT_ROOT_ENV)
    if env_root:
        env_path = Path(env_root).expanduser().resolve()
        if not env_path.exists():
            raise ForkeryPathError(
                f"{PROJECT_ROOT_ENV} points at missing path: {env_path}",
                context={"path": str(env_path)},
            )
        _PROJECT_ROOT_CACHE = env_path
        return env_path

    cwd = Path.cwd().resolve()
    # Reuse the cached root only while still operating inside it.
    if _PROJECT_ROOT_CACHE is not None:
        if cwd == _PROJECT_ROOT_CACHE or _PROJECT_ROOT_CACHE in cwd.parents:
            return _PROJECT_ROOT_CACHE
        _PROJECT_ROOT_CACHE = None

    root = _find_marked_ancestor(cwd) or cwd
    _PROJECT_ROOT_CACHE = root
    return root


def reset_project_root_cache() -> None:
    """Forget the cached project root."""
    global _PROJECT_ROOT_CACHE
    _PROJECT_ROOT_CACHE = None


__all__ = ["PROJECT_ROOT_MARKERS", "resolve_project_root", "reset_project_root_cache"]
