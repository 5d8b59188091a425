"""User configuration path resolution.

This module centralizes detection of the user-level forkery configuration
directory (default: ``~/.forkery``).

Precedence (highest to lowest):
1. Environment variable: FORKERY_paths__user_config_dir
2. Bundled defaults: forkery.data/config/paths.yaml (paths.user_config_dir)
3. Hardcoded fallback: ".forkery"

The directory name is resolved relative to the user's home directory unless an
absolute path is provided.
"""

from __future__ import annotations

import os
from pathlib import Path

from forkery.data import read_yaml


DEFAULT_USER_CONFIG_PRIMARY = ".forkery"


def _resolve_user_dir_from_configs() -> str:
    env_override = os.environ.get("FORKERY_paths__user_config_dir")
    if isinstance(env_override, str) and env_override.strip():
        return env_override.strip()

    paths_section = read_yaml("config", "paths.yaml").get("paths") or {}
    value = paths_section.get("user_config_dir")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return DEFAULT_USER_CONFIG_PRIMARY


def get_user_config_dir(*, create: bool = False) -> Path:
    """Return the user config directory resolved via config/env.

    The resolved path is absolute. Relative values are treated as relative to
    the user's home directory (not CWD).
    """
    from forkery.core.utils.io import ensure_directory

    p = Path(_resolve_user_dir_from_configs()).expanduser()
    if not p.is_absolute():
        p = Path.home() / p

    resolved = p.resolve()
    if create:
        ensure_directory(resolved)
    return resolved


__all__ = [
    "DEFAULT_USER_CONFIG_PRIMARY",
    "get_user_config_dir",
]
