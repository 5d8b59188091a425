"""Project configuration directory resolution.

Precedence (highest to lowest):
1. Environment variable: FORKERY_paths__project_config_dir
2. Bundled defaults: forkery.data/config/paths.yaml (paths.project_config_dir)
3. Hardcoded fallback: ".forkery"
"""
from __future__ import annotations

import os
from pathlib import Path

from forkery.data import read_yaml

DEFAULT_PROJECT_CONFIG_PRIMARY = ".forkery"


def _resolve_project_dir_name() -> str:
    env_override = os.environ.get("FORKERY_paths__project_config_dir")
    if env_override and env_override.strip():
        return env_override.strip()
    paths_section = read_yaml("config", "paths.yaml").get("paths") or {}
    value = paths_section.get("project_config_dir")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return DEFAULT_PROJECT_CONFIG_PRIMARY


def get_project_config_dir(repo_root: Path, *, create: bool = False) -> Path:
    """Return ``<repo_root>/<project config dir>``.

    Args:
        repo_root: Project root path.
        create: If True, create the directory when it does not exist.
    """
    from forkery.core.utils.io import ensure_directory

    project_dir = Path(repo_root) / _resolve_project_dir_name()
    if create:
        ensure_directory(project_dir)
    return project_dir


__all__ = ["DEFAULT_PROJECT_CONFIG_PRIMARY", "get_project_config_dir"]
