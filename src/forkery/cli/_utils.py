"""Shared CLI utilities."""
from __future__ import annotations

import argparse
from pathlib import Path

from forkery.core.exceptions import (
    ConfigError,
    DependencyMissingError,
    PortUnavailableError,
    ProcessSpawnError,
    RunStateError,
    UserCancelledError,
)
from forkery.core.utils.paths import resolve_project_root

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_PORT_UNAVAILABLE = 3
EXIT_SPAWN_FAILED = 4
EXIT_CANCELLED = 5

_EXIT_CODES = (
    (PortUnavailableError, EXIT_PORT_UNAVAILABLE),
    (ProcessSpawnError, EXIT_SPAWN_FAILED),
    (UserCancelledError, EXIT_CANCELLED),
    (ConfigError, EXIT_USAGE),
    (DependencyMissingError, EXIT_ERROR),
    (RunStateError, EXIT_ERROR),
)


def get_repo_root(args: argparse.Namespace) -> Path:
    """Get project root from args or auto-detect.

    Args:
        args: Parsed arguments with optional repo_root attribute

    Returns:
        Path: Project root path
    """
    if hasattr(args, "repo_root") and getattr(args, "repo_root"):
        return Path(getattr(args, "repo_root")).resolve()
    return resolve_project_root()


def exit_code_for(error: BaseException) -> int:
    """Process exit code for an error raised by a command."""
    for exc_type, code in _EXIT_CODES:
        if isinstance(error, exc_type):
            return code
    return EXIT_ERROR


def setup_logging(args: argparse.Namespace, repo_root: Path) -> None:
    """Configure stdlib logging from the ``logging`` config section.

    ``--verbose`` raises the level to INFO at least.
    """
    from forkery.core.audit import configure_stdlib_logging
    from forkery.core.config.domains import LoggingConfig

    cfg = LoggingConfig(repo_root=repo_root)
    level = cfg.level
    if getattr(args, "verbose", False) and level in ("WARNING", "ERROR", "CRITICAL"):
        level = "INFO"
    configure_stdlib_logging(log_path=cfg.log_file, level=level)


__all__ = [
    "EXIT_CANCELLED",
    "EXIT_ERROR",
    "EXIT_OK",
    "EXIT_PORT_UNAVAILABLE",
    "EXIT_SPAWN_FAILED",
    "EXIT_USAGE",
    "exit_code_for",
    "get_repo_root",
    "setup_logging",
]
