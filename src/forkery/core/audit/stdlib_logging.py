from __future__ import annotations

import logging
import sys
from pathlib import Path

from forkery.core.utils.io import ensure_directory

_FORKERY_HANDLER: logging.Handler | None = None
_CONFIGURED_TARGET: str | None = None

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _level_from_name(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.INFO


def configure_stdlib_logging(*, log_path: Path | None = None, level: str = "INFO") -> None:
    """Install the forkery log handler on the ``forkery`` logger.

    Writes to ``log_path`` when given, otherwise to stderr. Idempotent
    per-process: reconfiguring with the same target only updates the level.
    """
    global _FORKERY_HANDLER, _CONFIGURED_TARGET

    target = str(Path(log_path).resolve()) if log_path is not None else "<stderr>"
    pkg_logger = logging.getLogger("forkery")
    pkg_logger.setLevel(_level_from_name(level))

    if _CONFIGURED_TARGET == target and _FORKERY_HANDLER is not None:
        _FORKERY_HANDLER.setLevel(_level_from_name(level))
        return

    if _FORKERY_HANDLER is not None:
        pkg_logger.removeHandler(_FORKERY_HANDLER)
        _FORKERY_HANDLER.close()
        _FORKERY_HANDLER = None

    handler: logging.Handler
    if log_path is not None:
        ensure_directory(Path(target).parent)
        handler = logging.FileHandler(target, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(_level_from_name(level))
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    pkg_logger.addHandler(handler)

    _FORKERY_HANDLER = handler
    _CONFIGURED_TARGET = target


def reset_stdlib_logging_for_tests() -> None:
    """Test-only: remove the installed handler."""
    global _FORKERY_HANDLER, _CONFIGURED_TARGET
    logging.getLogger("forkery").setLevel(logging.NOTSET)
    if _FORKERY_HANDLER is not None:
        logging.getLogger("forkery").removeHandler(_FORKERY_HANDLER)
        _FORKERY_HANDLER.close()
    _FORKERY_HANDLER = None
    _CONFIGURED_TARGET = None


__all__ = ["configure_stdlib_logging", "reset_stdlib_logging_for_tests"]
