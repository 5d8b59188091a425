from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from forkery.core.utils.io import ensure_directory

logger = logging.getLogger(__name__)

_WRITE_LOCK = threading.Lock()


def _json_safe(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_json_safe(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    return value


def append_jsonl(*, path: Path, payload: dict[str, Any]) -> None:
    """Append one JSON line to `path` and fsync it (fail-open)."""
    try:
        safe = {k: _json_safe(v) for k, v in payload.items()}
        line = json.dumps(safe, ensure_ascii=False, default=str) + "\n"
    except (TypeError, ValueError) as exc:
        logger.warning("Dropping unserializable audit payload: %s", exc)
        return

    try:
        ensure_directory(path.parent)
        with _WRITE_LOCK:
            with path.open("a", encoding="utf-8") as fh:
                fh.write(line)
                fh.flush()
                os.fsync(fh.fileno())
    except OSError as exc:
        logger.warning("Could not append audit event to %s: %s", path, exc)


__all__ = ["append_jsonl"]
