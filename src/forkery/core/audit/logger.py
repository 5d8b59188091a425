from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from forkery.core.audit.jsonl import append_jsonl

AUDIT_LOGGER_NAME = "forkery.audit"

_audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)


def _audit_settings(repo_root: Path | None) -> tuple[bool, Path | None]:
    from forkery.core.config.domains import LoggingConfig
    from forkery.core.exceptions import ForkeryError

    try:
        cfg = LoggingConfig(repo_root=repo_root)
        return cfg.audit_enabled, cfg.audit_jsonl_path
    except (ForkeryError, OSError) as exc:
        # Auditing must never block a destructive action that is already decided.
        _audit_logger.debug("Audit config unavailable, logging only: %s", exc)
        return True, None


def audit_event(event: str, *, repo_root: Path | None = None, **fields: Any) -> None:
    """Emit one structured audit event.

    The event always goes to the ``forkery.audit`` logger at INFO; when
    ``logging.audit.jsonl_path`` is configured it is also appended to that
    JSONL stream. Callers emit before acting, so the record exists even if
    the action itself fails.
    """
    enabled, jsonl_path = _audit_settings(repo_root)
    if not enabled:
        return

    details = " ".join(f"{k}={v}" for k, v in fields.items())
    _audit_logger.info("%s %s", event, details)

    if jsonl_path is None:
        return

    payload: dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "actor_pid": os.getpid(),
    }
    payload.update(fields)
    append_jsonl(path=jsonl_path, payload=payload)


__all__ = ["AUDIT_LOGGER_NAME", "audit_event"]
