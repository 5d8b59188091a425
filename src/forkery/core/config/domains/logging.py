"""Domain-specific configuration for logging and the audit trail.

This config controls:
- The stdlib logging level and optional log file
- Whether destructive actions are audited
- Where the append-only audit JSONL stream is written
"""

from __future__ import annotations

from functools import cached_property
from pathlib import Path
from typing import Optional

from ..base import BaseDomainConfig


class LoggingConfig(BaseDomainConfig):
    def _config_section(self) -> str:
        return "logging"

    @cached_property
    def level(self) -> str:
        return str(self.section.get("level") or "WARNING").upper()

    @cached_property
    def log_file(self) -> Optional[Path]:
        raw = self.section.get("file")
        if not raw:
            return None
        return self._resolve(str(raw))

    @cached_property
    def audit_enabled(self) -> bool:
        audit = self.section.get("audit") or {}
        return bool(audit.get("enabled", True))

    @cached_property
    def audit_jsonl_path(self) -> Optional[Path]:
        """Resolved audit JSONL path, or None when only the audit logger is used."""
        audit = self.section.get("audit") or {}
        raw = audit.get("jsonl_path")
        if not raw:
            return None
        return self._resolve(str(raw))

    def _resolve(self, raw: str) -> Path:
        p = Path(raw).expanduser()
        if not p.is_absolute():
            p = self.repo_root / p
        return p


__all__ = ["LoggingConfig"]
