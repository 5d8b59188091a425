from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class ProcessInfo:
    """A process found listening on a port.

    Built by the inspector for one conflict decision and never persisted.
    ``is_own_ecosystem`` is only meaningful after classification.
    """

    pid: int
    command: str
    args: Tuple[str, ...] = ()
    working_directory: Optional[str] = None
    started_at: Optional[datetime] = None
    is_own_ecosystem: bool = False
    project_name: Optional[str] = None
    workspace_path: Optional[str] = None

    @property
    def command_line(self) -> str:
        return " ".join(part for part in (self.command, *self.args) if part)

    @property
    def display_name(self) -> str:
        return self.project_name or self.command or f"pid {self.pid}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "pid": self.pid,
            "command": self.command,
            "args": list(self.args),
            "working_directory": self.working_directory,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "is_own_ecosystem": self.is_own_ecosystem,
            "project_name": self.project_name,
            "workspace_path": self.workspace_path,
        }


__all__ = ["ProcessInfo"]
