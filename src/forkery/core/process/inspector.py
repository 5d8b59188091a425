"""Port occupant inspection.

Wraps an ``OsProcessUtility`` so callers never see its failures: a missing
tool, a timed-out command or an OS error all read as "nothing found",
which sends the conflict resolver down its self-contained aggressive path.
"""
from __future__ import annotations

import dataclasses
import json
import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple

from forkery.core.exceptions import DependencyMissingError

from .models import ProcessInfo
from .os_utility import OsProcessUtility

logger = logging.getLogger(__name__)

_SKIP_PATH_PARTS = ("node_modules", "/usr/", "/opt/homebrew/", "\\program files")


def _looks_like_path(arg: str) -> bool:
    if arg.startswith("-"):
        return False
    return arg.startswith(("/", "~")) or (len(arg) > 2 and arg[1] == ":" and arg[2] in "\\/")


def _project_name_from(workspace: Path) -> str:
    manifest = workspace / "package.json"
    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
        name = data.get("name") if isinstance(data, dict) else None
        if isinstance(name, str) and name.strip():
            return name.strip()
    except (OSError, ValueError):
        pass
    return workspace.name


def extract_project_identity(info: ProcessInfo) -> Tuple[Optional[str], Optional[str]]:
    """Best-effort ``(project_name, workspace_path)`` for a process.

    Prefers the process working directory; otherwise the first absolute path
    argument outside installed tooling. The name comes from the workspace
    ``package.json`` when readable, else the directory name.
    """
    workspace: Optional[Path] = None
    if info.working_directory:
        workspace = Path(info.working_directory)
    else:
        for arg in info.args:
            lowered = arg.lower().replace("\\", "/")
            if not _looks_like_path(arg) or any(part in lowered for part in _SKIP_PATH_PARTS):
                continue
            candidate = Path(arg).expanduser()
            workspace = candidate.parent if candidate.suffix else candidate
            break

    if workspace is None or str(workspace) in ("/", ""):
        return None, None
    return _project_name_from(workspace), str(workspace)


class ProcessInspector:
    def __init__(self, os_utility: OsProcessUtility) -> None:
        self.os_utility = os_utility

    def inspect(self, port: int) -> Optional[ProcessInfo]:
        """First process listening on ``port``, or None (not found / unknown)."""
        occupants = self.inspect_all(port)
        return occupants[0] if occupants else None

    def inspect_all(self, port: int) -> List[ProcessInfo]:
        """Every process listening on ``port``; empty when nothing can be determined."""
        try:
            raw = self.os_utility.list_processes_on_port(port)
        except DependencyMissingError as exc:
            logger.warning("Cannot inspect port %s: %s", port, exc)
            return []
        except subprocess.TimeoutExpired as exc:
            logger.warning("Port inspection for %s timed out after %ss", port, exc.timeout)
            return []
        except OSError as exc:
            logger.warning("Port inspection for %s failed: %s", port, exc)
            return []

        enriched: List[ProcessInfo] = []
        for info in raw:
            name, workspace = extract_project_identity(info)
            enriched.append(dataclasses.replace(info, project_name=name, workspace_path=workspace))
        return enriched


__all__ = ["ProcessInspector", "extract_project_identity"]
