from __future__ import annotations

"""Subprocess helpers with config-driven timeouts.

- Commands are argv lists; never ``shell=True``
- Every call is bounded by ``timeouts.os_command_seconds`` unless the
  caller passes an explicit timeout
- Child processes can be placed in their own process group so the whole
  tree can be signalled
"""

import logging
import os
import shlex
import subprocess
from pathlib import Path
from typing import Any, Optional, Sequence

logger = logging.getLogger(__name__)


def _flatten_cmd(cmd: Any) -> Sequence[str]:
    if isinstance(cmd, (list, tuple)):
        return [str(p) for p in cmd]
    return shlex.split(str(cmd))


def popen_process_group_kwargs() -> dict[str, Any]:
    """Popen kwargs that start the child in a new session / process group."""
    if os.name == "posix":
        return {"start_new_session": True}
    if os.name == "nt":
        creationflags = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", None)
        if isinstance(creationflags, int):
            return {"creationflags": creationflags}
    return {}


def configured_timeout(repo_root: Optional[Path] = None) -> float:
    """Timeout for OS utility commands, from ``timeouts.os_command_seconds``."""
    from forkery.core.config.domains import TimeoutsConfig

    return TimeoutsConfig(repo_root=repo_root).os_command_seconds


def run_with_timeout(
    cmd: Any,
    *,
    timeout: Optional[float] = None,
    repo_root: Optional[Path] = None,
    **kwargs: Any,
) -> subprocess.CompletedProcess:
    """Run a command with captured text output and a bounded timeout.

    Args:
        cmd: Command list/str; strings are split with shlex.
        timeout: Explicit timeout; defaults to the configured OS command timeout.
        repo_root: Project root used to look up the configured timeout.
        **kwargs: Additional arguments forwarded to ``subprocess.run``.

    Raises:
        FileNotFoundError: When the executable does not exist.
        subprocess.TimeoutExpired: When the command exceeds its timeout.
    """
    argv = list(_flatten_cmd(cmd))
    effective = timeout if timeout is not None else configured_timeout(repo_root)
    kwargs.setdefault("capture_output", True)
    kwargs.setdefault("text", True)
    kwargs.setdefault("check", False)
    logger.debug("Running %s (timeout=%ss)", argv, effective)
    return subprocess.run(argv, timeout=max(0.1, float(effective)), **kwargs)


__all__ = ["popen_process_group_kwargs", "configured_timeout", "run_with_timeout"]
