"""Platform-specific socket enumeration and signal delivery.

Two backends share one contract:

- ``PosixProcessUtility``: ``lsof`` (falling back to ``ss``) to find the
  listeners on a port, ``os.kill``/``os.killpg`` for signals
- ``WindowsProcessUtility``: ``netstat -ano`` for listeners, console
  control events and ``taskkill`` for signals

Process metadata (command line, cwd, start time) comes from psutil on
both platforms. The command-output parsers are module-level functions so
they can be exercised without the tools installed.
"""
from __future__ import annotations

import logging
import os
import re
import signal
import subprocess
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

import psutil

from forkery.core.exceptions import DependencyMissingError
from forkery.core.utils.subprocess import run_with_timeout

from .models import ProcessInfo

logger = logging.getLogger(__name__)

_SS_PID_RE = re.compile(r"pid=(\d+)")


class ProcessSignal(str, Enum):
    """Escalation levels understood by every backend."""

    INTERRUPT = "interrupt"
    TERMINATE = "terminate"
    KILL = "kill"


def parse_lsof_pids(output: str) -> List[int]:
    """Parse ``lsof -t`` output (one PID per line), de-duplicated in order."""
    pids: List[int] = []
    for line in (output or "").splitlines():
        line = line.strip()
        if line.isdigit():
            pid = int(line)
            if pid not in pids:
                pids.append(pid)
    return pids


def parse_ss_pids(output: str) -> List[int]:
    """Parse ``ss -ltnp`` output; PIDs appear as ``pid=<n>`` in the users column."""
    pids: List[int] = []
    for match in _SS_PID_RE.finditer(output or ""):
        pid = int(match.group(1))
        if pid not in pids:
            pids.append(pid)
    return pids


def parse_netstat_pids(output: str, port: int) -> List[int]:
    """Parse ``netstat -ano`` output for TCP listeners on ``port``.

    Only the local-address column is matched so connections *to* a remote
    port with the same number are ignored.
    """
    pids: List[int] = []
    suffix = f":{port}"
    for line in (output or "").splitlines():
        parts = line.split()
        if len(parts) < 5 or parts[0].upper() != "TCP":
            continue
        local_addr, state, pid_text = parts[1], parts[3], parts[-1]
        if state.upper() != "LISTENING" or not local_addr.endswith(suffix):
            continue
        if not pid_text.isdigit():
            continue
        pid = int(pid_text)
        if pid > 0 and pid not in pids:
            pids.append(pid)
    return pids


class OsProcessUtility(ABC):
    """Contract for listing port listeners and signalling processes."""

    name = "abstract"

    def __init__(self, *, command_timeout: Optional[float] = None, repo_root: Optional[Path] = None) -> None:
        self.command_timeout = command_timeout
        self.repo_root = repo_root

    @abstractmethod
    def find_pids_on_port(self, port: int) -> List[int]:
        """PIDs with a TCP socket listening on ``port``.

        Raises:
            DependencyMissingError: When no enumeration tool is installed.
        """

    @abstractmethod
    def send_signal(self, pid: int, sig: ProcessSignal, *, group: bool = False) -> bool:
        """Deliver ``sig`` to ``pid`` (its whole group when ``group``).

        Returns True when the signal was delivered.
        """

    def list_processes_on_port(self, port: int) -> List[ProcessInfo]:
        infos: List[ProcessInfo] = []
        for pid in self.find_pids_on_port(port):
            info = self.describe(pid)
            if info is not None:
                infos.append(info)
        return infos

    def describe(self, pid: int) -> Optional[ProcessInfo]:
        """Metadata for ``pid`` via psutil; None when the process is gone.

        Fields psutil is not allowed to read are left empty.
        """
        try:
            proc = psutil.Process(pid)
            with proc.oneshot():
                try:
                    cmdline = proc.cmdline()
                except (psutil.AccessDenied, psutil.ZombieProcess):
                    cmdline = []
                try:
                    name = proc.name()
                except (psutil.AccessDenied, psutil.ZombieProcess):
                    name = ""
                try:
                    cwd: Optional[str] = proc.cwd() or None
                except (psutil.AccessDenied, psutil.ZombieProcess, OSError):
                    cwd = None
                try:
                    started_at: Optional[datetime] = datetime.fromtimestamp(proc.create_time())
                except (psutil.AccessDenied, psutil.ZombieProcess):
                    started_at = None
        except psutil.NoSuchProcess:
            return None
        except psutil.Error as exc:
            logger.debug("Incomplete process data for pid %s: %s", pid, exc)
            return ProcessInfo(pid=pid, command="")

        command = cmdline[0] if cmdline else name
        return ProcessInfo(
            pid=pid,
            command=command,
            args=tuple(cmdline[1:]),
            working_directory=cwd,
            started_at=started_at,
        )

    def is_alive(self, pid: int) -> bool:
        """True while ``pid`` exists and is not a zombie."""
        try:
            proc = psutil.Process(pid)
            return proc.status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            # Exists but protected.
            return True

    def _run(self, argv: List[str]) -> subprocess.CompletedProcess:
        return run_with_timeout(argv, timeout=self.command_timeout, repo_root=self.repo_root)


class PosixProcessUtility(OsProcessUtility):
    name = "posix"

    _SIGNALS = {
        ProcessSignal.INTERRUPT: signal.SIGINT,
        ProcessSignal.TERMINATE: signal.SIGTERM,
    }

    def find_pids_on_port(self, port: int) -> List[int]:
        try:
            result = self._run(["lsof", "-nP", f"-iTCP:{port}", "-sTCP:LISTEN", "-t"])
        except FileNotFoundError:
            logger.debug("lsof not found; falling back to ss")
            return self._find_pids_with_ss(port)
        # lsof exits 1 with no output when nothing matches.
        return parse_lsof_pids(result.stdout)

    def _find_pids_with_ss(self, port: int) -> List[int]:
        try:
            result = self._run(["ss", "-ltnp", "sport", "=", f":{port}"])
        except FileNotFoundError as exc:
            raise DependencyMissingError(
                "Neither lsof nor ss is available to inspect listening ports",
                tool="lsof",
            ) from exc
        return parse_ss_pids(result.stdout)

    def send_signal(self, pid: int, sig: ProcessSignal, *, group: bool = False) -> bool:
        signum = self._SIGNALS.get(sig, getattr(signal, "SIGKILL", signal.SIGTERM))
        if group:
            try:
                os.killpg(pid, signum)
                return True
            except ProcessLookupError:
                pass
            except PermissionError as exc:
                logger.warning("Not permitted to signal process group %s: %s", pid, exc)
        try:
            os.kill(pid, signum)
            return True
        except ProcessLookupError:
            return False
        except PermissionError as exc:
            logger.warning("Not permitted to signal pid %s: %s", pid, exc)
            return False


class WindowsProcessUtility(OsProcessUtility):
    name = "windows"

    def find_pids_on_port(self, port: int) -> List[int]:
        try:
            result = self._run(["netstat", "-ano", "-p", "TCP"])
        except FileNotFoundError as exc:
            raise DependencyMissingError("netstat is not available", tool="netstat") from exc
        return parse_netstat_pids(result.stdout, port)

    def send_signal(self, pid: int, sig: ProcessSignal, *, group: bool = False) -> bool:
        if sig is ProcessSignal.INTERRUPT and group:
            # Console control events only reach processes started in their own group.
            ctrl_break = getattr(signal, "CTRL_BREAK_EVENT", None)
            if ctrl_break is not None:
                try:
                    os.kill(pid, ctrl_break)
                    return True
                except OSError as exc:
                    logger.debug("CTRL_BREAK to %s failed, using taskkill: %s", pid, exc)

        argv = ["taskkill", "/PID", str(pid), "/T"]
        if sig is ProcessSignal.KILL:
            argv.append("/F")
        try:
            result = self._run(argv)
        except FileNotFoundError as exc:
            raise DependencyMissingError("taskkill is not available", tool="taskkill") from exc
        return result.returncode == 0


def select_os_utility(
    *, command_timeout: Optional[float] = None, repo_root: Optional[Path] = None
) -> OsProcessUtility:
    """Pick the backend for the running platform."""
    if os.name == "nt":
        return WindowsProcessUtility(command_timeout=command_timeout, repo_root=repo_root)
    return PosixProcessUtility(command_timeout=command_timeout, repo_root=repo_root)


__all__ = [
    "OsProcessUtility",
    "PosixProcessUtility",
    "ProcessSignal",
    "WindowsProcessUtility",
    "parse_lsof_pids",
    "parse_netstat_pids",
    "parse_ss_pids",
    "select_os_utility",
]
