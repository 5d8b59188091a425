"""Scriptable stand-ins for OS-facing collaborators.

The fakes keep just enough state to behave like the real thing from the
resolver's point of view: killing the last listener on a port frees that
port in the paired ``FakePortAvailabilityChecker``.
"""
from __future__ import annotations

import subprocess
import time
from typing import Dict, Iterable, List, Optional, Set, Tuple

from forkery.core.ports.availability import PortAvailabilityChecker
from forkery.core.ports.models import ConflictAction, PortConflictDecision
from forkery.core.process.models import ProcessInfo
from forkery.core.process.os_utility import OsProcessUtility, ProcessSignal


class FakePortAvailabilityChecker(PortAvailabilityChecker):
    def __init__(self, busy: Iterable[int] = ()) -> None:
        super().__init__(host="127.0.0.1", timeout=0.1)
        self.busy: Set[int] = set(busy)
        self.calls: List[int] = []

    def is_available(self, port: int, timeout: Optional[float] = None) -> bool:
        self.calls.append(port)
        return port not in self.busy

    def occupy(self, port: int) -> None:
        self.busy.add(port)

    def release(self, port: int) -> None:
        self.busy.discard(port)


class FakeOsProcessUtility(OsProcessUtility):
    name = "fake"

    def __init__(
        self,
        listeners: Optional[Dict[int, List[ProcessInfo]]] = None,
        *,
        checker: Optional[FakePortAvailabilityChecker] = None,
        survivors: Iterable[int] = (),
        find_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(command_timeout=0.5)
        self.listeners: Dict[int, List[ProcessInfo]] = {p: list(v) for p, v in (listeners or {}).items()}
        self.alive: Set[int] = {info.pid for infos in self.listeners.values() for info in infos}
        self.checker = checker
        self.survivors: Set[int] = set(survivors)
        self.find_error = find_error
        self.find_calls: List[int] = []
        self.signals: List[Tuple[int, ProcessSignal, bool]] = []

    def find_pids_on_port(self, port: int) -> List[int]:
        self.find_calls.append(port)
        if self.find_error is not None:
            raise self.find_error
        return [info.pid for info in self.listeners.get(port, [])]

    def describe(self, pid: int) -> Optional[ProcessInfo]:
        for infos in self.listeners.values():
            for info in infos:
                if info.pid == pid:
                    return info
        return None

    def is_alive(self, pid: int) -> bool:
        return pid in self.alive

    def send_signal(self, pid: int, sig: ProcessSignal, *, group: bool = False) -> bool:
        self.signals.append((pid, sig, group))
        if pid not in self.alive:
            return False
        if pid not in self.survivors and sig in (ProcessSignal.TERMINATE, ProcessSignal.KILL):
            self._kill(pid)
        return True

    def _kill(self, pid: int) -> None:
        self.alive.discard(pid)
        for port, infos in self.listeners.items():
            infos[:] = [i for i in infos if i.pid != pid]
            if not infos and self.checker is not None:
                self.checker.release(port)

    @property
    def signalled_pids(self) -> List[int]:
        return [pid for pid, _sig, _group in self.signals]


class ScriptedDecisionProvider:
    """Returns queued decisions and records every question asked."""

    def __init__(self, *decisions: PortConflictDecision) -> None:
        self.decisions = list(decisions)
        self.asked: List[Tuple[int, ProcessInfo]] = []

    def ask_conflict(self, port: int, info: ProcessInfo) -> PortConflictDecision:
        self.asked.append((port, info))
        if self.decisions:
            return self.decisions.pop(0)
        return PortConflictDecision(action=ConflictAction.CANCEL, reason="script exhausted")


def dev_server_process(pid: int, *, workspace: str = "/work/demo-app", command: str = "node") -> ProcessInfo:
    return ProcessInfo(
        pid=pid,
        command=command,
        args=("/usr/local/bin/npm", "run", "dev"),
        working_directory=workspace,
        project_name=workspace.rstrip("/").rsplit("/", 1)[-1],
        workspace_path=workspace,
    )


def foreign_process(pid: int) -> ProcessInfo:
    return ProcessInfo(pid=pid, command="/usr/sbin/postgres", args=("-D", "/var/lib/pg"))


class StubProcess:
    """Quacks like ``subprocess.Popen`` for shutdown paths.

    ``exits_on_signal`` False makes every ``wait`` run out its timeout.
    """

    def __init__(self, pid: int, *, exits_on_signal: bool = True) -> None:
        self.pid = pid
        self.args = ["npm", "run", "dev"]
        self.returncode: Optional[int] = None
        self.exits_on_signal = exits_on_signal
        self.wait_calls: List[Optional[float]] = []

    def poll(self) -> Optional[int]:
        return self.returncode

    def wait(self, timeout: Optional[float] = None) -> int:
        self.wait_calls.append(timeout)
        if not self.exits_on_signal:
            time.sleep(timeout or 0)
            raise subprocess.TimeoutExpired(self.args, timeout)
        self.returncode = -2
        return self.returncode
