from __future__ import annotations

import subprocess
import threading
import uuid
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Deque, Dict, List, Mapping, Optional, Tuple

from forkery.core.exceptions import RunStateError, ShutdownVerificationWarning
from forkery.core.ports.models import ResolutionResult

STDERR_TAIL_LINES = 50


class Framework(str, Enum):
    NEXT = "next"
    REACT = "react"
    VITE = "vite"
    LIVE_SERVER = "live-server"
    GATSBY = "gatsby"
    ASTRO = "astro"
    REMIX = "remix"
    FULLSTACK = "fullstack"
    GENERIC = "generic"

    @classmethod
    def parse(cls, value: "Framework | str") -> "Framework":
        """Framework for ``value``; unknown names map to GENERIC."""
        if isinstance(value, Framework):
            return value
        normalized = str(value or "").strip().lower().replace("_", "-")
        for member in cls:
            if member.value == normalized:
                return member
        return cls.GENERIC


class RunState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    FAILED = "failed"


# STARTING/RUNNING -> IDLE only on a clean self-exit; FAILED -> IDLE on stop.
_TRANSITIONS: Dict[RunState, Tuple[RunState, ...]] = {
    RunState.IDLE: (RunState.STARTING, RunState.FAILED),
    RunState.STARTING: (RunState.RUNNING, RunState.STOPPING, RunState.IDLE, RunState.FAILED),
    RunState.RUNNING: (RunState.STOPPING, RunState.IDLE, RunState.FAILED),
    RunState.STOPPING: (RunState.IDLE, RunState.FAILED),
    RunState.FAILED: (RunState.IDLE,),
}


def can_transition(current: RunState, target: RunState) -> bool:
    return target in _TRANSITIONS[current]


@dataclass(frozen=True)
class ProjectConfig:
    """Immutable input to one run."""

    framework: Framework
    desired_port: int
    workspace_path: Path
    script: str = "dev"
    package_manager: str = "npm"
    env: Mapping[str, str] = field(default_factory=dict)
    capture_output: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "framework", Framework.parse(self.framework))
        object.__setattr__(self, "workspace_path", Path(self.workspace_path))
        object.__setattr__(self, "env", dict(self.env or {}))
        if not 0 < int(self.desired_port) <= 65535:
            raise ValueError(f"desired_port out of range: {self.desired_port}")
        if not str(self.script).strip():
            raise ValueError("script must not be empty")


@dataclass(eq=False)
class RunHandle:
    """Live reference to one spawned dev server; owned by one Orchestrator.

    State changes go through ``transition`` so illegal combinations such as
    "running and starting" cannot exist.
    """

    project: ProjectConfig
    bound_port: int
    handle_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: RunState = RunState.IDLE
    process: Optional[subprocess.Popen] = None
    own_process_group: bool = False
    resolution: Optional[ResolutionResult] = None
    warnings: List[str] = field(default_factory=list)
    exit_code: Optional[int] = None
    stderr_tail: Deque[str] = field(default_factory=lambda: deque(maxlen=STDERR_TAIL_LINES))
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)
    _settled: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    _exited: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    shutdown_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process is not None else None

    @property
    def is_active(self) -> bool:
        return self.state in (RunState.STARTING, RunState.RUNNING, RunState.STOPPING)

    def transition(self, target: RunState) -> RunState:
        """Move to ``target``; returns the previous state.

        Raises:
            RunStateError: When the transition is not allowed.
        """
        with self._lock:
            current = self.state
            if not can_transition(current, target):
                raise RunStateError(
                    f"Illegal run state transition {current.value} -> {target.value}",
                    context={"handle": self.handle_id, "from": current.value, "to": target.value},
                )
            self.state = target
            if target is RunState.RUNNING:
                self._settled.set()
            return current

    def try_transition(self, target: RunState) -> bool:
        with self._lock:
            if not can_transition(self.state, target):
                return False
            self.transition(target)
            return True

    def mark_ready(self, port: int) -> bool:
        """Move to RUNNING on ``port``; a late signal after a stop changes nothing."""
        with self._lock:
            if not self.try_transition(RunState.RUNNING):
                return False
            self.bound_port = port
            return True

    def record_stderr(self, line: str) -> None:
        with self._lock:
            self.stderr_tail.append(line)

    def stderr_text(self) -> str:
        with self._lock:
            return "\n".join(self.stderr_tail)

    def settle_exit(self, code: Optional[int]) -> Optional[RunState]:
        """Record the exit and move to IDLE (clean) or FAILED.

        Returns the new state, or None when a stop already owns the
        transition.
        """
        with self._lock:
            self.exit_code = code
            target = None
            if self.state in (RunState.STARTING, RunState.RUNNING):
                target = RunState.IDLE if code == 0 else RunState.FAILED
                if can_transition(self.state, target):
                    self.state = target
                else:
                    target = None
        self._exited.set()
        self._settled.set()
        return target

    @property
    def has_exited(self) -> bool:
        return self._exited.is_set()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is ready or exits; True only when ready."""
        self._settled.wait(timeout)
        return self.state is RunState.RUNNING

    def wait_for_exit(self, timeout: Optional[float] = None) -> bool:
        return self._exited.wait(timeout)


@dataclass(frozen=True)
class StopResult:
    stopped: bool
    port: Optional[int] = None
    warnings: Tuple[ShutdownVerificationWarning, ...] = ()
    timed_out: bool = False
    deferred: bool = False
    duration_seconds: float = 0.0

    @classmethod
    def nothing_running(cls) -> "StopResult":
        return cls(stopped=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "stopped": self.stopped,
            "port": self.port,
            "warnings": [str(w) for w in self.warnings],
            "timed_out": self.timed_out,
            "deferred": self.deferred,
            "duration_seconds": round(self.duration_seconds, 3),
        }


__all__ = [
    "Framework",
    "ProjectConfig",
    "RunHandle",
    "RunState",
    "StopResult",
    "can_transition",
]
