"""Staged, verified shutdown of a running dev server.

Sequence (each stage bounded by its own timeout, the whole by a safety
net)::

    INTERRUPT group -> wait -> TERMINATE group -> wait -> KILL group -> wait
    sweep remaining listeners on the bound port -> verify the port is free

A port that still looks busy afterwards produces a
``ShutdownVerificationWarning`` on the result; stop never raises for that
or for "nothing running".
"""
from __future__ import annotations

import logging
import subprocess
import threading
import time
from pathlib import Path
from typing import AbstractSet, List, Optional

from forkery.core.exceptions import ShutdownVerificationWarning
from forkery.core.ports.availability import PortAvailabilityChecker
from forkery.core.process.inspector import ProcessInspector
from forkery.core.process.os_utility import OsProcessUtility, ProcessSignal
from forkery.core.process.termination import is_protected_pid, send_audited_signal, wait_for_exit

from .models import RunHandle, RunState, StopResult

logger = logging.getLogger(__name__)

_VERIFY_INTERVAL = 0.1


class ShutdownCoordinator:
    def __init__(
        self,
        os_utility: OsProcessUtility,
        inspector: ProcessInspector,
        checker: PortAvailabilityChecker,
        *,
        interrupt_seconds: float = 2.5,
        terminate_seconds: float = 2.5,
        kill_seconds: float = 1.0,
        safety_seconds: float = 10.0,
        settle_seconds: float = 1.0,
        protected_pids: AbstractSet[int] = frozenset(),
        repo_root: Optional[Path] = None,
    ) -> None:
        self.os_utility = os_utility
        self.inspector = inspector
        self.checker = checker
        self.interrupt_seconds = interrupt_seconds
        self.terminate_seconds = terminate_seconds
        self.kill_seconds = kill_seconds
        self.safety_seconds = safety_seconds
        self.settle_seconds = settle_seconds
        self.protected_pids = frozenset(protected_pids)
        self.repo_root = repo_root

    @classmethod
    def from_config(
        cls,
        os_utility: OsProcessUtility,
        inspector: ProcessInspector,
        checker: PortAvailabilityChecker,
        *,
        repo_root: Optional[Path] = None,
    ) -> "ShutdownCoordinator":
        from forkery.core.config.domains import ProcessConfig, TimeoutsConfig

        timeouts = TimeoutsConfig(repo_root=repo_root)
        return cls(
            os_utility,
            inspector,
            checker,
            interrupt_seconds=timeouts.shutdown_interrupt_seconds,
            terminate_seconds=timeouts.shutdown_terminate_seconds,
            kill_seconds=timeouts.shutdown_kill_seconds,
            safety_seconds=timeouts.shutdown_safety_seconds,
            settle_seconds=timeouts.post_kill_settle_seconds,
            protected_pids=ProcessConfig(repo_root=repo_root).protected_pids,
            repo_root=repo_root,
        )

    def stop(self, handle: Optional[RunHandle]) -> StopResult:
        """Shut ``handle`` down and leave it IDLE.

        Calling this again on an already stopped handle is a no-op.
        """
        if handle is None:
            return StopResult.nothing_running()

        started = time.monotonic()
        with handle.shutdown_lock:
            proc = handle.process
            alive = proc is not None and proc.returncode is None
            if proc is None:
                # Never spawned; whatever holds the port is not ours.
                handle.try_transition(RunState.IDLE)
                return StopResult(stopped=False, port=handle.bound_port)
            if handle.state is RunState.IDLE and not alive:
                return StopResult(stopped=False, port=handle.bound_port)

            # The waiter may already have settled the exit.
            handle.try_transition(RunState.STOPPING)

            warnings: List[ShutdownVerificationWarning] = []
            worker = threading.Thread(
                target=self._sequence,
                args=(handle, alive, warnings),
                name=f"forkery-stop-{handle.handle_id}",
                daemon=True,
            )
            worker.start()
            worker.join(self.safety_seconds)
            timed_out = worker.is_alive()
            if timed_out:
                message = f"Shutdown of port {handle.bound_port} did not finish within {self.safety_seconds}s"
                logger.warning(message)
                warnings.append(ShutdownVerificationWarning(message, port=handle.bound_port))

            handle.try_transition(RunState.IDLE)
            return StopResult(
                stopped=True,
                port=handle.bound_port,
                warnings=tuple(warnings),
                timed_out=timed_out,
                duration_seconds=time.monotonic() - started,
            )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _sequence(self, handle: RunHandle, alive: bool, warnings: List[ShutdownVerificationWarning]) -> None:
        port = handle.bound_port
        if alive and handle.process is not None:
            self._signal_stages(handle, handle.process)
        self._sweep_port(port)
        if not self._wait_until_free(port):
            message = f"Port {port} still appears to be in use after shutdown"
            logger.warning(message)
            warnings.append(ShutdownVerificationWarning(message, port=port))

    def _signal_stages(self, handle: RunHandle, proc: subprocess.Popen) -> None:
        stages = (
            (ProcessSignal.INTERRUPT, self.interrupt_seconds),
            (ProcessSignal.TERMINATE, self.terminate_seconds),
            (ProcessSignal.KILL, self.kill_seconds),
        )
        for sig, timeout in stages:
            if proc.returncode is not None:
                return
            send_audited_signal(
                self.os_utility,
                proc.pid,
                sig,
                reason="stop dev server",
                port=handle.bound_port,
                group=handle.own_process_group,
                repo_root=self.repo_root,
            )
            try:
                proc.wait(timeout=timeout)
                logger.debug("pid %s exited after %s", proc.pid, sig.value)
                return
            except subprocess.TimeoutExpired:
                logger.debug("pid %s survived %s", proc.pid, sig.value)
        logger.warning("Dev server pid %s did not exit after KILL", proc.pid)

    def _sweep_port(self, port: int) -> None:
        for info in self.inspector.inspect_all(port):
            if is_protected_pid(info.pid, self.protected_pids):
                logger.warning("Leaving protected pid %s on port %s", info.pid, port)
                continue
            send_audited_signal(
                self.os_utility,
                info.pid,
                ProcessSignal.KILL,
                reason="orphan listener after stop",
                port=port,
                repo_root=self.repo_root,
            )
            wait_for_exit(self.os_utility, info.pid, self.settle_seconds)

    def _wait_until_free(self, port: int) -> bool:
        deadline = time.monotonic() + self.settle_seconds
        while True:
            if self.checker.is_available(port):
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(_VERIFY_INTERVAL)


__all__ = ["ShutdownCoordinator"]
