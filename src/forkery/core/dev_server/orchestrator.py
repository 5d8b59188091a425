"""Top-level start/stop facade for one dev server at a time.

``start`` resolves a port, spawns the child and returns its handle;
``stop`` shuts it down with verification. A ``stop`` that arrives while
``start`` is still resolving is remembered and honoured as soon as the
start produces (or would produce) a process.
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Optional

from forkery.core.exceptions import RunStateError
from forkery.core.ports.alternatives import AlternativePortFinder
from forkery.core.ports.availability import PortAvailabilityChecker
from forkery.core.ports.decisions import DecisionProvider
from forkery.core.ports.port_config import PortConfigWriter, ViteConfigPortWriter
from forkery.core.ports.resolver import ConflictResolver
from forkery.core.process.classifier import ProcessClassifier
from forkery.core.process.inspector import ProcessInspector
from forkery.core.process.os_utility import OsProcessUtility, select_os_utility

from .events import EventEmitter
from .models import ProjectConfig, RunHandle, RunState, StopResult
from .shutdown import ShutdownCoordinator
from .spawner import ProcessSpawner

logger = logging.getLogger(__name__)


class Orchestrator:
    def __init__(
        self,
        resolver: ConflictResolver,
        spawner: ProcessSpawner,
        shutdown: ShutdownCoordinator,
        events: Optional[EventEmitter] = None,
    ) -> None:
        self.resolver = resolver
        self.spawner = spawner
        self.shutdown = shutdown
        self.events = events or EventEmitter()
        self._lock = threading.Lock()
        self._handle: Optional[RunHandle] = None
        self._stop_requested = False
        self._disposed = False

    @classmethod
    def from_config(
        cls,
        decision_provider: DecisionProvider,
        *,
        repo_root: Optional[Path] = None,
        os_utility: Optional[OsProcessUtility] = None,
        checker: Optional[PortAvailabilityChecker] = None,
        port_config_writer: Optional[PortConfigWriter] = None,
    ) -> "Orchestrator":
        """Wire every collaborator from the merged configuration."""
        from forkery.core.config.domains import ProcessConfig, TimeoutsConfig

        timeouts = TimeoutsConfig(repo_root=repo_root)
        utility = os_utility or select_os_utility(
            command_timeout=timeouts.os_command_seconds, repo_root=repo_root
        )
        probe = checker or PortAvailabilityChecker.from_config(repo_root)
        inspector = ProcessInspector(utility)
        resolver = ConflictResolver(
            checker=probe,
            inspector=inspector,
            classifier=ProcessClassifier.from_config(repo_root),
            finder=AlternativePortFinder.from_config(probe, repo_root),
            decision_provider=decision_provider,
            os_utility=utility,
            port_config_writer=port_config_writer or ViteConfigPortWriter(),
            reclaim_grace_seconds=timeouts.reclaim_grace_seconds,
            stop_other_grace_seconds=timeouts.stop_other_grace_seconds,
            settle_seconds=timeouts.post_kill_settle_seconds,
            protected_pids=ProcessConfig(repo_root=repo_root).protected_pids,
            repo_root=repo_root,
        )
        return cls(
            resolver,
            ProcessSpawner.from_config(repo_root),
            ShutdownCoordinator.from_config(utility, inspector, probe, repo_root=repo_root),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def handle(self) -> Optional[RunHandle]:
        return self._handle

    @property
    def state(self) -> RunState:
        handle = self._handle
        return handle.state if handle is not None else RunState.IDLE

    def on(self, event: str, callback: Callable[..., Any]) -> Callable[[], None]:
        return self.events.on(event, callback)

    def start(self, config: ProjectConfig) -> RunHandle:
        """Resolve a port and launch the dev server described by ``config``.

        Returns once the child is spawned; readiness arrives later through
        the ``ready`` event or ``RunHandle.wait_until_ready``.

        Raises:
            RunStateError: A run is already active, or the orchestrator was disposed.
            UserCancelledError: The port conflict was declined.
            PortUnavailableError: No usable port was found.
            ProcessSpawnError: The child could not be launched.
        """
        with self._lock:
            if self._disposed:
                raise RunStateError("Orchestrator has been disposed")
            current = self._handle
            if current is not None and current.is_active:
                raise RunStateError(
                    f"A dev server is already {current.state.value} on port {current.bound_port}",
                    context={"handle": current.handle_id, "state": current.state.value},
                )
            handle = RunHandle(project=config, bound_port=config.desired_port)
            handle.transition(RunState.STARTING)
            self._handle = handle
            self._stop_requested = False

        try:
            resolution = self.resolver.resolve(
                config.desired_port, config.framework.value, config.workspace_path
            )
        except BaseException:
            handle.try_transition(RunState.FAILED)
            raise

        handle.bound_port = resolution.port
        handle.resolution = resolution
        handle.warnings.extend(resolution.warnings)
        if resolution.changed_port:
            logger.info("Using port %s instead of %s", resolution.port, resolution.requested_port)

        if self._stop_requested:
            logger.info("Stop requested during port resolution; not spawning")
            handle.try_transition(RunState.IDLE)
            return handle

        try:
            self.spawner.spawn(handle, self.events)
        except BaseException:
            handle.try_transition(RunState.FAILED)
            raise

        if self._stop_requested:
            logger.info("Stop requested during start; shutting down pid %s", handle.pid)
            self.shutdown.stop(handle)
        return handle

    def stop(self, handle: Optional[RunHandle] = None) -> StopResult:
        """Stop ``handle`` (default: the active run).

        Never raises when nothing is running. A stop that arrives before
        the child exists returns a deferred result; ``start`` finishes the
        job.
        """
        with self._lock:
            target = handle or self._handle
            if target is None:
                return StopResult.nothing_running()
            if target is self._handle:
                self._stop_requested = True
            if target.process is None and target.state is RunState.STARTING:
                return StopResult(stopped=False, port=target.bound_port, deferred=True)

        result = self.shutdown.stop(target)
        with self._lock:
            if target is self._handle and not target.is_active:
                self._handle = None
        return result

    def dispose(self) -> StopResult:
        """Stop any active run and refuse further starts."""
        with self._lock:
            self._disposed = True
        result = self.stop()
        self.events.clear()
        return result

    def __enter__(self) -> "Orchestrator":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.dispose()


__all__ = ["Orchestrator"]
