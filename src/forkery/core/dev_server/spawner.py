"""Launch a dev server child process and pump its output.

The child runs ``<package manager> run <script>`` in the workspace with
``PORT`` set to the resolved port, inside its own process group so the
whole tree can be signalled on shutdown.
"""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
import threading
from pathlib import Path
from typing import IO, Dict, List, Optional

from forkery.core.exceptions import DependencyMissingError, ProcessSpawnError, RunStateError
from forkery.core.utils.subprocess import popen_process_group_kwargs

from .events import EventEmitter
from .models import ProjectConfig, RunHandle, RunState
from .readiness import ReadinessDetector, ReadinessPoller, ReadinessSettings, ReadyLatch

logger = logging.getLogger(__name__)

_READER_JOIN_SECONDS = 2.0


def build_command(config: ProjectConfig) -> List[str]:
    """argv for running ``config.script`` through its package manager."""
    manager = str(config.package_manager or "npm").strip()
    if Path(manager).stem.lower() == "yarn":
        return [manager, config.script]
    return [manager, "run", config.script]


def resolve_executable(name: str) -> str:
    """Absolute path of ``name``.

    Raises:
        DependencyMissingError: When it is not on PATH.
    """
    if os.path.isabs(name) and os.access(name, os.X_OK):
        return name
    found = shutil.which(name)
    if not found:
        raise DependencyMissingError(f"{name} was not found on PATH", tool=name)
    return found


def build_env(config: ProjectConfig, port: int, base_env: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    env = dict(os.environ if base_env is None else base_env)
    env.setdefault("NODE_ENV", "development")
    env.update(config.env or {})
    # The resolved port always wins over user env.
    env["PORT"] = str(port)
    return env


class ProcessSpawner:
    def __init__(self, settings: Optional[ReadinessSettings] = None) -> None:
        self.settings = settings or ReadinessSettings()

    @classmethod
    def from_config(cls, repo_root: Optional[Path] = None) -> "ProcessSpawner":
        return cls(ReadinessSettings.from_config(repo_root))

    def spawn(self, handle: RunHandle, events: EventEmitter) -> RunHandle:
        """Start the child for ``handle`` (which must be STARTING).

        Raises:
            ProcessSpawnError: The workspace or executable is missing, or
                the OS refused to start the process.
            RunStateError: ``handle`` is not STARTING.
        """
        if handle.state is not RunState.STARTING:
            raise RunStateError(
                f"Cannot spawn from state {handle.state.value}", context={"handle": handle.handle_id}
            )

        config = handle.project
        argv = build_command(config)
        workspace = Path(config.workspace_path)
        if not workspace.is_dir():
            raise ProcessSpawnError(
                f"Workspace does not exist: {workspace}", command=argv, context={"workspace": str(workspace)}
            )
        try:
            argv[0] = resolve_executable(argv[0])
        except DependencyMissingError as exc:
            raise ProcessSpawnError(str(exc), command=argv, context={"tool": exc.tool}) from exc

        stream = subprocess.PIPE if config.capture_output else None
        logger.info("Starting %s in %s on port %s", " ".join(argv), workspace, handle.bound_port)
        try:
            proc = subprocess.Popen(  # noqa: S603
                argv,
                cwd=str(workspace),
                env=build_env(config, handle.bound_port),
                stdin=subprocess.DEVNULL,
                stdout=stream,
                stderr=stream,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                **popen_process_group_kwargs(),
            )
        except OSError as exc:
            raise ProcessSpawnError(
                f"Failed to start {argv[0]}: {exc}", command=argv, stderr=str(exc)
            ) from exc

        handle.process = proc
        handle.own_process_group = bool(popen_process_group_kwargs())

        latch = ReadyLatch(lambda port: self._on_ready(handle, events, port))
        readers: List[threading.Thread] = []
        poller: Optional[ReadinessPoller] = None

        if config.capture_output:
            detector = ReadinessDetector(
                self.settings.tokens_for(config.framework.value),
                latch,
                port=handle.bound_port,
                port_patterns=self.settings.port_patterns,
            )
            for name, pipe in (("stdout", proc.stdout), ("stderr", proc.stderr)):
                if pipe is None:
                    continue
                reader = threading.Thread(
                    target=self._pump,
                    args=(pipe, name, handle, events, detector),
                    name=f"forkery-{name}-{proc.pid}",
                    daemon=True,
                )
                reader.start()
                readers.append(reader)
        else:
            poller = ReadinessPoller(
                latch,
                host=self.settings.probe_host,
                port=handle.bound_port,
                interval=self.settings.poll_interval_seconds,
                timeout=self.settings.poll_timeout_seconds,
            )
            poller.start()

        waiter = threading.Thread(
            target=self._wait,
            args=(proc, handle, events, latch, readers, poller),
            name=f"forkery-wait-{proc.pid}",
            daemon=True,
        )
        waiter.start()
        return handle

    # ------------------------------------------------------------------
    # Threads
    # ------------------------------------------------------------------

    @staticmethod
    def _pump(
        pipe: IO[str],
        stream: str,
        handle: RunHandle,
        events: EventEmitter,
        detector: ReadinessDetector,
    ) -> None:
        try:
            for raw in iter(pipe.readline, ""):
                line = raw.rstrip("\r\n")
                if stream == "stderr":
                    handle.record_stderr(line)
                events.emit("output", line, stream)
                detector.feed(line)
        except (OSError, ValueError) as exc:
            logger.debug("%s reader for pid %s stopped: %s", stream, handle.pid, exc)
        finally:
            try:
                pipe.close()
            except OSError:
                pass

    @staticmethod
    def _on_ready(handle: RunHandle, events: EventEmitter, port: int) -> None:
        if handle.mark_ready(port):
            logger.info("Dev server ready on port %s (pid %s)", port, handle.pid)
            events.emit("ready", port)

    @staticmethod
    def _wait(
        proc: subprocess.Popen,
        handle: RunHandle,
        events: EventEmitter,
        latch: ReadyLatch,
        readers: List[threading.Thread],
        poller: Optional[ReadinessPoller],
    ) -> None:
        code = proc.wait()
        for reader in readers:
            reader.join(_READER_JOIN_SECONDS)
        if poller is not None:
            poller.cancel()

        was_ready = latch.fired
        new_state = handle.settle_exit(code)
        logger.info("Dev server pid %s exited with code %s", proc.pid, code)

        if new_state is RunState.FAILED:
            stderr = handle.stderr_text()
            if was_ready:
                message = f"Dev server exited unexpectedly with code {code}"
            else:
                message = f"Dev server exited with code {code} before it was ready"
            events.emit(
                "error",
                ProcessSpawnError(
                    message,
                    command=list(proc.args) if isinstance(proc.args, (list, tuple)) else [str(proc.args)],
                    stderr=stderr,
                    exit_code=code,
                ),
            )
        events.emit("exit", code)


__all__ = ["ProcessSpawner", "build_command", "build_env", "resolve_executable"]
