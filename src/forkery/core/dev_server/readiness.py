"""Readiness detection for spawned dev servers.

Two sources share one ``ReadyLatch`` so ``ready`` fires at most once per
run: the output detector (token match on stdout/stderr lines) and, when
output is not observable, a TCP connect poller.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Pattern, Sequence, Tuple

from forkery.core.config.domains.readiness import DEFAULT_GENERIC_TOKENS, TokenGroup, normalize_token_groups
from forkery.core.ports.availability import accepts_connections

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadinessSettings:
    """Readiness tables and poller timing, detached from the config layer."""

    tokens: dict = field(default_factory=dict)
    port_patterns: Tuple[Pattern[str], ...] = ()
    poll_interval_seconds: float = 2.0
    poll_timeout_seconds: float = 300.0
    probe_host: str = "127.0.0.1"

    @classmethod
    def from_config(cls, repo_root: Optional[Path] = None) -> "ReadinessSettings":
        from forkery.core.config.domains import PortsConfig, ReadinessConfig

        cfg = ReadinessConfig(repo_root=repo_root)
        return cls(
            tokens=dict(cfg.tokens),
            port_patterns=tuple(cfg.port_patterns),
            poll_interval_seconds=cfg.poll_interval_seconds,
            poll_timeout_seconds=cfg.poll_timeout_seconds,
            probe_host=PortsConfig(repo_root=repo_root).probe_host,
        )

    def tokens_for(self, framework: str) -> List[TokenGroup]:
        groups = self.tokens.get(str(framework).lower())
        if groups:
            return list(groups)
        return list(self.tokens.get("generic") or normalize_token_groups(DEFAULT_GENERIC_TOKENS))


class ReadyLatch:
    """Fires its callback exactly once, whichever source gets there first."""

    def __init__(self, callback: Callable[[int], None]) -> None:
        self._callback = callback
        self._lock = threading.Lock()
        self._fired = False

    @property
    def fired(self) -> bool:
        return self._fired

    def fire(self, port: int) -> bool:
        with self._lock:
            if self._fired:
                return False
            self._fired = True
        self._callback(port)
        return True


def line_matches(line: str, groups: Sequence[TokenGroup]) -> bool:
    lowered = line.lower()
    return any(all(token in lowered for token in group) for group in groups)


class ReadinessDetector:
    """Feeds output lines through the framework's token table.

    A line announcing a different local port than the one requested
    updates the reported port (and notifies ``on_port``) before or after
    readiness, whichever order the tool prints them in.
    """

    def __init__(
        self,
        groups: Sequence[TokenGroup],
        latch: ReadyLatch,
        *,
        port: int,
        port_patterns: Sequence[Pattern[str]] = (),
        on_port: Optional[Callable[[int], None]] = None,
    ) -> None:
        self.groups = list(groups)
        self.latch = latch
        self.port = port
        self.port_patterns = list(port_patterns)
        self._on_port = on_port

    def feed(self, line: str) -> bool:
        """Inspect one line; True if it triggered readiness."""
        reported = self._reported_port(line)
        if reported is not None and reported != self.port:
            logger.info("Dev server reports port %s instead of %s", reported, self.port)
            self.port = reported
            if self._on_port is not None:
                self._on_port(reported)

        if self.latch.fired or not line_matches(line, self.groups):
            return False
        return self.latch.fire(self.port)

    def _reported_port(self, line: str) -> Optional[int]:
        for pattern in self.port_patterns:
            match = pattern.search(line)
            if match:
                try:
                    port = int(match.group(1))
                except (IndexError, ValueError):
                    continue
                if 0 < port <= 65535:
                    return port
        return None


class ReadinessPoller(threading.Thread):
    """Connects to the port every ``interval`` seconds until it accepts or ``timeout`` passes."""

    def __init__(
        self,
        latch: ReadyLatch,
        *,
        host: str,
        port: int,
        interval: float,
        timeout: float,
    ) -> None:
        super().__init__(name=f"forkery-readiness-{port}", daemon=True)
        self.latch = latch
        self.host = host
        self.port = port
        self.interval = max(0.05, float(interval))
        self.timeout = float(timeout)
        self._stop_event = threading.Event()

    def cancel(self) -> None:
        self._stop_event.set()

    def run(self) -> None:
        deadline = time.monotonic() + self.timeout
        while not self._stop_event.is_set() and not self.latch.fired:
            if self._accepts_connection():
                self.latch.fire(self.port)
                return
            if time.monotonic() >= deadline:
                logger.warning("Port %s never accepted connections within %ss", self.port, self.timeout)
                return
            self._stop_event.wait(self.interval)

    def _accepts_connection(self) -> bool:
        return accepts_connections(self.host, self.port, min(1.0, self.interval))


__all__ = [
    "ReadinessDetector",
    "ReadinessPoller",
    "ReadinessSettings",
    "ReadyLatch",
    "line_matches",
]
