"""Side-effect-free "is this port free right now?" probe."""
from __future__ import annotations

import logging
import os
import socket
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_LOOPBACK_HOSTS = {"127.0.0.1", "localhost"}


def probe_targets(host: str) -> list[tuple[socket.AddressFamily, str]]:
    """Addresses to try when connecting to ``host``; loopback adds ``::1``."""
    targets = [(socket.AF_INET, "127.0.0.1" if host == "localhost" else host)]
    if host in _LOOPBACK_HOSTS and socket.has_ipv6:
        targets.append((socket.AF_INET6, "::1"))
    return targets


def accepts_connections(host: str, port: int, timeout: float) -> bool:
    """True when something accepts a TCP connection on any probe target."""
    for family, address in probe_targets(host):
        try:
            with socket.socket(family, socket.SOCK_STREAM) as s:
                s.settimeout(timeout)
                if s.connect_ex((address, port)) == 0:
                    return True
        except OSError:
            # Address family unusable on this host.
            continue
    return False


def ephemeral_port() -> int:
    """Ask the OS for a currently unused TCP port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        return int(s.getsockname()[1])


class PortAvailabilityChecker:
    """Connect-then-bind probe.

    A port is available when nothing accepts a connection on it (IPv4
    loopback, plus IPv6 loopback where supported, since some dev servers
    bind ``::1`` only) and a fresh socket can bind it on all interfaces.
    Any probe failure reads as busy.
    """

    def __init__(self, host: str = "127.0.0.1", timeout: float = 1.0) -> None:
        self.host = host
        self.timeout = float(timeout)

    @classmethod
    def from_config(cls, repo_root: Optional[Path] = None) -> "PortAvailabilityChecker":
        from forkery.core.config.domains import PortsConfig, TimeoutsConfig

        return cls(
            host=PortsConfig(repo_root=repo_root).probe_host,
            timeout=TimeoutsConfig(repo_root=repo_root).port_probe_seconds,
        )

    def is_available(self, port: int, timeout: Optional[float] = None) -> bool:
        """True when ``port`` is free right now. Never raises."""
        try:
            port = int(port)
            if not 0 < port <= 65535:
                return False
            probe_timeout = self.timeout if timeout is None else float(timeout)
            if accepts_connections(self.host, port, probe_timeout):
                return False
            return self._can_bind(port)
        except Exception as exc:  # noqa: BLE001 - any probe failure means "busy"
            logger.debug("Port probe for %s failed: %s", port, exc)
            return False

    def _can_bind(self, port: int) -> bool:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            if os.name == "posix":
                # Lets the probe ignore TIME_WAIT leftovers of a server that just exited.
                s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            try:
                s.bind(("", port))
            except OSError:
                return False
        return True


__all__ = ["PortAvailabilityChecker", "accepts_connections", "ephemeral_port", "probe_targets"]
