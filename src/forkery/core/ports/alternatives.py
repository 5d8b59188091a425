"""Alternative port selection when the desired port is taken."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence

from forkery.core.exceptions import PortUnavailableError

from .availability import PortAvailabilityChecker, ephemeral_port

logger = logging.getLogger(__name__)


class AlternativePortFinder:
    """Walks the framework's conventional ports, then scans, then asks the OS.

    Every candidate is probed immediately before it is returned, so the
    result is never a stale observation.
    """

    def __init__(
        self,
        checker: PortAvailabilityChecker,
        *,
        alternatives: Mapping[str, Sequence[int]],
        generic_count: int = 5,
        scan_range: int = 100,
    ) -> None:
        self.checker = checker
        self.alternatives = {str(k).lower(): list(v) for k, v in alternatives.items()}
        self.generic_count = generic_count
        self.scan_range = scan_range

    @classmethod
    def from_config(
        cls, checker: PortAvailabilityChecker, repo_root: Optional[Path] = None
    ) -> "AlternativePortFinder":
        from forkery.core.config.domains import PortsConfig

        cfg = PortsConfig(repo_root=repo_root)
        return cls(
            checker,
            alternatives=cfg.alternatives,
            generic_count=cfg.generic_alternative_count,
            scan_range=cfg.fallback_scan_range,
        )

    def candidates_for(self, desired_port: int, framework: str) -> List[int]:
        """Conventional alternatives for ``framework``, excluding ``desired_port``."""
        table = self.alternatives.get(str(framework).lower())
        if table is None:
            table = [desired_port + i for i in range(1, self.generic_count + 1)]
        return [p for p in table if p != desired_port and 0 < p <= 65535]

    def find_alternative(
        self, desired_port: int, framework: str, *, exclude: Iterable[int] = ()
    ) -> int:
        """First free alternative to ``desired_port``.

        Raises:
            PortUnavailableError: When no candidate, scanned port or OS-assigned
                port is free.
        """
        tried = {desired_port, *exclude}
        for port in self.candidates_for(desired_port, framework):
            if port in tried:
                continue
            tried.add(port)
            if self.checker.is_available(port):
                return port

        logger.info("Alternative table for %s exhausted; scanning near %s", framework, desired_port)
        upper = min(65535, desired_port + self.scan_range)
        for port in range(desired_port + 1, upper + 1):
            if port in tried:
                continue
            tried.add(port)
            if self.checker.is_available(port):
                return port

        try:
            port = ephemeral_port()
        except OSError as exc:
            raise PortUnavailableError(
                f"No free port available near {desired_port}",
                port=desired_port,
                context={"framework": framework},
            ) from exc
        if port not in tried and self.checker.is_available(port):
            return port

        raise PortUnavailableError(
            f"No free port available near {desired_port}",
            port=desired_port,
            context={"framework": framework},
        )


__all__ = ["AlternativePortFinder"]
