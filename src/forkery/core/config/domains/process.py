"""Domain-specific configuration for process classification.

Provides cached access to the command-line patterns that identify another
dev server of the kind forkery launches.
"""
from __future__ import annotations

from functools import cached_property
from typing import FrozenSet, List

from ..base import BaseDomainConfig

# Default values as fallbacks (config expands these as needed)
DEFAULT_OWN_ECOSYSTEM_PATTERNS = [
    "npm run dev",
    "npm run start",
    "yarn dev",
    "yarn start",
    "next dev",
    "vite",
    "live-server",
    "react-scripts start",
    "nodemon",
    "concurrently",
]


class ProcessConfig(BaseDomainConfig):
    """Domain-specific configuration accessor for process classification.

    Extends BaseDomainConfig for consistent caching and repo_root handling.
    """

    def _config_section(self) -> str:
        return "process"

    @cached_property
    def own_ecosystem_patterns(self) -> List[str]:
        """Lower-cased whole-word patterns that mark own-ecosystem processes."""
        patterns = self.section.get("own_ecosystem_patterns")
        if isinstance(patterns, list):
            return [str(p).strip().lower() for p in patterns if str(p).strip()]
        return list(DEFAULT_OWN_ECOSYSTEM_PATTERNS)

    @cached_property
    def protected_pids(self) -> FrozenSet[int]:
        """PIDs that must never receive a signal."""
        pids = self.section.get("protected_pids") or []
        return frozenset(int(p) for p in pids)


__all__ = ["ProcessConfig", "DEFAULT_OWN_ECOSYSTEM_PATTERNS"]
