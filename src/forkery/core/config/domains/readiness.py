"""Domain-specific configuration for dev-server readiness detection."""
from __future__ import annotations

import re
from functools import cached_property
from typing import Dict, List, Pattern, Tuple

from ..base import BaseDomainConfig

DEFAULT_GENERIC_TOKENS = ["ready", "started", "listening", "server running", "development server", "local:"]

# A token group matches a line when every element appears in it.
TokenGroup = Tuple[str, ...]


def normalize_token_groups(raw: object) -> List[TokenGroup]:
    groups: List[TokenGroup] = []
    for entry in raw if isinstance(raw, list) else []:
        if isinstance(entry, str):
            if entry.strip():
                groups.append((entry.strip().lower(),))
        elif isinstance(entry, list):
            parts = tuple(str(p).strip().lower() for p in entry if str(p).strip())
            if parts:
                groups.append(parts)
    return groups


class ReadinessConfig(BaseDomainConfig):
    """Typed access to the ``readiness`` section."""

    def _config_section(self) -> str:
        return "readiness"

    @cached_property
    def poll_interval_seconds(self) -> float:
        return float(self.section.get("poll_interval_seconds", 2.0))

    @cached_property
    def poll_timeout_seconds(self) -> float:
        return float(self.section.get("poll_timeout_seconds", 300.0))

    @cached_property
    def tokens(self) -> Dict[str, List[TokenGroup]]:
        table = self.section.get("tokens") or {}
        return {str(k).lower(): normalize_token_groups(v) for k, v in table.items()}

    @cached_property
    def port_patterns(self) -> List[Pattern[str]]:
        return [re.compile(p, re.IGNORECASE) for p in self.section.get("port_patterns") or []]


__all__ = ["ReadinessConfig", "TokenGroup", "DEFAULT_GENERIC_TOKENS", "normalize_token_groups"]
