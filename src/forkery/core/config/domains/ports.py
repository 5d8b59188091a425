"""Domain-specific configuration for port selection and conflict handling."""
from __future__ import annotations

from functools import cached_property
from typing import Dict, List

from ..base import BaseDomainConfig

CONFLICT_POLICIES = ("ask", "use_alternative", "stop_other", "cancel")
DEFAULT_PROBE_HOST = "127.0.0.1"
DEFAULT_GENERIC_PORT = 3000


class PortsConfig(BaseDomainConfig):
    """Typed access to the ``ports`` section.

    The alternative-port table is keyed by framework name; frameworks
    without an entry get ``desired+1 .. desired+generic_alternative_count``.
    """

    def _config_section(self) -> str:
        return "ports"

    @cached_property
    def conflict_policy(self) -> str:
        policy = str(self.section.get("conflict_policy", "ask")).strip().lower()
        return policy if policy in CONFLICT_POLICIES else "ask"

    @cached_property
    def probe_host(self) -> str:
        return str(self.section.get("probe_host") or DEFAULT_PROBE_HOST)

    @cached_property
    def fallback_scan_range(self) -> int:
        return int(self.section.get("fallback_scan_range", 100))

    @cached_property
    def generic_alternative_count(self) -> int:
        return int(self.section.get("generic_alternative_count", 5))

    @cached_property
    def alternatives(self) -> Dict[str, List[int]]:
        table = self.section.get("alternatives") or {}
        return {str(k).lower(): [int(p) for p in (v or [])] for k, v in table.items()}

    @cached_property
    def default_ports(self) -> Dict[str, int]:
        table = self.section.get("default_ports") or {}
        return {str(k).lower(): int(v) for k, v in table.items()}

    def default_port_for(self, framework: str) -> int:
        key = str(framework).lower()
        return self.default_ports.get(key, self.default_ports.get("generic", DEFAULT_GENERIC_PORT))


__all__ = ["PortsConfig", "CONFLICT_POLICIES"]
