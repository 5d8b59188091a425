"""Domain-specific configuration accessors.

Each domain config provides typed, cached access to one section of the
merged forkery configuration.

Available domain configs:
- PortsConfig: conflict policy, alternative port tables, probe host
- ProcessConfig: own-ecosystem command patterns, protected PIDs
- ReadinessConfig: per-framework readiness tokens and poller timing
- TimeoutsConfig: every bounded wait in the engine
- LoggingConfig: log level/file and the audit JSONL sink

Usage:
    from forkery.core.config.domains import PortsConfig

    ports = PortsConfig(repo_root=Path("/path/to/project"))
    ports.default_port_for("vite")
"""
from __future__ import annotations

from .logging import LoggingConfig
from .ports import PortsConfig
from .process import ProcessConfig
from .readiness import ReadinessConfig
from .timeouts import TimeoutsConfig

__all__ = [
    "LoggingConfig",
    "PortsConfig",
    "ProcessConfig",
    "ReadinessConfig",
    "TimeoutsConfig",
]
