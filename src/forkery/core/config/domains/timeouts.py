"""Domain-specific configuration for operation timeouts.

Every blocking wait in the engine reads its bound from here.
"""
from __future__ import annotations

from functools import cached_property
from typing import Dict

from forkery.core.exceptions import ConfigError

from ..base import BaseDomainConfig

_REQUIRED_TIMEOUT_KEYS = (
    "port_probe_seconds",
    "os_command_seconds",
    "reclaim_grace_seconds",
    "stop_other_grace_seconds",
    "post_kill_settle_seconds",
    "shutdown_interrupt_seconds",
    "shutdown_terminate_seconds",
    "shutdown_kill_seconds",
    "shutdown_safety_seconds",
)


class TimeoutsConfig(BaseDomainConfig):
    """Domain-specific configuration accessor for operation timeouts."""

    def _config_section(self) -> str:
        return "timeouts"

    def _validate_required_keys(self) -> None:
        """Validate that all required timeout keys are present."""
        if not self.section:
            raise ConfigError("timeouts section missing from configuration")

        for key in _REQUIRED_TIMEOUT_KEYS:
            if key not in self.section:
                raise ConfigError(f"timeouts.{key} missing from configuration", context={"key": f"timeouts.{key}"})

    def _seconds(self, key: str) -> float:
        self._validate_required_keys()
        return float(self.section[key])

    @cached_property
    def port_probe_seconds(self) -> float:
        return self._seconds("port_probe_seconds")

    @cached_property
    def os_command_seconds(self) -> float:
        return self._seconds("os_command_seconds")

    @cached_property
    def reclaim_grace_seconds(self) -> float:
        return self._seconds("reclaim_grace_seconds")

    @cached_property
    def stop_other_grace_seconds(self) -> float:
        return self._seconds("stop_other_grace_seconds")

    @cached_property
    def post_kill_settle_seconds(self) -> float:
        return self._seconds("post_kill_settle_seconds")

    @cached_property
    def shutdown_interrupt_seconds(self) -> float:
        return self._seconds("shutdown_interrupt_seconds")

    @cached_property
    def shutdown_terminate_seconds(self) -> float:
        return self._seconds("shutdown_terminate_seconds")

    @cached_property
    def shutdown_kill_seconds(self) -> float:
        return self._seconds("shutdown_kill_seconds")

    @cached_property
    def shutdown_safety_seconds(self) -> float:
        return self._seconds("shutdown_safety_seconds")

    def get_all_settings(self) -> Dict[str, float]:
        """All timeout settings as a dict."""
        self._validate_required_keys()
        return {key: float(self.section[key]) for key in _REQUIRED_TIMEOUT_KEYS}


__all__ = [
    "TimeoutsConfig",
]
