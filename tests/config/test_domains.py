from __future__ import annotations

from pathlib import Path

import pytest

from forkery.core.config.domains import (
    LoggingConfig,
    PortsConfig,
    ProcessConfig,
    ReadinessConfig,
    TimeoutsConfig,
)
from helpers.io_utils import write_project_config


def test_ports_defaults(isolated_project_env: Path) -> None:
    ports = PortsConfig(repo_root=isolated_project_env)
    assert ports.conflict_policy == "ask"
    assert ports.probe_host == "127.0.0.1"
    assert ports.alternatives["vite"] == [5174, 5175, 5176, 5177, 5178]
    assert ports.default_port_for("vite") == 5173
    assert ports.default_port_for("live_server_typo") == 3000


def test_timeouts_are_all_present(isolated_project_env: Path) -> None:
    settings = TimeoutsConfig(repo_root=isolated_project_env).get_all_settings()
    assert settings["shutdown_safety_seconds"] == 10.0
    assert settings["reclaim_grace_seconds"] == 0.5
    assert all(value > 0 for value in settings.values())


def test_timeouts_must_be_positive(isolated_project_env: Path) -> None:
    from forkery.core.exceptions import ConfigError

    write_project_config(isolated_project_env, "timeouts", {"timeouts": {"shutdown_kill_seconds": 0}})
    with pytest.raises(ConfigError):
        TimeoutsConfig(repo_root=isolated_project_env)


def test_process_patterns_can_be_extended(isolated_project_env: Path) -> None:
    write_project_config(
        isolated_project_env,
        "process",
        {"process": {"own_ecosystem_patterns": ["+", "Turbo Dev"], "protected_pids": [4242]}},
    )
    cfg = ProcessConfig(repo_root=isolated_project_env)
    assert "vite" in cfg.own_ecosystem_patterns
    assert cfg.own_ecosystem_patterns[-1] == "turbo dev"
    assert cfg.protected_pids == frozenset({4242})


def test_readiness_tokens_are_grouped(isolated_project_env: Path) -> None:
    cfg = ReadinessConfig(repo_root=isolated_project_env)
    assert ("ready",) in cfg.tokens["vite"]
    assert ("backend", "frontend") in cfg.tokens["fullstack"]
    assert cfg.poll_interval_seconds == 2.0
    assert cfg.port_patterns[0].search("  Local:   http://localhost:5174/").group(1) == "5174"


def test_logging_paths_resolve_against_project_root(isolated_project_env: Path) -> None:
    write_project_config(
        isolated_project_env,
        "logging",
        {"logging": {"level": "debug", "file": "logs/forkery.log", "audit": {"jsonl_path": "logs/audit.jsonl"}}},
    )
    cfg = LoggingConfig(repo_root=isolated_project_env)
    assert cfg.level == "DEBUG"
    assert cfg.log_file == isolated_project_env / "logs" / "forkery.log"
    assert cfg.audit_jsonl_path == isolated_project_env / "logs" / "audit.jsonl"
    assert cfg.audit_enabled is True
