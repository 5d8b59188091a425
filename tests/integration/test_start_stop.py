"""End-to-end runs against a scripted package manager and real sockets."""
from __future__ import annotations

import json
import sys
import time

import pytest

from forkery.cli._dispatcher import main
from forkery.core.dev_server import Orchestrator, ProjectConfig, RunState
from forkery.core.ports.availability import PortAvailabilityChecker
from forkery.core.ports.decisions import decision_provider_for_policy
from helpers.fake_tools import fake_package_manager
from helpers.io_utils import write_project_config
from helpers.sockets import free_port, listening_socket

pytestmark = pytest.mark.posix_only

# Binds $PORT like a real dev server, announces readiness, then serves until signalled.
SERVE_ON_PORT = f"""
exec "{sys.executable}" -u -c "
import os, socket, time
s = socket.socket()
s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
s.bind(('127.0.0.1', int(os.environ['PORT'])))
s.listen(8)
print('server listening on', os.environ['PORT'], flush=True)
time.sleep(60)
"
"""


@pytest.fixture
def fast_timeouts(isolated_project_env):
    write_project_config(
        isolated_project_env,
        "timeouts",
        {
            "timeouts": {
                "reclaim_grace_seconds": 0.3,
                "post_kill_settle_seconds": 0.5,
                "shutdown_interrupt_seconds": 1.0,
                "shutdown_terminate_seconds": 1.0,
                "shutdown_kill_seconds": 1.0,
                "shutdown_safety_seconds": 8.0,
            }
        },
    )
    return isolated_project_env


def test_start_then_stop_frees_the_port(fast_timeouts):
    root = fast_timeouts
    manager = fake_package_manager(root / "bin", SERVE_ON_PORT)
    port = free_port()
    orchestrator = Orchestrator.from_config(decision_provider_for_policy("cancel", interactive=False), repo_root=root)
    ready = []
    orchestrator.on("ready", ready.append)

    with orchestrator:
        handle = orchestrator.start(
            ProjectConfig(framework="generic", desired_port=port, workspace_path=root, package_manager=str(manager))
        )
        assert handle.wait_until_ready(10.0)
        assert handle.state is RunState.RUNNING
        assert handle.bound_port == port

        started = time.monotonic()
        result = orchestrator.stop()
        assert time.monotonic() - started < 10.0

    assert result.stopped is True
    assert result.warnings == ()
    assert handle.state is RunState.IDLE
    assert PortAvailabilityChecker().is_available(port)
    assert ready == [port]


def test_busy_port_moves_to_an_alternative(fast_timeouts):
    root = fast_timeouts
    manager = fake_package_manager(root / "bin", SERVE_ON_PORT)
    with listening_socket() as (_sock, busy_port):
        write_project_config(
            root, "ports", {"ports": {"alternatives": {"generic": [free_port()]}, "fallback_scan_range": 20}}
        )
        orchestrator = Orchestrator.from_config(
            decision_provider_for_policy("use_alternative", interactive=False), repo_root=root
        )
        with orchestrator:
            handle = orchestrator.start(
                ProjectConfig(
                    framework="generic", desired_port=busy_port, workspace_path=root, package_manager=str(manager)
                )
            )
            assert handle.wait_until_ready(10.0)
            assert handle.bound_port != busy_port
            assert handle.resolution.changed_port


def test_cli_start_streams_json_events(fast_timeouts, capsys):
    root = fast_timeouts
    manager = fake_package_manager(root / "bin", 'echo "listening on $PORT"\nsleep 0.2\nexit 0')
    port = free_port()

    code = main(
        [
            "server",
            "start",
            "--port",
            str(port),
            "--package-manager",
            str(manager),
            "--workspace",
            str(root),
            "--policy",
            "cancel",
            "--json",
        ]
    )

    assert code == 0
    events = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.startswith("{")]
    assert "started" in [e["event"] for e in events]
    assert {"event": "ready", "port": port} in events
    assert {"event": "output", "stream": "stdout", "line": f"listening on {port}"} in events
