"""Availability probe against real sockets."""
from __future__ import annotations

import socket

import pytest

from forkery.core.ports import PortAvailabilityChecker, ephemeral_port
from forkery.core.ports.availability import probe_targets
from helpers.sockets import free_port, ipv6_loopback_available, ipv6_only_listener, listening_socket


class TestPortAvailabilityChecker:
    def test_free_port_is_available(self):
        checker = PortAvailabilityChecker(timeout=0.2)
        assert checker.is_available(free_port())

    def test_listening_port_is_busy(self):
        checker = PortAvailabilityChecker(timeout=0.2)
        with listening_socket() as (_sock, port):
            assert checker.is_available(port) is False

    @pytest.mark.skipif(not ipv6_loopback_available(), reason="IPv6 loopback unavailable")
    def test_ipv6_only_listener_is_busy(self):
        checker = PortAvailabilityChecker(timeout=0.2)
        with ipv6_only_listener() as (_sock, port):
            assert checker.is_available(port) is False

    def test_port_is_available_again_after_listener_closes(self):
        checker = PortAvailabilityChecker(timeout=0.2)
        with listening_socket() as (_sock, port):
            pass
        assert checker.is_available(port)

    def test_out_of_range_ports_are_never_available(self):
        checker = PortAvailabilityChecker(timeout=0.2)
        assert checker.is_available(0) is False
        assert checker.is_available(70000) is False
        assert checker.is_available(-1) is False

    def test_garbage_input_reads_as_busy_instead_of_raising(self):
        checker = PortAvailabilityChecker(timeout=0.2)
        assert checker.is_available("not-a-port") is False  # type: ignore[arg-type]

    def test_from_config_uses_probe_settings(self, isolated_project_env):
        checker = PortAvailabilityChecker.from_config(isolated_project_env)
        assert checker.host == "127.0.0.1"
        assert checker.timeout == 1.0


def test_ephemeral_port_is_in_range():
    port = ephemeral_port()
    assert 0 < port <= 65535


def test_probe_targets_add_ipv6_loopback_only_for_loopback_hosts(monkeypatch):
    monkeypatch.setattr(socket, "has_ipv6", True)
    assert probe_targets("localhost") == [(socket.AF_INET, "127.0.0.1"), (socket.AF_INET6, "::1")]
    assert probe_targets("10.0.0.5") == [(socket.AF_INET, "10.0.0.5")]
