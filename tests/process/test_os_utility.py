"""OS utility backends: output parsers plus real psutil/signal calls."""
from __future__ import annotations

import os
import shutil
import subprocess
import sys

import pytest

from forkery.core.exceptions import DependencyMissingError
from forkery.core.process import PosixProcessUtility, ProcessSignal, WindowsProcessUtility, select_os_utility
from forkery.core.process.os_utility import parse_lsof_pids, parse_netstat_pids, parse_ss_pids
from helpers.sockets import listening_socket

NETSTAT_OUTPUT = """
Active Connections

  Proto  Local Address          Foreign Address        State           PID
  TCP    0.0.0.0:3000           0.0.0.0:0              LISTENING       4321
  TCP    [::]:3000              [::]:0                 LISTENING       4321
  TCP    127.0.0.1:53000        127.0.0.1:3000         ESTABLISHED     999
  TCP    0.0.0.0:30000          0.0.0.0:0              LISTENING       777
  TCP    127.0.0.1:3000         0.0.0.0:0              LISTENING       5555
"""

SS_OUTPUT = (
    "State  Recv-Q Send-Q Local Address:Port Peer Address:Port Process\n"
    'LISTEN 0      511    0.0.0.0:5173       0.0.0.0:*     users:(("node",pid=2101,fd=21))\n'
    'LISTEN 0      511    [::1]:5173         [::]:*        users:(("node",pid=2101,fd=22),("node",pid=2102,fd=3))\n'
)


class TestParsers:
    def test_lsof_pids_are_deduplicated_in_order(self):
        assert parse_lsof_pids("123\n456\n123\n\n") == [123, 456]

    def test_lsof_ignores_noise(self):
        assert parse_lsof_pids("lsof: WARNING: can't stat()\n77\n") == [77]

    def test_ss_pids(self):
        assert parse_ss_pids(SS_OUTPUT) == [2101, 2102]

    def test_netstat_matches_local_listening_port_only(self):
        assert parse_netstat_pids(NETSTAT_OUTPUT, 3000) == [4321, 5555]

    def test_netstat_empty_output(self):
        assert parse_netstat_pids("", 3000) == []


def test_select_os_utility_matches_platform():
    utility = select_os_utility(command_timeout=1.0)
    expected = WindowsProcessUtility if os.name == "nt" else PosixProcessUtility
    assert isinstance(utility, expected)


@pytest.mark.posix_only
class TestPosixProcessUtility:
    def test_describe_current_process(self):
        info = PosixProcessUtility(command_timeout=2.0).describe(os.getpid())
        assert info is not None
        assert info.pid == os.getpid()
        assert info.command
        assert info.started_at is not None

    def test_describe_missing_process_returns_none(self):
        proc = subprocess.Popen([sys.executable, "-c", "pass"])
        proc.wait()
        assert PosixProcessUtility(command_timeout=2.0).describe(proc.pid) is None

    def test_terminate_signal_stops_child(self):
        utility = PosixProcessUtility(command_timeout=2.0)
        proc = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(30)"], start_new_session=True)
        try:
            assert utility.is_alive(proc.pid)
            assert utility.send_signal(proc.pid, ProcessSignal.TERMINATE, group=True)
            proc.wait(timeout=5)
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()
        assert utility.is_alive(proc.pid) is False

    def test_signal_to_missing_process_is_not_delivered(self):
        proc = subprocess.Popen([sys.executable, "-c", "pass"])
        proc.wait()
        assert PosixProcessUtility(command_timeout=2.0).send_signal(proc.pid, ProcessSignal.KILL) is False

    @pytest.mark.skipif(not (shutil.which("lsof") or shutil.which("ss")), reason="needs lsof or ss")
    def test_finds_own_listening_socket(self):
        utility = PosixProcessUtility(command_timeout=5.0)
        with listening_socket() as (_sock, port):
            assert os.getpid() in utility.find_pids_on_port(port)

    def test_missing_tools_raise_dependency_missing(self, monkeypatch):
        utility = PosixProcessUtility(command_timeout=1.0)

        def _missing(argv):
            raise FileNotFoundError(argv[0])

        monkeypatch.setattr(utility, "_run", _missing)
        with pytest.raises(DependencyMissingError) as excinfo:
            utility.find_pids_on_port(3000)
        assert excinfo.value.tool == "lsof"
