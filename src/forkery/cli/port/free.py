"""
forkery port free command.

SUMMARY: Terminate whatever listens on a port

Every listener gets TERMINATE, then KILL after the reclaim grace period;
each signal is audited. Protected PIDs (this process, its parent and
``process.protected_pids``) are never touched.
"""

from __future__ import annotations

import argparse
import sys

from forkery.cli import OutputFormatter, add_port_arg, add_standard_flags, get_repo_root, setup_logging
from forkery.core.config.domains import ProcessConfig, TimeoutsConfig
from forkery.core.exceptions import PortUnavailableError
from forkery.core.ports import PortAvailabilityChecker
from forkery.core.process import ProcessInspector, is_protected_pid, select_os_utility, terminate_process

SUMMARY = "Terminate whatever listens on a port"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_port_arg(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    repo_root = get_repo_root(args)
    setup_logging(args, repo_root)

    timeouts = TimeoutsConfig(repo_root=repo_root)
    protected = ProcessConfig(repo_root=repo_root).protected_pids
    checker = PortAvailabilityChecker.from_config(repo_root)
    if checker.is_available(args.port):
        formatter.success({"port": args.port, "terminated": [], "available": True}, f"Port {args.port} is already free")
        return 0

    utility = select_os_utility(command_timeout=timeouts.os_command_seconds, repo_root=repo_root)
    terminated: list[int] = []
    skipped: list[int] = []
    for info in ProcessInspector(utility).inspect_all(args.port):
        if is_protected_pid(info.pid, protected):
            skipped.append(info.pid)
            continue
        gone = terminate_process(
            utility,
            info.pid,
            grace_seconds=timeouts.reclaim_grace_seconds,
            settle_seconds=timeouts.post_kill_settle_seconds,
            reason="port free command",
            port=args.port,
            protected=protected,
            repo_root=repo_root,
        )
        (terminated if gone else skipped).append(info.pid)

    if not checker.is_available(args.port):
        raise PortUnavailableError(
            f"Port {args.port} is still in use",
            port=args.port,
            context={"terminated": terminated, "skipped": skipped},
        )

    formatter.success(
        {"port": args.port, "terminated": terminated, "skipped": skipped, "available": True},
        f"Port {args.port} is free (terminated {len(terminated)} process(es))",
    )
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    cli_args = parser.parse_args()
    sys.exit(main(cli_args))
