"""
forkery port check command.

SUMMARY: Check whether a TCP port is free
"""

from __future__ import annotations

import argparse
import sys

from forkery.cli import OutputFormatter, add_port_arg, add_standard_flags, get_repo_root, setup_logging
from forkery.core.ports import PortAvailabilityChecker

SUMMARY = "Check whether a TCP port is free"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_port_arg(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    """Exit 0 when the port is free, 3 when it is in use."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    repo_root = get_repo_root(args)
    setup_logging(args, repo_root)

    checker = PortAvailabilityChecker.from_config(repo_root)
    available = checker.is_available(args.port)
    formatter.success(
        {"port": args.port, "available": available},
        f"Port {args.port} is {'free' if available else 'in use'}",
    )
    return 0 if available else 3


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    cli_args = parser.parse_args()
    sys.exit(main(cli_args))
