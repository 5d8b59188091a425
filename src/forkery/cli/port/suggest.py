"""
forkery port suggest command.

SUMMARY: Suggest a free alternative to a busy port
"""

from __future__ import annotations

import argparse
import sys

from forkery.cli import (
    OutputFormatter,
    add_framework_arg,
    add_port_arg,
    add_standard_flags,
    get_repo_root,
    setup_logging,
)
from forkery.core.ports import AlternativePortFinder, PortAvailabilityChecker

SUMMARY = "Suggest a free alternative to a busy port"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_port_arg(parser)
    add_framework_arg(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    repo_root = get_repo_root(args)
    setup_logging(args, repo_root)

    checker = PortAvailabilityChecker.from_config(repo_root)
    finder = AlternativePortFinder.from_config(checker, repo_root)
    # PortUnavailableError propagates to the dispatcher (exit 3).
    suggested = finder.find_alternative(args.port, args.framework)
    formatter.success(
        {"requested_port": args.port, "framework": args.framework, "port": suggested},
        str(suggested),
    )
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    cli_args = parser.parse_args()
    sys.exit(main(cli_args))
