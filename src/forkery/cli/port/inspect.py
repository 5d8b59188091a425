"""
forkery port inspect command.

SUMMARY: Show which processes listen on a port

Each listener is shown with its command line, project and whether it looks
like another dev server (own ecosystem) or something foreign.
"""

from __future__ import annotations

import argparse
import dataclasses
import sys

from forkery.cli import OutputFormatter, add_port_arg, add_standard_flags, get_repo_root, setup_logging
from forkery.core.config.domains import TimeoutsConfig
from forkery.core.process import ProcessClassifier, ProcessInspector, select_os_utility

SUMMARY = "Show which processes listen on a port"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_port_arg(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    repo_root = get_repo_root(args)
    setup_logging(args, repo_root)

    utility = select_os_utility(
        command_timeout=TimeoutsConfig(repo_root=repo_root).os_command_seconds, repo_root=repo_root
    )
    classifier = ProcessClassifier.from_config(repo_root)

    occupants = []
    for info in ProcessInspector(utility).inspect_all(args.port):
        verdict = classifier.classify(info)
        occupants.append(
            (dataclasses.replace(info, is_own_ecosystem=verdict.own_ecosystem), verdict.matched_pattern)
        )

    if formatter.json_mode:
        formatter.json_output(
            {
                "port": args.port,
                "occupants": [
                    {**info.to_dict(), "matched_pattern": pattern} for info, pattern in occupants
                ],
            }
        )
        return 0

    if not occupants:
        formatter.text(f"No listener found on port {args.port}")
        return 0

    formatter.text(f"Port {args.port}:")
    for info, pattern in occupants:
        kind = f"dev server ({pattern})" if info.is_own_ecosystem else "foreign"
        formatter.text(f"- pid {info.pid}: {info.display_name} [{kind}]")
        formatter.text_kv("command", info.command_line or "<unknown>")
        if info.workspace_path:
            formatter.text_kv("workspace", info.workspace_path)
        if info.started_at:
            formatter.text_kv("started", info.started_at.isoformat(timespec="seconds"))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    cli_args = parser.parse_args()
    sys.exit(main(cli_args))
