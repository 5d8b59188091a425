"""Common CLI argument registration utilities.

This module provides reusable argument registration functions to reduce
duplication across CLI commands.
"""
from __future__ import annotations

import argparse

from forkery.core.dev_server.models import Framework


def _port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}") from None
    if not 0 < port <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


def add_json_flag(parser: argparse.ArgumentParser) -> None:
    """Add --json flag for JSON output mode."""
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )


def add_repo_root_flag(parser: argparse.ArgumentParser) -> None:
    """Add --repo-root flag for project root override."""
    parser.add_argument(
        "--repo-root",
        type=str,
        help="Override project root path (where .forkery/config lives)",
    )


def add_verbose_flag(parser: argparse.ArgumentParser) -> None:
    """Add --verbose flag (forces INFO logging to stderr)."""
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )


def add_port_arg(parser: argparse.ArgumentParser, *, positional: bool = True, required: bool = True) -> None:
    """Add the TCP port argument.

    Args:
        parser: ArgumentParser to add the argument to
        positional: ``PORT`` positional when True, ``--port`` otherwise
        required: Whether ``--port`` is required (ignored for positionals)
    """
    if positional:
        parser.add_argument("port", type=_port, help="TCP port (1-65535)")
    else:
        parser.add_argument("--port", "-p", type=_port, required=required, help="TCP port (1-65535)")


def add_framework_arg(parser: argparse.ArgumentParser, *, required: bool = False) -> None:
    parser.add_argument(
        "--framework",
        "-F",
        choices=[f.value for f in Framework],
        default=None if required else Framework.GENERIC.value,
        required=required,
        help="Dev server framework (selects readiness tokens and alternative ports)",
    )


def add_standard_flags(parser: argparse.ArgumentParser) -> None:
    """Add standard flags that most commands use.

    Adds: --json, --repo-root, --verbose
    """
    add_json_flag(parser)
    add_repo_root_flag(parser)
    add_verbose_flag(parser)


__all__ = [
    "add_framework_arg",
    "add_json_flag",
    "add_port_arg",
    "add_repo_root_flag",
    "add_standard_flags",
    "add_verbose_flag",
]
