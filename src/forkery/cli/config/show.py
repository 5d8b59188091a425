"""
forkery config show command.

SUMMARY: Show current configuration

Displays the merged configuration from bundled defaults, user and project
overrides, and environment variables. Supports filtering by key and
multiple output formats.
"""

from __future__ import annotations

import argparse
import sys

import yaml

from forkery.cli import OutputFormatter, add_json_flag, add_repo_root_flag, get_repo_root
from forkery.core.config import ConfigManager

SUMMARY = "Show current configuration"


def _nest_key(key: str, value):
    """Nest a dot-notation key into a YAML/JSON-friendly mapping."""
    parts = [p for p in str(key).split(".") if p]
    out = value
    for part in reversed(parts):
        out = {part: out}
    return out


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument(
        "key",
        nargs="?",
        help="Specific configuration key to show (e.g., 'ports.conflict_policy')",
    )
    parser.add_argument(
        "--format",
        choices=["json", "yaml", "table"],
        default="table",
        help="Output format (default: table)",
    )
    add_json_flag(parser)
    add_repo_root_flag(parser)


def _format_value(value, indent: int = 0) -> str:
    """Format a value for table display."""
    prefix = "  " * indent
    if isinstance(value, dict):
        lines = []
        for k, v in value.items():
            formatted = _format_value(v, indent + 1)
            if "\n" in formatted:
                lines.append(f"{prefix}{k}:")
                lines.append(formatted)
            else:
                lines.append(f"{prefix}{k}: {formatted}")
        return "\n".join(lines)
    if isinstance(value, list):
        if not value:
            return "[]"
        if all(isinstance(v, (str, int, float, bool)) for v in value):
            return f"[{', '.join(str(v) for v in value)}]"
        return "\n".join(f"{prefix}- {_format_value(v, indent + 1)}" for v in value)
    return str(value)


def main(args: argparse.Namespace) -> int:
    """Show configuration - delegates to ConfigManager."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    config_manager = ConfigManager(get_repo_root(args))
    output_format = "json" if args.json else args.format

    if args.key:
        value = config_manager.get(args.key)
        if value is None:
            formatter.text(f"Key not found: {args.key}")
            return 1
        data = _nest_key(args.key, value)
    else:
        data = config_manager.load_config()

    if output_format == "json":
        formatter.json_output(data)
    elif output_format == "yaml":
        formatter.text(
            yaml.safe_dump(data, default_flow_style=False, sort_keys=True, allow_unicode=True).rstrip()
        )
    else:
        for section, value in sorted(data.items()):
            formatter.text(f"[{section}]")
            formatter.text(_format_value(value, indent=1) if isinstance(value, (dict, list)) else f"  {value}")
            formatter.text("")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    cli_args = parser.parse_args()
    sys.exit(main(cli_args))
