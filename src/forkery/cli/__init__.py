"""
forkery CLI package.

Provides the command-line interface with auto-discovery of commands
from subfolders (server/, port/, config/).

Framework utilities for building CLI commands:
- _output: Output formatting (JSON/text modes)
- _args: Common argument registration helpers
- _utils: Shared CLI utilities
"""
from ._output import OutputFormatter, format_json, print_error, print_success
from ._args import (
    add_framework_arg,
    add_json_flag,
    add_port_arg,
    add_repo_root_flag,
    add_standard_flags,
    add_verbose_flag,
)
from ._utils import exit_code_for, get_repo_root, setup_logging

__all__ = [
    # Output formatting
    "OutputFormatter",
    "format_json",
    "print_success",
    "print_error",
    # Argument helpers
    "add_framework_arg",
    "add_json_flag",
    "add_port_arg",
    "add_repo_root_flag",
    "add_standard_flags",
    "add_verbose_flag",
    # Utilities
    "exit_code_for",
    "get_repo_root",
    "setup_logging",
]
