"""File I/O helpers."""
from .core import ensure_directory
from .yaml import iter_yaml_files, read_yaml

__all__ = ["ensure_directory", "iter_yaml_files", "read_yaml"]
