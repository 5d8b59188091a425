"""Shared helpers: merging, YAML I/O, path resolution, subprocess execution."""
