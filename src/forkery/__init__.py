"""Forkery: port and process orchestration for local development servers."""

__version__ = "1.0.0"
