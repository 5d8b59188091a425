"""Test helper modules for the forkery test suite.

- cache_utils: Cache reset utilities for test isolation
- fakes: Scriptable stand-ins for the OS utility, port checker and decision provider
- sockets: Real listening sockets and free-port helpers
- io_utils: Writing project config overlays
"""
