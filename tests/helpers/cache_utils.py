"""Cache utilities for test isolation.

This module provides utilities for resetting forkery caches between tests
to ensure proper isolation.
"""
from __future__ import annotations


def reset_forkery_caches() -> None:
    """Reset ALL global caches in forkery modules to ensure test isolation."""
    from forkery.core.audit import reset_stdlib_logging_for_tests
    from forkery.core.config.cache import clear_all_caches
    from forkery.core.utils.paths.resolver import reset_project_root_cache
    from forkery.data import clear_caches

    reset_project_root_cache()
    clear_all_caches()
    clear_caches()
    reset_stdlib_logging_for_tests()
