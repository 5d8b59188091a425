"""Canonical deep merge utilities.

Used by the layered configuration loader so every overlay merges the same
way:
- Recursive dictionary merging
- Smart array merging with override semantics:
  - Default: replace array entirely
  - Prefix with "+": append to existing array
  - Prefix with "=": explicit replace (same as default)
"""
from __future__ import annotations

from typing import Any, Dict, List


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge dictionaries without mutating inputs.

    Args:
        base: Base dictionary (lower priority)
        override: Override dictionary (higher priority)

    Returns:
        New merged dictionary

    Example:
        >>> base = {"ports": {"probe_host": "127.0.0.1"}}
        >>> override = {"ports": {"conflict_policy": "cancel"}}
        >>> deep_merge(base, override)
        {'ports': {'probe_host': '127.0.0.1', 'conflict_policy': 'cancel'}}
    """
    result: Dict[str, Any] = dict(base)
    for key, value in (override or {}).items():
        if key in result:
            if isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = deep_merge(result[key], value)
            elif isinstance(result[key], list) and isinstance(value, list):
                result[key] = merge_arrays(result[key], value)
            else:
                result[key] = value
        else:
            result[key] = value
    return result


def merge_arrays(base: List[Any], override: List[Any]) -> List[Any]:
    """Merge arrays with override semantics.

    Supports special prefixes in the first element:
    - "+" : Append override items (excluding prefix) to base
    - "=" : Replace base with override items (excluding prefix)
    - No prefix: Replace base entirely with override

    Example:
        >>> merge_arrays(["vite"], ["+", "turbo dev"])
        ['vite', 'turbo dev']
    """
    if not override:
        return base
    first = override[0]
    if isinstance(first, str):
        if first == "+":
            return [*base, *override[1:]]
        if first == "=":
            return list(override[1:])
    return list(override)


__all__ = ["deep_merge", "merge_arrays"]
