from __future__ import annotations

from pathlib import Path


def ensure_directory(path: Path) -> Path:
    """Create ``path`` (and parents) when missing and return it."""
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


__all__ = ["ensure_directory"]
