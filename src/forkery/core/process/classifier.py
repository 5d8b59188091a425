"""Own-ecosystem versus foreign classification of port occupants.

A pure function of the process command line and a pattern list; no OS
access. Patterns match case-insensitively as whole words, so ``vite``
matches ``node_modules/.bin/vite --port 5173`` but not ``invite-svc``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Pattern, Tuple

from .models import ProcessInfo


@dataclass(frozen=True)
class Classification:
    own_ecosystem: bool
    matched_pattern: Optional[str] = None


def _compile(pattern: str) -> Pattern[str]:
    words = [re.escape(w) for w in pattern.lower().split()]
    return re.compile(r"(?<![\w-])" + r"\s+".join(words) + r"(?![\w-])")


class ProcessClassifier:
    def __init__(self, patterns: Iterable[str]) -> None:
        cleaned = [p.strip().lower() for p in patterns if p and p.strip()]
        self._patterns: List[Tuple[str, Pattern[str]]] = [(p, _compile(p)) for p in cleaned]

    @classmethod
    def from_config(cls, repo_root: Optional[Path] = None) -> "ProcessClassifier":
        from forkery.core.config.domains import ProcessConfig

        return cls(ProcessConfig(repo_root=repo_root).own_ecosystem_patterns)

    @property
    def patterns(self) -> List[str]:
        return [p for p, _ in self._patterns]

    def classify(self, info: ProcessInfo) -> Classification:
        """Label ``info`` own-ecosystem when any pattern matches its command line.

        Incomplete data (no command line at all) is treated as foreign.
        """
        haystack = " ".join(info.command_line.lower().split())
        if not haystack:
            return Classification(own_ecosystem=False)
        for raw, compiled in self._patterns:
            if compiled.search(haystack):
                return Classification(own_ecosystem=True, matched_pattern=raw)
        return Classification(own_ecosystem=False)


__all__ = ["Classification", "ProcessClassifier"]
