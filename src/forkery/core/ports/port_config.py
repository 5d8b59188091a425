"""Write a chosen port back into the project's own build-tool config.

Some dev servers ignore the ``PORT`` environment variable and read their
port from a config file; when the resolver moves such a project to an
alternative port it asks a writer to update that file.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class PortConfigWriter(Protocol):
    def update_port(self, workspace_path: Path, framework: str, port: int) -> Optional[Path]:
        """Rewrite the port setting; return the file changed, or None."""
        ...


class NullPortConfigWriter:
    def update_port(self, workspace_path: Path, framework: str, port: int) -> Optional[Path]:
        return None


class ViteConfigPortWriter:
    """Rewrites the first ``port: <n>`` in a Vite config file."""

    CONFIG_NAMES = ("vite.config.js", "vite.config.ts", "vite.config.mjs", "vite.config.mts")
    PORT_RE = re.compile(r"(\bport\s*:\s*)\d+")

    def update_port(self, workspace_path: Path, framework: str, port: int) -> Optional[Path]:
        if str(framework).lower() != "vite":
            return None
        for name in self.CONFIG_NAMES:
            path = Path(workspace_path) / name
            if not path.is_file():
                continue
            text = path.read_text(encoding="utf-8")
            updated, count = self.PORT_RE.subn(lambda m: f"{m.group(1)}{port}", text, count=1)
            if count == 0:
                logger.debug("%s has no explicit port setting", path)
                return None
            if updated != text:
                path.write_text(updated, encoding="utf-8")
                logger.info("Updated %s to port %s", path, port)
            return path
        return None


__all__ = ["NullPortConfigWriter", "PortConfigWriter", "ViteConfigPortWriter"]
