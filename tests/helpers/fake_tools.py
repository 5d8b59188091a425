"""Executable shell scripts standing in for a package manager."""
from __future__ import annotations

import stat
from pathlib import Path


def fake_package_manager(directory: Path, body: str, name: str = "fake-npm") -> Path:
    """Write an executable ``/bin/sh`` script; the spawner passes it ``run <script>``."""
    directory.mkdir(parents=True, exist_ok=True)
    script = directory / name
    script.write_text("#!/bin/sh\n" + body.strip() + "\n", encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script
