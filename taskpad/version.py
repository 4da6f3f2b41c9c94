# -*- coding: utf-8 -*-
"""Version string shown in logs and about boxes."""

from __future__ import annotations

from functools import lru_cache
from importlib import metadata
from pathlib import Path

# Frozen builds ship this beside the package instead of dist-info metadata
_VERSION_FILE = Path(__file__).resolve().parent.parent / "version.txt"


@lru_cache(maxsize=None)
def get_app_version() -> str:
    """Return the version prefixed with ``v``, or ``"vdev"`` for a bare checkout."""
    if _VERSION_FILE.is_file():
        stamped = _VERSION_FILE.read_text(encoding="ascii", errors="ignore").strip()
        if stamped:
            return stamped if stamped.startswith("v") else f"v{stamped}"
    try:
        return f"v{metadata.version('taskpad')}"
    except metadata.PackageNotFoundError:
        return "vdev"
