from __future__ import annotations

import os
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Optional


SETTINGS_FILENAME = "carbon.yaml"


def project_root() -> Path:
    env = os.environ.get("CARBON_ROOT", "").strip()
    if env:
        return Path(env).expanduser().resolve()
    return Path.cwd().resolve()


def settings_path(root: Optional[Path] = None) -> Path:
    return (root or project_root()) / SETTINGS_FILENAME


def is_absolute_anywhere(rel: str) -> bool:
    """True for POSIX absolute paths and Windows drive/UNC/rooted paths alike."""
    win = PureWindowsPath(rel)
    return PurePosixPath(rel).is_absolute() or bool(win.drive) or bool(win.root)


def resolve_in_root(root: Path, rel: str) -> Path:
    """Join a relative, already-vetted ingest path onto the project root."""
    return root / rel
