"""Project settings for Carbon.

Settings live in an optional `carbon.yaml` at the project root and can be
overridden per process through CARBON_* environment variables:
- host / port: where the sync server listens
- script_root / extension: what the sourcemap builder walks
- sourcemap_path: manifest written after every ingest
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml  # type: ignore

from ..paths import project_root, settings_path
from ..util.conv import coerce_bool, coerce_port

logger = logging.getLogger("carbon.settings")

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000
DEFAULT_SCRIPT_ROOT = "game"
DEFAULT_EXTENSION = "luau"
DEFAULT_SOURCEMAP_PATH = "sourcemap.json"
DEFAULT_LOG_LEVEL = "INFO"

_ENV_OVERRIDES = {
    "host": "CARBON_HOST",
    "port": "CARBON_PORT",
    "script_root": "CARBON_SCRIPT_ROOT",
    "extension": "CARBON_EXTENSION",
    "sourcemap_path": "CARBON_SOURCEMAP",
    "log_level": "CARBON_LOG_LEVEL",
    "access_log": "CARBON_ACCESS_LOG",
}


def _clean_name(value: Any, default: str) -> str:
    s = str(value or "").strip()
    return s or default


@dataclass(frozen=True)
class CarbonSettings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    script_root: str = DEFAULT_SCRIPT_ROOT
    extension: str = DEFAULT_EXTENSION
    sourcemap_path: str = DEFAULT_SOURCEMAP_PATH
    log_level: str = DEFAULT_LOG_LEVEL
    access_log: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "CarbonSettings":
        ext = _clean_name(d.get("extension"), DEFAULT_EXTENSION).lstrip(".")
        return cls(
            host=_clean_name(d.get("host"), DEFAULT_HOST),
            port=coerce_port(d.get("port"), default=DEFAULT_PORT),
            script_root=_clean_name(d.get("script_root"), DEFAULT_SCRIPT_ROOT),
            extension=ext or DEFAULT_EXTENSION,
            sourcemap_path=_clean_name(d.get("sourcemap_path"), DEFAULT_SOURCEMAP_PATH),
            log_level=_clean_name(d.get("log_level"), DEFAULT_LOG_LEVEL).upper(),
            access_log=coerce_bool(d.get("access_log"), default=False),
        )

    def manifest_path(self, root: Path) -> Path:
        p = Path(self.sourcemap_path).expanduser()
        return p if p.is_absolute() else root / p


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        doc = yaml.safe_load(path.read_text(encoding="utf-8"))
    except Exception as e:
        logger.warning("ignoring unreadable settings file %s: %s", path, e, extra={"path": str(path)})
        return {}
    return doc if isinstance(doc, dict) else {}


def load_settings(root: Optional[Path] = None, *, env: Optional[Mapping[str, str]] = None) -> CarbonSettings:
    """Load carbon.yaml (if any) and apply CARBON_* environment overrides."""
    base = root or project_root()
    doc = _read_yaml(settings_path(base))
    environ = os.environ if env is None else env
    for key, var in _ENV_OVERRIDES.items():
        raw = str(environ.get(var) or "").strip()
        if raw:
            doc[key] = raw
    return CarbonSettings.from_dict(doc)

