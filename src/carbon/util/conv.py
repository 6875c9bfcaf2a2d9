from __future__ import annotations

from typing import Any

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def coerce_bool(value: Any, *, default: bool = False) -> bool:
    """Read a flag from carbon.yaml (bool) or a CARBON_* variable (string)."""
    if isinstance(value, bool):
        return value
    s = str(value if value is not None else "").strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    return default


def coerce_port(value: Any, *, default: int) -> int:
    """Parse a TCP port; anything outside 1..65535 falls back to default."""
    if isinstance(value, bool) or value is None:
        return int(default)
    try:
        port = int(str(value).strip())
    except ValueError:
        return int(default)
    if 0 < port < 65536:
        return port
    return int(default)
