"""HTTP client used by the CLI to reach a running carbon server."""
from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Any, Dict, Optional

from .contracts.v1 import SyncCommand

logger = logging.getLogger("carbon.client")

DEFAULT_CLIENT_HOST = "127.0.0.1"


class ServerUnavailableError(RuntimeError):
    """The carbon server could not be reached or answered with an error."""


def _request(
    method: str,
    url: str,
    body: Optional[Any] = None,
    *,
    timeout: float = 10.0,
) -> Dict[str, Any]:
    data = None
    headers = {"Accept": "application/json"}
    if body is not None:
        data = json.dumps(body, ensure_ascii=False).encode("utf-8")
        headers["Content-Type"] = "application/json"
    req = urllib.request.Request(url, data=data, method=method, headers=headers)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8", errors="replace")
    except urllib.error.HTTPError as e:
        detail = ""
        try:
            detail = e.read().decode("utf-8", errors="replace")
        except Exception:
            pass
        raise ServerUnavailableError(f"server returned HTTP {e.code}: {detail}".rstrip(": ")) from e
    except (urllib.error.URLError, OSError) as e:
        raise ServerUnavailableError(f"failed to connect to {url}: {e}") from e
    try:
        doc = json.loads(raw) if raw.strip() else {}
    except ValueError as e:
        raise ServerUnavailableError(f"invalid response from {url}") from e
    return doc if isinstance(doc, dict) else {"result": doc}


def server_url(port: int, host: str = DEFAULT_CLIENT_HOST) -> str:
    return f"http://{host}:{int(port)}"


def send_command(command: "SyncCommand | str", *, port: int, host: str = DEFAULT_CLIENT_HOST) -> Dict[str, Any]:
    """POST a sync command to /command; the body is the bare token, e.g. "import"."""
    cmd = SyncCommand.parse(command)
    resp = _request("POST", server_url(port, host) + "/command", cmd.value)
    if not resp.get("success"):
        raise ServerUnavailableError(f"server rejected command {cmd.value}: {resp}")
    logger.info("command sent: %s", cmd.value, extra={"op": "send", "command": cmd.value})
    return resp

