"""JSONL logging for the sync server.

Every record becomes one JSON object per line. Sync events carry their
context through ``extra=``; the formatter lifts those fields into an
``event`` object so a log tail can be filtered by operation or file:

    {"ts": "...Z", "level": "WARNING", "logger": "carbon.ingest",
     "msg": "skipping unsafe path: ../x", "event": {"op": "ingest", "path": "../x", "status": "rejected"}}
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

# Context fields attached by the mailbox, ingest and sourcemap code paths.
EVENT_FIELDS = ("op", "command", "path", "status", "root")


class SyncEventFormatter(logging.Formatter):
    def __init__(self, *, component: str = "carbon") -> None:
        super().__init__()
        self.component = component

    def event_of(self, record: logging.LogRecord) -> Dict[str, str]:
        event: Dict[str, str] = {}
        for name in EVENT_FIELDS:
            value = record.__dict__.get(name)
            if value is not None and str(value) != "":
                event[name] = str(value)
        return event

    def format(self, record: logging.LogRecord) -> str:
        doc: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "component": self.component,
            "msg": record.getMessage(),
        }
        event = self.event_of(record)
        if event:
            doc["event"] = event
        if record.exc_info:
            doc["exc"] = self.formatException(record.exc_info)
        # Paths from disk may hold surrogates; keep the line valid ASCII JSON.
        return json.dumps(doc, ensure_ascii=True, default=str)


def parse_level(level: str, default: int = logging.INFO) -> int:
    value = logging.getLevelName(str(level or "").strip().upper())
    return value if isinstance(value, int) else default


def setup_root_json_logging(
    *,
    component: str,
    level: str = "INFO",
    stream: Optional[TextIO] = None,
    force: bool = False,
) -> logging.Handler:
    """Install one JSONL stderr handler on the root logger.

    Calling again only adjusts the level, unless `force` replaces the
    handlers (tests use this to capture output).
    """
    root = logging.getLogger()
    lvl = parse_level(level)
    root.setLevel(lvl)
    if force:
        for h in list(root.handlers):
            root.removeHandler(h)
    for h in root.handlers:
        if isinstance(h.formatter, SyncEventFormatter):
            h.setLevel(lvl)
            return h
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(lvl)
    handler.setFormatter(SyncEventFormatter(component=component))
    root.addHandler(handler)
    return handler
