"""File ingest: materialize script payloads pushed by the editor plugin.

Each entry is handled on its own; a rejected or failed entry is logged and the
batch continues. The batch is therefore not transactional. Once every entry
has been tried the sourcemap is rebuilt and written to the manifest path.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from ..paths import is_absolute_anywhere, resolve_in_root
from ..util.fs import atomic_write_bytes
from .settings import CarbonSettings
from .sourcemap import BuildDiagnostics, build_sourcemap, write_sourcemap

logger = logging.getLogger("carbon.ingest")

WRITTEN = "written"
REJECTED = "rejected"
MKDIR_FAILED = "mkdir_failed"
WRITE_FAILED = "write_failed"


@dataclass
class FileResult:
    path: str
    status: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == WRITTEN


@dataclass
class IngestReport:
    results: List[FileResult] = field(default_factory=list)
    sourcemap_path: str = ""
    sourcemap_written: bool = False
    sourcemap_error: Optional[str] = None
    diagnostics: BuildDiagnostics = field(default_factory=BuildDiagnostics)

    @property
    def written(self) -> List[str]:
        return [r.path for r in self.results if r.ok]

    @property
    def failed(self) -> List[FileResult]:
        return [r for r in self.results if not r.ok]


def display_path(path_str: str) -> str:
    """Path as it can be logged and echoed back in a JSON reply."""
    return path_str.encode("utf-8", "backslashreplace").decode("utf-8")


def unsafe_reason(path_str: str) -> Optional[str]:
    """Why a payload path may not be written, or None if it is acceptable.

    Any literal '..' is refused, even inside a file name. Absolute paths are
    refused too, so every write lands under the project root.
    """
    if ".." in path_str:
        return "path contains '..'"
    if is_absolute_anywhere(path_str):
        return "absolute paths are not allowed"
    return None


def write_entry(root: Path, path_str: str, content: str) -> FileResult:
    shown = display_path(path_str)
    reason = unsafe_reason(path_str)
    if reason is not None:
        logger.warning("skipping unsafe path: %s", shown, extra={"op": "ingest", "path": shown, "status": REJECTED})
        return FileResult(shown, REJECTED, reason)

    try:
        data = content.encode("utf-8")
    except UnicodeEncodeError as e:
        logger.error("content of %s is not valid text: %s", shown, e, extra={"op": "ingest", "path": shown, "status": WRITE_FAILED})
        return FileResult(shown, WRITE_FAILED, str(e))

    # NUL bytes and unencodable names surface as ValueError from the os layer.
    target = resolve_in_root(root, path_str)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except (OSError, ValueError) as e:
        logger.error(
            "failed to create directory for %s: %s",
            shown,
            e,
            extra={"op": "ingest", "path": shown, "status": MKDIR_FAILED},
        )
        return FileResult(shown, MKDIR_FAILED, str(e))

    try:
        atomic_write_bytes(target, data)
    except (OSError, ValueError) as e:
        logger.error("failed to write file %s: %s", shown, e, extra={"op": "ingest", "path": shown, "status": WRITE_FAILED})
        return FileResult(shown, WRITE_FAILED, str(e))

    logger.info("imported: %s", shown, extra={"op": "ingest", "path": shown, "status": WRITTEN})
    return FileResult(shown, WRITTEN)


def refresh_sourcemap(root: Path, settings: CarbonSettings, report: IngestReport) -> None:
    manifest = settings.manifest_path(root)
    report.sourcemap_path = str(manifest)
    try:
        tree = build_sourcemap(
            root,
            script_root=settings.script_root,
            extension=settings.extension,
            diagnostics=report.diagnostics,
        )
        write_sourcemap(tree, manifest)
    except (OSError, ValueError) as e:
        report.sourcemap_error = str(e)
        logger.error("failed to write %s: %s", manifest, e, extra={"op": "sourcemap", "path": str(manifest)})
        return
    report.sourcemap_written = True


def ingest_files(root: Path, files: Iterable[Tuple[str, str]], *, settings: CarbonSettings) -> IngestReport:
    """Write each (path, content) entry under `root`, then regenerate the sourcemap."""
    report = IngestReport()
    for path_str, content in files:
        report.results.append(write_entry(root, path_str, content))
    if report.failed:
        logger.warning(
            "ingest finished with %d of %d entries skipped",
            len(report.failed),
            len(report.results),
            extra={"op": "ingest"},
        )
    refresh_sourcemap(root, settings, report)
    return report
