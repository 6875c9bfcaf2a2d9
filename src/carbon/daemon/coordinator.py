from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Tuple

from ..contracts.v1 import SyncCommand
from ..kernel.ingest import IngestReport, ingest_files
from ..kernel.mailbox import CommandMailbox
from ..kernel.settings import CarbonSettings, load_settings
from ..kernel.sourcemap import BuildDiagnostics, SourcemapNode, build_sourcemap, write_sourcemap
from ..paths import project_root

logger = logging.getLogger("carbon.coordinator")


@dataclass
class Coordinator:
    """Owns the command mailbox and routes sync work for one project root."""

    root: Path
    settings: CarbonSettings
    mailbox: CommandMailbox = field(default_factory=CommandMailbox)

    @classmethod
    def for_project(cls, root: Optional[Path] = None) -> "Coordinator":
        base = Path(root).resolve() if root is not None else project_root()
        return cls(root=base, settings=load_settings(base))

    @property
    def manifest_path(self) -> Path:
        return self.settings.manifest_path(self.root)

    def submit_command(self, command: "SyncCommand | str") -> SyncCommand:
        cmd = SyncCommand.parse(command)
        logger.info("received command request: %s", cmd.value, extra={"op": "submit", "command": cmd.value})
        self.mailbox.submit(cmd)
        return cmd

    def consume_command(self) -> Optional[SyncCommand]:
        cmd = self.mailbox.consume()
        if cmd is not None:
            logger.info("delivered command: %s", cmd.value, extra={"op": "consume", "command": cmd.value})
        return cmd

    def pending_command(self) -> Optional[SyncCommand]:
        return self.mailbox.peek()

    def build_sourcemap(self, diagnostics: Optional[BuildDiagnostics] = None) -> SourcemapNode:
        return build_sourcemap(
            self.root,
            script_root=self.settings.script_root,
            extension=self.settings.extension,
            diagnostics=diagnostics,
        )

    def generate_sourcemap(self, tree: Optional[SourcemapNode] = None) -> Path:
        """Overwrite the manifest file, rebuilding the tree unless one is given."""
        return write_sourcemap(tree if tree is not None else self.build_sourcemap(), self.manifest_path)

    def ingest(self, files: Iterable[Tuple[str, str]]) -> IngestReport:
        logger.info("received sync update", extra={"op": "ingest", "root": str(self.root)})
        return ingest_files(self.root, files, settings=self.settings)
