"""Sourcemap builder.

Walks the script root of a project (``game/`` by default) and produces the
tree the Luau language server uses to map files onto the editor's instance
hierarchy:

    game/ServerScriptService/init.server.luau  -> ServerScriptService (file attached)
    game/MyTool/init.client.luau              -> MyTool: LocalScript
    game/ReplicatedStorage/Utils.luau         -> Utils: ModuleScript

The walk is best-effort: a directory that cannot be listed contributes no
children instead of failing the build. Pass a ``BuildDiagnostics`` to see what
was skipped.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Dict, FrozenSet, List, Optional, Set, Tuple

from ..util.fs import atomic_write_text, dump_json

logger = logging.getLogger("carbon.sourcemap")

ROOT_NAME = "Project"
ROOT_CLASS = "Project"
FOLDER_CLASS = "Folder"

# Top-level directories under the script root that map onto editor services.
SERVICE_CLASSES: FrozenSet[str] = frozenset(
    {
        "ServerScriptService",
        "ReplicatedStorage",
        "StarterPlayer",
        "StarterGui",
        "ReplicatedFirst",
        "SoundService",
        "Chat",
        "Lighting",
        "MaterialService",
        "HttpService",
        "Workspace",
    }
)

# Containers that only exist as children of StarterPlayer.
STARTER_PLAYER_CHILDREN: FrozenSet[str] = frozenset({"StarterPlayerScripts", "StarterCharacterScripts"})


@dataclass
class SourcemapNode:
    name: str
    class_name: str
    file_paths: Optional[List[str]] = None
    children: List["SourcemapNode"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": self.name, "className": self.class_name}
        if self.file_paths is not None:
            out["filePaths"] = list(self.file_paths)
        if self.children:
            out["children"] = [c.to_dict() for c in self.children]
        return out

    def to_json(self, *, indent: int = 2) -> str:
        return dump_json(self.to_dict(), indent=indent)

    def find(self, name: str) -> Optional["SourcemapNode"]:
        for child in self.children:
            if child.name == name:
                return child
        return None


@dataclass
class BuildDiagnostics:
    """Filesystem errors absorbed during a build, as (path, message) pairs."""

    errors: List[Tuple[str, str]] = field(default_factory=list)

    def record(self, path: Path, message: str) -> None:
        self.errors.append((str(path), message))

    def __bool__(self) -> bool:
        return bool(self.errors)


def script_kinds(extension: str) -> List[Tuple[str, str]]:
    """Filename suffixes in match order, most specific first."""
    ext = extension.lstrip(".")
    return [
        (f".server.{ext}", "Script"),
        (f".client.{ext}", "LocalScript"),
        (f".{ext}", "ModuleScript"),
    ]


def parse_script_name(filename: str, extension: str) -> Optional[Tuple[str, str]]:
    """Split a script filename into (instance name, class name); None if not a script."""
    for suffix, class_name in script_kinds(extension):
        if filename.endswith(suffix):
            return filename[: -len(suffix)], class_name
    return None


class _Walker:
    def __init__(self, root: Path, extension: str, diagnostics: Optional[BuildDiagnostics]) -> None:
        self.root = root
        self.extension = extension.lstrip(".")
        self.diagnostics = diagnostics
        self._init_names = [("init" + suffix, class_name) for suffix, class_name in script_kinds(self.extension)]

    def _absorb(self, path: Path, exc: BaseException) -> None:
        logger.debug("skipping %s: %s", path, exc, extra={"path": str(path)})
        if self.diagnostics is not None:
            self.diagnostics.record(path, str(exc))

    def _list(self, path: Path) -> List[os.DirEntry]:
        try:
            with os.scandir(path) as it:
                entries = list(it)
        except OSError as e:
            self._absorb(path, e)
            return []
        out = []
        for entry in entries:
            # Undecodable names come back as surrogates and cannot go into the JSON manifest.
            try:
                entry.name.encode("utf-8")
            except UnicodeEncodeError as e:
                self._absorb(Path(entry.path), e)
                continue
            out.append(entry)
        return out

    def _is_dir(self, entry: os.DirEntry) -> bool:
        try:
            return entry.is_dir()
        except OSError as e:
            self._absorb(Path(entry.path), e)
            return False

    def _is_file(self, entry: os.DirEntry) -> bool:
        try:
            return entry.is_file()
        except OSError as e:
            self._absorb(Path(entry.path), e)
            return False

    def _init_script(self, path: Path) -> Optional[Tuple[Path, str]]:
        for filename, class_name in self._init_names:
            candidate = path / filename
            try:
                if candidate.is_file():
                    return candidate, class_name
            except OSError as e:
                self._absorb(candidate, e)
        return None

    def _rel(self, path: Path) -> str:
        try:
            return PurePosixPath(*path.relative_to(self.root).parts).as_posix()
        except ValueError:
            return path.as_posix()

    def walk(self, path: Path, name: str, class_name: str, ancestors: Set[str]) -> SourcemapNode:
        node = SourcemapNode(name, class_name)

        init = self._init_script(path)
        if init is not None:
            init_path, init_class = init
            node.file_paths = [self._rel(init_path)]
            if class_name == FOLDER_CLASS:
                node.class_name = init_class

        try:
            real = os.path.realpath(path)
        except OSError:
            real = str(path)
        if real in ancestors:
            self._absorb(path, RecursionError("directory cycle"))
            return node
        ancestors = ancestors | {real}

        for entry in self._list(path):
            if self._is_dir(entry):
                child_class = FOLDER_CLASS
                if name == "StarterPlayer" and entry.name in STARTER_PLAYER_CHILDREN:
                    child_class = entry.name
                node.children.append(self.walk(Path(entry.path), entry.name, child_class, ancestors))
            elif self._is_file(entry):
                # init.* files belong to the directory node itself.
                if entry.name.startswith("init."):
                    continue
                parsed = parse_script_name(entry.name, self.extension)
                if parsed is None:
                    continue
                child_name, child_class = parsed
                node.children.append(SourcemapNode(child_name, child_class, file_paths=[self._rel(Path(entry.path))]))
        return node


def build_sourcemap(
    root: Path,
    *,
    script_root: str = "game",
    extension: str = "luau",
    diagnostics: Optional[BuildDiagnostics] = None,
) -> SourcemapNode:
    """Build the sourcemap tree for the project at `root`. Never raises for I/O errors."""
    root = Path(root)
    tree = SourcemapNode(ROOT_NAME, ROOT_CLASS)
    game = root / script_root
    try:
        if not game.is_dir():
            return tree
    except OSError as e:
        if diagnostics is not None:
            diagnostics.record(game, str(e))
        return tree

    walker = _Walker(root, extension, diagnostics)
    for entry in walker._list(game):
        if not walker._is_dir(entry):
            continue
        class_name = entry.name if entry.name in SERVICE_CLASSES else FOLDER_CLASS
        tree.children.append(walker.walk(Path(entry.path), entry.name, class_name, set()))
    return tree


def write_sourcemap(tree: SourcemapNode, path: Path) -> Path:
    """Persist a sourcemap, replacing any previous manifest atomically."""
    atomic_write_text(Path(path), tree.to_json() + "\n")
    logger.info("generated %s", path, extra={"op": "sourcemap", "path": str(path)})
    return Path(path)
