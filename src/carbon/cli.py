from __future__ import annotations

import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import Optional

from . import __version__
from .client import DEFAULT_CLIENT_HOST, ServerUnavailableError, send_command
from .contracts.v1 import SyncCommand
from .daemon.coordinator import Coordinator
from .util.obslog import setup_root_json_logging

logger = logging.getLogger("carbon.cli")


def cmd_serve(args: argparse.Namespace, coordinator: Coordinator) -> int:
    from .ports.web.main import serve

    return serve(coordinator, host=args.host or None, port=args.port or None)


def _send(command: SyncCommand, args: argparse.Namespace, coordinator: Coordinator) -> int:
    port = int(args.port or coordinator.settings.port)
    logger.info("triggering %s", command.value, extra={"op": "send", "command": command.value})
    try:
        send_command(command, port=port, host=args.host or DEFAULT_CLIENT_HOST)
    except ServerUnavailableError as e:
        print(f"carbon: {e}", file=sys.stderr)
        print("  is the server running? start it with: carbon serve", file=sys.stderr)
        return 1
    print(f"carbon: {command.value} requested")
    return 0


def cmd_import(args: argparse.Namespace, coordinator: Coordinator) -> int:
    return _send(SyncCommand.IMPORT, args, coordinator)


def cmd_export(args: argparse.Namespace, coordinator: Coordinator) -> int:
    return _send(SyncCommand.EXPORT, args, coordinator)


def cmd_sourcemap(args: argparse.Namespace, coordinator: Coordinator) -> int:
    tree = coordinator.build_sourcemap()
    if not args.no_write:
        try:
            coordinator.generate_sourcemap(tree)
        except (OSError, ValueError) as e:
            print(f"carbon: failed to write {coordinator.manifest_path}: {e}", file=sys.stderr)
            return 1
    print(tree.to_json())
    return 0


def cmd_lsp(args: argparse.Namespace, coordinator: Coordinator, *, stop: Optional[threading.Event] = None) -> int:
    # The language server loop is not implemented; keep the process alive so
    # the editor does not treat the server as crashed.
    print("Carbon LSP started (placeholder)", flush=True)
    waiter = stop or threading.Event()
    try:
        waiter.wait()
    except KeyboardInterrupt:
        pass
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="carbon", description="Sync Roblox Studio scripts with the filesystem")
    parser.add_argument("--version", action="version", version=f"carbon {__version__}")
    parser.add_argument("--root", default="", help="Project root (default: CARBON_ROOT or cwd)")
    sub = parser.add_subparsers(dest="cmd")

    p = sub.add_parser("serve", help="Start the sync server (default)")
    p.add_argument("-p", "--port", type=int, default=0, help="Bind port (default: from carbon.yaml, else 8000)")
    p.add_argument("--host", default="", help="Bind host (default: from carbon.yaml, else 0.0.0.0)")
    p.set_defaults(func=cmd_serve)

    for name, func, help_text in (
        ("import", cmd_import, "Import scripts from Roblox"),
        ("export", cmd_export, "Export scripts to Roblox"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("-p", "--port", type=int, default=0, help="Server port (default: from carbon.yaml, else 8000)")
        p.add_argument("--host", default="", help=f"Server host (default: {DEFAULT_CLIENT_HOST})")
        p.set_defaults(func=func)

    p = sub.add_parser("sourcemap", help="Generate sourcemap for Luau LSP")
    p.add_argument("--no-write", action="store_true", help="Print only; do not update sourcemap.json")
    p.set_defaults(func=cmd_sourcemap)

    p = sub.add_parser("lsp", help="Start LSP server")
    p.set_defaults(func=cmd_lsp)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    coordinator = Coordinator.for_project(Path(args.root) if args.root else None)
    setup_root_json_logging(component="carbon", level=coordinator.settings.log_level)

    if args.cmd is None:
        args = parser.parse_args([*(sys.argv[1:] if argv is None else argv), "serve"])
    return int(args.func(args, coordinator))


if __name__ == "__main__":
    raise SystemExit(main())
