from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

import uvicorn

from ...daemon.coordinator import Coordinator
from ...kernel.settings import CarbonSettings
from ...util.obslog import parse_level, setup_root_json_logging
from .app import create_app

logger = logging.getLogger("carbon.web")


def serve(coordinator: Coordinator, *, host: Optional[str] = None, port: Optional[int] = None) -> int:
    settings: CarbonSettings = coordinator.settings
    bind_host = host or settings.host
    bind_port = int(port or settings.port)
    setup_root_json_logging(component="carbon", level=settings.log_level)
    logger.info(
        "listening on %s:%d", bind_host, bind_port, extra={"op": "serve", "root": str(coordinator.root)}
    )
    try:
        uvicorn.run(
            create_app(coordinator),
            host=bind_host,
            port=bind_port,
            log_level=parse_level(settings.log_level),
            access_log=settings.access_log,
            log_config=None,
        )
    except (KeyboardInterrupt, SystemExit):
        pass
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="carbon-web", description="carbon sync server (FastAPI)")
    parser.add_argument("--root", default="", help="Project root (default: CARBON_ROOT or cwd)")
    parser.add_argument("--host", default="", help="Bind host (default: from carbon.yaml, else 0.0.0.0)")
    parser.add_argument("--port", type=int, default=0, help="Bind port (default: from carbon.yaml, else 8000)")
    args = parser.parse_args(argv)

    coordinator = Coordinator.for_project(Path(args.root) if args.root else None)
    return serve(coordinator, host=args.host or None, port=args.port or None)


if __name__ == "__main__":
    raise SystemExit(main())
