from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ... import __version__
from ...contracts.v1 import (
    Ack,
    ApiError,
    ApiErrorResponse,
    FileResultOut,
    PollResponse,
    SourcemapWriteOut,
    SyncCommand,
    SyncUpdateRequest,
    SyncUpdateResponse,
)
from ...daemon.coordinator import Coordinator
from ...kernel.mailbox import MailboxPoisonedError

logger = logging.getLogger("carbon.web")


def _error(status_code: int, code: str, message: str, details: Optional[Dict[str, Any]] = None) -> JSONResponse:
    body = ApiErrorResponse(error=ApiError(code=code, message=message, details=details or {}))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app(coordinator: Optional[Coordinator] = None) -> FastAPI:
    coord = coordinator or Coordinator.for_project()
    app = FastAPI(title="carbon", version=__version__)
    app.state.coordinator = coord

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("rejected malformed request to %s", request.url.path, extra={"op": "validate", "path": request.url.path})
        return _error(400, "invalid_request", "invalid request body", {"errors": jsonable_errors(exc)})

    @app.exception_handler(MailboxPoisonedError)
    async def _mailbox_poisoned(request: Request, exc: MailboxPoisonedError) -> JSONResponse:
        logger.critical("command mailbox unusable: %s", exc, extra={"op": "mailbox", "path": request.url.path})
        return _error(500, "mailbox_poisoned", str(exc))

    @app.get("/")
    def root() -> Dict[str, Any]:
        return {"message": "Carbon Core Running", "version": __version__}

    @app.get("/poll")
    def poll_command() -> Dict[str, Any]:
        """Editor plugin polls here; the pending command is cleared on read."""
        return PollResponse(command=coord.consume_command()).model_dump()

    @app.post("/command")
    def receive_command(command: SyncCommand = Body(...)) -> Dict[str, Any]:
        """CLI/editor extension triggers import, export or sourcemap."""
        coord.submit_command(command)
        return Ack().model_dump()

    @app.post("/sync/update")
    def sync_update(payload: SyncUpdateRequest) -> Dict[str, Any]:
        """Write files pushed by the editor plugin, then refresh sourcemap.json."""
        report = coord.ingest((f.path, f.content) for f in payload.files)
        resp = SyncUpdateResponse(
            success=True,
            results=[FileResultOut(path=r.path, status=r.status, error=r.error) for r in report.results],
            sourcemap=SourcemapWriteOut(
                path=report.sourcemap_path,
                written=report.sourcemap_written,
                error=report.sourcemap_error,
            ),
        )
        return resp.model_dump()

    @app.get("/sourcemap")
    def get_sourcemap() -> JSONResponse:
        return JSONResponse(content=coord.build_sourcemap().to_dict())

    @app.post("/sourcemap")
    def regenerate_sourcemap() -> JSONResponse:
        try:
            path = coord.generate_sourcemap()
        except (OSError, ValueError) as e:
            logger.error("failed to write sourcemap: %s", e, extra={"op": "sourcemap"})
            return _error(500, "sourcemap_write_failed", str(e), {"path": str(coord.manifest_path)})
        return JSONResponse(content={"success": True, "path": str(path)})

    return app


def jsonable_errors(exc: RequestValidationError) -> list:
    out = []
    for err in exc.errors():
        out.append(
            {
                "loc": [str(x) for x in err.get("loc", ())],
                "msg": str(err.get("msg") or ""),
                "type": str(err.get("type") or ""),
            }
        )
    return out
