from __future__ import annotations

from .command import Ack, PollResponse, SyncCommand
from .errors import ApiError, ApiErrorResponse
from .sync import FileResultOut, FileStatus, SourcemapWriteOut, SyncFile, SyncUpdateRequest, SyncUpdateResponse

__all__ = [
    "Ack",
    "ApiError",
    "ApiErrorResponse",
    "FileResultOut",
    "FileStatus",
    "PollResponse",
    "SourcemapWriteOut",
    "SyncCommand",
    "SyncFile",
    "SyncUpdateRequest",
    "SyncUpdateResponse",
]
