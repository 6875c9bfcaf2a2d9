from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


FileStatus = Literal["written", "rejected", "mkdir_failed", "write_failed"]


class SyncFile(BaseModel):
    path: str
    content: str

    model_config = ConfigDict(extra="ignore")


class SyncUpdateRequest(BaseModel):
    files: List[SyncFile] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class FileResultOut(BaseModel):
    path: str
    status: FileStatus
    error: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class SourcemapWriteOut(BaseModel):
    path: str
    written: bool
    error: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class SyncUpdateResponse(BaseModel):
    success: bool = True
    results: List[FileResultOut] = Field(default_factory=list)
    sourcemap: Optional[SourcemapWriteOut] = None

    model_config = ConfigDict(extra="forbid")
