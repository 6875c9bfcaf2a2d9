from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class ApiError(BaseModel):
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


class ApiErrorResponse(BaseModel):
    ok: bool = False
    error: ApiError

    model_config = ConfigDict(extra="forbid")
