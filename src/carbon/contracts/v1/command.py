from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class SyncCommand(str, Enum):
    """Sync intent handed from the CLI to the editor plugin."""

    IMPORT = "import"
    EXPORT = "export"
    SOURCEMAP = "sourcemap"

    @classmethod
    def parse(cls, value: "SyncCommand | str") -> "SyncCommand":
        if isinstance(value, cls):
            return value
        token = str(value or "").strip()
        try:
            return cls(token)
        except ValueError:
            raise ValueError(f"unknown sync command: {value!r}") from None


class PollResponse(BaseModel):
    command: Optional[SyncCommand] = None

    model_config = ConfigDict(extra="forbid", use_enum_values=True)


class Ack(BaseModel):
    success: bool = True

    model_config = ConfigDict(extra="allow")
