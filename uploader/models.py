"""Command request data types for the uploader REPL."""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class UploadCommand:
    """Upload a local video through the chunk endpoints."""

    path: str
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class ResumeCommand:
    """Resume an interrupted upload; both fields None means the pending one."""

    path: str | None = None
    file_name: str | None = None
    command: Literal["resume"] = "resume"


@dataclass(frozen=True)
class StatusCommand:
    """Show which chunks the server holds for an upload."""

    file_name: str
    total_chunks: int | None = None
    command: Literal["status"] = "status"


@dataclass(frozen=True)
class StorageCommand:
    """Check the server's storage backend."""

    command: Literal["storage"] = "storage"


CommandRequest = (
    UploadCommand
    | ResumeCommand
    | StatusCommand
    | StorageCommand
)
