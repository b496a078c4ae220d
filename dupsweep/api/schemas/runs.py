from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ScanRunResponse(BaseModel):
    id: int
    status: str
    root_path: str
    dry_run: bool
    hash_algorithm: str
    started_at: datetime
    finished_at: datetime | None
    error_message: str | None
    files_seen: int
    originals: int
    duplicates: int
    already_indexed: int
    unchanged: int
    errors: int
    bytes_hashed: int


class ScanRunListResponse(BaseModel):
    items: list[ScanRunResponse]
    next_cursor: str | None
