from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class FileRecordResponse(BaseModel):
    id: int
    path: str
    size: int
    digest: str
    hash_algorithm: str
    mtime_ns: int | None
    created_at: datetime | None
    updated_at: datetime | None


class FileRecordListResponse(BaseModel):
    items: list[FileRecordResponse]
    next_cursor: str | None


class IndexSummaryResponse(BaseModel):
    record_count: int
    total_size_bytes: int
    run_count: int
