from __future__ import annotations

from dataclasses import dataclass

from dupsweep.index.types import FileRecordSnapshot


@dataclass(slots=True)
class FileRecordListResult:
    items: list[FileRecordSnapshot]
    next_cursor: str | None


@dataclass(slots=True)
class IndexSummary:
    record_count: int
    total_size_bytes: int
    run_count: int
