from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from dupsweep.db.models import HashAlgorithm, ScanRunStatus


@dataclass(slots=True)
class RunCounters:
    files_seen: int = 0
    originals: int = 0
    duplicates: int = 0
    already_indexed: int = 0
    unchanged: int = 0
    errors: int = 0
    bytes_hashed: int = 0


@dataclass(slots=True)
class ScanRunSnapshot:
    id: int
    status: ScanRunStatus
    root_path: str
    dry_run: bool
    hash_algorithm: HashAlgorithm
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


@dataclass(slots=True)
class ScanRunListResult:
    items: list[ScanRunSnapshot]
    next_cursor: str | None
