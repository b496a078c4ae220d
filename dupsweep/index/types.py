from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from dupsweep.db.models import HashAlgorithm


class ClaimOutcome(str, Enum):
    CLAIMED = "claimed"
    ALREADY_INDEXED = "already_indexed"
    DUPLICATE = "duplicate"


@dataclass(slots=True)
class FileRecordSnapshot:
    id: int
    path: str
    size: int
    digest: str
    hash_algorithm: HashAlgorithm
    mtime_ns: int | None
    created_at: datetime | None
    updated_at: datetime | None


@dataclass(frozen=True, slots=True)
class ClaimResult:
    outcome: ClaimOutcome
    original_path: str
    record: FileRecordSnapshot | None = None
