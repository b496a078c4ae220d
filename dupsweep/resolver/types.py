from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ResolutionOutcome(str, Enum):
    ORIGINAL = "original"
    ALREADY_INDEXED = "already_indexed"
    QUARANTINED = "quarantined"
    WOULD_QUARANTINE = "would_quarantine"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Resolution:
    path: str
    outcome: ResolutionOutcome
    original_path: str | None = None
    quarantine_path: str | None = None
    error: str | None = None
    size: int | None = None
