from dupsweep.index.service import (
    FingerprintIndex,
    FingerprintTakenError,
    PathAlreadyIndexedError,
    StorageWriteError,
)
from dupsweep.index.types import ClaimOutcome, ClaimResult, FileRecordSnapshot

__all__ = [
    "ClaimOutcome",
    "ClaimResult",
    "FileRecordSnapshot",
    "FingerprintIndex",
    "FingerprintTakenError",
    "PathAlreadyIndexedError",
    "StorageWriteError",
]
