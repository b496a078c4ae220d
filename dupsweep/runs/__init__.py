from dupsweep.runs.service import InvalidRunStateError, RunNotFoundError, RunService
from dupsweep.runs.types import RunCounters, ScanRunListResult, ScanRunSnapshot

__all__ = [
    "InvalidRunStateError",
    "RunCounters",
    "RunNotFoundError",
    "RunService",
    "ScanRunListResult",
    "ScanRunSnapshot",
]
