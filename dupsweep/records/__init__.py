from dupsweep.records.service import RecordNotFoundError, RecordQueryService
from dupsweep.records.types import FileRecordListResult, IndexSummary

__all__ = [
    "FileRecordListResult",
    "IndexSummary",
    "RecordNotFoundError",
    "RecordQueryService",
]
