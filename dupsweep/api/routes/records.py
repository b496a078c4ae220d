from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from dupsweep.api.schemas.records import FileRecordListResponse, FileRecordResponse, IndexSummaryResponse
from dupsweep.core.config import get_settings
from dupsweep.db.session import get_session_factory
from dupsweep.records.service import RecordNotFoundError, RecordQueryService, file_record_snapshot_to_dict

router = APIRouter(prefix="/records", tags=["records"])


def get_record_service() -> RecordQueryService:
    return RecordQueryService(settings=get_settings(), session_factory=get_session_factory())


@router.get("", response_model=FileRecordListResponse)
def list_records(
    limit: int | None = Query(default=None, ge=1),
    cursor: str | None = None,
    service: RecordQueryService = Depends(get_record_service),
) -> FileRecordListResponse:
    try:
        result = service.list_records(limit=limit, cursor=cursor)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    return FileRecordListResponse(
        items=[FileRecordResponse(**file_record_snapshot_to_dict(item)) for item in result.items],
        next_cursor=result.next_cursor,
    )


@router.get("/summary", response_model=IndexSummaryResponse)
def get_index_summary(service: RecordQueryService = Depends(get_record_service)) -> IndexSummaryResponse:
    summary = service.summary()
    return IndexSummaryResponse(
        record_count=summary.record_count,
        total_size_bytes=summary.total_size_bytes,
        run_count=summary.run_count,
    )


@router.get("/{algorithm}/{digest}", response_model=list[FileRecordResponse])
def get_records_by_digest(
    algorithm: str,
    digest: str,
    service: RecordQueryService = Depends(get_record_service),
) -> list[FileRecordResponse]:
    try:
        items = service.get_records_by_digest(algorithm=algorithm, digest=digest)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return [FileRecordResponse(**file_record_snapshot_to_dict(item)) for item in items]
