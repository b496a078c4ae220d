from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from dupsweep.api.schemas.runs import ScanRunListResponse, ScanRunResponse
from dupsweep.db.session import get_session_factory
from dupsweep.runs.service import RunNotFoundError, RunService, run_snapshot_to_dict

router = APIRouter(prefix="/runs", tags=["runs"])


def get_run_service() -> RunService:
    return RunService(session_factory=get_session_factory())


@router.get("", response_model=ScanRunListResponse)
def list_runs(
    limit: int = Query(default=50, ge=1, le=200),
    cursor: str | None = None,
    service: RunService = Depends(get_run_service),
) -> ScanRunListResponse:
    try:
        result = service.list_runs(limit=limit, cursor=cursor)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return ScanRunListResponse(
        items=[ScanRunResponse(**run_snapshot_to_dict(item)) for item in result.items],
        next_cursor=result.next_cursor,
    )


@router.get("/{run_id}", response_model=ScanRunResponse)
def get_run(run_id: int, service: RunService = Depends(get_run_service)) -> ScanRunResponse:
    try:
        snapshot = service.get_run(run_id)
    except RunNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return ScanRunResponse(**run_snapshot_to_dict(snapshot))
