from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from dupsweep.core.pagination import decode_cursor, encode_cursor
from dupsweep.core.path_safety import display_path
from dupsweep.db.models import HashAlgorithm, ScanRun, ScanRunStatus
from dupsweep.index.service import StorageWriteError
from dupsweep.runs.types import RunCounters, ScanRunListResult, ScanRunSnapshot

_CURSOR_PREFIX = "run"


class RunNotFoundError(RuntimeError):
    pass


class InvalidRunStateError(RuntimeError):
    pass


class RunService:
    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def _now(self) -> datetime:
        return datetime.now(tz=timezone.utc)

    def start_run(self, *, root_path: str, dry_run: bool, hash_algorithm: HashAlgorithm | str) -> ScanRunSnapshot:
        with self._session_factory() as session:
            run = ScanRun(
                status=ScanRunStatus.RUNNING,
                root_path=root_path,
                dry_run=dry_run,
                hash_algorithm=HashAlgorithm(hash_algorithm),
                started_at=self._now(),
            )
            session.add(run)
            try:
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageWriteError(f"Failed to record run start for {root_path}: {exc}") from exc
            session.refresh(run)
            return self._to_snapshot(run)

    def finish_run(
        self,
        run_id: int,
        *,
        counters: RunCounters,
        success: bool,
        error_message: str | None = None,
    ) -> ScanRunSnapshot:
        with self._session_factory() as session:
            run = session.get(ScanRun, run_id)
            if run is None:
                raise RunNotFoundError(f"Run not found: {run_id}")
            if run.status != ScanRunStatus.RUNNING:
                raise InvalidRunStateError(f"Run {run_id} is not running")

            run.status = ScanRunStatus.SUCCEEDED if success else ScanRunStatus.FAILED
            run.finished_at = self._now()
            run.error_message = error_message
            run.files_seen = counters.files_seen
            run.originals = counters.originals
            run.duplicates = counters.duplicates
            run.already_indexed = counters.already_indexed
            run.unchanged = counters.unchanged
            run.errors = counters.errors
            run.bytes_hashed = counters.bytes_hashed
            try:
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageWriteError(f"Failed to record run completion for run {run_id}: {exc}") from exc
            session.refresh(run)
            return self._to_snapshot(run)

    def get_run(self, run_id: int) -> ScanRunSnapshot:
        with self._session_factory() as session:
            run = session.get(ScanRun, run_id)
            if run is None:
                raise RunNotFoundError(f"Run not found: {run_id}")
            return self._to_snapshot(run)

    def list_runs(self, *, limit: int = 50, cursor: str | None = None) -> ScanRunListResult:
        bounded_limit = max(1, min(limit, 200))
        stmt = select(ScanRun).order_by(ScanRun.id.desc()).limit(bounded_limit + 1)
        if cursor is not None:
            stmt = stmt.where(ScanRun.id < decode_cursor(_CURSOR_PREFIX, cursor))

        with self._session_factory() as session:
            rows = list(session.scalars(stmt).all())
            items = rows[:bounded_limit]
            next_cursor = encode_cursor(_CURSOR_PREFIX, items[-1].id) if len(rows) > bounded_limit and items else None
            return ScanRunListResult(items=[self._to_snapshot(row) for row in items], next_cursor=next_cursor)

    def _to_snapshot(self, run: ScanRun) -> ScanRunSnapshot:
        return ScanRunSnapshot(
            id=run.id,
            status=run.status,
            root_path=run.root_path,
            dry_run=run.dry_run,
            hash_algorithm=run.hash_algorithm,
            started_at=run.started_at,
            finished_at=run.finished_at,
            error_message=run.error_message,
            files_seen=run.files_seen,
            originals=run.originals,
            duplicates=run.duplicates,
            already_indexed=run.already_indexed,
            unchanged=run.unchanged,
            errors=run.errors,
            bytes_hashed=run.bytes_hashed,
        )


def run_snapshot_to_dict(snapshot: ScanRunSnapshot) -> dict[str, Any]:
    return {
        "id": snapshot.id,
        "status": snapshot.status.value,
        "root_path": display_path(snapshot.root_path),
        "dry_run": snapshot.dry_run,
        "hash_algorithm": snapshot.hash_algorithm.value,
        "started_at": snapshot.started_at,
        "finished_at": snapshot.finished_at,
        "error_message": snapshot.error_message,
        "files_seen": snapshot.files_seen,
        "originals": snapshot.originals,
        "duplicates": snapshot.duplicates,
        "already_indexed": snapshot.already_indexed,
        "unchanged": snapshot.unchanged,
        "errors": snapshot.errors,
        "bytes_hashed": snapshot.bytes_hashed,
    }
