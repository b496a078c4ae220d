from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from dupsweep.core.config import Settings
from dupsweep.core.pagination import decode_cursor, encode_cursor
from dupsweep.core.path_safety import display_path
from dupsweep.db.models import FileRecord, HashAlgorithm, ScanRun
from dupsweep.index.service import record_to_snapshot
from dupsweep.index.types import FileRecordSnapshot
from dupsweep.records.types import FileRecordListResult, IndexSummary

_CURSOR_PREFIX = "rec"
_DIGEST_HEX_LENGTH = 64


class RecordNotFoundError(RuntimeError):
    pass


class RecordQueryService:
    def __init__(self, settings: Settings, session_factory: sessionmaker[Session]):
        self._settings = settings
        self._session_factory = session_factory

    def _normalize_limit(self, limit: int | None) -> int:
        if limit is None:
            return int(self._settings.default_page_size)
        return max(1, min(int(limit), int(self._settings.max_page_size)))

    def _normalize_digest(self, digest: str) -> str:
        token = digest.strip().lower()
        if len(token) != _DIGEST_HEX_LENGTH:
            raise ValueError(f"digest must be {_DIGEST_HEX_LENGTH} hex characters")
        try:
            bytes.fromhex(token)
        except ValueError as exc:
            raise ValueError("digest is not valid hex") from exc
        return token

    def list_records(self, *, limit: int | None = None, cursor: str | None = None) -> FileRecordListResult:
        bounded_limit = self._normalize_limit(limit)
        stmt = select(FileRecord).order_by(FileRecord.id.asc()).limit(bounded_limit + 1)
        if cursor is not None:
            stmt = stmt.where(FileRecord.id > decode_cursor(_CURSOR_PREFIX, cursor))

        with self._session_factory() as session:
            rows = list(session.scalars(stmt).all())

        items = [record_to_snapshot(row) for row in rows[:bounded_limit]]
        next_cursor = encode_cursor(_CURSOR_PREFIX, items[-1].id) if len(rows) > bounded_limit and items else None
        return FileRecordListResult(items=items, next_cursor=next_cursor)

    def get_records_by_digest(self, *, algorithm: str, digest: str) -> list[FileRecordSnapshot]:
        try:
            normalized_algorithm = HashAlgorithm(algorithm.strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unsupported hash algorithm: {algorithm}") from exc
        normalized_digest = self._normalize_digest(digest)

        stmt = (
            select(FileRecord)
            .where(FileRecord.hash_algorithm == normalized_algorithm, FileRecord.digest == normalized_digest)
            .order_by(FileRecord.size.asc())
        )
        with self._session_factory() as session:
            rows = list(session.scalars(stmt).all())
        if not rows:
            raise RecordNotFoundError(f"No record for {normalized_algorithm.value}:{normalized_digest}")
        return [record_to_snapshot(row) for row in rows]

    def summary(self) -> IndexSummary:
        with self._session_factory() as session:
            record_count, total_size = session.execute(
                select(func.count(FileRecord.id), func.coalesce(func.sum(FileRecord.size), 0))
            ).one()
            run_count = session.scalar(select(func.count(ScanRun.id))) or 0
        return IndexSummary(
            record_count=int(record_count),
            total_size_bytes=int(total_size),
            run_count=int(run_count),
        )


def file_record_snapshot_to_dict(snapshot: FileRecordSnapshot) -> dict[str, Any]:
    return {
        "id": snapshot.id,
        "path": display_path(snapshot.path),
        "size": snapshot.size,
        "digest": snapshot.digest,
        "hash_algorithm": snapshot.hash_algorithm.value,
        "mtime_ns": snapshot.mtime_ns,
        "created_at": snapshot.created_at,
        "updated_at": snapshot.updated_at,
    }
