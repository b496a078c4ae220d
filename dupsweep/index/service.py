from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from dupsweep.db.models import FileRecord
from dupsweep.fingerprint.types import Fingerprint
from dupsweep.index.types import ClaimOutcome, ClaimResult, FileRecordSnapshot

logger = logging.getLogger(__name__)


class StorageWriteError(RuntimeError):
    pass


class PathAlreadyIndexedError(RuntimeError):
    def __init__(self, path: str):
        super().__init__(f"Path is already indexed: {path}")
        self.path = path


class FingerprintTakenError(RuntimeError):
    def __init__(self, fingerprint: Fingerprint, original_path: str):
        super().__init__(f"Fingerprint {fingerprint.key} already belongs to {original_path}")
        self.fingerprint = fingerprint
        self.original_path = original_path


def _fingerprint_clause(fingerprint: Fingerprint) -> tuple:
    return (
        FileRecord.size == fingerprint.size,
        FileRecord.digest == fingerprint.digest,
        FileRecord.hash_algorithm == fingerprint.algorithm,
    )


class FingerprintIndex:
    """Persistent map from fingerprint to the first path seen with that content.

    Every lookup that precedes a write runs under ``self._lock``, and the storage
    layer carries a unique constraint on the fingerprint as well, so at most one path
    can ever hold a given fingerprint.
    """

    def __init__(self, session_factory: sessionmaker[Session], *, verify_originals: bool = True):
        self._session_factory = session_factory
        self._verify_originals = verify_originals
        self._lock = threading.Lock()

    def lookup_original(self, fingerprint: Fingerprint) -> str | None:
        with self._lock:
            record = self._find_by_fingerprint(fingerprint)
        return record.path if record is not None else None

    def get_by_path(self, path: str | Path) -> FileRecordSnapshot | None:
        with self._session_factory() as session:
            record = session.scalar(select(FileRecord).where(FileRecord.path == str(path)))
            return record_to_snapshot(record) if record is not None else None

    def is_unchanged(self, path: str | Path, size: int, mtime_ns: int) -> bool:
        record = self.get_by_path(path)
        return record is not None and record.size == size and record.mtime_ns == mtime_ns

    def count(self) -> int:
        with self._session_factory() as session:
            return int(session.scalar(select(func.count()).select_from(FileRecord)) or 0)

    def claim(self, path: str | Path, fingerprint: Fingerprint, mtime_ns: int | None = None) -> FileRecordSnapshot:
        with self._lock:
            return self._insert(str(path), fingerprint, mtime_ns)

    def check_and_claim(
        self,
        path: str | Path,
        fingerprint: Fingerprint,
        mtime_ns: int | None = None,
    ) -> ClaimResult:
        normalized_path = str(path)
        with self._lock:
            holder = self._find_by_fingerprint(fingerprint)
            if holder is not None:
                return self._resolve_existing(holder, normalized_path, mtime_ns)

            try:
                record = self._insert(normalized_path, fingerprint, mtime_ns)
            except PathAlreadyIndexedError:
                record = self._refresh(normalized_path, fingerprint, mtime_ns)
            except FingerprintTakenError as exc:
                return ClaimResult(outcome=ClaimOutcome.DUPLICATE, original_path=exc.original_path)
            return ClaimResult(outcome=ClaimOutcome.CLAIMED, original_path=normalized_path, record=record)

    def _resolve_existing(self, holder: FileRecordSnapshot, path: str, mtime_ns: int | None) -> ClaimResult:
        if holder.path == path:
            if mtime_ns is not None and holder.mtime_ns != mtime_ns:
                holder = self._touch(holder.id, mtime_ns)
            return ClaimResult(outcome=ClaimOutcome.ALREADY_INDEXED, original_path=path, record=holder)

        if self._verify_originals and not os.path.exists(holder.path):
            logger.info("Indexed original %s is gone; %s becomes the original", holder.path, path)
            record = self._reassign(holder.id, path, mtime_ns)
            return ClaimResult(outcome=ClaimOutcome.CLAIMED, original_path=path, record=record)

        return ClaimResult(outcome=ClaimOutcome.DUPLICATE, original_path=holder.path, record=holder)

    def _find_by_fingerprint(self, fingerprint: Fingerprint) -> FileRecordSnapshot | None:
        try:
            with self._session_factory() as session:
                record = session.scalar(select(FileRecord).where(*_fingerprint_clause(fingerprint)))
                return record_to_snapshot(record) if record is not None else None
        except SQLAlchemyError as exc:
            raise StorageWriteError(f"Fingerprint lookup failed: {exc}") from exc

    def _insert(self, path: str, fingerprint: Fingerprint, mtime_ns: int | None) -> FileRecordSnapshot:
        with self._session_factory() as session:
            record = FileRecord(
                path=path,
                size=fingerprint.size,
                digest=fingerprint.digest,
                hash_algorithm=fingerprint.algorithm,
                mtime_ns=mtime_ns,
            )
            session.add(record)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise self._classify_conflict(session, path, fingerprint) from exc
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageWriteError(f"Failed to insert {path}: {exc}") from exc
            return record_to_snapshot(record)

    def _refresh(self, path: str, fingerprint: Fingerprint, mtime_ns: int | None) -> FileRecordSnapshot:
        # The path was indexed earlier with different content.
        with self._session_factory() as session:
            record = session.scalar(select(FileRecord).where(FileRecord.path == path))
            if record is None:
                raise StorageWriteError(f"Record for {path} vanished during refresh")
            logger.info("Content of %s changed since it was indexed; refreshing its fingerprint", path)
            record.size = fingerprint.size
            record.digest = fingerprint.digest
            record.hash_algorithm = fingerprint.algorithm
            record.mtime_ns = mtime_ns
            try:
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageWriteError(f"Failed to refresh {path}: {exc}") from exc
            return record_to_snapshot(record)

    def _reassign(self, record_id: int, path: str, mtime_ns: int | None) -> FileRecordSnapshot:
        with self._session_factory() as session:
            try:
                session.execute(delete(FileRecord).where(FileRecord.path == path, FileRecord.id != record_id))
                record = session.get(FileRecord, record_id)
                if record is None:
                    raise StorageWriteError(f"Record {record_id} vanished during reassignment")
                record.path = path
                record.mtime_ns = mtime_ns
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageWriteError(f"Failed to reassign record {record_id} to {path}: {exc}") from exc
            return record_to_snapshot(record)

    def _touch(self, record_id: int, mtime_ns: int) -> FileRecordSnapshot:
        with self._session_factory() as session:
            record = session.get(FileRecord, record_id)
            if record is None:
                raise StorageWriteError(f"Record {record_id} vanished during update")
            record.mtime_ns = mtime_ns
            try:
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageWriteError(f"Failed to update record {record_id}: {exc}") from exc
            return record_to_snapshot(record)

    def _classify_conflict(self, session: Session, path: str, fingerprint: Fingerprint) -> Exception:
        try:
            if session.scalar(select(FileRecord.id).where(FileRecord.path == path)) is not None:
                return PathAlreadyIndexedError(path)
            holder = session.scalar(select(FileRecord.path).where(*_fingerprint_clause(fingerprint)))
        except SQLAlchemyError as exc:
            return StorageWriteError(f"Failed to inspect conflict for {path}: {exc}")
        if holder is not None:
            return FingerprintTakenError(fingerprint, holder)
        return StorageWriteError(f"Unexpected constraint violation while inserting {path}")


def record_to_snapshot(record: FileRecord) -> FileRecordSnapshot:
    return FileRecordSnapshot(
        id=record.id,
        path=record.path,
        size=record.size,
        digest=record.digest,
        hash_algorithm=record.hash_algorithm,
        mtime_ns=record.mtime_ns,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )

