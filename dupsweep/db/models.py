from __future__ import annotations

import os
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class FilesystemPath(TypeDecorator):
    """Filesystem path stored as its raw OS bytes, so names that are not valid UTF-8 survive.

    Values are ``str`` in Python; undecodable bytes round-trip through ``os.fsencode`` and
    ``os.fsdecode`` as surrogate escapes.
    """

    impl = LargeBinary
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return os.fsencode(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, str):
            return value
        return os.fsdecode(bytes(value))


class HashAlgorithm(str, Enum):
    BLAKE3 = "blake3"
    SHA256 = "sha256"


class ScanRunStatus(str, Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FileRecord(Base):
    __tablename__ = "files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    path: Mapped[str] = mapped_column(FilesystemPath, nullable=False, unique=True)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    digest: Mapped[str] = mapped_column(String(128), nullable=False)
    hash_algorithm: Mapped[HashAlgorithm] = mapped_column(
        SAEnum(HashAlgorithm, native_enum=False, values_callable=_enum_values),
        nullable=False,
        default=HashAlgorithm.SHA256,
    )
    mtime_ns: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("hash_algorithm", "digest", "size", name="uq_files_fingerprint"),
        Index("ix_files_size_digest", "size", "digest"),
    )


class ScanRun(Base):
    __tablename__ = "scan_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    status: Mapped[ScanRunStatus] = mapped_column(
        SAEnum(ScanRunStatus, native_enum=False, values_callable=_enum_values),
        nullable=False,
        default=ScanRunStatus.RUNNING,
    )
    root_path: Mapped[str] = mapped_column(FilesystemPath, nullable=False)
    dry_run: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hash_algorithm: Mapped[HashAlgorithm] = mapped_column(
        SAEnum(HashAlgorithm, native_enum=False, values_callable=_enum_values),
        nullable=False,
    )
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    files_seen: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    originals: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    duplicates: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    already_indexed: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    unchanged: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    errors: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bytes_hashed: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (
        Index("ix_scan_runs_status_started", "status", "started_at"),
        Index("ix_scan_runs_finished_at", "finished_at"),
    )
