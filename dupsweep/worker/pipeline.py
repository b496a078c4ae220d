from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, replace
from pathlib import Path

from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from dupsweep.core.config import Settings
from dupsweep.core.path_safety import display_text, sqlite_companion_paths
from dupsweep.db.init_db import StorageOpenError, initialize_database
from dupsweep.db.session import create_db_engine, create_session_factory
from dupsweep.fingerprint.service import FingerprintError, fingerprint_file
from dupsweep.index.service import FingerprintIndex, StorageWriteError
from dupsweep.resolver.service import DuplicateResolver
from dupsweep.resolver.types import Resolution, ResolutionOutcome
from dupsweep.runs.service import InvalidRunStateError, RunNotFoundError, RunService
from dupsweep.runs.types import RunCounters, ScanRunSnapshot
from dupsweep.scanner.walker import iter_candidate_paths
from dupsweep.worker.dispatcher import WorkDispatcher

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunContext:
    """Everything a worker needs for one run, passed explicitly to each handler."""

    settings: Settings
    engine: Engine
    session_factory: sessionmaker[Session]
    index: FingerprintIndex
    resolver: DuplicateResolver

    @classmethod
    def open(cls, settings: Settings) -> "RunContext":
        try:
            engine = create_db_engine(settings)
        except SQLAlchemyError as exc:
            raise StorageOpenError(f"Cannot open index storage: {exc}") from exc
        try:
            initialize_database(engine)
        except StorageOpenError:
            engine.dispose()
            raise

        session_factory = create_session_factory(engine)
        index = FingerprintIndex(session_factory, verify_originals=settings.verify_originals)
        resolver = DuplicateResolver(
            index,
            quarantine_dir_name=settings.quarantine_dir_name,
            dry_run=settings.dry_run,
        )
        return cls(
            settings=settings,
            engine=engine,
            session_factory=session_factory,
            index=index,
            resolver=resolver,
        )

    def close(self) -> None:
        self.engine.dispose()


class RunTally:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters = RunCounters()

    def record(self, resolution: Resolution) -> None:
        with self._lock:
            counters = self._counters
            if resolution.size is not None:
                counters.bytes_hashed += resolution.size
            if resolution.outcome == ResolutionOutcome.ORIGINAL:
                counters.originals += 1
            elif resolution.outcome == ResolutionOutcome.ALREADY_INDEXED:
                counters.already_indexed += 1
            elif resolution.outcome in {ResolutionOutcome.QUARANTINED, ResolutionOutcome.WOULD_QUARANTINE}:
                counters.duplicates += 1
            elif resolution.outcome == ResolutionOutcome.UNCHANGED:
                counters.unchanged += 1
            else:
                counters.errors += 1

    def finalize(self, *, files_seen: int, unhandled_errors: int) -> RunCounters:
        with self._lock:
            self._counters.files_seen = files_seen
            self._counters.errors += unhandled_errors
            return replace(self._counters)


def process_path(context: RunContext, path: str | Path) -> Resolution:
    settings = context.settings
    normalized = str(path)
    try:
        stat_result = os.stat(normalized)
    except OSError as exc:
        logger.warning("Cannot stat %s: %s", normalized, exc)
        return Resolution(path=normalized, outcome=ResolutionOutcome.FAILED, error=str(exc))

    if settings.skip_unchanged and context.index.is_unchanged(
        normalized, stat_result.st_size, stat_result.st_mtime_ns
    ):
        logger.debug("Skipping unchanged %s", normalized)
        return Resolution(path=normalized, outcome=ResolutionOutcome.UNCHANGED, original_path=normalized)

    try:
        fingerprint = fingerprint_file(normalized, settings.hash_algorithm, settings.hash_read_chunk_bytes)
    except FingerprintError as exc:
        logger.warning("Error hashing file %s: %s", normalized, exc)
        return Resolution(path=normalized, outcome=ResolutionOutcome.FAILED, error=str(exc))

    return context.resolver.resolve(normalized, fingerprint, stat_result.st_mtime_ns)


def _abort_run(
    runs: RunService,
    run_id: int,
    tally: RunTally,
    dispatcher: WorkDispatcher[Path, None],
    exc: BaseException,
) -> None:
    partial = dispatcher.summary
    counters = tally.finalize(files_seen=partial.dispatched, unhandled_errors=partial.failed)
    message = display_text(str(exc) or type(exc).__name__)
    logger.error("Run %s aborted: %s", run_id, message)
    try:
        runs.finish_run(run_id, counters=counters, success=False, error_message=message)
    except (StorageWriteError, RunNotFoundError, InvalidRunStateError):
        logger.exception("Could not mark run %s as failed", run_id)


def run_deduplication(settings: Settings, *, cancel_event: threading.Event | None = None) -> ScanRunSnapshot:
    """Scan ``settings.scan_root`` and quarantine every file whose content is already indexed.

    Raises ``ConfigError`` without a scan root and ``StorageOpenError`` when the index
    cannot be opened. Per-file problems are logged and counted in the returned run.
    """
    root = settings.require_scan_root()
    context = RunContext.open(settings)
    try:
        runs = RunService(context.session_factory)
        try:
            run = runs.start_run(
                root_path=root.as_posix(),
                dry_run=settings.dry_run,
                hash_algorithm=settings.hash_algorithm,
            )
        except StorageWriteError as exc:
            raise StorageOpenError(str(exc)) from exc

        logger.info(
            "Run %s started: root=%s workers=%s algorithm=%s dry_run=%s",
            run.id,
            root,
            settings.worker_count,
            settings.hash_algorithm,
            settings.dry_run,
        )

        tally = RunTally()

        def handle(path: Path) -> None:
            tally.record(process_path(context, path))

        dispatcher: WorkDispatcher[Path, None] = WorkDispatcher(
            handle,
            worker_count=settings.worker_count,
            queue_capacity=settings.effective_queue_capacity,
            cancel_event=cancel_event,
            keep_results=False,
        )
        excluded = sqlite_companion_paths(settings.database_path) if not settings.database_url else set()
        paths = iter_candidate_paths(
            root,
            skip_dir_names={settings.quarantine_dir_name},
            exclude_paths=excluded,
        )
        try:
            summary = dispatcher.dispatch(paths)
        except BaseException as exc:
            _abort_run(runs, run.id, tally, dispatcher, exc)
            raise

        counters = tally.finalize(files_seen=summary.dispatched, unhandled_errors=summary.failed)
        finished = runs.finish_run(
            run.id,
            counters=counters,
            success=not summary.cancelled,
            error_message="cancelled" if summary.cancelled else None,
        )
        logger.info(
            "Run %s %s: seen=%s originals=%s duplicates=%s already_indexed=%s unchanged=%s errors=%s",
            finished.id,
            finished.status.value,
            finished.files_seen,
            finished.originals,
            finished.duplicates,
            finished.already_indexed,
            finished.unchanged,
            finished.errors,
        )
        return finished
    finally:
        context.close()
