from __future__ import annotations

import errno
import logging
import os
import shutil
from pathlib import Path

from dupsweep.core.config import DEFAULT_QUARANTINE_DIR_NAME
from dupsweep.core.path_safety import PathSafetyError, quarantine_dir_for, reserve_unique_path
from dupsweep.fingerprint.types import Fingerprint
from dupsweep.index.service import FingerprintIndex, StorageWriteError
from dupsweep.index.types import ClaimOutcome
from dupsweep.resolver.types import Resolution, ResolutionOutcome

logger = logging.getLogger(__name__)


class FilesystemMoveError(OSError):
    pass


def _discard_placeholder(target: Path) -> None:
    try:
        target.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove quarantine placeholder %s: %s", target, exc)


def _copy_then_unlink(source: Path, target: Path) -> None:
    try:
        shutil.copy2(source, target)
    except OSError as exc:
        _discard_placeholder(target)
        raise FilesystemMoveError(f"Cannot copy {source} to {target}: {exc}") from exc

    try:
        os.unlink(source)
    except OSError as exc:
        # The source is still in place, so drop the copy rather than keep two.
        _discard_placeholder(target)
        raise FilesystemMoveError(f"Cannot remove {source} after copying it to {target}: {exc}") from exc


def move_to_quarantine(path: str | Path, quarantine_dir_name: str = DEFAULT_QUARANTINE_DIR_NAME) -> Path:
    """Move ``path`` into ``<parent>/<quarantine_dir_name>/`` without overwriting anything.

    On failure the file stays where it was and ``FilesystemMoveError`` is raised.
    """
    source = Path(path)
    try:
        target_dir = quarantine_dir_for(source, quarantine_dir_name)
        target_dir.mkdir(parents=True, exist_ok=True)
        target = reserve_unique_path(target_dir, source.name)
    except (OSError, PathSafetyError) as exc:
        raise FilesystemMoveError(f"Cannot prepare quarantine directory for {source}: {exc}") from exc

    try:
        os.replace(source, target)
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            _discard_placeholder(target)
            raise FilesystemMoveError(f"Cannot move {source} to {target}: {exc}") from exc
        _copy_then_unlink(source, target)
    return target


class DuplicateResolver:
    def __init__(
        self,
        index: FingerprintIndex,
        *,
        quarantine_dir_name: str = DEFAULT_QUARANTINE_DIR_NAME,
        dry_run: bool = False,
    ):
        self._index = index
        self._quarantine_dir_name = quarantine_dir_name
        self._dry_run = dry_run

    def resolve(self, path: str | Path, fingerprint: Fingerprint, mtime_ns: int | None = None) -> Resolution:
        normalized = str(path)
        try:
            claim = self._index.check_and_claim(normalized, fingerprint, mtime_ns)
        except StorageWriteError as exc:
            logger.warning("Index update failed for %s, leaving it in place: %s", normalized, exc)
            return Resolution(
                path=normalized,
                outcome=ResolutionOutcome.FAILED,
                error=str(exc),
                size=fingerprint.size,
            )

        if claim.outcome == ClaimOutcome.CLAIMED:
            logger.debug("Recorded original %s", normalized)
            return Resolution(
                path=normalized,
                outcome=ResolutionOutcome.ORIGINAL,
                original_path=normalized,
                size=fingerprint.size,
            )

        if claim.outcome == ClaimOutcome.ALREADY_INDEXED:
            logger.debug("Already indexed %s", normalized)
            return Resolution(
                path=normalized,
                outcome=ResolutionOutcome.ALREADY_INDEXED,
                original_path=normalized,
                size=fingerprint.size,
            )

        if self._dry_run:
            logger.info("Duplicate found: %s (original: %s), dry run leaves it in place", normalized, claim.original_path)
            return Resolution(
                path=normalized,
                outcome=ResolutionOutcome.WOULD_QUARANTINE,
                original_path=claim.original_path,
                size=fingerprint.size,
            )

        try:
            target = move_to_quarantine(normalized, self._quarantine_dir_name)
        except FilesystemMoveError as exc:
            logger.warning("Failed to quarantine duplicate %s: %s", normalized, exc)
            return Resolution(
                path=normalized,
                outcome=ResolutionOutcome.FAILED,
                original_path=claim.original_path,
                error=str(exc),
                size=fingerprint.size,
            )

        logger.info("Duplicate found: %s (original: %s) -> moved to %s", normalized, claim.original_path, target)
        return Resolution(
            path=normalized,
            outcome=ResolutionOutcome.QUARANTINED,
            original_path=claim.original_path,
            quarantine_path=str(target),
            size=fingerprint.size,
        )
