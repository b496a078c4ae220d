from __future__ import annotations

import errno
import os
from pathlib import Path

import pytest

from dupsweep.core.config import load_settings
from dupsweep.db.init_db import initialize_database
from dupsweep.db.session import create_db_engine, create_session_factory
from dupsweep.fingerprint.service import fingerprint_file
from dupsweep.fingerprint.types import Fingerprint
from dupsweep.index.service import FingerprintIndex, StorageWriteError
from dupsweep.index.types import ClaimResult
from dupsweep.resolver.service import DuplicateResolver, FilesystemMoveError, move_to_quarantine
from dupsweep.resolver.types import ResolutionOutcome

QUARANTINE = "duplicate_to_be_deleted"


def make_resolver(tmp_path: Path, *, dry_run: bool = False) -> tuple[DuplicateResolver, FingerprintIndex]:
    settings = load_settings(database_path=(tmp_path / "state" / "index.db").as_posix())
    engine = initialize_database(create_db_engine(settings))
    index = FingerprintIndex(create_session_factory(engine))
    return DuplicateResolver(index, quarantine_dir_name=QUARANTINE, dry_run=dry_run), index


def write(path: Path, content: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


class _FailingIndex:
    def check_and_claim(self, path: str, fingerprint: Fingerprint, mtime_ns: int | None = None) -> ClaimResult:
        raise StorageWriteError("disk full")


def test_first_copy_is_recorded_and_left_in_place(tmp_path: Path) -> None:
    resolver, index = make_resolver(tmp_path)
    original = write(tmp_path / "data" / "a.txt", b"X")

    resolution = resolver.resolve(original, fingerprint_file(original))

    assert resolution.outcome == ResolutionOutcome.ORIGINAL
    assert resolution.size == 1
    assert original.exists()
    assert index.lookup_original(fingerprint_file(original)) == original.as_posix()


def test_duplicate_is_moved_into_sibling_quarantine_directory(tmp_path: Path) -> None:
    resolver, index = make_resolver(tmp_path)
    original = write(tmp_path / "data" / "a.txt", b"X")
    copy = write(tmp_path / "data" / "b" / "a.txt", b"X")

    resolver.resolve(original, fingerprint_file(original))
    resolution = resolver.resolve(copy, fingerprint_file(copy))

    expected = tmp_path / "data" / "b" / QUARANTINE / "a.txt"
    assert resolution.outcome == ResolutionOutcome.QUARANTINED
    assert resolution.original_path == original.as_posix()
    assert resolution.quarantine_path == expected.as_posix()
    assert not copy.exists()
    assert expected.read_bytes() == b"X"
    assert original.exists()
    assert index.count() == 1


def test_resolving_the_same_original_twice_is_a_no_op(tmp_path: Path) -> None:
    resolver, index = make_resolver(tmp_path)
    original = write(tmp_path / "a.txt", b"X")
    fingerprint = fingerprint_file(original)

    first = resolver.resolve(original, fingerprint)
    second = resolver.resolve(original, fingerprint)

    assert first.outcome == ResolutionOutcome.ORIGINAL
    assert second.outcome == ResolutionOutcome.ALREADY_INDEXED
    assert original.exists()
    assert not (tmp_path / QUARANTINE).exists()
    assert index.count() == 1


def test_retrying_a_quarantined_duplicate_does_not_move_it_twice(tmp_path: Path) -> None:
    resolver, _index = make_resolver(tmp_path)
    original = write(tmp_path / "a.txt", b"X")
    copy = write(tmp_path / "b" / "a.txt", b"X")
    fingerprint = fingerprint_file(copy)
    resolver.resolve(original, fingerprint_file(original))

    first = resolver.resolve(copy, fingerprint)
    retry = resolver.resolve(copy, fingerprint)

    assert first.outcome == ResolutionOutcome.QUARANTINED
    assert retry.outcome == ResolutionOutcome.FAILED
    assert sorted(p.name for p in (tmp_path / "b" / QUARANTINE).iterdir()) == ["a.txt"]


def test_quarantine_name_collision_keeps_both_files(tmp_path: Path) -> None:
    resolver, _index = make_resolver(tmp_path)
    original = write(tmp_path / "a.txt", b"X")
    resolver.resolve(original, fingerprint_file(original))

    earlier = write(tmp_path / "b" / QUARANTINE / "a.txt", b"earlier run")
    copy = write(tmp_path / "b" / "a.txt", b"X")

    resolution = resolver.resolve(copy, fingerprint_file(copy))

    assert resolution.outcome == ResolutionOutcome.QUARANTINED
    assert Path(resolution.quarantine_path or "").name == "a~1.txt"
    assert earlier.read_bytes() == b"earlier run"
    assert (tmp_path / "b" / QUARANTINE / "a~1.txt").read_bytes() == b"X"


def test_dry_run_reports_duplicate_without_moving(tmp_path: Path) -> None:
    resolver, _index = make_resolver(tmp_path, dry_run=True)
    original = write(tmp_path / "a.txt", b"X")
    copy = write(tmp_path / "b" / "a.txt", b"X")

    resolver.resolve(original, fingerprint_file(original))
    resolution = resolver.resolve(copy, fingerprint_file(copy))

    assert resolution.outcome == ResolutionOutcome.WOULD_QUARANTINE
    assert copy.exists()
    assert not (tmp_path / "b" / QUARANTINE).exists()


def test_storage_failure_leaves_file_untouched(tmp_path: Path) -> None:
    resolver = DuplicateResolver(_FailingIndex(), quarantine_dir_name=QUARANTINE)  # type: ignore[arg-type]
    target = write(tmp_path / "a.txt", b"X")

    resolution = resolver.resolve(target, fingerprint_file(target))

    assert resolution.outcome == ResolutionOutcome.FAILED
    assert "disk full" in (resolution.error or "")
    assert target.read_bytes() == b"X"
    assert not (tmp_path / QUARANTINE).exists()


def test_quarantine_directory_failure_leaves_duplicate_in_place(tmp_path: Path) -> None:
    resolver, _index = make_resolver(tmp_path)
    original = write(tmp_path / "a.txt", b"X")
    copy = write(tmp_path / "b" / "a.txt", b"X")
    (tmp_path / "b" / QUARANTINE).write_text("a file where the directory should be")
    resolver.resolve(original, fingerprint_file(original))

    resolution = resolver.resolve(copy, fingerprint_file(copy))

    assert resolution.outcome == ResolutionOutcome.FAILED
    assert copy.read_bytes() == b"X"


def test_move_failure_removes_placeholder(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source = write(tmp_path / "a.txt", b"X")

    def refuse(_src: object, _dst: object) -> None:
        raise PermissionError(errno.EACCES, "denied")

    monkeypatch.setattr(os, "replace", refuse)

    with pytest.raises(FilesystemMoveError):
        move_to_quarantine(source, QUARANTINE)

    assert source.read_bytes() == b"X"
    assert list((tmp_path / QUARANTINE).iterdir()) == []


def test_cross_device_move_falls_back_to_copy_and_unlink(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source = write(tmp_path / "a.txt", b"payload")

    def cross_device(_src: object, _dst: object) -> None:
        raise OSError(errno.EXDEV, "Invalid cross-device link")

    monkeypatch.setattr(os, "replace", cross_device)

    target = move_to_quarantine(source, QUARANTINE)

    assert target == tmp_path / QUARANTINE / "a.txt"
    assert target.read_bytes() == b"payload"
    assert not source.exists()
