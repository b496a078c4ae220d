from __future__ import annotations

import os
import types
from pathlib import Path

import pytest

from dupsweep.scanner.walker import iter_candidate_paths


def write(path: Path, content: str = "x") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def test_walker_yields_regular_files_as_absolute_paths(tmp_path: Path) -> None:
    write(tmp_path / "a.txt")
    write(tmp_path / "b" / "a.txt")
    write(tmp_path / "b" / "c" / "d.bin")

    found = list(iter_candidate_paths(tmp_path))

    assert all(path.is_absolute() for path in found)
    assert sorted(path.relative_to(tmp_path.resolve()).as_posix() for path in found) == [
        "a.txt",
        "b/a.txt",
        "b/c/d.bin",
    ]


def test_walker_is_lazy(tmp_path: Path) -> None:
    write(tmp_path / "a.txt")
    assert isinstance(iter_candidate_paths(tmp_path), types.GeneratorType)


def test_walker_skips_named_directories_and_excluded_files(tmp_path: Path) -> None:
    write(tmp_path / "keep.txt")
    write(tmp_path / "duplicate_to_be_deleted" / "old.txt")
    write(tmp_path / "nested" / "duplicate_to_be_deleted" / "old.txt")
    database = write(tmp_path / "index.db")

    found = list(
        iter_candidate_paths(
            tmp_path,
            skip_dir_names={"duplicate_to_be_deleted"},
            exclude_paths=[database],
        )
    )

    assert [path.name for path in found] == ["keep.txt"]


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_walker_skips_symlinks(tmp_path: Path) -> None:
    target = write(tmp_path / "real.txt")
    (tmp_path / "link.txt").symlink_to(target)
    (tmp_path / "linked-dir").symlink_to(tmp_path, target_is_directory=True)

    found = list(iter_candidate_paths(tmp_path))

    assert [path.name for path in found] == ["real.txt"]


def test_walker_on_missing_root_yields_nothing(tmp_path: Path) -> None:
    assert list(iter_candidate_paths(tmp_path / "missing")) == []
