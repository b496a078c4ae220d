from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator


class PathSafetyError(ValueError):
    pass


def quarantine_dir_for(path: Path, quarantine_dir_name: str) -> Path:
    if path.parent.name == quarantine_dir_name:
        raise PathSafetyError(f"Path is already inside a quarantine directory: {path.as_posix()}")
    return path.parent / quarantine_dir_name


def candidate_names(base_name: str) -> Iterator[str]:
    """Yield ``base_name`` followed by ``stem~1.ext``, ``stem~2.ext`` and so on."""
    yield base_name
    stem, dot, suffix = base_name.rpartition(".")
    if not stem:
        stem, dot, suffix = base_name, "", ""
    counter = 1
    while True:
        yield f"{stem}~{counter}{dot}{suffix}"
        counter += 1


def reserve_unique_path(directory: Path, base_name: str, max_attempts: int = 10000) -> Path:
    """Create an empty placeholder under ``directory`` and return its path.

    The placeholder is created with ``O_EXCL`` so two callers are never handed the
    same name and an existing file is never reused.
    """
    for attempt, name in enumerate(candidate_names(base_name)):
        if attempt >= max_attempts:
            break
        candidate = directory / name
        try:
            fd = os.open(candidate, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        except FileExistsError:
            continue
        os.close(fd)
        return candidate
    raise PathSafetyError(f"No free name for {base_name} under {directory.as_posix()}")


def sqlite_companion_paths(database_path: Path) -> set[Path]:
    return {
        database_path,
        database_path.with_name(database_path.name + "-wal"),
        database_path.with_name(database_path.name + "-shm"),
        database_path.with_name(database_path.name + "-journal"),
    }


def display_path(path: str | Path) -> str:
    """Render ``path`` as valid UTF-8, showing undecodable bytes as ``\\xNN`` escapes."""
    return os.fsencode(path).decode("utf-8", "backslashreplace")


def display_text(text: str) -> str:
    return text.encode("utf-8", "backslashreplace").decode("utf-8")
