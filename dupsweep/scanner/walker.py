from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)


def _log_walk_error(exc: OSError) -> None:
    logger.debug("Skipping unreadable entry %s: %s", exc.filename, exc)


def iter_candidate_paths(
    root: str | Path,
    *,
    skip_dir_names: Iterable[str] = (),
    exclude_paths: Iterable[str | Path] = (),
) -> Iterator[Path]:
    """Lazily yield absolute paths of regular files under ``root``.

    Symlinks, sockets, FIFOs and device nodes are skipped, as are directories whose
    name is in ``skip_dir_names`` and any file listed in ``exclude_paths``.
    """
    root_path = Path(root).resolve(strict=False)
    skipped_names = set(skip_dir_names)
    excluded = {Path(item).resolve(strict=False) for item in exclude_paths}

    for dirpath, dirnames, filenames in os.walk(root_path, onerror=_log_walk_error, followlinks=False):
        dirnames[:] = sorted(name for name in dirnames if name not in skipped_names)
        for name in sorted(filenames):
            candidate = Path(dirpath) / name
            if candidate in excluded:
                continue
            try:
                mode = os.lstat(candidate).st_mode
            except OSError as exc:
                _log_walk_error(exc)
                continue
            if not stat.S_ISREG(mode):
                continue
            yield candidate
