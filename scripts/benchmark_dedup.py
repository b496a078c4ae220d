from __future__ import annotations

import argparse
import os
import shutil
import time
from pathlib import Path

from sqlalchemy import text

from dupsweep.core.config import load_settings
from dupsweep.db.session import create_db_engine
from dupsweep.worker.pipeline import run_deduplication


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Benchmark the scan-hash-classify pipeline")
    parser.add_argument("--workdir", required=True, help="Scratch directory for the fixture tree and index")
    parser.add_argument("--groups", type=int, default=2000, help="Number of distinct contents")
    parser.add_argument("--files-per-group", type=int, default=3, help="Copies of each content")
    parser.add_argument("--file-size", type=int, default=16 * 1024, help="Bytes per file")
    parser.add_argument("--workers", type=int, default=10, help="Worker pool size")
    parser.add_argument("--algorithm", default="sha256", choices=["sha256", "blake3"])
    parser.add_argument("--explain", action="store_true", help="Print the fingerprint lookup query plan")
    return parser.parse_args()


def seed_fixture(root: Path, total_groups: int, files_per_group: int, file_size: int) -> int:
    if root.exists():
        shutil.rmtree(root)
    written = 0
    for group_idx in range(total_groups):
        payload = group_idx.to_bytes(4, "little", signed=False) * max(1, file_size // 4)
        for file_idx in range(files_per_group):
            target = root / f"g{group_idx % 64:02d}" / f"c{file_idx}" / f"f{group_idx}.bin"
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(payload)
            written += 1
    return written


def maybe_print_explain(database: Path) -> None:
    settings = load_settings(database_path=database.as_posix())
    engine = create_db_engine(settings)
    with engine.connect() as conn:
        rows = conn.execute(
            text(
                """
                EXPLAIN QUERY PLAN
                SELECT path FROM files
                WHERE size = 1 AND digest = 'x' AND hash_algorithm = 'sha256'
                """
            )
        ).all()
    engine.dispose()

    print("Query plan:")
    for row in rows:
        print(f"- {row[3]}")


def main() -> None:
    args = parse_args()
    workdir = Path(args.workdir)
    root = workdir / "tree"
    database = workdir / "bench.db"
    workdir.mkdir(parents=True, exist_ok=True)
    for stale in (database, Path(f"{database}-wal"), Path(f"{database}-shm")):
        if stale.exists():
            os.remove(stale)

    files = seed_fixture(root, args.groups, args.files_per_group, args.file_size)
    settings = load_settings(
        scan_root=root.as_posix(),
        database_path=database.as_posix(),
        worker_count=args.workers,
        hash_algorithm=args.algorithm,
    )

    start = time.perf_counter()
    run = run_deduplication(settings)
    elapsed = time.perf_counter() - start
    print(
        f"files={files} originals={run.originals} duplicates={run.duplicates} errors={run.errors} "
        f"workers={args.workers} elapsed_seconds={elapsed:.3f}"
    )
    if args.explain:
        maybe_print_explain(database)


if __name__ == "__main__":
    main()
