from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Sequence

from dupsweep.core.config import SUPPORTED_HASH_ALGORITHMS, ConfigError, get_settings, load_settings
from dupsweep.core.logging import configure_logging
from dupsweep.db.init_db import StorageOpenError
from dupsweep.index.service import StorageWriteError
from dupsweep.worker.pipeline import run_deduplication

EXIT_OK = 0
EXIT_STORAGE_ERROR = 1
EXIT_CONFIG_ERROR = 2

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dupsweep",
        description="Move files whose content was already seen into a sibling quarantine directory.",
        epilog="Example: dupsweep scan --path /your/folder --db results.db",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan", help="Fingerprint a directory tree and quarantine duplicates")
    scan.add_argument("--path", dest="scan_root", help="Directory to scan (DUPSWEEP_SCAN_ROOT)")
    scan.add_argument("--db", dest="database_path", help="Path to the SQLite index (DUPSWEEP_DATABASE_PATH)")
    scan.add_argument("--workers", dest="worker_count", type=int, help="Number of hashing workers")
    scan.add_argument("--queue-capacity", dest="queue_capacity", type=int, help="Bounded path queue size")
    scan.add_argument("--algorithm", dest="hash_algorithm", choices=sorted(SUPPORTED_HASH_ALGORITHMS))
    scan.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        default=None,
        help="Record originals but leave duplicates in place",
    )
    scan.add_argument(
        "--skip-unchanged",
        dest="skip_unchanged",
        action="store_true",
        default=None,
        help="Do not re-hash indexed files whose size and mtime are unchanged",
    )
    scan.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING or ERROR")

    serve = subparsers.add_parser("serve", help="Serve the read-only index API")
    serve.add_argument("--db", dest="database_path", help="Path to the SQLite index")
    serve.add_argument("--host", dest="api_host")
    serve.add_argument("--port", dest="api_port", type=int)
    serve.add_argument("--log-level", dest="log_level")
    return parser


def _scan(args: argparse.Namespace) -> int:
    settings = load_settings(
        scan_root=args.scan_root,
        database_path=args.database_path,
        worker_count=args.worker_count,
        queue_capacity=args.queue_capacity,
        hash_algorithm=args.hash_algorithm,
        dry_run=args.dry_run,
        skip_unchanged=args.skip_unchanged,
        log_level=args.log_level,
    )
    configure_logging(settings.log_level)
    run = run_deduplication(settings)
    print(
        f"run {run.id} {run.status.value}: {run.files_seen} files, {run.originals} originals, "
        f"{run.duplicates} duplicates, {run.already_indexed} already indexed, "
        f"{run.unchanged} unchanged, {run.errors} errors"
    )
    return EXIT_OK


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    from dupsweep.api.app import create_app

    if args.database_path:
        os.environ["DUPSWEEP_DATABASE_PATH"] = args.database_path
    get_settings.cache_clear()
    settings = load_settings(api_host=args.api_host, api_port=args.api_port, log_level=args.log_level)
    os.environ["DUPSWEEP_LOG_LEVEL"] = settings.log_level
    get_settings.cache_clear()
    uvicorn.run(create_app(), host=settings.api_host, port=settings.api_port, log_level=settings.log_level.lower())
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    handlers = {"scan": _scan, "serve": _serve}
    try:
        return handlers[args.command](args)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return EXIT_CONFIG_ERROR
    except (StorageOpenError, StorageWriteError) as exc:
        logger.error("Index storage failure: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_STORAGE_ERROR


if __name__ == "__main__":
    sys.exit(main())
