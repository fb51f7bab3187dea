from __future__ import annotations

import argparse
import mimetypes
import os
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from voyagriq.config.loader import ConfigError, load_settings
from voyagriq.db.trip_store import PostgresTripStore
from voyagriq.importer.parser import parse_import_file
from voyagriq.logging.error_log import ErrorLogBuffer
from voyagriq.logging.init import log_summary, set_debug, setup_logging
from voyagriq.models.config_models import DatabaseConfig, ImportSettings
from voyagriq.models.parse_result import ParseError, ParseResult
from voyagriq.models.processing_result import FileStat, RunResult
from voyagriq.services.bulk_import import BulkImportService, ImportRejected, Upload
from voyagriq.services.progress import ProgressTracker
from voyagriq.services.rate_limit import RateLimiter
from voyagriq.services.summary import render_summary_line

"""voyagriq-import: validate trip files and optionally load them.

Without --commit every file is parsed and its errors reported (dry run).
With --commit each file goes through the bulk import flow into PostgreSQL
for the given tenant, one transaction per file.

Exit codes: 0 every file clean, 2 at least one file had errors, 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

# Row errors echoed to the console per file; the error log has all of them
MAX_CONSOLE_ERRORS = 20


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Connection string: DATABASE_URL / PGDSN, then PG* variables over the config section."""
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(settings: ImportSettings) -> Iterator[Any]:  # pragma: no cover (needs a live database)
    conn = psycopg2.connect(resolve_dsn(settings.database))
    conn.autocommit = False
    try:
        yield conn
    finally:
        conn.close()


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="voyagriq-import", description="Validate and import trip CSV/Excel files")
    p.add_argument("files", nargs="+", type=Path, help="CSV, XLS or XLSX files")
    p.add_argument("--config", type=Path, default=None, help="Settings YAML (default: config/voyagriq.yml)")
    p.add_argument("--commit", action="store_true", help="Insert valid trips into the database")
    p.add_argument("--user-id", help="Tenant (user) id that owns the imported trips; required with --commit")
    p.add_argument("--tier", default="starter", help="Subscription tier of the tenant")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _upload_for(path: Path) -> Upload:
    content_type, _ = mimetypes.guess_type(path.name)
    return Upload(content=path.read_bytes(), content_type=content_type, filename=path.name)


def _report_errors(logger: Any, file_name: str, errors: list[ParseError]) -> None:
    for error in errors[:MAX_CONSOLE_ERRORS]:
        value = f" value={error.value!r}" if error.value is not None else ""
        logger.warning(f"{file_name}: row={error.row} field={error.field} {error.message}{value}")
    if len(errors) > MAX_CONSOLE_ERRORS:
        logger.warning(f"{file_name}: ... {len(errors) - MAX_CONSOLE_ERRORS} more errors in error log")


def _dry_run_file(path: Path) -> tuple[ParseResult, int]:
    upload = _upload_for(path)
    return parse_import_file(upload.content, upload.content_type, upload.filename), 0


def _commit_file(path: Path, service: BulkImportService, conn: Any, user_id: str, tier: str) -> tuple[ParseResult, int]:
    """Run one file through the bulk flow inside its own transaction."""
    try:
        report = service.import_upload(_upload_for(path), user_id, tier)
    except ImportRejected as e:
        conn.rollback()
        details = e.details or [ParseError(row=0, field="file", message=e.message)]
        return ParseResult.from_rows([], details, 0), 0
    except Exception:
        conn.rollback()
        raise
    conn.commit()
    errors = list(report.errors) + [
        ParseError(row=0, field="file", message=f"insert batch {f.batch} failed: {f.message}")
        for f in report.insert_failures
    ]
    result = ParseResult(
        success=not errors,
        trips=[],
        errors=errors,
        total_rows=report.total_rows,
        valid_rows=report.valid_rows,
    )
    return result, report.inserted_count


def run(files: list[Path], process: Any, logger: Any, error_log: ErrorLogBuffer) -> RunResult:
    start_time = datetime.now(UTC)
    stats: list[FileStat] = []
    with ProgressTracker(len(files)) as progress:
        for path in files:
            progress.start_file(path)
            t0 = time.perf_counter()
            if not path.is_file():
                result, inserted = ParseResult.file_error(f"File not found: {path}"), 0
            else:
                result, inserted = process(path)
            elapsed = time.perf_counter() - t0

            if result.errors:
                error_log.extend(path.name, result.errors)
                _report_errors(logger, path.name, result.errors)
            status = "clean" if result.success else ("failed" if result.has_file_error else "rows_rejected")
            logger.info(
                f"{path.name}: status={status} rows={result.total_rows} valid={result.valid_rows} "
                f"errors={len(result.errors)} inserted={inserted}"
            )
            stats.append(
                FileStat(
                    file_name=path.name,
                    status=status,
                    total_rows=result.total_rows,
                    valid_rows=result.valid_rows,
                    error_count=len(result.errors),
                    elapsed_seconds=elapsed,
                    inserted_rows=inserted,
                )
            )
            progress.set_postfix(errors=sum(s.error_count for s in stats))
            progress.finish_file()
    end_time = datetime.now(UTC)

    return RunResult(
        success_files=sum(1 for s in stats if s.status == "clean"),
        failed_files=sum(1 for s in stats if s.status != "clean"),
        total_rows=sum(s.total_rows for s in stats),
        valid_rows=sum(s.valid_rows for s in stats),
        error_count=sum(s.error_count for s in stats),
        inserted_rows=sum(s.inserted_rows for s in stats),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=stats,
    )


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an explicit [] must not pick up the test runner's argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    # .env wins over the inherited environment for connection settings
    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=True)

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    error_log = ErrorLogBuffer()

    if not args.commit:
        logger.info(f"validating {len(args.files)} file(s) (dry run)")
        result = run(args.files, _dry_run_file, logger, error_log)
    else:
        if not args.user_id:
            logger.error("--commit requires --user-id")
            return EXIT_FATAL
        try:
            with _db_connection(settings) as conn:
                service = BulkImportService(
                    PostgresTripStore(conn.cursor(), page_size=settings.insert_batch_size),
                    settings,
                    RateLimiter(),
                )
                logger.info(f"importing {len(args.files)} file(s) for user {args.user_id} tier={args.tier}")
                result = run(
                    args.files,
                    lambda p: _commit_file(p, service, conn, args.user_id, args.tier),
                    logger,
                    error_log,
                )
        except psycopg2.Error as e:
            logger.error(f"database: {e}")
            return EXIT_FATAL

    log_path = error_log.flush()
    if log_path is not None:
        logger.info(f"error log written to {log_path}")

    # render_summary_line includes the label; log_summary adds it again
    log_summary(render_summary_line(result).removeprefix("SUMMARY "))

    return EXIT_SUCCESS_ALL if result.failed_files == 0 else EXIT_PARTIAL_FAILURE


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
