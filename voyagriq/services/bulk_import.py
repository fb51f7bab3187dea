from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..db.trip_store import TripStore, TripStoreError
from ..importer.parser import ACCEPTED_EXTENSIONS, ACCEPTED_MIME_TYPES, parse_import_file
from ..models.config_models import ImportSettings, RateLimitConfig
from ..models.parse_result import ParseError, ParseResult
from ..models.trip import ParsedTrip
from .rate_limit import RATE_LIMITS, RateLimitDecision, RateLimiter

"""Bulk trip import flow for one authenticated upload.

Order of checks (each rejection raises an ImportRejected subclass carrying the
HTTP status an endpoint should answer with):

1. per-user bulk rate limit                  -> RateLimitExceeded (429)
2. file size                                 -> FileTooLarge (400)
3. declared type / extension                 -> UnsupportedFileType (400)
4. parse; file-level parse error             -> FileParseFailed (400)
5. data row count                            -> TooManyRows (400)
6. subscription trip limit                   -> TripLimitExceeded (403)

After the gates, trips already stored for the tenant are skipped and reported
as Trip_ID errors on their source row, and the rest are inserted in batches.
A failed batch is recorded and the remaining batches still run.
"""

__all__ = [
    "Upload",
    "InsertFailure",
    "BulkImportReport",
    "BulkImportService",
    "ImportRejected",
    "RateLimitExceeded",
    "FileTooLarge",
    "UnsupportedFileType",
    "FileParseFailed",
    "TooManyRows",
    "TripLimitExceeded",
]

logger = logging.getLogger(__name__)


class ImportRejected(Exception):
    """Base exception for uploads refused before any trip is stored."""
    status_code = 400

    def __init__(self, message: str, details: list[ParseError] | None = None, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = [d.to_dict() for d in self.details]
        body.update(self.context)
        return body


class RateLimitExceeded(ImportRejected):
    status_code = 429

    def __init__(self, decision: RateLimitDecision) -> None:
        super().__init__("Rate limit exceeded. Please try again later.")
        self.decision = decision


class FileTooLarge(ImportRejected):
    pass


class UnsupportedFileType(ImportRejected):
    pass


class FileParseFailed(ImportRejected):
    pass


class TooManyRows(ImportRejected):
    pass


class TripLimitExceeded(ImportRejected):
    status_code = 403


@dataclass(frozen=True)
class Upload:
    content: bytes
    content_type: str | None = None
    filename: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class InsertFailure:
    batch: int  # 1-based
    message: str


@dataclass(frozen=True)
class BulkImportReport:
    total_rows: int
    valid_rows: int
    inserted_count: int
    skipped_count: int
    failed_count: int
    errors: list[ParseError] = field(default_factory=list)
    insert_failures: list[InsertFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.inserted_count > 0

    @property
    def message(self) -> str:
        if self.inserted_count > 0:
            plural = "" if self.inserted_count == 1 else "s"
            return f"Successfully imported {self.inserted_count} trip{plural}."
        return "No trips were imported."

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "success": self.success,
            "totalRows": self.total_rows,
            "validRows": self.valid_rows,
            "insertedCount": self.inserted_count,
            "skippedCount": self.skipped_count,
            "failedCount": self.failed_count,
            "errors": [e.to_dict() for e in self.errors],
            "message": self.message,
        }
        if self.insert_failures:
            body["insertErrors"] = [{"batch": f.batch, "message": f.message} for f in self.insert_failures]
        return body


def _is_accepted_type(upload: Upload) -> bool:
    mime = (upload.content_type or "").split(";", 1)[0].strip().lower()
    if mime in ACCEPTED_MIME_TYPES:
        return True
    return bool(upload.filename) and upload.filename.lower().endswith(ACCEPTED_EXTENSIONS)  # type: ignore[union-attr]


class BulkImportService:
    """Runs uploads through parsing, tenant checks and batched storage."""

    def __init__(
        self,
        store: TripStore,
        settings: ImportSettings | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or ImportSettings()
        self.rate_limiter = rate_limiter or RateLimiter()

    @property
    def _bulk_limit(self) -> RateLimitConfig:
        return self.settings.rate_limits.get("bulk_per_user", RATE_LIMITS["bulk_per_user"])

    def check_upload(self, upload: Upload, user_id: str) -> None:
        """Gates that do not need the file contents parsed."""
        decision = self.rate_limiter.check_preset(f"bulk:{user_id}", self._bulk_limit)
        if not decision.allowed:
            logger.warning(f"bulk import: rate limit exceeded for user {user_id}")
            raise RateLimitExceeded(decision)

        max_size = self.settings.max_file_size_bytes
        if upload.size > max_size:
            raise FileTooLarge(
                f"File too large. Maximum size is {max_size / 1024 / 1024:g} MB",
                size=upload.size,
                limit=max_size,
            )

        if not _is_accepted_type(upload):
            raise UnsupportedFileType("Invalid file type. Please upload a CSV or Excel file.")

    def parse(self, upload: Upload) -> ParseResult:
        result = parse_import_file(upload.content, upload.content_type, upload.filename)
        if result.has_file_error:
            raise FileParseFailed("Failed to parse file", details=result.errors)

        limit = self.settings.max_rows_per_import
        if result.total_rows > limit:
            raise TooManyRows(
                f"File contains too many rows. Maximum {limit} rows allowed per import.",
                totalRows=result.total_rows,
                limit=limit,
            )
        return result

    def check_trip_limit(self, user_id: str, tier_key: str, incoming: int) -> None:
        tier = self.settings.tier(tier_key)
        if tier.trip_limit is None:
            return
        existing = self.store.count_trips(user_id)
        if existing + incoming <= tier.trip_limit:
            return
        nxt = self.settings.next_tier(tier.key)
        if nxt is None:
            upgrade = "You are already on the highest tier."
        elif nxt.trip_limit is None:
            upgrade = f"Upgrade to {nxt.name} for unlimited trips."
        else:
            upgrade = f"Upgrade to {nxt.name} for {nxt.trip_limit} trips."
        raise TripLimitExceeded(
            f"Import would exceed your {tier.name} plan limit of {tier.trip_limit} trips. {upgrade}",
            currentCount=existing,
            importCount=incoming,
            limit=tier.trip_limit,
        )

    def split_existing(self, user_id: str, trips: list[ParsedTrip]) -> tuple[list[ParsedTrip], list[ParseError]]:
        """Separate trips already stored for the tenant, reported as row errors."""
        existing = self.store.existing_trip_ids(user_id, [t.trip_id for t in trips])
        fresh: list[ParsedTrip] = []
        errors: list[ParseError] = []
        for trip in trips:
            if trip.trip_id in existing:
                errors.append(
                    ParseError(
                        row=trip.source_row or 0,
                        field="Trip_ID",
                        message=f'Trip_ID "{trip.trip_id}" already exists in your database',
                        value=trip.trip_id,
                    )
                )
            else:
                fresh.append(trip)
        return fresh, errors

    def insert(self, user_id: str, trips: list[ParsedTrip]) -> tuple[int, list[InsertFailure]]:
        size = max(self.settings.insert_batch_size, 1)
        inserted = 0
        failures: list[InsertFailure] = []
        for start in range(0, len(trips), size):
            batch = trips[start:start + size]
            batch_no = start // size + 1
            try:
                inserted += self.store.insert_trips(user_id, [t.to_record() for t in batch])
            except TripStoreError as e:
                logger.error(f"bulk import: batch {batch_no} failed for user {user_id}: {e}")
                failures.append(InsertFailure(batch=batch_no, message=str(e)))
        return inserted, failures

    def import_upload(self, upload: Upload, user_id: str, tier: str = "starter") -> BulkImportReport:
        """Run the whole flow for one upload.

        Raises:
            ImportRejected: one of the gates refused the upload
        """
        self.check_upload(upload, user_id)
        result = self.parse(upload)
        self.check_trip_limit(user_id, tier, result.valid_rows)

        fresh, duplicate_errors = self.split_existing(user_id, result.trips)
        inserted, failures = self.insert(user_id, fresh)

        logger.info(
            f"bulk import: user={user_id} rows={result.total_rows} valid={result.valid_rows} "
            f"inserted={inserted} skipped={len(duplicate_errors)} failed={len(result.errors)}"
        )
        return BulkImportReport(
            total_rows=result.total_rows,
            valid_rows=result.valid_rows,
            inserted_count=inserted,
            skipped_count=len(duplicate_errors),
            failed_count=len(result.errors),
            errors=result.errors + duplicate_errors,
            insert_failures=failures,
        )
