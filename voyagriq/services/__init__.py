"""Caller-side services around the import pipeline."""

from .bulk_import import BulkImportReport, BulkImportService, ImportRejected, Upload
from .rate_limit import RATE_LIMITS, RateLimitDecision, RateLimiter

__all__ = [
    "BulkImportReport",
    "BulkImportService",
    "ImportRejected",
    "RATE_LIMITS",
    "RateLimitDecision",
    "RateLimiter",
    "Upload",
]
