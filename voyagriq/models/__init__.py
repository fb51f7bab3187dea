"""Domain models for the VoyagrIQ trip importer.

Trips, per-row outcomes, batch results and settings used throughout the
application.
"""

from .config_models import DatabaseConfig, ImportSettings, RateLimitConfig, TierConfig
from .error_record import ErrorRecord
from .parse_result import ParseError, ParseResult, RowAccepted, RowOutcome, RowRejected
from .trip import COST_FIELDS, DEFAULT_CURRENCY, ClientType, ParsedTrip

__all__ = [
    # Trip models
    "ClientType",
    "COST_FIELDS",
    "DEFAULT_CURRENCY",
    "ParsedTrip",
    # Parse outcome models
    "ParseError",
    "ParseResult",
    "RowAccepted",
    "RowOutcome",
    "RowRejected",
    "ErrorRecord",
    # Settings models
    "DatabaseConfig",
    "ImportSettings",
    "RateLimitConfig",
    "TierConfig",
]
