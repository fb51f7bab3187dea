from __future__ import annotations

from dataclasses import dataclass, field

"""Settings dataclasses for the trip import service.

These are produced by voyagriq.config.loader from config/voyagriq.yml. Every
field has a default so that an absent config file still yields a usable
ImportSettings.
"""

MIB = 1024 * 1024


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback.

    Environment variables (DATABASE_URL / PG*) take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class TierConfig:
    """Subscription tier as seen by the import flow."""
    key: str  # starter / standard / premium / enterprise
    name: str
    trip_limit: int | None = None  # None = unlimited


@dataclass(frozen=True)
class RateLimitConfig:
    limit: int
    window_seconds: float


TIER_ORDER = ("starter", "standard", "premium", "enterprise")


def _default_tiers() -> dict[str, TierConfig]:
    return {key: TierConfig(key=key, name=key.capitalize()) for key in TIER_ORDER}


def default_rate_limits() -> dict[str, RateLimitConfig]:
    return {
        "api_per_user": RateLimitConfig(limit=1000, window_seconds=60 * 60),
        "public_per_ip": RateLimitConfig(limit=100, window_seconds=60),
        "auth_per_ip": RateLimitConfig(limit=10, window_seconds=15 * 60),
        "bulk_per_user": RateLimitConfig(limit=10, window_seconds=60 * 60),
    }


@dataclass(frozen=True)
class ImportSettings:
    """Root settings object for uploads and bulk imports."""
    max_file_size_bytes: int = 10 * MIB
    max_rows_per_import: int = 200
    insert_batch_size: int = 1000
    tiers: dict[str, TierConfig] = field(default_factory=_default_tiers)
    rate_limits: dict[str, RateLimitConfig] = field(default_factory=default_rate_limits)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    def tier(self, key: str) -> TierConfig:
        """Tier by key; unknown keys fall back to starter."""
        return self.tiers.get(key.lower(), self.tiers.get("starter", TierConfig("starter", "Starter")))

    def next_tier(self, key: str) -> TierConfig | None:
        try:
            idx = TIER_ORDER.index(key.lower())
        except ValueError:
            return None
        for candidate in TIER_ORDER[idx + 1:]:
            if candidate in self.tiers:
                return self.tiers[candidate]
        return None
