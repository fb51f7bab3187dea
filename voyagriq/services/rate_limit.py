from __future__ import annotations

import time
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass

from ..models.config_models import RateLimitConfig, default_rate_limits

"""Fixed-window rate limiter.

The limiter is an ordinary object: construct one per process and hand it to
whatever needs it. Clock and storage are injected so tests can drive time
and so a shared cache can stand in for the default dict.
"""

__all__ = [
    "RATE_LIMITS",
    "RateLimitDecision",
    "RateLimiter",
    "WindowEntry",
]

RATE_LIMITS: dict[str, RateLimitConfig] = default_rate_limits()


@dataclass
class WindowEntry:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: float  # clock seconds at which the window closes
    limit: int

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }


class RateLimiter:
    """Counts requests per identifier inside a fixed window.

    The first request for an identifier opens a window of ``window_seconds``.
    Up to ``limit`` requests are allowed inside it; once the clock reaches
    ``reset_at`` the next request opens a fresh window.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        storage: MutableMapping[str, WindowEntry] | None = None,
    ) -> None:
        self._clock = clock
        self._entries: MutableMapping[str, WindowEntry] = storage if storage is not None else {}

    def check(self, identifier: str, limit: int, window_seconds: float) -> RateLimitDecision:
        now = self._clock()
        entry = self._entries.get(identifier)

        if entry is None or now >= entry.reset_at:
            entry = WindowEntry(count=1, reset_at=now + window_seconds)
            self._entries[identifier] = entry
            return RateLimitDecision(True, max(limit - 1, 0), entry.reset_at, limit)

        if entry.count < limit:
            entry.count += 1
            # write back for storages that hand out copies
            self._entries[identifier] = entry
            return RateLimitDecision(True, limit - entry.count, entry.reset_at, limit)

        return RateLimitDecision(False, 0, entry.reset_at, limit)

    def check_preset(self, identifier: str, preset: RateLimitConfig) -> RateLimitDecision:
        return self.check(identifier, preset.limit, preset.window_seconds)

    def cleanup(self) -> int:
        """Drop expired windows; returns how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.reset_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def reset(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
