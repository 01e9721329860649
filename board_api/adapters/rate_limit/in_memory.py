"""In-memory submission rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Records are never evicted; one small record per client address is kept for
  the lifetime of the process.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from board_api.adapters.rate_limit.base import (
    RATE_EXCEEDED,
    TOO_FREQUENT,
    AbstractRateLimiter,
    RateLimitResult,
)


@dataclass
class ClientRateRecord:
    """Cadence state for one client address."""

    window_start: float
    count_in_window: int = 0
    last_submit_at: float | None = None


class InMemoryRateLimiter(AbstractRateLimiter):
    """Minimum-interval plus fixed-window limiter keyed by client address.

    The window is anchored at the first submission after the previous window
    expired (not at wall-clock boundaries) and resets once strictly more than
    ``window_seconds`` have passed since its start. This is not a sliding
    window: a burst straddling a reset can exceed ``limit`` within any
    60 second span.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        min_interval_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Maximum accepted submissions per window.
            window_seconds: Window length in seconds.
            min_interval_seconds: Minimum gap between accepted submissions.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If any limit is out of range.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if min_interval_seconds < 0:
            raise ValueError("min_interval_seconds must be >= 0")

        self._limit = limit
        self._window_seconds = window_seconds
        self._min_interval = min_interval_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._records: dict[str, ClientRateRecord] = {}

    def _resolve_now(self, key: str, now: float | None) -> float:
        if not key:
            raise ValueError("key must be a non-empty string")
        return self._clock() if now is None else now

    def _current_window(self, record: ClientRateRecord | None, now: float) -> tuple[float, int]:
        """Return ``(window_start, count)`` as they stand at ``now``."""
        if record is None or now - record.window_start > self._window_seconds:
            return now, 0
        return record.window_start, record.count_in_window

    def _result(
        self,
        *,
        reason: str | None,
        count: int,
        reset_at: float,
        retry_after: float | None = None,
    ) -> RateLimitResult:
        return RateLimitResult(
            allowed=reason is None,
            reason=reason,
            limit=self._limit,
            remaining=max(0, self._limit - count),
            reset_at=int(math.ceil(reset_at)),
            retry_after_seconds=None if retry_after is None else max(1, int(math.ceil(retry_after))),
        )

    def check(self, key: str, now: float | None = None) -> RateLimitResult:
        """Evaluate the interval gate, then the window quota, without mutating.

        Args:
            key: Client address (or the shared sentinel bucket).
            now: UNIX time in seconds; defaults to the limiter clock.

        Returns:
            RateLimitResult, rejected with ``too_frequent`` or ``rate_exceeded``
            or allowed.
        """
        now = self._resolve_now(key, now)

        with self._lock:
            record = self._records.get(key)
            window_start, count = self._current_window(record, now)
            reset_at = window_start + self._window_seconds

            if record is not None and record.last_submit_at is not None:
                elapsed = now - record.last_submit_at
                if elapsed < self._min_interval:
                    return self._result(
                        reason=TOO_FREQUENT,
                        count=count,
                        reset_at=reset_at,
                        retry_after=self._min_interval - elapsed,
                    )

            if count >= self._limit:
                return self._result(
                    reason=RATE_EXCEEDED,
                    count=count,
                    reset_at=reset_at,
                    retry_after=reset_at - now,
                )

            return self._result(reason=None, count=count, reset_at=reset_at)

    def record(self, key: str, now: float | None = None) -> RateLimitResult:
        """Charge one accepted submission, resetting an expired window first."""
        now = self._resolve_now(key, now)

        with self._lock:
            record = self._records.get(key)
            window_start, count = self._current_window(record, now)
            if record is None:
                record = ClientRateRecord(window_start=now)
                self._records[key] = record

            record.window_start = window_start
            record.count_in_window = count + 1
            if record.last_submit_at is None or now > record.last_submit_at:
                record.last_submit_at = now

            return self._result(
                reason=None,
                count=record.count_in_window,
                reset_at=window_start + self._window_seconds,
            )

    def check_and_record(self, key: str, now: float | None = None) -> RateLimitResult:
        # Hold the lock across both phases so concurrent callers for one key
        # cannot both pass the check.
        now = self._resolve_now(key, now)
        with self._lock:
            return super().check_and_record(key, now)

    def get_record(self, key: str) -> ClientRateRecord | None:
        """Return a copy of the stored record for ``key`` (for diagnostics)."""
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            return ClientRateRecord(
                window_start=record.window_start,
                count_in_window=record.count_in_window,
                last_submit_at=record.last_submit_at,
            )
