"""Rate limiter interfaces.

The admission service depends on this abstraction (not the concrete
implementation) so the in-process store can later be swapped for a shared one
(e.g., Redis) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

TOO_FREQUENT = "too_frequent"
RATE_EXCEEDED = "rate_exceeded"


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the submission may proceed.
        reason: ``too_frequent`` or ``rate_exceeded`` when rejected, else None.
        limit: Max submissions per window.
        remaining: Submissions left in the current window (after this one
            when returned by ``record``).
        reset_at: UNIX epoch seconds when the current window expires.
        retry_after_seconds: Suggested wait time in seconds when rejected.
    """

    allowed: bool
    reason: str | None
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for per-client submission cadence limiters.

    ``check`` never mutates state; ``record`` charges an accepted submission.
    Callers that persist between the two (so that failed writes are free)
    use them separately, others use ``check_and_record``.

    Only ``check_and_record`` is atomic. When other awaits sit between
    ``check`` and ``record``, concurrent submissions from one key can all pass
    the same ``check`` and slightly overrun the interval or the window limit.
    """

    @abstractmethod
    def check(self, key: str, now: float | None = None) -> RateLimitResult:
        """Decide whether a submission from ``key`` would be allowed at ``now``."""
        raise NotImplementedError

    @abstractmethod
    def record(self, key: str, now: float | None = None) -> RateLimitResult:
        """Charge one accepted submission from ``key`` at ``now``."""
        raise NotImplementedError

    def check_and_record(self, key: str, now: float | None = None) -> RateLimitResult:
        """Check and, when allowed, immediately charge a submission."""
        result = self.check(key, now)
        if not result.allowed:
            return result
        return self.record(key, now)
