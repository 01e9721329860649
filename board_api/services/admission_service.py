"""Admission of anonymous messages.

The service decides, per submission, whether a message is stored. Checks run
cheapest first and stop at the first rejection:

1. Honeypot: a filled hidden field gets a fake success, nothing is stored.
2. Validation: visitor id and non-blank content (within the length limit).
3. Client address cadence and window limits.
4. Visitor block flag (fails open when the store cannot be read).
5. Daily per-visitor quota from the ``daily_limit`` setting (fails open).
6. Persistence.

The client's rate budget is charged only after the message has been stored,
so a store outage never counts against a legitimate visitor. Operator
notification is handed to the background queue and never awaited here.
"""

from __future__ import annotations

import functools
import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Literal

from board_api.adapters.rate_limit.base import TOO_FREQUENT, AbstractRateLimiter
from board_api.adapters.store.base import AbstractMessageStore
from board_api.core.errors import (
    ForbiddenAppError,
    RateLimitAppError,
    StoreAppError,
    ValidationAppError,
)
from board_api.core.logging import hash_identifier
from board_api.schemas.message import NewMessage, NotificationJob, SubmissionRequest
from board_api.services.background import BackgroundTaskQueue
from board_api.services.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)

DAILY_LIMIT_SETTING = "daily_limit"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class AdmissionOutcome:
    """Successful result of ``AdmissionService.submit``.

    ``fake_accepted`` is the honeypot outcome; it is reported to the client
    exactly like ``accepted``.
    """

    status: Literal["accepted", "fake_accepted"]
    message_id: str | None = None


def parse_daily_limit(raw: str | None) -> int:
    """Read the ``daily_limit`` setting leniently; 0 means unlimited.

    Leading digits are used ("5 per day" -> 5); anything without them,
    negative values and missing settings disable the quota.

    Examples:
        >>> parse_daily_limit("3")
        3
        >>> parse_daily_limit(" 5 per day")
        5
        >>> parse_daily_limit("off")
        0
        >>> parse_daily_limit(None)
        0
    """
    if raw is None:
        return 0
    match = _LEADING_INT.match(raw)
    if not match:
        return 0
    return max(0, int(match.group(1)))


def utc_day_start(now: float) -> datetime:
    """Return midnight UTC of the day containing epoch second ``now``."""
    moment = datetime.fromtimestamp(now, tz=timezone.utc)
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _clean_optional(value: Any, field: str) -> str | None:
    """Normalize an optional text field; falsy values mean "not given"."""
    if not value:
        return None
    if not isinstance(value, str):
        raise ValidationAppError(
            code="invalid_input",
            message=f"Field '{field}' must be text",
        )
    return value.strip() or None


class AdmissionService:
    """Runs the admission checks and persists accepted messages.

    Attributes:
        store: Durable message store.
        rate_limiter: Per-address limiter, or None when rate limiting is off.
        dispatcher: Notification fan-out for accepted messages.
        tasks: Background queue running the notifications.
        max_message_chars: Upper bound for trimmed content length.
    """

    def __init__(
        self,
        *,
        store: AbstractMessageStore,
        rate_limiter: AbstractRateLimiter | None,
        dispatcher: NotificationDispatcher,
        tasks: BackgroundTaskQueue,
        max_message_chars: int = 2000,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.rate_limiter = rate_limiter
        self.dispatcher = dispatcher
        self.tasks = tasks
        self.max_message_chars = max_message_chars
        self._window_seconds = window_seconds
        self._clock = clock

    async def submit(self, request: SubmissionRequest, client_address: str) -> AdmissionOutcome:
        """Admit or reject one submission.

        Args:
            request: Parsed request body.
            client_address: Resolved client address or the sentinel bucket.

        Returns:
            AdmissionOutcome for accepted (or honeypot) submissions.

        Raises:
            ValidationAppError: Missing visitor id, blank or oversized content.
            RateLimitAppError: ``too_frequent``, ``rate_exceeded`` or
                ``quota_exceeded``.
            ForbiddenAppError: The visitor is blocked.
            StoreAppError: The message could not be written.
        """
        now = self._clock()
        client_hash = hash_identifier(client_address)

        if request.honeypot:
            logger.info("admission.honeypot", extra={"client_hash": client_hash})
            return AdmissionOutcome(status="fake_accepted")

        message = self._validate(request)
        visitor_hash = hash_identifier(message.visitor_id)

        self._check_rate(client_address, client_hash, now)
        await self._check_block(message.visitor_id, visitor_hash)
        await self._check_daily_quota(message.visitor_id, visitor_hash, now)

        message_id = await self._persist(message, visitor_hash)

        if self.rate_limiter is not None:
            self.rate_limiter.record(client_address, now)

        self._schedule_notification(message)

        logger.info(
            "admission.accepted",
            extra={"client_hash": client_hash, "visitor_hash": visitor_hash, "message_id": message_id},
        )
        return AdmissionOutcome(status="accepted", message_id=message_id)

    def _validate(self, request: SubmissionRequest) -> NewMessage:
        # The visitor id is used exactly as sent; only its presence is checked
        visitor_id = request.visitor_id
        content = request.content
        if isinstance(content, str):
            content = content.strip()

        if not (isinstance(visitor_id, str) and visitor_id and isinstance(content, str) and content):
            raise ValidationAppError(
                code="invalid_input",
                message="Message content must not be empty",
            )

        if len(content) > self.max_message_chars:
            raise ValidationAppError(
                code="invalid_input",
                message=f"Message is too long (maximum {self.max_message_chars} characters)",
                details={"max_chars": self.max_message_chars, "actual_chars": len(content)},
            )

        return NewMessage(
            visitor_id=visitor_id,
            content=content,
            image_url=_clean_optional(request.image_url, "imageUrl"),
            contact=_clean_optional(request.contact, "contact"),
        )

    def _check_rate(self, client_address: str, client_hash: str, now: float) -> None:
        if self.rate_limiter is None:
            return

        result = self.rate_limiter.check(client_address, now)
        if result.allowed:
            return

        logger.warning(
            "admission.rate_limited",
            extra={
                "client_hash": client_hash,
                "reason": result.reason,
                "limit": result.limit,
                "retry_after_s": result.retry_after_seconds,
            },
        )

        if result.reason == TOO_FREQUENT:
            raise RateLimitAppError(
                code="too_frequent",
                message="Submitting too frequently, please wait a moment",
                details={"retry_after": result.retry_after_seconds or 1},
            )

        raise RateLimitAppError(
            code="rate_exceeded",
            message=(
                f"At most {result.limit} messages per {self._window_seconds:g} seconds, "
                "please try again later"
            ),
            details={"limit": result.limit, "retry_after": result.retry_after_seconds or 1},
        )

    async def _check_block(self, visitor_id: str, visitor_hash: str) -> None:
        try:
            blocked = await self.store.read_visitor_block_flag(visitor_id)
        except StoreAppError as exc:
            logger.warning(
                "admission.block_check_skipped",
                extra={"visitor_hash": visitor_hash, "error_code": exc.code},
            )
            return

        if blocked:
            logger.info("admission.blocked_visitor", extra={"visitor_hash": visitor_hash})
            raise ForbiddenAppError(code="forbidden", message="Unable to send message")

    async def _check_daily_quota(self, visitor_id: str, visitor_hash: str, now: float) -> None:
        day_start = utc_day_start(now)
        try:
            daily_limit = parse_daily_limit(await self.store.read_setting(DAILY_LIMIT_SETTING))
            if daily_limit <= 0:
                return
            sent_today = await self.store.count_messages_since(visitor_id, day_start)
        except StoreAppError as exc:
            logger.warning(
                "admission.quota_check_skipped",
                extra={"visitor_hash": visitor_hash, "error_code": exc.code},
            )
            return

        if sent_today < daily_limit:
            return

        next_day = day_start + timedelta(days=1)
        retry_after = max(1, int(next_day.timestamp() - now))
        logger.info(
            "admission.daily_quota_reached",
            extra={"visitor_hash": visitor_hash, "limit": daily_limit, "sent_today": sent_today},
        )
        raise RateLimitAppError(
            code="quota_exceeded",
            message=f"Daily message limit reached ({daily_limit} messages)",
            details={"limit": daily_limit, "retry_after": retry_after},
        )

    async def _persist(self, message: NewMessage, visitor_hash: str) -> str:
        try:
            return await self.store.create_message(message)
        except StoreAppError as exc:
            logger.error(
                "admission.persist_failed",
                extra={"visitor_hash": visitor_hash, "error_code": exc.code, "error_message": exc.message},
            )
            raise StoreAppError(
                code="store_error",
                message="Failed to send message, please retry",
                details={"operation": "create_message"},
            ) from exc

    def _schedule_notification(self, message: NewMessage) -> None:
        if not self.dispatcher.enabled:
            return
        job = NotificationJob.from_message(message)
        self.tasks.submit(functools.partial(self.dispatcher.dispatch, job), name="notify")
