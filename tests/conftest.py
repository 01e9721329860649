"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the TESTING environment variable to prevent loading the .env file
and pins settings so no test ever talks to a real store or channel.
"""

import os

# CRITICAL: Set this before any imports that might load settings
# This prevents the .env file from being loaded during tests
os.environ["TESTING"] = "true"

os.environ["STORE_BACKEND"] = "memory"
for _name in (
    "NOTIFY_TG_TOKEN",
    "NOTIFY_TG_CHAT_ID",
    "NOTIFY_RESEND_KEY",
    "NOTIFY_EMAIL_TO",
    "NOTIFY_EMAIL_FROM",
):
    os.environ.pop(_name, None)

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from board_api.adapters.notify.base import AbstractChannelSender  # noqa: E402
from board_api.adapters.rate_limit.in_memory import InMemoryRateLimiter  # noqa: E402
from board_api.adapters.store.in_memory import InMemoryMessageStore  # noqa: E402
from board_api.core.errors import StoreAppError  # noqa: E402
from board_api.schemas.message import NewMessage, NotificationJob  # noqa: E402
from board_api.services.admission_service import AdmissionService  # noqa: E402
from board_api.services.background import BackgroundTaskQueue  # noqa: E402
from board_api.services.notification_dispatcher import NotificationDispatcher  # noqa: E402

# 2024-05-01T12:00:00Z
BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc).timestamp()


class FakeClock:
    """Deterministic clock shared by the limiter, the service and the store."""

    def __init__(self, start: float = BASE_TIME) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def as_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.current, tz=timezone.utc)

    def advance(self, seconds: float) -> None:
        self.current += seconds

    def set(self, timestamp: float) -> None:
        self.current = timestamp


class RecordingSender(AbstractChannelSender):
    """Channel that records jobs instead of sending them."""

    def __init__(self, name: str = "recording", *, fail: bool = False) -> None:
        super().__init__()
        self.name = name
        self.fail = fail
        self.jobs: list[NotificationJob] = []

    async def send(self, job: NotificationJob) -> bool:
        self.jobs.append(job)
        if self.fail:
            raise RuntimeError("channel exploded")
        return True


class FlakyStore(InMemoryMessageStore):
    """In-memory store whose operations can be switched to failing."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.fail_block_read = False
        self.fail_setting_read = False
        self.fail_count = False
        self.fail_create = False
        self.create_calls = 0

    @staticmethod
    def _boom(operation: str) -> StoreAppError:
        return StoreAppError(code="store_error", message=f"{operation} failed")

    async def read_visitor_block_flag(self, visitor_id: str) -> bool:
        if self.fail_block_read:
            raise self._boom("read_visitor_block_flag")
        return await super().read_visitor_block_flag(visitor_id)

    async def read_setting(self, key: str) -> str | None:
        if self.fail_setting_read:
            raise self._boom("read_setting")
        return await super().read_setting(key)

    async def count_messages_since(self, visitor_id: str, since: datetime) -> int:
        if self.fail_count:
            raise self._boom("count_messages_since")
        return await super().count_messages_since(visitor_id, since)

    async def create_message(self, message: NewMessage) -> str:
        self.create_calls += 1
        if self.fail_create:
            raise self._boom("create_message")
        return await super().create_message(message)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> FlakyStore:
    return FlakyStore(clock=clock.as_datetime)


@pytest.fixture
def limiter(clock: FakeClock) -> InMemoryRateLimiter:
    return InMemoryRateLimiter(limit=10, window_seconds=60, min_interval_seconds=2, clock=clock)


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest_asyncio.fixture
async def tasks():
    queue = BackgroundTaskQueue(workers=2, max_size=100, drain_timeout_seconds=2.0)
    await queue.start()
    yield queue
    await queue.stop()


@pytest.fixture
def service(
    store: FlakyStore,
    limiter: InMemoryRateLimiter,
    sender: RecordingSender,
    tasks: BackgroundTaskQueue,
    clock: FakeClock,
) -> AdmissionService:
    return AdmissionService(
        store=store,
        rate_limiter=limiter,
        dispatcher=NotificationDispatcher([sender], timeout_seconds=1.0),
        tasks=tasks,
        max_message_chars=2000,
        window_seconds=60,
        clock=clock,
    )
