"""Unit tests for NotificationDispatcher."""

import asyncio
import logging

import pytest

from board_api.adapters.notify.base import AbstractChannelSender
from board_api.schemas.message import NotificationJob
from board_api.services.notification_dispatcher import NotificationDispatcher

from conftest import RecordingSender

JOB = NotificationJob(visitor_id="visitor-1", content="hello")


class SlowSender(AbstractChannelSender):
    """Channel that takes ``delay`` seconds to deliver."""

    def __init__(self, name: str, delay: float) -> None:
        super().__init__()
        self.name = name
        self.delay = delay
        self.started = asyncio.Event()
        self.finished = False

    async def send(self, job: NotificationJob) -> bool:
        self.started.set()
        await asyncio.sleep(self.delay)
        self.finished = True
        return True


class RefusingSender(RecordingSender):
    async def send(self, job: NotificationJob) -> bool:
        self.jobs.append(job)
        return False


def test_enabled_reflects_senders() -> None:
    assert NotificationDispatcher([]).enabled is False
    assert NotificationDispatcher([RecordingSender()]).enabled is True


@pytest.mark.asyncio
async def test_dispatch_without_senders_is_noop() -> None:
    await NotificationDispatcher([]).dispatch(JOB)


@pytest.mark.asyncio
async def test_every_channel_receives_the_job() -> None:
    first, second = RecordingSender("a"), RecordingSender("b")

    await NotificationDispatcher([first, second]).dispatch(JOB)

    assert first.jobs == [JOB]
    assert second.jobs == [JOB]


@pytest.mark.asyncio
async def test_channels_run_concurrently() -> None:
    slow_a = SlowSender("a", 0.2)
    slow_b = SlowSender("b", 0.2)
    loop = asyncio.get_running_loop()

    started = loop.time()
    await NotificationDispatcher([slow_a, slow_b], timeout_seconds=5).dispatch(JOB)
    elapsed = loop.time() - started

    assert slow_a.finished and slow_b.finished
    assert elapsed < 0.35


@pytest.mark.asyncio
async def test_crashing_channel_does_not_affect_others(caplog) -> None:
    broken = RecordingSender("broken", fail=True)
    healthy = RecordingSender("healthy")

    with caplog.at_level(logging.INFO):
        await NotificationDispatcher([broken, healthy]).dispatch(JOB)

    assert healthy.jobs == [JOB]
    assert any(r.message == "notify.channel_crashed" for r in caplog.records)
    dispatched = [r for r in caplog.records if r.message == "notify.dispatched"]
    assert dispatched[0].delivered == ["healthy"]
    assert dispatched[0].failed == 1


@pytest.mark.asyncio
async def test_slow_channel_is_timed_out(caplog) -> None:
    stuck = SlowSender("stuck", 5)
    healthy = RecordingSender("healthy")

    with caplog.at_level(logging.WARNING):
        await NotificationDispatcher([stuck, healthy], timeout_seconds=0.05).dispatch(JOB)

    assert stuck.started.is_set()
    assert stuck.finished is False
    assert healthy.jobs == [JOB]
    assert any(r.message == "notify.channel_timeout" for r in caplog.records)


@pytest.mark.asyncio
async def test_refused_delivery_counts_as_failed(caplog) -> None:
    refusing = RefusingSender("refusing")

    with caplog.at_level(logging.INFO):
        await NotificationDispatcher([refusing]).dispatch(JOB)

    dispatched = [r for r in caplog.records if r.message == "notify.dispatched"]
    assert dispatched[0].delivered == []
    assert dispatched[0].failed == 1
