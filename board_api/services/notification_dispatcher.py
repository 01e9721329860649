"""Fan-out of accepted messages to operator notification channels.

Channels run concurrently and independently. Nothing here can fail the
submission that produced the job: the message row, not the notification, is
the durable record, so lost notifications are only logged.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from board_api.adapters.notify.base import AbstractChannelSender
from board_api.schemas.message import NotificationJob

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Sends one NotificationJob to every enabled channel.

    Attributes:
        senders: Enabled channel senders.
        timeout_seconds: Upper bound for each channel's delivery.
    """

    def __init__(
        self,
        senders: Sequence[AbstractChannelSender],
        *,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.senders = list(senders)
        self.timeout_seconds = timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.senders)

    async def _send_one(self, sender: AbstractChannelSender, job: NotificationJob) -> bool:
        try:
            return await asyncio.wait_for(sender.send(job), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "notify.channel_timeout",
                extra={"channel": sender.name, "timeout_s": self.timeout_seconds},
            )
        except Exception:
            logger.exception("notify.channel_crashed", extra={"channel": sender.name})
        return False

    async def dispatch(self, job: NotificationJob) -> None:
        """Deliver ``job`` to all channels and wait for every one to settle."""
        if not self.senders:
            return

        results = await asyncio.gather(
            *(self._send_one(sender, job) for sender in self.senders),
            return_exceptions=True,
        )
        delivered = [
            sender.name
            for sender, result in zip(self.senders, results)
            if result is True
        ]

        logger.info(
            "notify.dispatched",
            extra={
                "channels": len(self.senders),
                "delivered": delivered,
                "failed": len(self.senders) - len(delivered),
            },
        )
