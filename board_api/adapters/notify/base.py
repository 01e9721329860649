"""Notification channel interface.

A sender formats one NotificationJob for its channel and makes exactly one
outbound call. Delivery is best effort: transport errors and error replies
are logged and reported through the boolean return value, never raised.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from board_api.schemas.message import NotificationJob

logger = logging.getLogger(__name__)


class AbstractChannelSender(ABC):
    """Interface for operator notification channels."""

    name: str = "channel"

    def __init__(
        self,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._client = client

    @abstractmethod
    async def send(self, job: NotificationJob) -> bool:
        """Deliver ``job``; return True when the channel accepted it."""
        raise NotImplementedError

    async def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        *,
        headers: dict[str, str] | None = None,
    ) -> bool:
        """POST ``payload`` and swallow any failure after logging it."""
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                    response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning(
                f"notify.{self.name}.failed",
                extra={"channel": self.name, "error_type": type(exc).__name__},
            )
            return False

        if response.is_error:
            logger.warning(
                f"notify.{self.name}.rejected",
                extra={"channel": self.name, "status": response.status_code},
            )
            return False

        logger.info(f"notify.{self.name}.sent", extra={"channel": self.name})
        return True
