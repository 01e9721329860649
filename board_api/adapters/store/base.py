from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from board_api.schemas.message import NewMessage


class AbstractMessageStore(ABC):
	"""Interface for the durable store of messages, visitors and settings.

	Implementations raise ``StoreAppError`` for any transport or decoding
	failure so callers can decide between failing open and failing closed.
	"""

	@abstractmethod
	async def read_visitor_block_flag(self, visitor_id: str) -> bool:
		"""Return True when a moderator has blocked ``visitor_id``.

		Unknown visitors are not blocked.
		"""
		...

	@abstractmethod
	async def count_messages_since(self, visitor_id: str, since: datetime) -> int:
		"""Count messages written by ``visitor_id`` at or after ``since`` (UTC)."""
		...

	@abstractmethod
	async def read_setting(self, key: str) -> str | None:
		"""Return the raw value of an operator setting, or None when unset."""
		...

	@abstractmethod
	async def create_message(self, message: NewMessage) -> str:
		"""Persist ``message`` and return the id the store assigned to it."""
		...

	async def aclose(self) -> None:
		"""Release network resources held by the store."""
		return None
