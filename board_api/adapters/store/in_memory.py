"""In-process message store.

Used for local development (STORE_BACKEND=memory) and tests. Data is lost on
restart.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone
from typing import Callable

from board_api.adapters.store.base import AbstractMessageStore
from board_api.schemas.message import NewMessage, PersistedMessage


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryMessageStore(AbstractMessageStore):
    """Thread-safe dict-backed store."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._messages: list[PersistedMessage] = []
        self._blocked: set[str] = set()
        self._settings: dict[str, str] = {}

    @property
    def messages(self) -> list[PersistedMessage]:
        with self._lock:
            return list(self._messages)

    def block_visitor(self, visitor_id: str, blocked: bool = True) -> None:
        with self._lock:
            if blocked:
                self._blocked.add(visitor_id)
            else:
                self._blocked.discard(visitor_id)

    def set_setting(self, key: str, value: str | None) -> None:
        with self._lock:
            if value is None:
                self._settings.pop(key, None)
            else:
                self._settings[key] = value

    async def read_visitor_block_flag(self, visitor_id: str) -> bool:
        with self._lock:
            return visitor_id in self._blocked

    async def count_messages_since(self, visitor_id: str, since: datetime) -> int:
        with self._lock:
            return sum(
                1
                for m in self._messages
                if m.visitor_id == visitor_id and m.created_at >= since
            )

    async def read_setting(self, key: str) -> str | None:
        with self._lock:
            return self._settings.get(key)

    async def create_message(self, message: NewMessage) -> str:
        record = PersistedMessage(
            id=str(uuid.uuid4()),
            visitor_id=message.visitor_id,
            content=message.content,
            image_url=message.image_url,
            contact=message.contact,
            created_at=self._clock(),
        )
        with self._lock:
            self._messages.append(record)
        return record.id
