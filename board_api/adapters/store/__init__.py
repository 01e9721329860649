"""Message store adapters - durable messages, visitor flags and settings."""

from board_api.adapters.store.base import AbstractMessageStore
from board_api.adapters.store.factory import create_message_store
from board_api.adapters.store.in_memory import InMemoryMessageStore
from board_api.adapters.store.supabase import SupabaseMessageStore

__all__ = [
    "AbstractMessageStore",
    "InMemoryMessageStore",
    "SupabaseMessageStore",
    "create_message_store",
]
