"""Factory for the configured message store."""

from board_api.adapters.store.base import AbstractMessageStore
from board_api.adapters.store.in_memory import InMemoryMessageStore
from board_api.adapters.store.supabase import SupabaseMessageStore
from board_api.core.config import StoreSettings, settings
from board_api.core.errors import ValidationAppError


def create_message_store(store_settings: StoreSettings | None = None) -> AbstractMessageStore:
    """Instantiate the store backend named by ``STORE_BACKEND``.

    Args:
        store_settings: Optional settings; defaults to the global settings.

    Returns:
        AbstractMessageStore: Configured store instance.

    Raises:
        ValidationAppError: If the backend is unknown or misconfigured.
    """
    cfg = store_settings or settings.store
    backend = cfg.backend.lower()

    if backend == "memory":
        return InMemoryMessageStore()

    if backend == "supabase":
        if not cfg.supabase_url or not cfg.supabase_secret_key:
            raise ValidationAppError(
                code="store_missing_credentials",
                message="Supabase store requires STORE_SUPABASE_URL and STORE_SUPABASE_SECRET_KEY",
            )
        return SupabaseMessageStore(
            base_url=cfg.supabase_url,
            secret_key=cfg.supabase_secret_key,
            timeout_seconds=cfg.timeout_seconds,
        )

    raise ValidationAppError(
        code="store_unknown_backend",
        message=f"Unknown store backend: '{backend}'. Supported backends: memory, supabase",
    )
