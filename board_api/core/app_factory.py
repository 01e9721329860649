from __future__ import annotations

"""Application factory for the FastAPI app.

Builds the admission pipeline (store, rate limiter, notification dispatcher,
background queue) and owns its lifecycle: the background queue is started
with the app and drained on shutdown so notifications scheduled by the last
requests still go out.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Sequence

from fastapi import FastAPI

from board_api.adapters.notify.base import AbstractChannelSender
from board_api.adapters.notify.factory import build_channel_senders
from board_api.adapters.rate_limit.base import AbstractRateLimiter
from board_api.adapters.rate_limit.in_memory import InMemoryRateLimiter
from board_api.adapters.store.base import AbstractMessageStore
from board_api.adapters.store.factory import create_message_store
from board_api.api.routes import health_router, messages_router
from board_api.core.config import settings
from board_api.core.exception_handlers import setup_exception_handlers
from board_api.core.logging import configure_logging
from board_api.core.middleware import request_id_middleware
from board_api.services.admission_service import AdmissionService
from board_api.services.background import BackgroundTaskQueue
from board_api.services.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


def create_app(
    *,
    store: AbstractMessageStore | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
    senders: Sequence[AbstractChannelSender] | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Every collaborator can be injected (tests); anything omitted is built
    from settings.

    Args:
        store: Message store; defaults to the STORE_BACKEND adapter.
        rate_limiter: Limiter; defaults to the in-memory limiter when
            APP_RATE_LIMIT_ENABLED is true.
        senders: Notification channels; defaults to the configured ones.
        clock: Time source (UNIX seconds) for admission decisions.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)
    cfg = settings.app

    message_store = store if store is not None else create_message_store(settings.store)
    if rate_limiter is None and cfg.rate_limit_enabled:
        rate_limiter = InMemoryRateLimiter(
            limit=cfg.rate_limit_requests,
            window_seconds=cfg.rate_limit_window_seconds,
            min_interval_seconds=cfg.rate_limit_min_interval_seconds,
            clock=clock,
        )
    dispatcher = NotificationDispatcher(
        build_channel_senders(settings.notify) if senders is None else senders,
        timeout_seconds=settings.notify.timeout_seconds,
    )
    tasks = BackgroundTaskQueue(
        workers=cfg.background_workers,
        max_size=cfg.background_queue_size,
        drain_timeout_seconds=cfg.background_drain_timeout_seconds,
    )
    admission_service = AdmissionService(
        store=message_store,
        rate_limiter=rate_limiter,
        dispatcher=dispatcher,
        tasks=tasks,
        max_message_chars=cfg.max_message_chars,
        window_seconds=cfg.rate_limit_window_seconds,
        clock=clock,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await tasks.start()
        try:
            yield
        finally:
            await tasks.stop()
            await message_store.aclose()

    app = FastAPI(
        title="Anonymous Message Board API",
        description=(
            "Accepts anonymous messages for the board owner. Submissions pass a "
            "honeypot, per-address rate limits, visitor blocks and a daily quota "
            "before they are stored; the owner is then notified by Telegram "
            "and/or email in the background."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.admission_service = admission_service
    app.state.background_tasks = tasks

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(messages_router)
    app.include_router(health_router)

    logger.info(
        "app.created",
        extra={
            "store_backend": type(message_store).__name__,
            "rate_limit_enabled": rate_limiter is not None,
            "notify_channels": [s.name for s in dispatcher.senders],
        },
    )
    return app
