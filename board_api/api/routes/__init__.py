from __future__ import annotations

from board_api.api.routes.health import router as health_router
from board_api.api.routes.messages import router as messages_router

__all__ = ["health_router", "messages_router"]
