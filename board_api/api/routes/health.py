from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check used by load balancers and monitoring.

    Also reports whether the background notification queue is running and
    how many notifications are waiting, which helps spot a stuck channel.
    """

    tasks = getattr(request.app.state, "background_tasks", None)
    return {
        "status": "ok",
        "background_running": bool(tasks and tasks.is_running),
        "pending_notifications": tasks.pending if tasks else 0,
    }
