"""Client address resolution and request-scoped dependencies.

The service runs behind a reverse proxy, so the socket peer is the proxy.
Resolution order: the trusted proxy header, then the first entry of the
forwarded-for header, then one shared sentinel bucket. Every client without a
resolvable address therefore shares a single rate limit.
"""

from __future__ import annotations

from typing import Mapping

from fastapi import Request

from board_api.core.config import settings
from board_api.services.admission_service import AdmissionService

UNKNOWN_CLIENT = "unknown"


def resolve_client_address(
    headers: Mapping[str, str],
    *,
    trusted_header: str = "CF-Connecting-IP",
    forwarded_header: str = "X-Forwarded-For",
) -> str:
    """Pick the client address from proxy headers.

    Args:
        headers: Case-insensitive request headers.
        trusted_header: Header set by the trusted proxy.
        forwarded_header: Comma-separated forwarded-for chain.

    Returns:
        The client address, or ``UNKNOWN_CLIENT``.

    Examples:
        >>> resolve_client_address({"X-Forwarded-For": "1.2.3.4, 10.0.0.1"})
        '1.2.3.4'
        >>> resolve_client_address({})
        'unknown'
    """
    trusted = (headers.get(trusted_header) or "").strip()
    if trusted:
        return trusted

    forwarded = (headers.get(forwarded_header) or "").split(",")[0].strip()
    if forwarded:
        return forwarded

    return UNKNOWN_CLIENT


async def get_client_address(request: Request) -> str:
    """FastAPI dependency returning the resolved client address."""
    return resolve_client_address(
        request.headers,
        trusted_header=settings.app.client_ip_header,
        forwarded_header=settings.app.forwarded_for_header,
    )


async def get_admission_service(request: Request) -> AdmissionService:
    """FastAPI dependency returning the app-owned admission service."""
    return request.app.state.admission_service
