"""Supabase (PostgREST) message store adapter.

Talks to ``{url}/rest/v1`` with the project's secret key. Tables used:
``visitors(id, is_blocked)``, ``settings(key, value)`` and
``messages(id, visitor_id, content, image_url, contact, created_at, ...)``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from board_api.adapters.store.base import AbstractMessageStore
from board_api.core.errors import StoreAppError
from board_api.schemas.message import NewMessage

logger = logging.getLogger(__name__)


def _parse_content_range_total(header: str | None) -> int | None:
    """Extract the total from a PostgREST ``Content-Range`` header.

    Examples:
        >>> _parse_content_range_total("0-0/12")
        12
        >>> _parse_content_range_total("*/0")
        0
        >>> _parse_content_range_total("0-9/*") is None
        True
    """
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None


class SupabaseMessageStore(AbstractMessageStore):
    """PostgREST client built on ``httpx.AsyncClient``."""

    def __init__(
        self,
        *,
        base_url: str,
        secret_key: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            base_url: Supabase project URL (without ``/rest/v1``).
            secret_key: Service key sent as ``apikey`` and bearer token.
            timeout_seconds: Per-request timeout.
            client: Optional preconfigured client (tests); owned by the caller.
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._rest_url = f"{base_url.rstrip('/')}/rest/v1"
        self._headers = {
            "apikey": secret_key,
            "Authorization": f"Bearer {secret_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        operation: str,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                f"{self._rest_url}/{table}",
                params=params,
                json=json,
                headers={**self._headers, **(headers or {})},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "store.request_failed",
                extra={"operation": operation, "status": exc.response.status_code},
            )
            raise StoreAppError(
                code="store_error",
                message=f"Store rejected {operation}",
                details={"operation": operation, "http_status": exc.response.status_code},
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "store.request_failed",
                extra={"operation": operation, "error_type": type(exc).__name__},
            )
            raise StoreAppError(
                code="store_error",
                message=f"Store unavailable during {operation}",
                details={"operation": operation},
            ) from exc
        return response

    @staticmethod
    def _rows(response: httpx.Response, operation: str) -> list[dict[str, Any]]:
        try:
            rows = response.json()
        except ValueError as exc:
            raise StoreAppError(
                code="store_error",
                message=f"Store returned invalid JSON for {operation}",
                details={"operation": operation},
            ) from exc
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise StoreAppError(
                code="store_error",
                message=f"Store returned an unexpected payload for {operation}",
                details={"operation": operation},
            )
        return rows

    async def read_visitor_block_flag(self, visitor_id: str) -> bool:
        response = await self._request(
            "read_visitor_block_flag",
            "GET",
            "visitors",
            params={"id": f"eq.{visitor_id}", "select": "is_blocked"},
        )
        rows = self._rows(response, "read_visitor_block_flag")
        return bool(rows and rows[0].get("is_blocked"))

    async def count_messages_since(self, visitor_id: str, since: datetime) -> int:
        since_utc = since.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        response = await self._request(
            "count_messages_since",
            "GET",
            "messages",
            params={
                "visitor_id": f"eq.{visitor_id}",
                "created_at": f"gte.{since_utc}",
                "select": "id",
            },
            headers={"Prefer": "count=exact"},
        )
        total = _parse_content_range_total(response.headers.get("Content-Range"))
        if total is not None:
            return total
        return len(self._rows(response, "count_messages_since"))

    async def read_setting(self, key: str) -> str | None:
        response = await self._request(
            "read_setting",
            "GET",
            "settings",
            params={"key": f"eq.{key}", "select": "value"},
        )
        rows = self._rows(response, "read_setting")
        if not rows or rows[0].get("value") is None:
            return None
        return str(rows[0]["value"])

    async def create_message(self, message: NewMessage) -> str:
        response = await self._request(
            "create_message",
            "POST",
            "messages",
            json={
                "visitor_id": message.visitor_id,
                "content": message.content,
                "image_url": message.image_url,
                "contact": message.contact,
            },
            headers={"Prefer": "return=representation"},
        )
        rows = self._rows(response, "create_message")
        if not rows or rows[0].get("id") is None:
            raise StoreAppError(
                code="store_error",
                message="Store did not return the created message",
                details={"operation": "create_message"},
            )
        return str(rows[0]["id"])

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
