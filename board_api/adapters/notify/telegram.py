"""Telegram bot notification channel."""

from __future__ import annotations

import re

import httpx

from board_api.adapters.notify.base import AbstractChannelSender
from board_api.schemas.message import NotificationJob

TELEGRAM_API_URL = "https://api.telegram.org"

_MARKDOWN_SPECIAL = re.compile(r"([_*\[\]()~`>#+=|{}.!\\-])")


def escape_markdown(text: str) -> str:
    """Backslash-escape Telegram markdown control characters.

    Examples:
        >>> escape_markdown("a_b*c")
        'a\\\\_b\\\\*c'
    """
    return _MARKDOWN_SPECIAL.sub(r"\\\1", text)


def build_telegram_text(job: NotificationJob) -> str:
    lines = [
        "📬 *New message*",
        "",
        "*Content:*",
        escape_markdown(job.content),
    ]
    if job.contact:
        lines += ["", f"*Contact:* {escape_markdown(job.contact)}"]
    if job.image_url:
        lines += ["", f"*Image:* [View image]({job.image_url})"]
    lines += ["", f"*Visitor:* `#{job.short_visitor_id}`"]
    return "\n".join(lines)


class TelegramSender(AbstractChannelSender):
    """Posts a markdown message to a chat through the Bot API ``sendMessage``."""

    name = "telegram"

    def __init__(
        self,
        *,
        token: str,
        chat_id: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, client=client)
        self._token = token
        self._chat_id = chat_id

    async def send(self, job: NotificationJob) -> bool:
        return await self._post_json(
            f"{TELEGRAM_API_URL}/bot{self._token}/sendMessage",
            {
                "chat_id": self._chat_id,
                "text": build_telegram_text(job),
                "parse_mode": "Markdown",
                "disable_web_page_preview": True,
            },
        )
