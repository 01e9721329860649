"""Resend transactional email notification channel."""

from __future__ import annotations

from html import escape

import httpx

from board_api.adapters.notify.base import AbstractChannelSender
from board_api.schemas.message import NotificationJob

RESEND_API_URL = "https://api.resend.com/emails"
EMAIL_SUBJECT = "📬 You have a new message"


def build_email_html(job: NotificationJob) -> str:
    """Render the notification email; every visitor-supplied value is escaped."""
    parts = [
        '<div style="font-family:sans-serif;max-width:600px;margin:0 auto;padding:24px;">',
        '<h2 style="color:#5c4a3a;margin-bottom:16px;">📬 New message</h2>',
        '<div style="background:#f7f5f0;border-radius:8px;padding:16px;margin-bottom:16px;">',
        f'<p style="white-space:pre-wrap;margin:0;">{escape(job.content)}</p>',
        "</div>",
    ]
    if job.contact:
        parts.append(f"<p><strong>Contact:</strong> {escape(job.contact)}</p>")
    if job.image_url:
        parts.append(
            f'<p><strong>Image:</strong> <a href="{escape(job.image_url)}">View image</a></p>'
        )
    parts.append(
        f'<p style="color:#8a8078;font-size:0.85em;margin-top:24px;">'
        f"Visitor #{escape(job.short_visitor_id)}</p>"
    )
    parts.append("</div>")
    return "\n".join(parts)


class ResendEmailSender(AbstractChannelSender):
    """Sends an HTML email from a verified sender address via Resend."""

    name = "email"

    def __init__(
        self,
        *,
        api_key: str,
        sender: str,
        recipient: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, client=client)
        self._api_key = api_key
        self._sender = sender
        self._recipient = recipient

    async def send(self, job: NotificationJob) -> bool:
        return await self._post_json(
            RESEND_API_URL,
            {
                "from": self._sender,
                "to": self._recipient,
                "subject": EMAIL_SUBJECT,
                "html": build_email_html(job),
            },
            headers={"Authorization": f"Bearer {self._api_key}"},
        )
