"""Schemas for message submission and the records derived from it."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class SubmissionRequest(BaseModel):
    """Body of ``POST /api/message``.

    Fields accept any JSON value. Types, presence and emptiness are checked by
    the admission service after the honeypot, so a bot filling the hidden field
    always gets the fake success, whatever else it sends.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    visitor_id: Any = Field(
        default=None,
        alias="visitorId",
        description="Anonymous visitor id generated by the browser.",
    )
    content: Any = Field(
        default=None,
        description="Message text.",
    )
    image_url: Any = Field(
        default=None,
        alias="imageUrl",
        description="Optional link to an image attached to the message.",
    )
    contact: Any = Field(
        default=None,
        description="Optional contact details left by the visitor.",
    )
    honeypot: Any = Field(
        default=None,
        alias="_hp",
        description="Hidden form field. Humans leave it empty.",
    )


class SubmissionResponse(BaseModel):
    """Successful submission response (also returned for honeypot hits)."""

    ok: Literal[True] = True


@dataclass(frozen=True)
class NewMessage:
    """Normalized message handed to the store for persistence."""

    visitor_id: str
    content: str
    image_url: str | None = None
    contact: str | None = None


@dataclass
class PersistedMessage:
    """Message as stored; moderation flags are changed outside this service."""

    id: str
    visitor_id: str
    content: str
    created_at: datetime
    image_url: str | None = None
    contact: str | None = None
    is_read: bool = False
    is_blocked: bool = False


@dataclass(frozen=True)
class NotificationJob:
    """What operators are told about one accepted message."""

    visitor_id: str
    content: str
    contact: str | None = None
    image_url: str | None = None

    @classmethod
    def from_message(cls, message: NewMessage) -> NotificationJob:
        return cls(
            visitor_id=message.visitor_id,
            content=message.content,
            contact=message.contact,
            image_url=message.image_url,
        )

    @property
    def short_visitor_id(self) -> str:
        return self.visitor_id[:8]
