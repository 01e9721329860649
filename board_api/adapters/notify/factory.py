"""Build the enabled notification channels from configuration."""

from __future__ import annotations

import logging

from board_api.adapters.notify.base import AbstractChannelSender
from board_api.adapters.notify.resend import ResendEmailSender
from board_api.adapters.notify.telegram import TelegramSender
from board_api.core.config import NotifySettings, settings

logger = logging.getLogger(__name__)


def build_channel_senders(notify_settings: NotifySettings | None = None) -> list[AbstractChannelSender]:
    """Return one sender per fully configured channel.

    A channel with only part of its credentials is skipped, not rejected.

    Args:
        notify_settings: Optional settings; defaults to the global settings.

    Returns:
        Enabled senders, possibly empty.
    """
    cfg = notify_settings or settings.notify
    senders: list[AbstractChannelSender] = []

    if cfg.tg_token and cfg.tg_chat_id:
        senders.append(
            TelegramSender(
                token=cfg.tg_token,
                chat_id=cfg.tg_chat_id,
                timeout_seconds=cfg.timeout_seconds,
            )
        )
    elif cfg.tg_token or cfg.tg_chat_id:
        logger.debug("notify.channel_skipped", extra={"channel": "telegram", "reason": "partial_config"})

    if cfg.resend_key and cfg.email_to and cfg.email_from:
        senders.append(
            ResendEmailSender(
                api_key=cfg.resend_key,
                sender=cfg.email_from,
                recipient=cfg.email_to,
                timeout_seconds=cfg.timeout_seconds,
            )
        )
    elif cfg.resend_key or cfg.email_to or cfg.email_from:
        logger.debug("notify.channel_skipped", extra={"channel": "email", "reason": "partial_config"})

    logger.info("notify.channels_configured", extra={"channels": [s.name for s in senders]})
    return senders
