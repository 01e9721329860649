"""Notification channel adapters (Telegram bot, Resend email)."""

from board_api.adapters.notify.base import AbstractChannelSender
from board_api.adapters.notify.factory import build_channel_senders
from board_api.adapters.notify.resend import ResendEmailSender
from board_api.adapters.notify.telegram import TelegramSender

__all__ = [
    "AbstractChannelSender",
    "ResendEmailSender",
    "TelegramSender",
    "build_channel_senders",
]
