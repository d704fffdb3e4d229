"""Telegram Bot API long-polling client."""

from .api_models import Update, UpdateContent, User
from .bot import Bot
from .client_api import BotClient, HttpBotClient
from .errors import (
    DecodeError,
    MalformedServerResponse,
    RemoteError,
    RequestTimeout,
    TelegramError,
    TransportError,
)
from .polling import Cursor, drain_backlog, poll_updates

__all__ = [
    "Bot",
    "BotClient",
    "Cursor",
    "DecodeError",
    "HttpBotClient",
    "MalformedServerResponse",
    "RemoteError",
    "RequestTimeout",
    "TelegramError",
    "TransportError",
    "Update",
    "UpdateContent",
    "User",
    "drain_backlog",
    "poll_updates",
]
