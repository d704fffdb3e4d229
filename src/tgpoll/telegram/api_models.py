from __future__ import annotations

from typing import Literal, get_args

import msgspec

UpdateKind = Literal[
    "message",
    "edited_message",
    "channel_post",
    "edited_channel_post",
    "callback_query",
    "unknown",
]

# Kinds accepted by getUpdates' allowed_updates; "unknown" is local only.
UPDATE_KINDS: tuple[str, ...] = tuple(
    kind for kind in get_args(UpdateKind) if kind != "unknown"
)


class User(msgspec.Struct, frozen=True, kw_only=True):
    id: int
    is_bot: bool = False
    first_name: str = ""
    last_name: str | None = None
    username: str | None = None


class Chat(msgspec.Struct, frozen=True, kw_only=True):
    id: int
    type: str = "private"
    title: str | None = None
    username: str | None = None


class Message(msgspec.Struct, frozen=True, kw_only=True):
    message_id: int
    date: int = 0
    chat: Chat | None = None
    from_: User | None = msgspec.field(default=None, name="from")
    message_thread_id: int | None = None
    text: str | None = None
    caption: str | None = None


class CallbackQuery(msgspec.Struct, frozen=True, kw_only=True):
    id: str
    from_: User | None = msgspec.field(default=None, name="from")
    message: Message | None = None
    data: str | None = None


class UpdateContent(msgspec.Struct, frozen=True):
    kind: UpdateKind
    payload: Message | CallbackQuery | None = None


class Update(msgspec.Struct, frozen=True, kw_only=True):
    update_id: int
    message: Message | None = None
    edited_message: Message | None = None
    channel_post: Message | None = None
    edited_channel_post: Message | None = None
    callback_query: CallbackQuery | None = None

    @property
    def content(self) -> UpdateContent:
        for kind in UPDATE_KINDS:
            payload = getattr(self, kind)
            if payload is not None:
                return UpdateContent(kind=kind, payload=payload)
        return UpdateContent(kind="unknown")
