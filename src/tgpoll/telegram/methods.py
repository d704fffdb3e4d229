# No `from __future__ import annotations` here: msgspec has to see the
# ClassVar markers as real objects to keep them out of the encoded body.
from typing import Any, ClassVar, Protocol

import msgspec

from .api_models import Update, User


class Method(Protocol):
    """A Bot API call: its JSON-encodable parameters plus name and result type."""

    name: ClassVar[str]
    result_type: ClassVar[Any]


class GetMe(msgspec.Struct, frozen=True, omit_defaults=True):
    name: ClassVar[str] = "getMe"
    result_type: ClassVar[Any] = User


class GetUpdates(msgspec.Struct, frozen=True, omit_defaults=True):
    name: ClassVar[str] = "getUpdates"
    result_type: ClassVar[Any] = list[Update]

    offset: int | None = None
    timeout: int | None = None
    limit: int | None = None
    allowed_updates: list[str] | None = None


def encode_params(method: Method) -> bytes:
    return msgspec.json.encode(method)
