from __future__ import annotations

from typing import Any


class TelegramError(Exception):
    """Base class for every failure of a Bot API call."""


class TransportError(TelegramError):
    def __init__(self, method: str, cause: BaseException) -> None:
        super().__init__(f"{method}: {cause.__class__.__name__}: {cause}")
        self.method = method
        self.cause = cause


class RequestTimeout(TelegramError):
    def __init__(self, method: str, timeout_s: float) -> None:
        super().__init__(f"{method}: no response within {timeout_s:g}s")
        self.method = method
        self.timeout_s = timeout_s


class DecodeError(TelegramError):
    def __init__(self, method: str, cause: BaseException, payload: Any) -> None:
        super().__init__(f"{method}: cannot decode result: {cause}")
        self.method = method
        self.cause = cause
        self.payload = payload


class RemoteError(TelegramError):
    def __init__(
        self,
        error_code: int,
        description: str,
        *,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(f"{error_code}: {description}")
        self.error_code = error_code
        self.description = description
        self.retry_after = retry_after


class MalformedServerResponse(TelegramError):
    def __init__(self, status: int, body: bytes) -> None:
        super().__init__(f"{status} {body[:200]!r}")
        self.status = status
        self.body = body
