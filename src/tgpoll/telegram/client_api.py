from __future__ import annotations

from typing import Any, Protocol

import anyio
import httpx
import msgspec

from .. import __version__
from ..logging import get_logger
from .errors import (
    DecodeError,
    MalformedServerResponse,
    RemoteError,
    RequestTimeout,
    TransportError,
)
from .methods import Method, encode_params

logger = get_logger(__name__)

API_BASE = "https://api.telegram.org"
DEFAULT_USER_AGENT = f"tgpoll/{__version__}"


class ResponseParameters(msgspec.Struct, kw_only=True):
    retry_after: float | None = None
    migrate_to_chat_id: int | None = None


class Envelope(msgspec.Struct, kw_only=True):
    ok: bool
    result: Any = msgspec.UNSET
    error_code: int | None = None
    description: str | None = None
    parameters: ResponseParameters | None = None


class BotClient(Protocol):
    async def close(self) -> None: ...

    async def execute(self, method: Method, *, timeout_s: float) -> Any: ...


class HttpBotClient:
    def __init__(
        self,
        token: str,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        base_url: str = API_BASE,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not token:
            raise ValueError("Telegram token is empty")
        self._base = f"{base_url.rstrip('/')}/bot{token}"
        self._http_client = http_client or httpx.AsyncClient()
        self._owns_http_client = http_client is None
        self.user_agent = user_agent

    async def close(self) -> None:
        if self._owns_http_client:
            await self._http_client.aclose()

    async def execute(self, method: Method, *, timeout_s: float) -> Any:
        body = encode_params(method)
        logger.debug("telegram.request", method=method.name, payload=body)
        try:
            with anyio.fail_after(timeout_s):
                resp = await self._http_client.post(
                    f"{self._base}/{method.name}",
                    content=body,
                    headers={
                        "Content-Type": "application/json",
                        "User-Agent": self.user_agent,
                    },
                    timeout=timeout_s,
                )
        except (TimeoutError, httpx.TimeoutException):
            logger.debug("telegram.timeout", method=method.name, timeout_s=timeout_s)
            raise RequestTimeout(method.name, timeout_s) from None
        except httpx.HTTPError as exc:
            url = exc.request.url if _has_request(exc) else None
            logger.error(
                "telegram.network_error",
                method=method.name,
                url=str(url) if url is not None else None,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            raise TransportError(method.name, exc) from exc

        envelope = self._parse_envelope(method=method.name, resp=resp)
        return self._decode_result(method, envelope.result)

    def _parse_envelope(self, *, method: str, resp: httpx.Response) -> Envelope:
        try:
            envelope = msgspec.json.decode(resp.content, type=Envelope)
        except msgspec.DecodeError as exc:
            logger.error(
                "telegram.bad_response",
                method=method,
                status=resp.status_code,
                error=str(exc),
                body=resp.content,
            )
            raise MalformedServerResponse(resp.status_code, resp.content) from None

        if envelope.ok and envelope.result is not msgspec.UNSET:
            logger.debug("telegram.response", method=method, status=resp.status_code)
            return envelope

        if envelope.ok or envelope.error_code is None:
            logger.error(
                "telegram.bad_response",
                method=method,
                status=resp.status_code,
                body=resp.content,
            )
            raise MalformedServerResponse(resp.status_code, resp.content)

        retry_after = (
            envelope.parameters.retry_after if envelope.parameters is not None else None
        )
        logger.error(
            "telegram.api_error",
            method=method,
            status=resp.status_code,
            error_code=envelope.error_code,
            description=envelope.description,
            retry_after=retry_after,
        )
        raise RemoteError(
            envelope.error_code,
            envelope.description or "",
            retry_after=retry_after,
        )

    def _decode_result(self, method: Method, payload: Any) -> Any:
        try:
            return msgspec.convert(payload, type=method.result_type)
        except msgspec.ValidationError as exc:
            logger.error(
                "telegram.decode_error",
                method=method.name,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            raise DecodeError(method.name, exc, payload) from exc


def _has_request(exc: httpx.HTTPError) -> bool:
    # HTTPError.request raises RuntimeError when the error was built without one.
    try:
        exc.request
    except RuntimeError:
        return False
    return True
