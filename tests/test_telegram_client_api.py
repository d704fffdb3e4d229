import json
from collections.abc import Callable

import anyio
import httpx
import pytest

from tgpoll.telegram.api_models import Update, User
from tgpoll.telegram.client_api import DEFAULT_USER_AGENT, HttpBotClient
from tgpoll.telegram.errors import (
    DecodeError,
    MalformedServerResponse,
    RemoteError,
    RequestTimeout,
    TransportError,
)
from tgpoll.telegram.methods import GetMe, GetUpdates

TOKEN = "123:abc"


def _client(handler: Callable[[httpx.Request], object]) -> HttpBotClient:
    transport = httpx.MockTransport(handler)  # type: ignore[arg-type]
    return HttpBotClient(TOKEN, http_client=httpx.AsyncClient(transport=transport))


@pytest.mark.anyio
async def test_get_updates_round_trip() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "ok": True,
                "result": [
                    {
                        "update_id": 5,
                        "message": {
                            "message_id": 1,
                            "date": 1700000000,
                            "chat": {"id": 2, "type": "private"},
                            "from": {"id": 3, "is_bot": False, "first_name": "A"},
                            "text": "hi",
                        },
                    },
                    {"update_id": 6, "poll": {"id": "p"}},
                ],
            },
        )

    client = _client(handler)
    updates = await client.execute(
        GetUpdates(offset=5, timeout=0, allowed_updates=["message"]),
        timeout_s=5,
    )

    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == f"/bot{TOKEN}/getUpdates"
    assert request.headers["user-agent"] == DEFAULT_USER_AGENT
    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.content) == {
        "offset": 5,
        "timeout": 0,
        "allowed_updates": ["message"],
    }

    assert [update.update_id for update in updates] == [5, 6]
    assert isinstance(updates[0], Update)
    content = updates[0].content
    assert content.kind == "message"
    assert content.payload.text == "hi"
    assert content.payload.from_.id == 3
    assert updates[1].content.kind == "unknown"


@pytest.mark.anyio
async def test_get_me_sends_empty_object() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {}
        return httpx.Response(
            200,
            json={
                "ok": True,
                "result": {
                    "id": 7,
                    "is_bot": True,
                    "first_name": "Poller",
                    "username": "poll_bot",
                },
            },
        )

    me = await _client(handler).execute(GetMe(), timeout_s=5)

    assert me == User(id=7, is_bot=True, first_name="Poller", username="poll_bot")


@pytest.mark.anyio
async def test_remote_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            401, json={"ok": False, "error_code": 401, "description": "Unauthorized"}
        )

    with pytest.raises(RemoteError) as exc_info:
        await _client(handler).execute(GetMe(), timeout_s=5)

    assert exc_info.value.error_code == 401
    assert exc_info.value.description == "Unauthorized"
    assert exc_info.value.retry_after is None


@pytest.mark.anyio
async def test_remote_error_carries_retry_after() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            429,
            json={
                "ok": False,
                "error_code": 429,
                "description": "Too Many Requests: retry after 3",
                "parameters": {"retry_after": 3},
            },
        )

    with pytest.raises(RemoteError) as exc_info:
        await _client(handler).execute(GetUpdates(), timeout_s=5)

    assert exc_info.value.error_code == 429
    assert exc_info.value.retry_after == 3


@pytest.mark.anyio
@pytest.mark.parametrize(
    "status, body",
    [
        (502, b"<html>bad gateway</html>"),
        (200, b"[1, 2]"),
        (200, b'{"ok": false}'),
        (200, b'{"result": []}'),
        (200, b'{"ok": true}'),
    ],
)
async def test_malformed_envelope(status: int, body: bytes) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, content=body)

    with pytest.raises(MalformedServerResponse) as exc_info:
        await _client(handler).execute(GetUpdates(), timeout_s=5)

    assert exc_info.value.status == status
    assert exc_info.value.body == body


@pytest.mark.anyio
async def test_unexpected_result_shape_is_decode_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ok": True, "result": "nope"})

    with pytest.raises(DecodeError) as exc_info:
        await _client(handler).execute(GetUpdates(), timeout_s=5)

    assert exc_info.value.payload == "nope"


@pytest.mark.anyio
async def test_network_failure_is_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as exc_info:
        await _client(handler).execute(GetUpdates(), timeout_s=5)

    assert isinstance(exc_info.value.cause, httpx.ConnectError)


@pytest.mark.anyio
async def test_httpx_timeout_is_request_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(RequestTimeout):
        await _client(handler).execute(GetUpdates(timeout=50), timeout_s=55)


@pytest.mark.anyio
async def test_client_deadline_is_request_timeout() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        await anyio.sleep(1)
        return httpx.Response(200, json={"ok": True, "result": []})

    with pytest.raises(RequestTimeout) as exc_info:
        await _client(handler).execute(GetUpdates(), timeout_s=0.01)

    assert exc_info.value.timeout_s == 0.01


@pytest.mark.anyio
async def test_close_keeps_injected_http_client_open() -> None:
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200))
    )
    client = HttpBotClient(TOKEN, http_client=http_client)

    await client.close()

    assert not http_client.is_closed
    await http_client.aclose()


def test_empty_token_rejected() -> None:
    with pytest.raises(ValueError):
        HttpBotClient("")
