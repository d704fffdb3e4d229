from __future__ import annotations

from collections.abc import AsyncGenerator, Iterable
from types import TracebackType

import httpx

from .. import __version__
from ..logging import get_logger
from ..utils.streams import GenStream, gen_stream
from .api_models import Update, UpdateContent, User
from .client_api import API_BASE, BotClient, HttpBotClient
from .methods import GetMe
from .polling import (
    DEFAULT_REQUEST_MARGIN_S,
    DEFAULT_TIMEOUT_S,
    Cursor,
    poll_updates,
)

logger = get_logger(__name__)

DEFAULT_BOOTSTRAP_TIMEOUT_S = 5.0


def user_agent_for(username: str) -> str:
    return f"tgpoll/{__version__} (+https://t.me/{username})"


@gen_stream
async def _contents(updates: GenStream[Update]) -> AsyncGenerator[UpdateContent, None]:
    async with updates:
        async for update in updates:
            yield update.content


class Bot:
    """A bootstrapped bot identity plus the client used to talk to the API."""

    def __init__(self, client: BotClient, me: User) -> None:
        if not me.username:
            raise ValueError(f"Bot {me.id} doesn't have a username")
        self.client = client
        self.id = me.id
        self.username = me.username
        self.name = me.first_name
        self.user_agent = user_agent_for(me.username)

    @classmethod
    async def bootstrap(
        cls,
        client: BotClient,
        *,
        timeout_s: float = DEFAULT_BOOTSTRAP_TIMEOUT_S,
    ) -> Bot:
        me: User = await client.execute(GetMe(), timeout_s=timeout_s)
        bot = cls(client, me)
        logger.info("bot.ready", bot_id=bot.id, username=bot.username)
        return bot

    @classmethod
    async def create(
        cls,
        token: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = API_BASE,
        bootstrap_timeout_s: float = DEFAULT_BOOTSTRAP_TIMEOUT_S,
    ) -> Bot:
        client = HttpBotClient(token, base_url=base_url, http_client=http_client)
        try:
            bot = await cls.bootstrap(client, timeout_s=bootstrap_timeout_s)
        except BaseException:
            await client.close()
            raise
        client.user_agent = bot.user_agent
        return bot

    def poll(
        self,
        allowed_updates: Iterable[str] | None = None,
        *,
        timeout_s: int = DEFAULT_TIMEOUT_S,
        limit: int | None = None,
        cursor: Cursor | None = None,
        request_margin_s: float = DEFAULT_REQUEST_MARGIN_S,
    ) -> GenStream[Update]:
        return poll_updates(
            self.client,
            allowed_updates=allowed_updates,
            timeout_s=timeout_s,
            limit=limit,
            cursor=cursor,
            request_margin_s=request_margin_s,
        )

    def get_updates(
        self,
        allowed_updates: Iterable[str] | None = None,
        *,
        timeout_s: int = DEFAULT_TIMEOUT_S,
        limit: int | None = None,
        cursor: Cursor | None = None,
        request_margin_s: float = DEFAULT_REQUEST_MARGIN_S,
    ) -> GenStream[UpdateContent]:
        return _contents(
            self.poll(
                allowed_updates,
                timeout_s=timeout_s,
                limit=limit,
                cursor=cursor,
                request_margin_s=request_margin_s,
            )
        )

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self) -> Bot:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
