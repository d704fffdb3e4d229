from __future__ import annotations

from collections.abc import AsyncGenerator, Iterable
from dataclasses import dataclass

from ..logging import get_logger
from ..utils.streams import gen_stream
from .api_models import Update
from .client_api import BotClient
from .errors import RequestTimeout, TelegramError
from .methods import GetUpdates

logger = get_logger(__name__)

DEFAULT_TIMEOUT_S = 50
DEFAULT_REQUEST_MARGIN_S = 5.0
BACKLOG_REQUEST_TIMEOUT_S = 10.0


@dataclass(slots=True)
class Cursor:
    """Id of the last update handed to the consumer; only ever moves forward."""

    value: int | None = None

    @property
    def offset(self) -> int | None:
        # getUpdates confirms everything below `offset`.
        return None if self.value is None else self.value + 1

    def take(self, updates: list[Update]) -> list[Update]:
        """Drop updates already seen and advance past the rest."""
        fresh: list[Update] = []
        for update in updates:
            if self.value is None or update.update_id > self.value:
                self.value = update.update_id
                fresh.append(update)
        return fresh


def _allowed(allowed_updates: Iterable[str] | None) -> list[str] | None:
    return list(allowed_updates) if allowed_updates is not None else None


@gen_stream
async def poll_updates(
    bot: BotClient,
    *,
    allowed_updates: Iterable[str] | None = None,
    timeout_s: int = DEFAULT_TIMEOUT_S,
    limit: int | None = None,
    cursor: Cursor | None = None,
    request_margin_s: float = DEFAULT_REQUEST_MARGIN_S,
) -> AsyncGenerator[Update, None]:
    cursor = cursor if cursor is not None else Cursor()
    kinds = _allowed(allowed_updates)
    while True:
        request = GetUpdates(
            offset=cursor.offset,
            timeout=timeout_s,
            limit=limit,
            allowed_updates=kinds,
        )
        try:
            updates: list[Update] = await bot.execute(
                request, timeout_s=timeout_s + request_margin_s
            )
        except RequestTimeout:
            logger.debug("poll.timeout", offset=request.offset)
            continue
        except TelegramError as exc:
            logger.error(
                "poll.failed",
                offset=request.offset,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            raise

        fresh = cursor.take(updates)
        if len(fresh) != len(updates):
            logger.warning(
                "poll.stale_updates",
                cursor=cursor.value,
                dropped=len(updates) - len(fresh),
            )
        if fresh:
            logger.debug("poll.batch", count=len(fresh), cursor=cursor.value)
        for update in fresh:
            yield update


async def drain_backlog(
    bot: BotClient,
    cursor: Cursor,
    *,
    allowed_updates: Iterable[str] | None = None,
    request_timeout_s: float = BACKLOG_REQUEST_TIMEOUT_S,
) -> int:
    """Skip everything the server has buffered; returns the number skipped."""
    kinds = _allowed(allowed_updates)
    drained = 0
    while True:
        updates: list[Update] = await bot.execute(
            GetUpdates(offset=cursor.offset, timeout=0, allowed_updates=kinds),
            timeout_s=request_timeout_s,
        )
        fresh = cursor.take(updates)
        if not fresh:
            if drained:
                logger.info("startup.backlog.drained", count=drained)
            return drained
        drained += len(fresh)
