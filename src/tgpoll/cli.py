from __future__ import annotations

from pathlib import Path

import anyio
import typer

from . import __version__
from .config import ConfigError
from .logging import bind_context, get_logger, setup_logging
from .settings import TgpollSettings, load_settings
from .telegram import Bot, Cursor, TelegramError, drain_backlog
from .telegram.api_models import CallbackQuery, Message, UpdateContent

logger = get_logger(__name__)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


def _summary(content: UpdateContent) -> str | None:
    payload = content.payload
    if isinstance(payload, Message):
        return payload.text if payload.text is not None else payload.caption
    if isinstance(payload, CallbackQuery):
        return payload.data
    return None


async def _run_poll_loop(settings: TgpollSettings, drop_pending: bool) -> None:
    bot = await Bot.create(
        settings.bot_token,
        bootstrap_timeout_s=settings.bootstrap_timeout_s,
    )
    async with bot:
        bind_context(bot=bot.username)
        cursor = Cursor()
        if drop_pending:
            await drain_backlog(
                bot.client, cursor, allowed_updates=settings.allowed_updates
            )
        updates = bot.poll(
            settings.allowed_updates,
            timeout_s=settings.poll_timeout_s,
            limit=settings.limit,
            cursor=cursor,
            request_margin_s=settings.request_margin_s,
        )
        async with updates:
            async for update in updates:
                content = update.content
                logger.info(
                    "update.received",
                    update_id=update.update_id,
                    kind=content.kind,
                    text=_summary(content),
                )


def run(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Path to tgpoll.toml (defaults to ~/.tgpoll/tgpoll.toml).",
    ),
    drop_pending: bool | None = typer.Option(
        None,
        "--drop-pending/--keep-pending",
        help="Skip updates buffered on the server before polling starts.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug/--no-debug",
        help="Log every Bot API request and response.",
    ),
) -> None:
    setup_logging(debug=debug)
    try:
        settings, _ = load_settings(config)
    except ConfigError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    if drop_pending is None:
        drop_pending = settings.drop_pending_updates
    try:
        anyio.run(_run_poll_loop, settings, drop_pending)
    except TelegramError as e:
        typer.echo(f"telegram error: {e}", err=True)
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        logger.info("shutdown.interrupted")


def main() -> None:
    typer.run(run)


if __name__ == "__main__":
    main()
