"""Expose suspend/resume style code as a lazily pulled async sequence.

The wrapped body is an async generator: it awaits whatever it needs (the
"pending" state), yields items, and finishes either by returning or by
raising.  :class:`GenStream` adds the guarantees consumers rely on: a failure
is delivered exactly once, a finished stream stays finished, and only one
resume is ever in flight.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator, Callable
from functools import wraps
from types import TracebackType
from typing import Generic, ParamSpec, TypeVar

import anyio

T = TypeVar("T")
P = ParamSpec("P")


class GenStream(Generic[T]):
    def __init__(self, gen: AsyncGenerator[T, None]) -> None:
        self._gen = gen
        self._done = False
        self._resuming = False

    @property
    def done(self) -> bool:
        return self._done

    def __aiter__(self) -> GenStream[T]:
        return self

    async def __anext__(self) -> T:
        if self._done:
            raise StopAsyncIteration
        if self._resuming:
            raise anyio.BusyResourceError("resuming")
        self._resuming = True
        try:
            return await self._gen.__anext__()
        except BaseException:
            # Exhausted, failed or cancelled: the generator cannot be resumed.
            self._done = True
            raise
        finally:
            self._resuming = False

    async def aclose(self) -> None:
        # Shutting down a pull in flight means cancelling the task running it.
        if self._resuming:
            raise anyio.BusyResourceError("closing")
        await self._gen.aclose()
        self._done = True

    async def __aenter__(self) -> GenStream[T]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def gen_stream(
    body: Callable[P, AsyncGenerator[T, None]],
) -> Callable[P, GenStream[T]]:
    @wraps(body)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> GenStream[T]:
        return GenStream(body(*args, **kwargs))

    return wrapper


async def collect(stream: AsyncIterator[T]) -> list[T]:
    return [item async for item in stream]
