from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from starlette.requests import Request

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FetchCancelled(Exception):
    pass


class CancellationToken:
    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        for callback in list(self._callbacks):
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        if self._cancelled:
            callback()
            return
        self._callbacks.append(callback)


async def guarded(token: CancellationToken, awaitable: Awaitable[T]) -> T:
    """Await ``awaitable`` and drop its result if ``token`` was cancelled meanwhile."""
    result = await awaitable
    if token.cancelled:
        raise FetchCancelled()
    return result


class ViewLifetime:
    """Ties a page's fetches to the request that renders it.

    Results that arrive after the client disconnected, or after the view left
    its ``async with`` block, are discarded instead of being rendered.
    """

    def __init__(self, request: Request | None = None, token: CancellationToken | None = None) -> None:
        self._request = request
        self.token = token or CancellationToken()

    async def __aenter__(self) -> ViewLifetime:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.token.cancel()

    async def _check_disconnected(self) -> None:
        if self._request is not None and await self._request.is_disconnected():
            logger.info("client went away during %s, discarding late result", self._request.url.path)
            self.token.cancel()

    async def run(self, awaitable: Awaitable[T]) -> T:
        if self.token.cancelled:
            if hasattr(awaitable, "close"):
                awaitable.close()
            raise FetchCancelled()
        result = await guarded(self.token, awaitable)
        await self._check_disconnected()
        if self.token.cancelled:
            raise FetchCancelled()
        return result
