from __future__ import annotations

import secrets
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from redis import Redis
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import Response

REDIS_SESSION_PREFIX = "interneefy:session:"


@dataclass(frozen=True)
class SessionSnapshot:
    credential: str | None
    ready: bool


SessionListener = Callable[[SessionSnapshot], None]


class SessionStorage(Protocol):
    def load(self, request: Request) -> str | None: ...

    def save(self, request: Request, response: Response, credential: str) -> None: ...

    def clear(self, request: Request, response: Response) -> None: ...


class CookieSessionStorage:
    """Keeps the credential itself in an http-only cookie."""

    def __init__(self, *, cookie_name: str, max_age_seconds: int) -> None:
        self.cookie_name = cookie_name
        self.max_age_seconds = max_age_seconds

    def load(self, request: Request) -> str | None:
        value = request.cookies.get(self.cookie_name)
        return value or None

    def save(self, request: Request, response: Response, credential: str) -> None:
        response.set_cookie(
            key=self.cookie_name,
            value=credential,
            httponly=True,
            samesite="lax",
            max_age=self.max_age_seconds,
            path="/",
        )

    def clear(self, request: Request, response: Response) -> None:
        response.delete_cookie(key=self.cookie_name, path="/")


class RedisSessionStorage:
    """Keeps an opaque session id in the cookie and the credential in Redis."""

    def __init__(self, redis: Redis, *, cookie_name: str, max_age_seconds: int) -> None:
        self._redis = redis
        self.cookie_name = cookie_name
        self.max_age_seconds = max_age_seconds

    @property
    def redis(self) -> Redis:
        return self._redis

    @staticmethod
    def _key(session_id: str) -> str:
        return f"{REDIS_SESSION_PREFIX}{session_id}"

    def load(self, request: Request) -> str | None:
        session_id = request.cookies.get(self.cookie_name)
        if not session_id:
            return None
        value = self._redis.get(self._key(session_id))
        return value or None

    def save(self, request: Request, response: Response, credential: str) -> None:
        previous = request.cookies.get(self.cookie_name)
        if previous:
            self._redis.delete(self._key(previous))
        session_id = secrets.token_urlsafe(32)
        self._redis.setex(self._key(session_id), self.max_age_seconds, credential)
        response.set_cookie(
            key=self.cookie_name,
            value=session_id,
            httponly=True,
            samesite="lax",
            max_age=self.max_age_seconds,
            path="/",
        )

    def clear(self, request: Request, response: Response) -> None:
        session_id = request.cookies.get(self.cookie_name)
        if session_id:
            self._redis.delete(self._key(session_id))
        response.delete_cookie(key=self.cookie_name, path="/")


class CredentialStore:
    """Session credential plus the one-time hydration flag.

    ``ready`` starts False and flips to True exactly once, after the persisted
    value (if any) has been read. Writes made before hydration finishes win
    over the persisted value.
    """

    def __init__(self, storage: SessionStorage) -> None:
        self._storage = storage
        self._credential: str | None = None
        self._ready = False
        self._dirty = False
        self._listeners: list[SessionListener] = []

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def credential(self) -> str | None:
        return self._credential

    @property
    def is_authenticated(self) -> bool:
        return self._credential is not None

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(credential=self._credential, ready=self._ready)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    async def hydrate(self, request: Request) -> None:
        if self._ready:
            return
        persisted = await run_in_threadpool(self._storage.load, request)
        if self._ready:
            return
        if not self._dirty:
            self._credential = persisted
        self._ready = True
        self._notify()

    def set_credential(self, credential: str) -> None:
        self._credential = credential
        self._dirty = True
        self._notify()

    def logout(self) -> None:
        self._credential = None
        self._dirty = True
        self._notify()

    async def flush(self, request: Request, response: Response) -> None:
        if not self._dirty:
            return
        if self._credential:
            await run_in_threadpool(self._storage.save, request, response, self._credential)
        else:
            await run_in_threadpool(self._storage.clear, request, response)
        self._dirty = False
