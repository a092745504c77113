from __future__ import annotations

from dataclasses import dataclass, field

import httpx
from fastapi import Request

from interneefy.domain.claims import CredentialDecoder
from interneefy.infra.config import SESSION_BACKEND_REDIS, Settings, get_settings
from interneefy.infra.session_store import (
    CookieSessionStorage,
    CredentialStore,
    RedisSessionStorage,
    SessionStorage,
)
from interneefy.services.api_client import ApiClient


def build_session_storage(settings: Settings) -> SessionStorage:
    if settings.session_backend == SESSION_BACKEND_REDIS:
        from interneefy.infra.redis_state import get_redis

        return RedisSessionStorage(
            get_redis(settings.redis_url),
            cookie_name=settings.session_cookie_name,
            max_age_seconds=settings.session_max_age_seconds,
        )
    return CookieSessionStorage(
        cookie_name=settings.session_cookie_name,
        max_age_seconds=settings.session_max_age_seconds,
    )


@dataclass
class AppContext:
    """Collaborators shared by every page, handed to routes through ``app.state``."""

    settings: Settings = field(default_factory=get_settings)
    decoder: CredentialDecoder = field(default_factory=CredentialDecoder)
    storage: SessionStorage | None = None
    transport: httpx.AsyncBaseTransport | None = None

    def credential_store(self) -> CredentialStore:
        if self.storage is None:
            self.storage = build_session_storage(self.settings)
        return CredentialStore(self.storage)

    def api_client(self, credential: str | None = None) -> ApiClient:
        return ApiClient(
            self.settings.api_base_url,
            credential,
            timeout=self.settings.api_timeout_seconds,
            transport=self.transport,
        )


def get_app_context(request: Request) -> AppContext:
    return request.app.state.context
