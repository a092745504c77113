from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel

SESSION_BACKEND_COOKIE = "cookie"
SESSION_BACKEND_REDIS = "redis"


class Settings(BaseModel):
    api_base_url: str = "http://localhost:4000"
    session_backend: str = SESSION_BACKEND_COOKIE
    redis_url: str = "redis://redis:6379/0"
    session_cookie_name: str = "auth-token-storage"
    session_max_age_seconds: int = 60 * 60 * 8
    api_timeout_seconds: float = 10.0
    log_level: str = "INFO"
    page_size: int = 10


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        api_base_url=os.getenv("INTERNEEFY_API_URL", "http://localhost:4000").rstrip("/"),
        session_backend=os.getenv("SESSION_BACKEND", SESSION_BACKEND_COOKIE).lower(),
        redis_url=os.getenv("REDIS_URL", "redis://redis:6379/0"),
        session_cookie_name=os.getenv("SESSION_COOKIE_NAME", "auth-token-storage"),
        session_max_age_seconds=int(os.getenv("SESSION_MAX_AGE_SECONDS", str(60 * 60 * 8))),
        api_timeout_seconds=float(os.getenv("API_TIMEOUT_SECONDS", "10")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        page_size=int(os.getenv("PAGE_SIZE", "10")),
    )
