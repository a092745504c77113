from __future__ import annotations

from functools import lru_cache

from redis import Redis

from interneefy.infra.config import get_settings


@lru_cache(maxsize=8)
def get_redis(url: str | None = None) -> Redis:
    return Redis.from_url(url or get_settings().redis_url, decode_responses=True)


def check_redis_ready(client: Redis | None = None) -> bool:
    try:
        return bool((client or get_redis()).ping())
    except Exception:
        return False
