from __future__ import annotations

import os

import redis


def get_redis_url() -> str:
    # Service-specific URL wins over the shared REDIS_URL.
    return os.environ.get("FLAGQUIZ_REDIS_URL") or os.environ.get("REDIS_URL", "redis://localhost:6379/0")


def create_redis(url: str | None = None) -> redis.Redis:
    # decode_responses=True => daily result JSON comes back as str
    return redis.Redis.from_url(url or get_redis_url(), decode_responses=True)
