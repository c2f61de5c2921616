from __future__ import annotations

import logging
from collections.abc import Generator

import redis

from flagquiz.config import QuizSettings, settings_from_env
from flagquiz.dataset.registry import CountryCatalog
from flagquiz.dataset.singleton import get_catalog
from flagquiz.infra.redis_client import create_redis

logger = logging.getLogger(__name__)


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_redis()
    try:
        yield client
    finally:
        try:
            client.close()
        except redis.RedisError:
            logger.debug("redis client close failed", exc_info=True)


def get_settings() -> QuizSettings:
    return settings_from_env()


def get_country_catalog() -> CountryCatalog:
    return get_catalog()
