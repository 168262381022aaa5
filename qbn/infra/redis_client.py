from __future__ import annotations

import os

import redis


DEFAULT_REDIS_URL = "redis://localhost:6379/0"


def get_redis_url() -> str:
    # QBN_REDIS_URL wins so the engine can share a host with other REDIS_URL users.
    return os.environ.get("QBN_REDIS_URL") or os.environ.get("REDIS_URL", DEFAULT_REDIS_URL)


def create_redis(url: str | None = None) -> redis.Redis:
    # decode_responses=True => session JSON comes back as str, not bytes
    return redis.Redis.from_url(url or get_redis_url(), decode_responses=True)
