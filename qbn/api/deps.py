from __future__ import annotations

from collections.abc import Generator

import redis
from fastapi import Request

from qbn.assets.registry import FragmentStore
from qbn.infra.redis_client import create_redis


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_redis()
    try:
        yield client
    finally:
        client.close()


def get_story(request: Request) -> FragmentStore:
    # Loaded once by the app lifespan.
    return request.app.state.story
