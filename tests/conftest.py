from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import pytest

from qbn.assets.registry import FragmentStore, load_story
from qbn.core.session import Session

TESTS_ROOT = Path(__file__).resolve().parent


@pytest.fixture(scope="session", autouse=True)
def _story_from_test_fixtures() -> None:
    """Point the story loader at `tests/assets` and forbid the built-in fallback.

    This keeps tests hermetic and independent of any story shipped with the repo.
    """

    os.environ["QBN_STRICT_ASSETS"] = "1"
    os.environ["QBN_STORY_ROOT"] = str(TESTS_ROOT)


@pytest.fixture(scope="session")
def story() -> FragmentStore:
    return load_story(root=TESTS_ROOT)


@pytest.fixture()
def session(story: FragmentStore) -> Session:
    return Session.new(story=story, seed=1234)


@pytest.fixture()
def client_and_redis():
    """FastAPI TestClient wired to a fakeredis instance."""

    import fakeredis
    from fastapi.testclient import TestClient

    from qbn.api.deps import get_redis
    from qbn.main import app

    r = fakeredis.FakeRedis(decode_responses=True)

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()
