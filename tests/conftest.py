from __future__ import annotations

import os
from pathlib import Path

import pytest


@pytest.fixture(scope="session", autouse=True)
def _init_catalog_from_test_fixtures() -> None:
    """Initialize the catalog from `tests/data` and forbid the built-in fallback.

    This keeps tests hermetic and prevents coupling to whatever dataset the repo ships.
    """

    os.environ["FLAGQUIZ_STRICT_DATASET"] = "1"

    from flagquiz.dataset.singleton import init_catalog, reset_catalog_for_tests

    reset_catalog_for_tests()

    # Point the loader at a fake project root: tests/ contains a data/ dir.
    test_root = Path(__file__).resolve().parent
    init_catalog(project_root=test_root)


@pytest.fixture()
def catalog():
    from flagquiz.dataset.singleton import get_catalog

    return get_catalog()


@pytest.fixture()
def client_and_redis():
    """FastAPI TestClient wired to a fakeredis instance."""

    from collections.abc import Generator

    import fakeredis
    from fastapi.testclient import TestClient

    from flagquiz.api.deps import get_redis
    from flagquiz.main import app

    r = fakeredis.FakeRedis(decode_responses=True)

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()
