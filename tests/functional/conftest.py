"""Functional test bootstrap.

Points the service at a file-backed SQLite database shared across the process
and applies migrations once at session start, before any test builds the app.
Each test starts with an empty ``forms`` table.
"""

from __future__ import annotations

import os
import pathlib

import pytest

_ROOT = pathlib.Path(__file__).resolve().parents[2]
_DB_FILE = _ROOT / "tmp" / "functional_tests.db"
_DB_FILE.parent.mkdir(parents=True, exist_ok=True)
if _DB_FILE.exists():
    _DB_FILE.unlink()

os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
# The app's startup hook must not race the explicit bootstrap below
os.environ["AUTO_APPLY_MIGRATIONS"] = "0"


@pytest.fixture(scope="session", autouse=True)
def functional_sqlite_bootstrap():
    from stepform.db.base import get_engine
    from stepform.db.migrations_runner import apply_migrations

    apply_migrations(get_engine(os.environ["TEST_DATABASE_URL"]))
    yield


@pytest.fixture(autouse=True)
def empty_forms_table(functional_sqlite_bootstrap):
    from sqlalchemy import text as sql_text

    from stepform.db.base import get_engine
    from stepform.logic.events import get_buffered_events

    with get_engine(os.environ["TEST_DATABASE_URL"]).begin() as conn:
        conn.execute(sql_text("DELETE FROM forms"))
    get_buffered_events(clear=True)
    yield


@pytest.fixture
def app():
    from stepform.main import create_app

    return create_app()


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture
def anyio_backend():
    return "asyncio"
