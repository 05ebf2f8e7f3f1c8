"""
Test fixtures for Dev Mastery.

Provides app and client fixtures backed by a file-based SQLite store, plus
in-memory store, catalog and session fixtures with a fixed clock.
"""

from __future__ import annotations

from datetime import date, datetime

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from catalog import Card, Catalog, Category
from storage import DurableStore, InMemoryBackend

TODAY = date(2026, 3, 10)  # a Tuesday
NOW = datetime(2026, 3, 10, 9, 30, 0)


class Clock:
    """Mutable clock shared by every component of a session."""

    def __init__(self, today: date = TODAY) -> None:
        self.current = today

    def today(self) -> date:
        return self.current

    def now(self) -> datetime:
        return datetime.combine(self.current, NOW.time())


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def catalog():
    """Two small categories: basics (a, b, c) and advanced (d, e)."""
    return Catalog([
        Category("basics", "Basics", cards=(
            Card("a", "Variables", "let and const", "Beginner"),
            Card("b", "Functions", "Declarations and arrows", "Beginner"),
            Card("c", "Closures", "Captured scope", "Intermediate"),
        )),
        Category("advanced", "Advanced", cards=(
            Card("d", "Generators", "Lazy iteration", "Advanced"),
            Card("e", "Proxies", "Intercepting objects", "Advanced"),
        )),
    ])


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def store(backend):
    return DurableStore(backend)


@pytest.fixture
def session(store, catalog, clock):
    from session import LearningSession
    return LearningSession(store, catalog=catalog, today=clock.today, now=clock.now)


@pytest.fixture
def app(tmp_path, catalog):
    """Create app with file-based SQLite for testing."""
    from app import create_app

    db_file = str(tmp_path / "test.db")
    app = create_app({
        "TESTING": True,
        "DATABASE": db_file,
        "STORAGE_BACKEND": "sqlite",
        "SECRET_KEY": "test-secret-key",
        "CATALOG": catalog,
    })

    with app.app_context():
        from database import init_db, run_migrations

        init_db()
        run_migrations()

    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    """Direct database access for store tests."""
    with app.app_context():
        from database import get_db
        yield get_db()
