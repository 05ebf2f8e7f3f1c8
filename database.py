"""
SQLite database layer for the durable store.

Uses raw sqlite3 with WAL mode and parameterized queries. Every logical
collection lives as one JSON-encoded row in kv_store. A schema_version
table handles migrations.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

from flask import current_app, g

DEFAULT_DATABASE = str(Path(__file__).parent / "dev_mastery.db")


SCHEMA = """
-- Migration tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL,
    applied_at TEXT NOT NULL
);

-- Namespaced key-value pairs, one row per collection
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT ''
);
"""


MIGRATIONS: list[tuple[int, str]] = [
    # Version 1 = base schema.
    (1, ""),
    # Version 2: kv_store rows carry the time of their last write.
    (2, "ALTER TABLE kv_store ADD COLUMN updated_at TEXT NOT NULL DEFAULT '';"),
]


def get_db() -> sqlite3.Connection:
    """Return a DB connection from Flask g, creating if needed."""
    if "db" not in g:
        db_path = current_app.config.get("DATABASE", DEFAULT_DATABASE)
        g.db = sqlite3.connect(db_path)
        g.db.row_factory = sqlite3.Row
        g.db.execute("PRAGMA journal_mode=WAL")
    return g.db


def close_db(e=None) -> None:
    """Teardown handler: close DB connection."""
    db = g.pop("db", None)
    if db is not None:
        db.close()


def init_db() -> None:
    """Execute schema DDL to create all tables."""
    db = get_db()
    db.executescript(SCHEMA)
    db.commit()


def run_migrations() -> None:
    """Apply any unapplied versioned migrations."""
    db = get_db()
    applied = {
        row["version"]
        for row in db.execute("SELECT version FROM schema_version").fetchall()
    }
    for version, sql in MIGRATIONS:
        if version in applied:
            continue
        if sql:
            try:
                db.executescript(sql)
            except sqlite3.OperationalError as e:
                err_msg = str(e).lower()
                if "duplicate column" not in err_msg and "already exists" not in err_msg:
                    raise
        db.execute(
            "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
            (version, datetime.now().isoformat()),
        )
        db.commit()


def init_app(app) -> None:
    """Register teardown and auto-init on first request."""
    app.teardown_appcontext(close_db)

    @app.before_request
    def _ensure_db():
        if app.config.get("STORAGE_BACKEND", "sqlite") != "sqlite":
            return
        if not app.extensions.get("db_initialized"):
            init_db()
            run_migrations()
            app.extensions["db_initialized"] = True
