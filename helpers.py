"""
Shared helpers used across blueprints.

The learning session is created once per application, on first use inside a
request, and kept in app.extensions so its in-memory state stays authoritative
even when a write to the store fails.
"""

from __future__ import annotations

from typing import Any

from flask import Flask, abort, current_app, jsonify, request

from catalog import Catalog
from session import LearningSession
from storage import DurableStore, InMemoryBackend, SQLiteBackend

SESSION_EXTENSION = "learning_session"


def build_store(app: Flask) -> DurableStore:
    """Create the durable store selected by STORAGE_BACKEND."""
    prefix = app.config.get("STORAGE_KEY_PREFIX", "devMastery_")
    if app.config.get("STORAGE_BACKEND", "sqlite") == "memory":
        return DurableStore(InMemoryBackend(), key_prefix=prefix)
    return DurableStore(SQLiteBackend(), key_prefix=prefix)


def get_learning_session() -> LearningSession:
    session = current_app.extensions.get(SESSION_EXTENSION)
    if session is None:
        catalog = current_app.config.get("CATALOG") or Catalog()
        session = LearningSession(build_store(current_app), catalog=catalog)
        session.start()
        current_app.extensions[SESSION_EXTENSION] = session
    return session


def json_body() -> dict[str, Any]:
    """Return the request's JSON object, or abort with 400."""
    data = request.get_json(silent=True)
    if data is None:
        data = {} if not request.data else None
    if not isinstance(data, dict):
        abort(400, description="Request body must be a JSON object")
    return data


def error_response(message: str, status: int):
    return jsonify({"error": message}), status
