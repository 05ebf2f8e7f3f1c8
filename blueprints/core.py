"""Core routes — health, dashboard, reset, preferences and catalog search."""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from helpers import error_response, get_learning_session, json_body

logger = logging.getLogger(__name__)

bp = Blueprint("core", __name__)


@bp.route("/health")
def health():
    return jsonify({"status": "ok"}), 200


@bp.route("/api/dashboard")
def api_dashboard():
    return jsonify(get_learning_session().dashboard())


@bp.route("/api/reset", methods=["POST"])
def api_reset():
    session = get_learning_session()
    session.reset_progress()
    return jsonify({"success": True, "dashboard": session.dashboard()})


@bp.route("/api/theme")
def api_theme():
    return jsonify({"theme": get_learning_session().theme.theme})


@bp.route("/api/theme", methods=["POST"])
def api_theme_set():
    data = json_body()
    theme = get_learning_session().theme
    if "theme" not in data:
        return jsonify({"theme": theme.toggle()})
    try:
        return jsonify({"theme": theme.set_theme(str(data["theme"]))})
    except ValueError as e:
        return error_response(str(e), 400)


@bp.route("/api/search-history")
def api_search_history():
    return jsonify({"history": get_learning_session().search_history.queries})


@bp.route("/api/search-history", methods=["POST"])
def api_search_history_add():
    query = json_body().get("query")
    if not isinstance(query, str):
        return error_response("query must be a string", 400)
    return jsonify({"history": get_learning_session().search_history.add(query)})


@bp.route("/api/search-history", methods=["DELETE"])
def api_search_history_clear():
    get_learning_session().search_history.clear()
    return jsonify({"history": []})


@bp.route("/api/catalog/search")
def api_catalog_search():
    session = get_learning_session()
    category = request.args.get("category", "")
    query = request.args.get("q", "")
    difficulty = request.args.get("difficulty", "all")
    try:
        cards = session.catalog.search(category, query, difficulty)
    except ValueError as e:
        return error_response(str(e), 400)
    return jsonify({
        "cards": [
            {
                "id": c.id,
                "title": c.title,
                "description": c.description,
                "difficulty": c.difficulty,
                "completed": session.progress.is_completed(c.id),
                "bookmarked": session.progress.is_bookmarked(c.id),
                "expanded": session.expanded.is_expanded(c.id),
                "hasNote": session.notes.has_note(c.id),
            }
            for c in cards
        ],
    })
