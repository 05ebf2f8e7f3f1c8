"""Study routes — card toggles, notes and study goals."""

from __future__ import annotations

from flask import Blueprint, jsonify

from helpers import error_response, get_learning_session, json_body

bp = Blueprint("study", __name__)


@bp.route("/api/progress")
def api_progress():
    session = get_learning_session()
    return jsonify({
        **session.progress.to_dict(),
        "overall_progress": session.catalog.overall_progress(session.progress.completed),
    })


@bp.route("/api/cards/<card_id>/complete", methods=["POST"])
def api_toggle_completed(card_id: str):
    return jsonify(get_learning_session().toggle_completed(card_id))


@bp.route("/api/cards/<card_id>/bookmark", methods=["POST"])
def api_toggle_bookmarked(card_id: str):
    return jsonify(get_learning_session().toggle_bookmarked(card_id))


@bp.route("/api/cards/<card_id>/expand", methods=["POST"])
def api_toggle_expanded(card_id: str):
    expanded = get_learning_session().expanded.toggle(card_id)
    return jsonify({"card_id": card_id, "expanded": expanded})


# ── Notes ──────────────────────────────────────────────────────────────

@bp.route("/api/notes")
def api_notes():
    return jsonify({"notes": get_learning_session().notes.notes})


@bp.route("/api/notes/<card_id>")
def api_note_get(card_id: str):
    return jsonify({"card_id": card_id, "note": get_learning_session().notes.get_note(card_id)})


@bp.route("/api/notes/<card_id>", methods=["PUT"])
def api_note_save(card_id: str):
    text = json_body().get("note", "")
    if not isinstance(text, str):
        return error_response("note must be a string", 400)
    notes = get_learning_session().notes
    notes.save_note(card_id, text)
    return jsonify({"card_id": card_id, "note": notes.get_note(card_id)})


@bp.route("/api/notes/<card_id>", methods=["DELETE"])
def api_note_delete(card_id: str):
    get_learning_session().notes.delete_note(card_id)
    return jsonify({"card_id": card_id, "note": ""})


# ── Goals ──────────────────────────────────────────────────────────────

@bp.route("/api/goals")
def api_goals():
    session = get_learning_session()
    return jsonify({"goals": session.goals.goals, "status": session.goal_status()})


@bp.route("/api/goals", methods=["PATCH"])
def api_goals_update():
    session = get_learning_session()
    try:
        goals = session.goals.update_goals(json_body())
    except ValueError as e:
        return error_response(str(e), 400)
    return jsonify({"goals": goals, "status": session.goal_status()})
