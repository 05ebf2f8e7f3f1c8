"""Profile and achievement routes."""

from __future__ import annotations

from flask import Blueprint, jsonify

from helpers import error_response, get_learning_session, json_body

bp = Blueprint("gamification", __name__)


@bp.route("/api/login", methods=["POST"])
def api_login():
    return jsonify(get_learning_session().login(json_body()))


@bp.route("/api/logout", methods=["POST"])
def api_logout():
    get_learning_session().logout()
    return jsonify({"success": True})


@bp.route("/api/profile")
def api_profile():
    profile = get_learning_session().profile
    if profile is None:
        return jsonify({"authenticated": False, "profile": None})
    return jsonify({
        "authenticated": True,
        "profile": profile.to_dict(),
        "xp_into_level": profile.xp_into_level,
        "level_progress_pct": profile.level_progress_pct,
    })


@bp.route("/api/profile", methods=["PATCH"])
def api_profile_update():
    session = get_learning_session()
    if session.profile is None:
        return error_response("Not logged in", 401)
    try:
        profile = session.update_profile(json_body())
    except ValueError as e:
        return error_response(str(e), 400)
    return jsonify({"authenticated": True, "profile": profile.to_dict()})


@bp.route("/api/achievements")
def api_achievements():
    engine = get_learning_session().achievements
    return jsonify({
        "achievements": [
            engine.achievement_progress(a.id) for a in engine.definitions
        ],
        "unlocked_count": len(engine.unlocked),
        "total": len(engine.definitions),
    })


@bp.route("/api/achievements/<achievement_id>")
def api_achievement(achievement_id: str):
    progress = get_learning_session().achievements.achievement_progress(achievement_id)
    if progress is None:
        return error_response("Unknown achievement", 404)
    return jsonify(progress)
