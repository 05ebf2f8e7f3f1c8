"""
Blueprint registration for the Dev Mastery API.

All blueprints are registered without URL prefixes; every route spells out its full path.
"""

from __future__ import annotations


def register_blueprints(app):
    from blueprints.core import bp as core_bp
    from blueprints.study import bp as study_bp
    from blueprints.gamification import bp as gamification_bp

    app.register_blueprint(core_bp)
    app.register_blueprint(study_bp)
    app.register_blueprint(gamification_bp)
