from .auth import auth_bp                       # Registration, login, password reset
from .profile import profile_bp                 # Profile and account management
from .semesters import semesters_bp             # Semesters and courses
from .grade_settings import grade_settings_bp   # Grade scale
from .targets import targets_bp                 # Target GPA slot and projection
from .events import events_bp                   # Planner events
from .journal import journal_bp                 # Journal entries
from .notifications import notifications_bp     # Notifications and their settings
from .analytics import analytics_bp             # GPA and workload analytics


def register_blueprints(app):
    """
    Register all Flask blueprints with their respective URL prefixes.

    Args:
        app (Flask): The Flask application instance.
    """
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(profile_bp, url_prefix="/api/profile")
    app.register_blueprint(semesters_bp, url_prefix="/api/semesters")
    app.register_blueprint(grade_settings_bp, url_prefix="/api/grade-settings")
    app.register_blueprint(targets_bp, url_prefix="/api/targets")
    app.register_blueprint(events_bp, url_prefix="/api/events")
    app.register_blueprint(journal_bp, url_prefix="/api/journal")
    app.register_blueprint(notifications_bp, url_prefix="/api/notifications")
    app.register_blueprint(analytics_bp, url_prefix="/api/analytics")
