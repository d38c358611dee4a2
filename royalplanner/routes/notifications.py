from datetime import date, datetime

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Notification, NotificationSettings, PlannerEvent
from ..planning import due_reminders, expand_all, bucketize_by_week, reminder_horizon_weeks
from ..algorithms import round_gpa
from ..consts import DEFAULT_NOTIFICATION_SETTINGS
from ..utils import (
    csrf_protect,
    login_required,
    respond,
    get_payload,
    str_to_bool,
    as_number,
    ValidationError,
)

notifications_bp = Blueprint("notifications", __name__)


def settings_for(user):
    """Stored notification settings as a snake_case dict, or the defaults."""
    settings = NotificationSettings.query.filter_by(user_id=user.id).first()
    if not settings:
        return dict(DEFAULT_NOTIFICATION_SETTINGS)
    return {
        "assignments": settings.assignments,
        "deadlines": settings.deadlines,
        "gpa_updates": settings.gpa_updates,
        "weekly_reports": settings.weekly_reports,
        "assignment_frequency": settings.assignment_frequency,
        "deadline_timings": list(settings.deadline_timings or []),
    }


def _camel(settings):
    return {
        "assignments": settings["assignments"],
        "deadlines": settings["deadlines"],
        "gpaUpdates": settings["gpa_updates"],
        "weeklyReports": settings["weekly_reports"],
        "assignmentFrequency": settings["assignment_frequency"],
        "deadlineTimings": settings["deadline_timings"],
    }


def stage_gpa_notification(user, semester, previous_gpa):
    """
    Stage a 'gpa' notification when a semester GPA changed and the user
    wants GPA updates. The caller commits.
    """
    if round_gpa(previous_gpa or 0) == round_gpa(semester.gpa):
        return None
    if not settings_for(user)["gpa_updates"]:
        return None
    notification = Notification(
        user_id=user.id,
        title=f"GPA updated for {semester.label}",
        message=f"Semester GPA changed from {previous_gpa or 0:.2f} to {semester.gpa:.2f}.",
        type="gpa",
    )
    db.session.add(notification)
    return notification


def _already_sent(user, title, message=None):
    query = Notification.query.filter_by(user_id=user.id, title=title)
    if message is not None:
        query = query.filter_by(message=message)
    return query.first() is not None


@notifications_bp.route("/", methods=["GET"])
@login_required
def get_notifications(user):
    notifications = (
        Notification.query.filter_by(user_id=user.id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .all()
    )
    return respond(
        True, "Notifications retrieved successfully", [n.to_dict() for n in notifications]
    )


@notifications_bp.route("/<int:notification_id>/read", methods=["PUT"])
@csrf_protect
@login_required
def mark_read(user, notification_id):
    notification = db.session.get(Notification, notification_id)
    if not notification or notification.user_id != user.id:
        return respond(False, "Notification not found", status=404)
    notification.is_read = True
    db.session.commit()
    return respond(True, "Notification marked as read")


@notifications_bp.route("/read-all", methods=["PUT"])
@csrf_protect
@login_required
def mark_all_read(user):
    updated = Notification.query.filter_by(user_id=user.id, is_read=False).update(
        {"is_read": True}
    )
    db.session.commit()
    return respond(True, "All notifications marked as read", {"updated": updated})


@notifications_bp.route("/<int:notification_id>", methods=["DELETE"])
@csrf_protect
@login_required
def delete_notification(user, notification_id):
    notification = db.session.get(Notification, notification_id)
    if not notification or notification.user_id != user.id:
        return respond(False, "Notification not found", status=404)
    db.session.delete(notification)
    db.session.commit()
    return respond(True, "Notification deleted")


@notifications_bp.route("/settings", methods=["GET"])
@login_required
def get_settings(user):
    return respond(True, "Notification settings retrieved successfully", _camel(settings_for(user)))


@notifications_bp.route("/settings", methods=["PUT"])
@csrf_protect
@login_required
def update_settings(user):
    """
    Update notification preferences; missing keys keep their value.

    Payload: { assignments, deadlines, gpaUpdates, weeklyReports,
               assignmentFrequency, deadlineTimings }
    """
    data = get_payload()
    settings = NotificationSettings.query.filter_by(user_id=user.id).first()
    if not settings:
        settings = NotificationSettings(user_id=user.id)
        db.session.add(settings)

    for key, column in (
        ("assignments", "assignments"),
        ("deadlines", "deadlines"),
        ("gpaUpdates", "gpa_updates"),
        ("weeklyReports", "weekly_reports"),
    ):
        if key in data:
            setattr(settings, column, str_to_bool(data[key]))

    if "assignmentFrequency" in data:
        hours = as_number(data["assignmentFrequency"], "assignmentFrequency", minimum=0, exclusive_min=True)
        settings.assignment_frequency = f"{hours:g}"
    if "deadlineTimings" in data:
        raw = data["deadlineTimings"]
        if not isinstance(raw, list):
            raise ValidationError("deadlineTimings must be a list of hours")
        settings.deadline_timings = [
            f"{as_number(t, 'deadlineTimings', minimum=0, exclusive_min=True):g}" for t in raw
        ]

    db.session.commit()
    return respond(True, "Notification settings updated successfully", _camel(settings_for(user)))


@notifications_bp.route("/refresh", methods=["POST"])
@csrf_protect
@login_required
def refresh_notifications(user):
    """
    Generate reminder notifications for upcoming events.

    Reminders already delivered (same title and message) are not repeated.
    With weekly reports enabled, one workload summary per week is added.
    """
    settings = settings_for(user)
    events = expand_all(
        [e.to_dict() for e in PlannerEvent.query.filter_by(user_id=user.id).all()],
        horizon_weeks=reminder_horizon_weeks(settings),
    )

    created = []
    for reminder in due_reminders(events, settings, now=datetime.now()):
        if _already_sent(user, reminder["title"], reminder["message"]):
            continue
        notification = Notification(user_id=user.id, **reminder)
        db.session.add(notification)
        created.append(notification)

    if settings["weekly_reports"]:
        bucket = bucketize_by_week(events, date.today(), 1)[0]
        title = f"Weekly report: week of {bucket.week_start.isoformat()}"
        message = (
            f"{len(bucket.events)} events planned, about {bucket.total_hours} hours "
            f"of work ({bucket.difficulty} load)."
        )
        if not _already_sent(user, title):
            notification = Notification(
                user_id=user.id, title=title, message=message, type="reminder"
            )
            db.session.add(notification)
            created.append(notification)

    db.session.commit()
    current_app.logger.info("Created %s notifications for user %s", len(created), user.id)
    return respond(
        True, "Notifications refreshed", [n.to_dict() for n in created]
    )
