# Import Flask modules for routing, request handling, and responses
from flask import Blueprint, request, current_app, Response
from datetime import date, datetime
import icalendar

# Import application extensions, models and helpers
from ..extensions import db
from ..models import PlannerEvent
from ..planning import expand, expand_all
from ..consts import EVENT_TYPES, EVENT_PRIORITIES
from ..utils import (
    csrf_protect,
    login_required,
    respond,
    get_payload,
    require_fields,
    str_to_bool,
    as_choice,
    as_weekdays,
    as_date_string,
    as_string_list,
    query_int,
    to_date,
    to_time,
    ValidationError,
)

events_bp = Blueprint("events", __name__)

# iCalendar weekday codes, indexed Sunday-first like recurringDays
ICS_DAYS = ["SU", "MO", "TU", "WE", "TH", "FR", "SA"]
MAX_HORIZON_WEEKS = 104


def _event_fields(data):
    """
    Validate an event payload and map it onto model columns.

    Raises:
        ValidationError: On missing or malformed fields.
    """
    require_fields(data, "title", "date", "type")
    time_value = data.get("time") or None
    if time_value:
        try:
            to_time(time_value)
        except ValueError:
            raise ValidationError("time must be HH:MM")

    is_recurring = str_to_bool(data.get("isRecurring", False))
    recurring_days = as_weekdays(data.get("recurringDays"))
    if is_recurring and not recurring_days:
        raise ValidationError("A recurring event needs at least one day in recurringDays")

    return {
        "title": str(data["title"]).strip(),
        "description": data.get("description") or "",
        "date": as_date_string(data["date"], "date"),
        "type": as_choice(data["type"], "type", EVENT_TYPES),
        "time": time_value[:5] if time_value else None,
        "priority": as_choice(data.get("priority") or "medium", "priority", EVENT_PRIORITIES),
        "reminders": as_string_list(data.get("reminders"), "reminders"),
        "is_recurring": is_recurring,
        "recurring_days": recurring_days if is_recurring else [],
        "course_code": data.get("courseCode") or None,
        "location": data.get("location") or None,
    }


def _owned_event(user, event_id):
    event = db.session.get(PlannerEvent, event_id)
    if not event or event.user_id != user.id:
        return None
    return event


@events_bp.route("/", methods=["GET"])
@login_required
def get_events(user):
    """
    List the user's events ordered by date.

    Query:
        expand (bool): Replace recurring templates with their occurrences.
        weeks (int): Expansion horizon, defaults to RECURRENCE_HORIZON_WEEKS.
        anchor (date): Any day of the first expanded week, defaults to today.
    """
    events = [
        e.to_dict()
        for e in PlannerEvent.query.filter_by(user_id=user.id)
        .order_by(PlannerEvent.date, PlannerEvent.id)
        .all()
    ]
    if str_to_bool(request.args.get("expand", False)):
        weeks = query_int(
            "weeks", current_app.config["RECURRENCE_HORIZON_WEEKS"], maximum=MAX_HORIZON_WEEKS
        )
        anchor = request.args.get("anchor")
        anchor = to_date(as_date_string(anchor, "anchor")) if anchor else date.today()
        events = sorted(
            expand_all(events, weeks, anchor),
            key=lambda e: (e["date"], e.get("time") or ""),
        )
    return respond(True, "Events retrieved successfully", events)


@events_bp.route("/<int:event_id>", methods=["GET"])
@login_required
def get_event(user, event_id):
    event = _owned_event(user, event_id)
    if not event:
        return respond(False, "Event not found", status=404)
    return respond(True, "Event retrieved successfully", event.to_dict())


@events_bp.route("/", methods=["POST"])
@csrf_protect
@login_required
def create_event(user):
    """
    Create a planner event. A recurring event is stored once as a template.

    Returns:
        JSON: The created event, status 201.
    """
    fields = _event_fields(get_payload())
    event = PlannerEvent(user_id=user.id, **fields)
    db.session.add(event)
    db.session.commit()
    return respond(True, "Event created successfully", event.to_dict(), 201)


@events_bp.route("/<int:event_id>", methods=["PUT"])
@csrf_protect
@login_required
def update_event(user, event_id):
    """Full-record update of an event."""
    event = _owned_event(user, event_id)
    if not event:
        return respond(False, "Event not found", status=404)

    for column, value in _event_fields(get_payload()).items():
        setattr(event, column, value)
    db.session.commit()
    return respond(True, "Event updated successfully", event.to_dict())


@events_bp.route("/<int:event_id>", methods=["DELETE"])
@csrf_protect
@login_required
def delete_event(user, event_id):
    event = _owned_event(user, event_id)
    if not event:
        return respond(False, "Event not found", status=404)
    db.session.delete(event)
    db.session.commit()
    return respond(True, "Event deleted successfully")


def _ics_start(event):
    """First concrete date of an event, as a date or datetime for DTSTART."""
    template = event.to_dict()
    anchor = to_date(template["date"])
    first = min(
        (to_date(o["date"]) for o in expand(template, 2, anchor) if to_date(o["date"]) >= anchor),
        default=anchor,
    )
    at = to_time(event.time)
    return datetime.combine(first, at) if at else first


@events_bp.route("/export-ics", methods=["GET"])
@login_required
def export_ics(user):
    """
    Export all user events as an .ics file.

    Recurring templates become weekly RRULEs.
    """
    cal = icalendar.Calendar()
    cal.add("prodid", "-//Royal Planner//royalplanner.app//")
    cal.add("version", "2.0")

    for event in PlannerEvent.query.filter_by(user_id=user.id).all():
        vevent = icalendar.Event()
        vevent.add("summary", event.title)
        vevent.add("dtstart", _ics_start(event))
        if event.description:
            vevent.add("description", event.description)
        if event.location:
            vevent.add("location", event.location)
        if event.is_recurring and event.recurring_days:
            vevent.add("rrule", {
                "freq": "weekly",
                "byday": [ICS_DAYS[day] for day in event.recurring_days],
            })
        vevent.add("uid", f"{event.id}@royalplanner.app")
        vevent.add("X-ROYAL-TYPE", event.type)
        vevent.add("X-ROYAL-PRIORITY", event.priority)
        if event.course_code:
            vevent.add("X-ROYAL-COURSE", event.course_code)
        cal.add_component(vevent)

    return Response(
        cal.to_ical(),
        mimetype="text/calendar",
        headers={"Content-Disposition": "attachment; filename=royalplanner_events.ics"},
    )


def _fields_from_vevent(component):
    start = component.get("dtstart").dt
    start_date = start.date() if isinstance(start, datetime) else start
    rrule = component.get("rrule") or {}

    recurring_days = []
    if "WEEKLY" in [str(f).upper() for f in rrule.get("FREQ", [])]:
        codes = [str(code).upper()[-2:] for code in rrule.get("BYDAY", [])]
        recurring_days = [ICS_DAYS.index(code) for code in codes if code in ICS_DAYS]
        if not recurring_days:
            # Python weekday is Monday-first; recurringDays are Sunday-first
            recurring_days = [(start_date.weekday() + 1) % 7]

    event_type = str(component.get("X-ROYAL-TYPE") or "")
    if event_type not in EVENT_TYPES:
        event_type = "class" if recurring_days else "study"
    priority = str(component.get("X-ROYAL-PRIORITY") or "medium")
    if priority not in EVENT_PRIORITIES:
        priority = "medium"

    return {
        "title": str(component.get("summary") or "Untitled"),
        "description": str(component.get("description") or ""),
        "date": start_date.isoformat(),
        "type": event_type,
        "time": start.strftime("%H:%M") if isinstance(start, datetime) else None,
        "priority": priority,
        "reminders": [],
        "is_recurring": bool(recurring_days),
        "recurring_days": recurring_days,
        "course_code": str(component.get("X-ROYAL-COURSE") or "") or None,
        "location": str(component.get("location") or "") or None,
    }


@events_bp.route("/import-ics", methods=["POST"])
@csrf_protect
@login_required
def import_ics(user):
    """
    Import events from .ics content.

    Payload: { ics: "<calendar text>" }
    """
    data = get_payload()
    ics_content = data.get("ics")
    if not ics_content:
        return respond(False, "No .ics content provided", status=400)

    try:
        calendar = icalendar.Calendar.from_ical(ics_content)
    except ValueError as e:
        return respond(False, f"Failed to parse .ics file: {e}", status=400)

    imported = []
    try:
        for component in calendar.walk("VEVENT"):
            if component.get("dtstart") is None:
                continue
            event = PlannerEvent(user_id=user.id, **_fields_from_vevent(component))
            db.session.add(event)
            imported.append(event)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to import .ics for user %s", user.id)
        return respond(False, "Failed to import .ics file", status=500)

    current_app.logger.info("Imported %s events for user %s", len(imported), user.id)
    return respond(
        True, "Events imported successfully", [e.to_dict() for e in imported]
    )
