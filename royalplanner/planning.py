"""
Calendar analytics: recurring-event expansion, weekly workload estimates and
deadline clustering.

Events are the plain dicts produced by `PlannerEvent.to_dict()`. Weekday
indices on events are Sunday-first (0 = Sunday) while every week window here
is Monday-first; `day_offset` is the single place that bridges the two.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time as dtime, timedelta

from .consts import (
    CLUSTER_SEVERITY,
    CLUSTER_TYPES,
    DEFAULT_HORIZON_WEEKS,
    DIFFICULTY_THRESHOLDS,
    EVENT_HOURS,
    WEEKLY_ALERT_THRESHOLD,
)
from .utils import to_date, to_time

# Due time assumed for events without an explicit time
END_OF_DAY = dtime(23, 59)


# --- Recurrence ---

def week_start(day):
    """Monday of the week containing `day`."""
    return day - timedelta(days=day.weekday())


def day_offset(day_of_week):
    """
    Days from Monday for a Sunday-first weekday index.

    0 (Sunday) -> 6, 1 (Monday) -> 0, ..., 6 (Saturday) -> 5.
    """
    return 6 if day_of_week == 0 else day_of_week - 1


def expand(template, horizon_weeks=DEFAULT_HORIZON_WEEKS, week_anchor=None):
    """
    Expand a recurring event template into dated occurrences.

    Args:
        template (dict): Serialized planner event.
        horizon_weeks (int): Number of weeks to generate, starting with the
            week containing `week_anchor`.
        week_anchor (date): Defaults to today.

    Returns:
        list[dict]: `[template]` for a non-recurring event (or one without
            days); otherwise one occurrence per (week, weekday), unsorted.
    """
    days = template.get("recurringDays") or []
    if not template.get("isRecurring") or not days:
        return [template]

    start = week_start(week_anchor or date.today())
    occurrences = []
    for week in range(horizon_weeks):
        for day in days:
            occurrence_date = start + timedelta(days=week * 7 + day_offset(day))
            occurrences.append({
                **template,
                "id": f"{template.get('id')}-{week}-{day}",
                "templateId": template.get("id"),
                "date": occurrence_date.isoformat(),
            })
    return occurrences


def expand_all(events, horizon_weeks=DEFAULT_HORIZON_WEEKS, week_anchor=None):
    return [
        occurrence
        for event in events
        for occurrence in expand(event, horizon_weeks, week_anchor)
    ]


# --- Workload ---

@dataclass
class WeekBucket:
    """Estimated workload of one Monday-aligned week."""
    week_start: date
    assignments: int = 0
    exams: int = 0          # exams and quizzes
    deadlines: int = 0
    classes: int = 0
    study: int = 0
    other: int = 0
    total_hours: int = 0
    difficulty: str = "low"
    events: list = field(default_factory=list)

    def to_dict(self):
        return {
            "week": self.week_start.strftime("%b %d").replace(" 0", " "),
            "weekStart": self.week_start.isoformat(),
            "assignments": self.assignments,
            "exams": self.exams,
            "deadlines": self.deadlines,
            "classes": self.classes,
            "study": self.study,
            "other": self.other,
            "totalHours": self.total_hours,
            "difficulty": self.difficulty,
            "eventCount": len(self.events),
        }


@dataclass
class ClusterReport:
    """Several due dates falling on the same day."""
    date: date
    count: int
    severity: str
    titles: list = field(default_factory=list)

    def to_dict(self):
        return {
            "date": self.date.isoformat(),
            "count": self.count,
            "type": self.severity,
            "titles": self.titles,
        }


def workload_category(event_type):
    """Map an event type onto its EVENT_HOURS category."""
    return {
        "assignment": "assignments",
        "exam": "exams",
        "quiz": "exams",
        "deadline": "deadlines",
        "class": "classes",
        "study": "study",
    }.get(event_type, "other")


def classify_difficulty(total_hours):
    for threshold, difficulty in DIFFICULTY_THRESHOLDS:
        if total_hours > threshold:
            return difficulty
    return "low"


def bucketize_by_week(events, start_date, week_count):
    """
    Spread events over `week_count` consecutive Monday-aligned weeks.

    Args:
        events (list[dict]): Concrete events (expand recurring ones first).
        start_date (date): Any day of the first week.
        week_count (int): Number of buckets to produce.

    Returns:
        list[WeekBucket]: Exactly `week_count` buckets; events outside the
            window or without a date are ignored.
    """
    first_monday = week_start(start_date)
    buckets = [
        WeekBucket(week_start=first_monday + timedelta(weeks=i))
        for i in range(week_count)
    ]

    for event in events:
        event_date = to_date(event.get("date"))
        if event_date is None:
            continue
        index = (event_date - first_monday).days // 7
        if 0 <= index < week_count:
            bucket = buckets[index]
            category = workload_category(event.get("type"))
            setattr(bucket, category, getattr(bucket, category) + 1)
            bucket.events.append(event)

    for bucket in buckets:
        bucket.total_hours = sum(
            getattr(bucket, category) * hours for category, hours in EVENT_HOURS.items()
        )
        bucket.difficulty = classify_difficulty(bucket.total_hours)
    return buckets


def _due_events(events, today, days):
    """Clustering-relevant events dated in [today, today + days)."""
    end = today + timedelta(days=days)
    due = []
    for event in events:
        if event.get("type") not in CLUSTER_TYPES:
            continue
        event_date = to_date(event.get("date"))
        if event_date is not None and today <= event_date < end:
            due.append(event)
    return due


def cluster_severity(count):
    for minimum, severity in CLUSTER_SEVERITY:
        if count >= minimum:
            return severity
    return None


def detect_clustering(events, horizon_days=30, today=None):
    """
    Find days on which two or more deadlines, assignments or exams fall.

    Returns:
        list[ClusterReport]: Sorted by count, largest first.
    """
    today = today or date.today()
    by_day = defaultdict(list)
    for event in _due_events(events, today, horizon_days):
        by_day[to_date(event["date"])].append(event.get("title", ""))

    clusters = [
        ClusterReport(date=day, count=len(titles), severity=cluster_severity(len(titles)), titles=titles)
        for day, titles in by_day.items()
        if cluster_severity(len(titles))
    ]
    clusters.sort(key=lambda c: (-c.count, c.date))
    return clusters


def weekly_alert(events, today=None):
    """
    Coarse signal raised when more than WEEKLY_ALERT_THRESHOLD due dates
    fall within the next seven days.
    """
    today = today or date.today()
    weekly = _due_events(events, today, 7)
    deadlines = [
        {"date": to_date(e["date"]).isoformat(), "type": e.get("type"), "title": e.get("title")}
        for e in weekly
    ]
    if len(weekly) > WEEKLY_ALERT_THRESHOLD:
        return {
            "alert": True,
            "message": f"High concentration of {len(weekly)} deadlines this week",
            "deadlines": deadlines,
        }
    return {"alert": False, "message": "Deadlines are well distributed", "deadlines": deadlines}


def analyze_deadlines(events, horizon_days=30, today=None):
    """Combined clustering report served by the analytics endpoint."""
    today = today or date.today()
    return {
        "upcomingDeadlines": len(_due_events(events, today, horizon_days)),
        "weeklyDeadlines": len(_due_events(events, today, 7)),
        "clusteringAlert": weekly_alert(events, today),
        "clusters": [c.to_dict() for c in detect_clustering(events, horizon_days, today)],
    }


# --- Reminders ---

def due_at(event):
    """Datetime at which an event is due; end of day when it has no time."""
    event_date = to_date(event.get("date"))
    if event_date is None:
        return None
    try:
        at = to_time(event.get("time")) or END_OF_DAY
    except ValueError:
        at = END_OF_DAY
    return datetime.combine(event_date, at)


def _hours(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def due_reminders(events, settings, now=None):
    """
    Reminders owed for upcoming events under the user's notification
    settings.

    Args:
        events (list[dict]): Concrete events.
        settings (dict): Notification settings with snake_case keys, as in
            consts.DEFAULT_NOTIFICATION_SETTINGS.
        now (datetime): Naive local time, defaults to now.

    Returns:
        list[dict]: {"title", "message", "type", "urgent"} per reminder.
    """
    now = now or datetime.now()
    reminders = []

    assignment_window = _hours(settings.get("assignment_frequency"))
    deadline_windows = sorted(
        h for h in (_hours(t) for t in settings.get("deadline_timings") or []) if h
    )

    for event in events:
        due = due_at(event)
        if due is None or due < now:
            continue
        hours_left = (due - now).total_seconds() / 3600
        event_type = event.get("type")
        when = due.strftime("%a %d %b %H:%M")

        if event_type == "assignment" and settings.get("assignments") and assignment_window:
            if hours_left <= assignment_window:
                reminders.append({
                    "title": f"Assignment due: {event.get('title')}",
                    "message": f"{event.get('title')} is due {when}.",
                    "type": "assignment",
                    "urgent": event.get("priority") == "high",
                })
        elif event_type in ("deadline", "exam") and settings.get("deadlines") and deadline_windows:
            if hours_left <= deadline_windows[-1]:
                reminders.append({
                    "title": f"Upcoming {event_type}: {event.get('title')}",
                    "message": f"{event.get('title')} is on {when}.",
                    "type": "deadline",
                    "urgent": hours_left <= deadline_windows[0],
                })
    return reminders


def reminder_horizon_weeks(settings, today=None):
    """
    Weeks of recurring occurrences to expand, counted from the Monday of
    today's week, so that the longest reminder window in `settings` is
    covered.
    """
    today = today or date.today()
    windows = [_hours(settings.get("assignment_frequency"))]
    windows += [_hours(t) for t in settings.get("deadline_timings") or []]
    longest = max((h for h in windows if h), default=0)
    # A window opened late today can end on the day after `longest // 24`
    last_day = today.weekday() + int(longest // 24) + 1
    return last_day // 7 + 1
