from datetime import date, datetime, timedelta

import pytest

from royalplanner.planning import (
    analyze_deadlines,
    bucketize_by_week,
    classify_difficulty,
    day_offset,
    detect_clustering,
    due_at,
    due_reminders,
    expand,
    expand_all,
    reminder_horizon_weeks,
    week_start,
    weekly_alert,
)
from royalplanner.consts import DEFAULT_NOTIFICATION_SETTINGS

MONDAY = date(2025, 2, 10)
WEDNESDAY = date(2025, 2, 12)


def event(title, day, type="assignment", **extra):
    return {"id": title, "title": title, "date": day.isoformat(), "type": type, **extra}


# ----------------------------------------------------
#                  RECURRENCE
# ----------------------------------------------------

def test_week_start_is_monday():
    assert week_start(WEDNESDAY) == MONDAY
    assert week_start(MONDAY) == MONDAY
    assert week_start(MONDAY + timedelta(days=6)) == MONDAY


@pytest.mark.parametrize(
    "day_of_week, offset",
    [(0, 6), (1, 0), (2, 1), (3, 2), (4, 3), (5, 4), (6, 5)],
)
def test_day_offset_maps_sunday_to_end_of_week(day_of_week, offset):
    assert day_offset(day_of_week) == offset


def test_expand_weekly_class():
    template = {
        "id": 7,
        "title": "Lecture",
        "date": "2025-01-06",
        "type": "class",
        "isRecurring": True,
        "recurringDays": [1, 3],
    }
    occurrences = expand(template, horizon_weeks=2, week_anchor=WEDNESDAY)

    assert len(occurrences) == 4
    assert sorted(o["date"] for o in occurrences) == [
        "2025-02-10", "2025-02-12", "2025-02-17", "2025-02-19",
    ]
    # Monday and Wednesday only
    assert {date.fromisoformat(o["date"]).weekday() for o in occurrences} == {0, 2}
    assert {o["id"] for o in occurrences} == {"7-0-1", "7-0-3", "7-1-1", "7-1-3"}
    assert all(o["templateId"] == 7 for o in occurrences)
    assert all(o["title"] == "Lecture" for o in occurrences)


def test_expand_sunday_lands_at_end_of_week():
    template = {"id": 1, "isRecurring": True, "recurringDays": [0], "date": "2025-02-10"}
    (occurrence,) = expand(template, horizon_weeks=1, week_anchor=MONDAY)
    assert occurrence["date"] == "2025-02-16"
    assert date.fromisoformat(occurrence["date"]).weekday() == 6


def test_expand_passes_through_non_recurring_event():
    template = event("Essay", MONDAY)
    result = expand(template, horizon_weeks=4, week_anchor=MONDAY)
    assert result == [template]
    assert result[0] is template


def test_expand_recurring_without_days_passes_through():
    template = {"id": 3, "isRecurring": True, "recurringDays": [], "date": "2025-02-10"}
    assert expand(template, 4, MONDAY) == [template]


def test_expand_all_mixes_templates_and_single_events():
    events = [
        {"id": 1, "isRecurring": True, "recurringDays": [5], "date": "2025-02-10", "type": "class"},
        event("Quiz", WEDNESDAY, type="quiz"),
    ]
    expanded = expand_all(events, horizon_weeks=3, week_anchor=MONDAY)
    assert len(expanded) == 4


# ----------------------------------------------------
#                  WORKLOAD
# ----------------------------------------------------

def test_bucketize_without_events():
    buckets = bucketize_by_week([], MONDAY, 4)
    assert len(buckets) == 4
    assert [b.week_start for b in buckets] == [MONDAY + timedelta(weeks=i) for i in range(4)]
    assert all(b.total_hours == 0 and b.difficulty == "low" for b in buckets)


def test_bucketize_estimates_hours_per_week():
    events = [
        event("A1", MONDAY, "assignment"),
        event("A2", WEDNESDAY, "assignment"),
        event("Midterm", WEDNESDAY, "exam"),
        event("Pop quiz", WEDNESDAY, "quiz"),
        event("Report", MONDAY + timedelta(days=4), "deadline"),
        event("Revision", MONDAY + timedelta(days=8), "study"),
        event("Too late", MONDAY + timedelta(weeks=5), "deadline"),
        event("Too early", MONDAY - timedelta(days=1), "deadline"),
    ]
    first, second = bucketize_by_week(events, WEDNESDAY, 2)

    assert first.assignments == 2
    assert first.exams == 2
    assert first.deadlines == 1
    # 2 * 3 + 2 * 4 + 6
    assert first.total_hours == 20
    assert first.difficulty == "high"

    assert second.study == 1
    assert second.total_hours == 2
    assert second.difficulty == "low"


def test_bucket_to_dict():
    (bucket,) = bucketize_by_week([event("A1", MONDAY)], MONDAY, 1)
    data = bucket.to_dict()
    assert data["week"] == "Feb 10"
    assert data["weekStart"] == "2025-02-10"
    assert data["totalHours"] == 3
    assert data["eventCount"] == 1


@pytest.mark.parametrize(
    "hours, difficulty",
    [(0, "low"), (10, "low"), (11, "medium"), (15, "medium"),
     (16, "high"), (20, "high"), (21, "critical"), (40, "critical")],
)
def test_classify_difficulty(hours, difficulty):
    assert classify_difficulty(hours) == difficulty


# ----------------------------------------------------
#                  DEADLINE CLUSTERING
# ----------------------------------------------------

def test_five_assignments_on_one_day_form_critical_cluster():
    due = MONDAY + timedelta(days=3)
    events = [event(f"Assignment {i}", due) for i in range(5)]

    clusters = detect_clustering(events, horizon_days=30, today=MONDAY)

    assert len(clusters) == 1
    assert clusters[0].date == due
    assert clusters[0].count == 5
    assert clusters[0].severity == "critical"


def test_clusters_ignore_classes_and_out_of_horizon_events():
    events = [
        event("Lecture", MONDAY, "class"),
        event("Lab", MONDAY, "class"),
        event("Past 1", MONDAY - timedelta(days=1), "deadline"),
        event("Past 2", MONDAY - timedelta(days=1), "deadline"),
        event("Far 1", MONDAY + timedelta(days=10), "exam"),
        event("Far 2", MONDAY + timedelta(days=10), "exam"),
    ]
    assert detect_clustering(events, horizon_days=7, today=MONDAY) == []


def test_clusters_sorted_by_size():
    day_one = MONDAY + timedelta(days=1)
    day_two = MONDAY + timedelta(days=2)
    events = [event("a", day_one), event("b", day_one)] + [
        event(f"c{i}", day_two, "deadline") for i in range(3)
    ]
    clusters = detect_clustering(events, horizon_days=7, today=MONDAY)
    assert [(c.count, c.severity) for c in clusters] == [(3, "high"), (2, "medium")]


def test_weekly_alert_above_threshold():
    events = [event(f"d{i}", MONDAY + timedelta(days=i), "deadline") for i in range(4)]
    alert = weekly_alert(events, today=MONDAY)
    assert alert["alert"] is True
    assert alert["message"] == "High concentration of 4 deadlines this week"
    assert len(alert["deadlines"]) == 4


def test_weekly_alert_window_is_seven_days():
    events = [event(f"d{i}", MONDAY + timedelta(days=i), "deadline") for i in range(3)]
    events.append(event("next week", MONDAY + timedelta(days=7), "deadline"))
    alert = weekly_alert(events, today=MONDAY)
    assert alert["alert"] is False
    assert alert["message"] == "Deadlines are well distributed"


def test_analyze_deadlines_without_events():
    report = analyze_deadlines([], 30, today=MONDAY)
    assert report["upcomingDeadlines"] == 0
    assert report["clusters"] == []
    assert report["clusteringAlert"]["alert"] is False


# ----------------------------------------------------
#                  REMINDERS
# ----------------------------------------------------

NOW = datetime(2025, 2, 10, 12, 0)


def test_due_at_defaults_to_end_of_day():
    assert due_at(event("x", MONDAY)) == datetime(2025, 2, 10, 23, 59)
    assert due_at(event("x", MONDAY, time="09:30")) == datetime(2025, 2, 10, 9, 30)


def test_due_reminders_for_assignments_and_deadlines():
    events = [
        event("Essay", MONDAY + timedelta(days=1), "assignment", time="09:00", priority="high"),
        event("Report", MONDAY, "deadline", time="13:00"),
        event("Final", MONDAY + timedelta(days=3), "exam"),
        event("Old", MONDAY - timedelta(days=1), "deadline"),
        event("Lecture", MONDAY, "class", time="14:00"),
    ]
    reminders = due_reminders(events, DEFAULT_NOTIFICATION_SETTINGS, now=NOW)
    by_title = {r["title"]: r for r in reminders}

    assert set(by_title) == {"Assignment due: Essay", "Upcoming deadline: Report"}
    assert by_title["Assignment due: Essay"]["type"] == "assignment"
    assert by_title["Assignment due: Essay"]["urgent"] is True
    # One hour left is inside the shortest deadline window
    assert by_title["Upcoming deadline: Report"]["urgent"] is True


def test_due_reminders_respect_settings():
    events = [
        event("Essay", MONDAY, "assignment", time="18:00"),
        event("Report", MONDAY + timedelta(days=1), "deadline", time="09:00"),
    ]
    settings = {**DEFAULT_NOTIFICATION_SETTINGS, "assignments": False}
    reminders = due_reminders(events, settings, now=NOW)

    assert [r["title"] for r in reminders] == ["Upcoming deadline: Report"]
    # 21 hours left: inside 24h but not the 2h window
    assert reminders[0]["urgent"] is False


@pytest.mark.parametrize(
    "timings, today, weeks",
    [
        (["2", "24"], MONDAY, 1),
        (["2", "24"], MONDAY + timedelta(days=6), 2),
        (["336"], MONDAY, 3),
        (["336"], MONDAY + timedelta(days=6), 4),
    ],
)
def test_reminder_horizon_covers_longest_window(timings, today, weeks):
    settings = {**DEFAULT_NOTIFICATION_SETTINGS, "deadline_timings": timings}
    assert reminder_horizon_weeks(settings, today) == weeks
