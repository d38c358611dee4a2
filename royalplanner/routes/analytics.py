# Read-only analytics over grades and planner events
from collections import Counter
from datetime import date

from flask import Blueprint, current_app, request

from ..models import PlannerEvent
from ..algorithms import (
    cumulative_gpa,
    semester_gpa,
    scale_ceiling,
    total_credits,
    round_gpa,
)
from ..planning import analyze_deadlines, bucketize_by_week, expand_all
from ..utils import login_required, respond, query_int, as_date_string, to_date
from .grade_settings import user_grade_scale
from .semesters import user_semesters

analytics_bp = Blueprint("analytics", __name__)

MAX_WEEKS = 52
MAX_HORIZON_DAYS = 365


def _expanded_events(user, weeks, anchor):
    events = [e.to_dict() for e in PlannerEvent.query.filter_by(user_id=user.id).all()]
    return expand_all(events, weeks, anchor)


@analytics_bp.route("/gpa-history", methods=["GET"])
@login_required
def gpa_history(user):
    """Semesters that have a GPA, in chronological order."""
    history = [
        {"year": s.year, "semester": s.semester_number, "gpa": s.gpa}
        for s in user_semesters(user)
        if s.gpa > 0
    ]
    return respond(True, "GPA history retrieved successfully", history)


@analytics_bp.route("/gpa-trend", methods=["GET"])
@login_required
def gpa_trend(user):
    """
    GPA per semester plus the running cumulative GPA after each one.
    """
    trend = []
    seen = []
    for semester in user_semesters(user):
        if not semester.courses:
            continue
        seen.append(semester)
        trend.append({
            "semester": semester.label,
            "year": semester.year,
            "semesterNumber": semester.semester_number,
            "gpa": round_gpa(semester_gpa(semester.courses)),
            "cumulativeGpa": round_gpa(cumulative_gpa(seen)),
        })
    return respond(True, "GPA trend retrieved successfully", trend)


@analytics_bp.route("/cumulative-gpa", methods=["GET"])
@login_required
def cumulative(user):
    semesters = user_semesters(user)
    return respond(True, "Cumulative GPA calculated successfully", {
        "cumulativeGpa": cumulative_gpa(semesters),
        "totalCredits": total_credits(semesters),
        "totalCourses": sum(len(s.courses) for s in semesters),
    })


@analytics_bp.route("/course-analysis", methods=["GET"])
@login_required
def course_analysis(user):
    """Every course with its points as a percentage of the scale ceiling."""
    ceiling = scale_ceiling(user_grade_scale(user)) or 1
    courses = [
        {
            "name": c.name,
            "credits": c.credits,
            "grade": c.grade,
            "points": c.points,
            "semester": s.label,
            "performance": round(c.points / ceiling * 100, 1),
        }
        for s in user_semesters(user)
        for c in s.courses
    ]
    return respond(True, "Course analysis retrieved successfully", courses)


@analytics_bp.route("/grade-distribution", methods=["GET"])
@login_required
def grade_distribution(user):
    counts = Counter(c.grade for s in user_semesters(user) for c in s.courses)
    scale = user_grade_scale(user)
    # Best grades first; labels no longer in the scale go last
    ordered = sorted(counts.items(), key=lambda item: (-scale.get(item[0], -1), item[0]))
    return respond(
        True,
        "Grade distribution retrieved successfully",
        [{"grade": grade, "count": count} for grade, count in ordered],
    )


@analytics_bp.route("/workload-distribution", methods=["GET"])
@login_required
def workload_distribution(user):
    """Credits and course count per semester."""
    workload = [
        {
            "semester": semester.label,
            "credits": total_credits([semester]),
            "courses": len(semester.courses),
        }
        for semester in user_semesters(user)
    ]
    return respond(True, "Workload distribution retrieved successfully", workload)


@analytics_bp.route("/deadline-clustering", methods=["GET"])
@login_required
def deadline_clustering(user):
    """
    Same-day deadline clusters and the weekly alert.

    Query:
        days (int): Look-ahead horizon, defaults to CLUSTER_HORIZON_DAYS.
    """
    days = query_int("days", current_app.config["CLUSTER_HORIZON_DAYS"], maximum=MAX_HORIZON_DAYS)
    today = date.today()
    # Weeks are counted from the Monday before today; cover today + days
    events = _expanded_events(user, (today.weekday() + days) // 7 + 1, today)
    return respond(
        True, "Deadline clustering analysis completed", analyze_deadlines(events, days, today)
    )


@analytics_bp.route("/workload", methods=["GET"])
@login_required
def weekly_workload(user):
    """
    Estimated hours per week for the coming weeks.

    Query:
        weeks (int): Number of weeks, defaults to WORKLOAD_WEEKS.
        start (date): Any day of the first week, defaults to today.
    """
    weeks = query_int("weeks", current_app.config["WORKLOAD_WEEKS"], maximum=MAX_WEEKS)
    start = request.args.get("start")
    start = to_date(as_date_string(start, "start")) if start else date.today()

    buckets = bucketize_by_week(_expanded_events(user, weeks, start), start, weeks)
    data = [bucket.to_dict() for bucket in buckets]
    average = sum(b.total_hours for b in buckets) / len(buckets) if buckets else 0
    return respond(True, "Workload retrieved successfully", {
        "weeks": data,
        "averageHours": round(average, 1),
        "criticalWeeks": sum(1 for b in buckets if b.difficulty == "critical"),
        "peakWeek": max(data, key=lambda b: b["totalHours"])["weekStart"] if data else None,
    })
