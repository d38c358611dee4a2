# Semesters and their courses; every course change rewrites the cached GPA
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Semester, Course
from ..algorithms import (
    semester_gpa,
    resolve_points,
    scale_ceiling,
    collapse_duplicate_semesters,
    round_gpa,
    UnknownGradeError,
)
from ..utils import (
    csrf_protect,
    login_required,
    respond,
    get_payload,
    require_fields,
    as_int,
    as_number,
    ValidationError,
)
from .grade_settings import user_grade_scale
from .notifications import stage_gpa_notification

semesters_bp = Blueprint("semesters", __name__)

GPA_EPSILON = 1e-9


def refresh_semester_gpa(semester):
    """Recompute and stage the cached GPA; returns the new value."""
    semester.gpa = semester_gpa(semester.courses)
    return semester.gpa


def user_semesters(user):
    return (
        Semester.query.filter_by(user_id=user.id)
        .order_by(Semester.year, Semester.semester_number, Semester.id)
        .all()
    )


def merge_duplicate_semesters(semesters, plan):
    """
    Apply a plan from `collapse_duplicate_semesters`: move the courses of
    every duplicate onto the kept semester and recompute its GPA.

    Duplicates only exist in databases created before the
    (user, year, semester) unique constraint was added.

    Returns:
        list[Semester]: The emptied duplicates; the caller deletes them.
    """
    by_id = {s.id: s for s in semesters}
    emptied = []
    for group in plan:
        keep = by_id[group["keep"]]
        for duplicate_id in group["remove"]:
            duplicate = by_id[duplicate_id]
            for course in list(duplicate.courses):
                # backref moves the course off the duplicate
                keep.courses.append(course)
            emptied.append(duplicate)
        refresh_semester_gpa(keep)
    return emptied


def _owned_semester(user, semester_id):
    semester = db.session.get(Semester, semester_id)
    if not semester or semester.user_id != user.id:
        return None
    return semester


@semesters_bp.route("/", methods=["GET"])
@login_required
def get_semesters(user):
    """
    All semesters of the user, ordered by (year, semester), with courses.

    The cached GPA is checked against the courses and repaired if it drifted.
    """
    semesters = user_semesters(user)
    repaired = False
    for semester in semesters:
        cached = semester.gpa
        if abs(refresh_semester_gpa(semester) - (cached or 0)) > GPA_EPSILON:
            current_app.logger.warning(
                "Semester %s had stale GPA %s, repaired to %s", semester.id, cached, semester.gpa
            )
            repaired = True
    if repaired:
        db.session.commit()
    return respond(
        True, "Semesters retrieved successfully", [s.to_dict() for s in semesters]
    )


@semesters_bp.route("/", methods=["POST"])
@csrf_protect
@login_required
def create_semester(user):
    """
    Create a semester; (year, semester) must be unique for the user.

    Payload: { year, semester }
    """
    data = get_payload()
    require_fields(data, "year", "semester")
    year = as_int(data["year"], "year", minimum=1)
    number = as_int(data["semester"], "semester", choices=(1, 2))

    existing = Semester.query.filter_by(
        user_id=user.id, year=year, semester_number=number
    ).first()
    if existing:
        return respond(False, "Semester already exists", existing.to_dict(), 409)

    semester = Semester(user_id=user.id, year=year, semester_number=number, gpa=0.0)
    db.session.add(semester)
    db.session.commit()
    return respond(True, "Semester created successfully", semester.to_dict(), 201)


@semesters_bp.route("/<int:semester_id>", methods=["DELETE"])
@csrf_protect
@login_required
def delete_semester(user, semester_id):
    semester = _owned_semester(user, semester_id)
    if not semester:
        return respond(False, "Semester not found", status=404)
    db.session.delete(semester)
    db.session.commit()
    return respond(True, "Semester deleted successfully")


@semesters_bp.route("/cleanup", methods=["DELETE"])
@csrf_protect
@login_required
def cleanup_duplicates(user):
    """
    Collapse semesters sharing (year, semester), keeping the lowest id.

    Courses of removed duplicates move to the kept semester.
    """
    semesters = user_semesters(user)
    plan = collapse_duplicate_semesters(semesters)
    if not plan:
        return respond(True, "No duplicates found", {"removed": 0, "details": []})

    try:
        for duplicate in merge_duplicate_semesters(semesters, plan):
            db.session.delete(duplicate)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Duplicate cleanup failed for user %s", user.id)
        return respond(False, "Database error", status=500)

    removed = sum(len(group["remove"]) for group in plan)
    current_app.logger.info("Removed %s duplicate semesters for user %s", removed, user.id)
    return respond(
        True,
        "Duplicates cleaned up successfully",
        {"removed": removed, "details": plan},
    )


@semesters_bp.route("/<int:semester_id>/courses", methods=["GET"])
@login_required
def get_courses(user, semester_id):
    semester = _owned_semester(user, semester_id)
    if not semester:
        return respond(False, "Semester not found", status=404)
    return respond(
        True, "Courses retrieved successfully", [c.to_dict() for c in semester.courses]
    )


@semesters_bp.route("/<int:semester_id>/courses", methods=["POST"])
@csrf_protect
@login_required
def add_course(user, semester_id):
    """
    Add a course and recompute the semester GPA in the same transaction.

    Payload: { name, credits, grade, points? }

    The grade must exist in the user's scale. When `points` is omitted it is
    taken from the scale; either way it is frozen on the course.
    """
    semester = _owned_semester(user, semester_id)
    if not semester:
        return respond(False, "Semester not found", status=404)

    data = get_payload()
    require_fields(data, "name", "credits", "grade")
    credits = as_number(data["credits"], "credits", minimum=0, exclusive_min=True)
    scale = user_grade_scale(user)
    try:
        scale_points = resolve_points(scale, data["grade"])
    except UnknownGradeError:
        raise ValidationError(f"Unknown grade: {data['grade']}")
    if data.get("points") in (None, ""):
        points = scale_points
    else:
        points = as_number(data["points"], "points", minimum=0, maximum=scale_ceiling(scale))

    previous_gpa = semester.gpa
    try:
        course = Course(
            user_id=user.id,
            name=str(data["name"]).strip(),
            credits=credits,
            grade=data["grade"],
            points=points,
        )
        semester.courses.append(course)
        refresh_semester_gpa(semester)
        stage_gpa_notification(user, semester, previous_gpa)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to add course to semester %s", semester_id)
        return respond(False, "Failed to add course", status=500)

    return respond(
        True,
        "Course added successfully",
        {**course.to_dict(), "semesterGpa": round_gpa(semester.gpa)},
        201,
    )


@semesters_bp.route("/courses/<int:course_id>", methods=["DELETE"])
@csrf_protect
@login_required
def delete_course(user, course_id):
    course = db.session.get(Course, course_id)
    if not course or course.user_id != user.id:
        return respond(False, "Course not found or access denied", status=404)

    semester = course.semester
    previous_gpa = semester.gpa
    try:
        # delete-orphan cascade removes the row on flush
        semester.courses.remove(course)
        refresh_semester_gpa(semester)
        stage_gpa_notification(user, semester, previous_gpa)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to delete course %s", course_id)
        return respond(False, "Failed to delete course", status=500)

    return respond(
        True, "Course deleted successfully", {"semesterGpa": round_gpa(semester.gpa)}
    )
