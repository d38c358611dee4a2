# Target GPA: a single slot per user, projected against live course data
from flask import Blueprint, current_app, request

from ..extensions import db
from ..models import TargetGoal
from ..algorithms import (
    current_standing,
    parse_semester_key,
    project_target,
    scale_ceiling,
    target_semester_options,
    round_gpa,
)
from ..utils import (
    csrf_protect,
    login_required,
    respond,
    get_payload,
    require_fields,
    as_number,
    ValidationError,
)
from .grade_settings import user_grade_scale
from .semesters import user_semesters

targets_bp = Blueprint("targets", __name__)


def _credits_per_semester():
    raw = request.args.get("creditsPerSemester")
    if raw in (None, ""):
        return current_app.config["CREDITS_PER_SEMESTER"]
    return as_number(raw, "creditsPerSemester", minimum=0, exclusive_min=True)


def _target_payload(user, target):
    """
    Serialize the target with its projection.

    `projection` is None when the target semester is not after the latest
    semester with courses.
    """
    semesters = user_semesters(user)
    standing, projection = project_target(
        semesters,
        target.target_gpa,
        target.target_semester,
        _credits_per_semester(),
        max_gpa=scale_ceiling(user_grade_scale(user)),
    )
    return {
        **target.to_dict(),
        "standing": {
            "gpa": round_gpa(standing.gpa),
            "credits": standing.credits,
            "semesterIndex": standing.semester_index,
        },
        "projection": projection.to_dict() if projection else None,
    }


@targets_bp.route("/", methods=["GET"])
@login_required
def get_target(user):
    target = TargetGoal.query.filter_by(user_id=user.id).first()
    if not target:
        return respond(True, "No target grade found", None)
    return respond(True, "Target grade retrieved successfully", _target_payload(user, target))


@targets_bp.route("/", methods=["PUT", "POST"])
@csrf_protect
@login_required
def set_target(user):
    """
    Set (or replace) the user's target.

    Payload: { targetGpa, targetSemester: 'year-semester' }

    The current GPA and credits are snapshotted from the recorded courses.
    """
    data = get_payload()
    require_fields(data, "targetGpa", "targetSemester")
    target_gpa = as_number(
        data["targetGpa"], "targetGpa", minimum=0, maximum=scale_ceiling(user_grade_scale(user))
    )
    try:
        year, number = parse_semester_key(data["targetSemester"])
    except ValueError:
        raise ValidationError("targetSemester must look like 'year-semester', e.g. '3-2'")

    standing = current_standing(user_semesters(user))
    target = TargetGoal.query.filter_by(user_id=user.id).first()
    created = target is None
    if created:
        target = TargetGoal(user_id=user.id)
        db.session.add(target)

    target.target_gpa = target_gpa
    target.target_semester = f"{year}-{number}"
    target.current_credits = standing.credits
    target.current_gpa = standing.gpa
    db.session.commit()

    return respond(
        True,
        "Target grade saved successfully",
        _target_payload(user, target),
        201 if created else 200,
    )


@targets_bp.route("/", methods=["DELETE"])
@csrf_protect
@login_required
def clear_target(user):
    TargetGoal.query.filter_by(user_id=user.id).delete()
    db.session.commit()
    return respond(True, "Target grade deleted successfully")


@targets_bp.route("/options", methods=["GET"])
@login_required
def get_options(user):
    """Future semesters that can be chosen as a target."""
    standing = current_standing(user_semesters(user))
    return respond(
        True,
        "Target semester options",
        target_semester_options(standing.semester_index, user.academic_years),
    )
