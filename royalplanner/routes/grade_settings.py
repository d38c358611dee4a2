# Grade scale management: each user maps their own labels to point values
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import GradeSetting
from ..algorithms import build_grade_scale
from ..utils import (
    csrf_protect,
    login_required,
    respond,
    get_payload,
    require_fields,
    as_number,
    as_text,
    ValidationError,
)

grade_settings_bp = Blueprint("grade_settings", __name__)


def user_grade_scale(user):
    """The user's {label: points} scale, or the default one if empty."""
    return build_grade_scale(GradeSetting.query.filter_by(user_id=user.id).all())


def _label(value):
    return as_text(value, "grade")


def _points(value):
    # No upper bound: weighted scales may go past 4.0
    return as_number(value, "points", minimum=0)


def _ensure_rows(user):
    """
    Materialise the default scale for users without stored rows, so that
    single-label edits apply on top of what GET returned.
    """
    if GradeSetting.query.filter_by(user_id=user.id).count() == 0:
        for grade, points in build_grade_scale([]).items():
            db.session.add(GradeSetting(user_id=user.id, grade=grade, points=points))
        db.session.flush()


@grade_settings_bp.route("/", methods=["GET"])
@login_required
def get_grade_settings(user):
    return respond(True, "Grade settings retrieved successfully", user_grade_scale(user))


@grade_settings_bp.route("/", methods=["POST"])
@csrf_protect
@login_required
def add_grade(user):
    """
    Add one label to the scale.

    Payload: { grade, points }
    """
    data = get_payload()
    require_fields(data, "grade", "points")
    grade, points = _label(data["grade"]), _points(data["points"])

    _ensure_rows(user)
    if GradeSetting.query.filter_by(user_id=user.id, grade=grade).first():
        db.session.rollback()
        return respond(False, f"Grade {grade} already exists", status=409)

    db.session.add(GradeSetting(user_id=user.id, grade=grade, points=points))
    db.session.commit()
    return respond(True, "Grade settings saved successfully", user_grade_scale(user), 201)


@grade_settings_bp.route("/update", methods=["PUT"])
@csrf_protect
@login_required
def update_grade(user):
    """
    Update the points of one label, optionally renaming it.

    Payload: { grade, points, oldGrade? }

    Already recorded courses keep the points they were entered with.
    """
    data = get_payload()
    require_fields(data, "grade", "points")
    grade, points = _label(data["grade"]), _points(data["points"])
    old_grade = _label(data["oldGrade"]) if data.get("oldGrade") else grade

    _ensure_rows(user)
    setting = GradeSetting.query.filter_by(user_id=user.id, grade=old_grade).first()
    if not setting:
        db.session.rollback()
        return respond(False, f"Grade {old_grade} not found", status=404)
    if old_grade != grade and GradeSetting.query.filter_by(user_id=user.id, grade=grade).first():
        db.session.rollback()
        return respond(False, f"Grade {grade} already exists", status=409)

    setting.grade = grade
    setting.points = points
    db.session.commit()
    return respond(True, "Grade settings updated successfully", user_grade_scale(user))


@grade_settings_bp.route("/", methods=["PUT"])
@csrf_protect
@login_required
def replace_grade_settings(user):
    """
    Replace the whole scale in one transaction.

    Payload: { gradeSettings: { label: points, ... } }
    """
    data = get_payload()
    scale = data.get("gradeSettings")
    if not isinstance(scale, dict):
        raise ValidationError("gradeSettings must be an object of grade: points")
    cleaned = {_label(grade): _points(points) for grade, points in scale.items()}

    try:
        GradeSetting.query.filter_by(user_id=user.id).delete()
        for grade, points in cleaned.items():
            db.session.add(GradeSetting(user_id=user.id, grade=grade, points=points))
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed replacing grade scale of user %s", user.id)
        return respond(False, "Failed to save grade settings", status=500)

    return respond(True, "Grade settings updated successfully", user_grade_scale(user))


@grade_settings_bp.route("/", methods=["DELETE"])
@csrf_protect
@login_required
def delete_grade(user):
    """
    Remove one label from the scale.

    Payload: { grade }
    """
    data = get_payload()
    require_fields(data, "grade")
    grade = _label(data["grade"])

    _ensure_rows(user)
    setting = GradeSetting.query.filter_by(user_id=user.id, grade=grade).first()
    if not setting:
        db.session.rollback()
        return respond(False, f"Grade {grade} not found", status=404)

    db.session.delete(setting)
    db.session.commit()
    return respond(True, "Grade settings deleted successfully", user_grade_scale(user))
