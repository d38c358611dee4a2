from flask import Blueprint, session, current_app

from ..extensions import db, bcrypt
from ..models import User
from ..utils import (
    csrf_protect,
    login_required,
    respond,
    get_payload,
    require_fields,
    as_int,
    as_text,
    ValidationError,
)
from .auth import EMAIL_RE, hash_password, validate_password

profile_bp = Blueprint("profile", __name__)


@profile_bp.route("/", methods=["GET"])
@login_required
def get_profile(user):
    return respond(True, "Profile retrieved successfully", user.to_dict())


@profile_bp.route("/", methods=["PUT"])
@csrf_protect
@login_required
def update_profile(user):
    """
    Update name, email, academic level and programme length.

    Payload: { name, email, academicLevel?, academicYears? }
    """
    data = get_payload()
    require_fields(data, "name", "email")
    email = as_text(data["email"], "email").lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email address")

    # Email is the login name, so it has to stay unique
    taken = User.query.filter(User.email == email, User.id != user.id).first()
    if taken:
        return respond(False, "Email already in use", status=409)

    user.name = as_text(data["name"], "name")
    user.email = email
    user.academic_level = data.get("academicLevel", user.academic_level)
    if data.get("academicYears") not in (None, ""):
        user.academic_years = as_int(data["academicYears"], "academicYears", minimum=1)
    db.session.commit()
    return respond(True, "Profile updated successfully", user.to_dict())


@profile_bp.route("/password", methods=["PUT"])
@csrf_protect
@login_required
def change_password(user):
    data = get_payload()
    require_fields(data, "currentPassword", "newPassword")
    if not isinstance(data["currentPassword"], str):
        raise ValidationError("currentPassword must be a string")

    if not bcrypt.check_password_hash(user.password, data["currentPassword"]):
        return respond(False, "Current password is incorrect", status=400)
    validate_password(data["newPassword"])

    user.password = hash_password(data["newPassword"])
    db.session.commit()
    return respond(True, "Password updated successfully")


@profile_bp.route("/", methods=["DELETE"])
@csrf_protect
@login_required
def delete_account(user):
    """Delete the account and, through cascades, everything it owns."""
    user_id = user.id
    db.session.delete(user)
    db.session.commit()
    session.clear()
    current_app.logger.info("Deleted user %s", user_id)
    return respond(True, "Account deleted")
