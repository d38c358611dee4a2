# Import Flask modules for routing, sessions, and request handling
from flask import Blueprint, request, session, current_app, url_for
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from sqlalchemy.exc import SQLAlchemyError
import resend
import re

# Import extensions, models and helpers
from ..extensions import db, bcrypt
from ..models import User, GradeSetting, NotificationSettings
from ..utils import (
    csrf_protect,
    login_required,
    respond,
    issue_token,
    get_payload,
    require_fields,
    as_text,
    ValidationError,
)
from ..consts import DEFAULT_GRADE_SCALE, FROM_EMAIL

auth_bp = Blueprint("auth", __name__)

EMAIL_RE = re.compile(r"[^@]+@[^@]+\.[^@]+")
MIN_PASSWORD_LENGTH = 6


def hash_password(password):
    return bcrypt.generate_password_hash(password).decode("utf-8")


def validate_password(password):
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def seed_user_defaults(user):
    """Stage the default grade scale and notification settings for a new user."""
    for grade, points in DEFAULT_GRADE_SCALE.items():
        db.session.add(GradeSetting(user_id=user.id, grade=grade, points=points))
    db.session.add(NotificationSettings(user_id=user.id))


def _session_payload(user):
    session["user_id"] = user.id
    return {"token": issue_token(user), "user": user.to_dict()}


@auth_bp.route("/register", methods=["POST"])
@csrf_protect
def register():
    """
    Create an account, seed its defaults and log it in.

    Payload: { fullName, email, password, confirmPassword?, academicLevel? }

    Returns:
        JSON: Bearer token and user, status 201.
    """
    data = get_payload()
    require_fields(data, "fullName", "email", "password")
    email = as_text(data["email"], "email").lower()
    name = as_text(data["fullName"], "fullName")
    password = data["password"]

    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email address")
    validate_password(password)
    if "confirmPassword" in data and data["confirmPassword"] != password:
        raise ValidationError("Passwords do not match")

    if User.query.filter_by(email=email).first():
        return respond(False, "User already exists", status=409)

    try:
        user = User(
            email=email,
            password=hash_password(password),
            name=name,
            academic_level=data.get("academicLevel"),
        )
        db.session.add(user)
        db.session.flush()  # Flush to get user.id
        seed_user_defaults(user)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to register %s", email)
        return respond(False, "Failed to create user", status=500)

    current_app.logger.info("Registered user %s", user.id)
    return respond(True, "User registered successfully", _session_payload(user), 201)


@auth_bp.route("/login", methods=["POST"])
@csrf_protect
def login():
    """
    Authenticate with email and password.

    Returns:
        JSON: Bearer token and user, or 401 on bad credentials.
    """
    data = get_payload()
    require_fields(data, "email", "password")
    if not isinstance(data["password"], str):
        raise ValidationError("password must be a string")
    user = User.query.filter_by(email=as_text(data["email"], "email").lower()).first()

    # Check if user exists and password hash matches
    if not user or not bcrypt.check_password_hash(user.password, data["password"]):
        return respond(False, "Invalid credentials", status=401)

    return respond(True, "Login successful", _session_payload(user))


@auth_bp.route("/logout", methods=["POST"])
@csrf_protect
@login_required
def logout(user):
    session.pop("user_id", None)
    return respond(True, "Logged out")


@auth_bp.route("/me", methods=["GET"])
@login_required
def me(user):
    return respond(True, "Current user", user.to_dict())


@auth_bp.route("/csrf-token", methods=["GET"])
def csrf_token():
    """Expose the session CSRF token for cookie-authenticated clients."""
    return respond(True, "CSRF token", {"csrfToken": session.get("csrf_token")})


@auth_bp.route("/forgot-password", methods=["POST"])
@csrf_protect
def forgot_password():
    """
    Send a password reset link.

    The token is signed with the user's current password hash as salt, so it
    stops working as soon as the password changes. The response is the same
    whether or not the email is known.
    """
    data = get_payload()
    require_fields(data, "email")
    email = as_text(data["email"], "email").lower()
    user = User.query.filter_by(email=email).first()

    if user:
        serializer = URLSafeTimedSerializer(current_app.secret_key)
        token = serializer.dumps(email, salt=user.password)
        reset_link = url_for("auth.reset_password", token=token, _external=True)

        if current_app.config.get("RESEND_API_KEY"):
            params = {
                "from": FROM_EMAIL,
                "to": [email],
                "subject": "Password Reset Request",
                "html": f"<strong>Click the link to reset your password: {reset_link}</strong>",
            }
            try:
                resend.Emails.send(params)
            except Exception:
                current_app.logger.exception("Failed to send reset email to user %s", user.id)
                return respond(False, "Failed to send reset email", status=502)
        else:
            current_app.logger.warning(
                "RESEND_API_KEY not set; reset link for user %s: %s", user.id, reset_link
            )

    return respond(True, "If the email is registered, a reset link has been sent")


@auth_bp.route("/reset-password/<token>", methods=["POST"])
@csrf_protect
def reset_password(token):
    """
    Set a new password using a reset token.

    Payload: { email, newPassword, confirmPassword }
    """
    data = get_payload()
    require_fields(data, "email", "newPassword", "confirmPassword")
    user = User.query.filter_by(email=as_text(data["email"], "email").lower()).first()
    if not user:
        return respond(False, "Invalid or expired token", status=401)

    serializer = URLSafeTimedSerializer(current_app.secret_key)
    try:
        email = serializer.loads(
            token, salt=user.password, max_age=current_app.config["RESET_TOKEN_MAX_AGE"]
        )
    except (BadSignature, SignatureExpired):
        return respond(False, "Invalid or expired token", status=401)
    if email != user.email:
        return respond(False, "Invalid or expired token", status=401)

    if data["newPassword"] != data["confirmPassword"]:
        raise ValidationError("Passwords do not match")
    validate_password(data["newPassword"])

    user.password = hash_password(data["newPassword"])
    db.session.commit()
    current_app.logger.info("Password reset for user %s", user.id)
    return respond(True, "Password has been reset, please log in")
