# Standard library imports
from functools import wraps
from datetime import date, datetime
import secrets

from flask import session, request, jsonify, current_app, g
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from dateutil import parser

# Application-specific imports
from .extensions import db
from .models import User

TOKEN_SALT = "royalplanner-auth"


class ValidationError(ValueError):
    """Raised by the request helpers when a payload fails validation."""

    def __init__(self, message, status=400):
        super().__init__(message)
        self.message = message
        self.status = status


def respond(success, message, data=None, status=200):
    """
    Build the standard API envelope.

    Args:
        success (bool): False marks the response as an error.
        message (str): Human readable status text.
        data: Any JSON-serialisable payload.
        status (int): HTTP status code.

    Returns:
        tuple: (Response, status) as accepted by Flask views.
    """
    return jsonify({"error": not success, "message": message, "data": data}), status


def str_to_bool(val):
    """
    Convert a string, number or boolean value to a boolean.

    Args:
        val (str | bool | int): The value to convert.

    Returns:
        bool: The boolean representation of the input value.
    """
    if isinstance(val, bool):
        return val
    if isinstance(val, (int, float)):
        return val != 0
    if isinstance(val, str):
        return val.strip().lower() in ("true", "1", "yes", "on")
    return False


# -------------------------------
# Tokens and authentication
# -------------------------------

def _serializer():
    return URLSafeTimedSerializer(current_app.secret_key)


def issue_token(user):
    """Return a signed bearer token for the given user."""
    return _serializer().dumps({"user_id": user.id}, salt=TOKEN_SALT)


def user_from_token(token):
    """
    Resolve a bearer token to a user.

    Returns:
        User | None: None if the token is invalid, expired or the user is gone.
    """
    try:
        payload = _serializer().loads(
            token, salt=TOKEN_SALT, max_age=current_app.config["TOKEN_MAX_AGE"]
        )
    except (BadSignature, SignatureExpired):
        return None
    return db.session.get(User, payload.get("user_id"))


def _bearer_token():
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header.split(" ", 1)[1].strip()
    return None


def login_required(f):
    """
    Decorator to ensure a user is authenticated and exists in the database.

    Accepts either an `Authorization: Bearer <token>` header or a session
    cookie holding `user_id`. Passes the fetched user object as the first
    argument to the decorated view; answers 401 otherwise.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token:
            user = user_from_token(token)
            if not user:
                return respond(False, "Invalid or expired token", status=401)
        else:
            user_id = session.get("user_id")
            if not user_id:
                return respond(False, "Access token required", status=401)
            user = db.session.get(User, user_id)
            if not user:
                # Session points at a deleted user
                session.pop("user_id", None)
                return respond(False, "User not found", status=401)

        g.user = user
        return f(user, *args, **kwargs)

    return decorated_function


def csrf_protect(f):
    """
    Decorator to protect session-authenticated routes from CSRF attacks.

    - Skips the check in TESTING mode and for bearer-token requests.
    - Compares the session token with the `X-CSRF-Token` header.
    - Returns 400 if the token is missing or invalid.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_app.config.get("TESTING") or _bearer_token():
            return f(*args, **kwargs)

        if request.method in ["POST", "PUT", "PATCH", "DELETE"]:
            token = session.get("csrf_token")
            if not token:
                return respond(False, "CSRF token missing from session", status=400)

            request_token = request.headers.get("X-CSRF-Token")
            if not request_token:
                return respond(False, "CSRF token missing from request", status=400)

            if not secrets.compare_digest(token, request_token):
                return respond(False, "Invalid CSRF token", status=400)

        return f(*args, **kwargs)

    return decorated_function


def make_csrf_token():
    """
    Generates and stores a CSRF token in the session if not already present.
    Skips token generation in TESTING mode.
    """
    if current_app.config.get("TESTING"):
        return
    if "csrf_token" not in session:
        session["csrf_token"] = secrets.token_hex(16)


# -------------------------------
# Dates
# -------------------------------

def to_date(value):
    """
    Robustly convert an ISO string, datetime or date to a `date`.

    Accepts plain dates ('2025-02-17') as well as the full timestamps the
    browser sends ('2025-02-17T00:00:00.000Z').

    Returns:
        date | None
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            # Fallback to dateutil for more lenient parsing
            return parser.parse(value).date()
    raise TypeError(f"Unsupported type for to_date: {type(value)}")


def to_time(value):
    """Parse 'HH:MM' into a `time`, or return None for empty input."""
    if not value:
        return None
    return datetime.strptime(value[:5], "%H:%M").time()


# -------------------------------
# Request payload validation
# -------------------------------

def get_payload():
    """Return the JSON body as a dict or raise ValidationError."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid payload, expected a JSON object")
    return data


def require_fields(data, *names):
    missing = [name for name in names if data.get(name) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def as_number(value, name, minimum=None, maximum=None, exclusive_min=False):
    """
    Coerce a payload value to float and range-check it.

    Raises:
        ValidationError: If the value is not numeric or out of range.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")
    if number != number:  # NaN
        raise ValidationError(f"{name} must be a number")
    if minimum is not None:
        if exclusive_min and number <= minimum:
            raise ValidationError(f"{name} must be greater than {minimum:g}")
        if not exclusive_min and number < minimum:
            raise ValidationError(f"{name} must be at least {minimum:g}")
    if maximum is not None and number > maximum:
        raise ValidationError(f"{name} must be at most {maximum:g}")
    return number


def as_int(value, name, choices=None, minimum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")
    if choices is not None and number not in choices:
        raise ValidationError(f"{name} must be one of {', '.join(map(str, choices))}")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{name} must be at least {minimum}")
    return number


def as_text(value, name):
    """Return a stripped, non-empty string or raise ValidationError."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string")
    return value.strip()


def as_choice(value, name, choices):
    if value not in choices:
        raise ValidationError(f"{name} must be one of {', '.join(choices)}")
    return value


def as_string_list(value, name):
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"{name} must be a list of strings")
    return value


def as_weekdays(value):
    """Validate a list of weekday indices (0 = Sunday .. 6 = Saturday)."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError("recurringDays must be a list")
    days = []
    for day in value:
        day = as_int(day, "recurringDays", choices=range(7))
        if day not in days:
            days.append(day)
    return days


def as_date_string(value, name):
    """Validate a date payload and normalise it to 'YYYY-MM-DD'."""
    try:
        parsed = to_date(value)
    except (ValueError, TypeError, OverflowError):
        raise ValidationError(f"{name} must be a valid date")
    if parsed is None:
        raise ValidationError(f"{name} is required")
    return parsed.isoformat()


def query_int(name, default, minimum=1, maximum=None):
    """Read a positive integer query parameter, clamped to `maximum`."""
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    value = as_int(raw, name, minimum=minimum)
    if maximum is not None:
        value = min(value, maximum)
    return value
