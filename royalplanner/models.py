from datetime import datetime, timezone

from .extensions import db
from .consts import DEFAULT_NOTIFICATION_SETTINGS


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


# -------------------------------
# User authentication and profile
# -------------------------------

class User(db.Model):
    """
    Stores user authentication and profile information.

    Attributes:
        id (int): Primary key.
        email (str): Unique email address, used for login.
        password (str): Bcrypt hash.
        name (str): Display name.
        academic_level (str): Free-form level (e.g. 'undergraduate').
        academic_years (int): Length of the programme, drives target options.
    """
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password = db.Column(db.String(100), nullable=False)  # Hashed password
    name = db.Column(db.String(255), nullable=False)
    academic_level = db.Column(db.String(100), nullable=True)
    academic_years = db.Column(db.Integer, nullable=False, default=4)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    # Relationships
    semesters = db.relationship(
        "Semester", backref="user", lazy=True, cascade="all, delete-orphan"
    )
    grade_settings = db.relationship(
        "GradeSetting", backref="user", lazy=True, cascade="all, delete-orphan"
    )
    events = db.relationship(
        "PlannerEvent", backref="user", lazy=True, cascade="all, delete-orphan"
    )
    journal_entries = db.relationship(
        "JournalEntry", backref="user", lazy=True, cascade="all, delete-orphan"
    )
    target = db.relationship(
        "TargetGoal", backref="user", uselist=False, lazy=True, cascade="all, delete-orphan"
    )
    notifications = db.relationship(
        "Notification", backref="user", lazy=True, cascade="all, delete-orphan"
    )
    notification_settings = db.relationship(
        "NotificationSettings", backref="user", uselist=False, lazy=True,
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "academicLevel": self.academic_level or "",
            "academicYears": self.academic_years,
            "createdAt": _iso(self.created_at),
        }

# -------------------------------
# Grades (GPA) feature
# -------------------------------

class GradeSetting(db.Model):
    """One label of a user's grade scale (e.g. 'A-' -> 3.7)."""
    __table_args__ = (db.UniqueConstraint("user_id", "grade"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    grade = db.Column(db.String(20), nullable=False)
    points = db.Column(db.Float, nullable=False)


class Semester(db.Model):
    """
    Stores academic semesters.

    Attributes:
        id (int): Primary key.
        user_id (int): Foreign key to User.
        year (int): Programme year, starting at 1.
        semester_number (int): 1 or 2 within the year.
        gpa (float): Cached credit-weighted GPA of the courses, rewritten
            whenever a course is added or removed.
        courses (relationship): Courses in insertion order.
    """
    __table_args__ = (db.UniqueConstraint("user_id", "year", "semester"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    semester_number = db.Column("semester", db.Integer, nullable=False)
    gpa = db.Column(db.Float, nullable=False, default=0.0)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    courses = db.relationship(
        "Course", backref="semester", lazy=True, cascade="all, delete-orphan",
        order_by="Course.id",
    )

    @property
    def label(self):
        return f"Year {self.year} - Sem {self.semester_number}"

    def to_dict(self, with_courses=True):
        data = {
            "id": str(self.id),
            "year": self.year,
            "semester": self.semester_number,
            "gpa": self.gpa,
            "createdAt": _iso(self.created_at),
        }
        if with_courses:
            data["courses"] = [course.to_dict() for course in self.courses]
        return data


class Course(db.Model):
    """
    Stores a course taken in a semester.

    `points` is copied from the grade scale when the course is entered and is
    never re-derived afterwards.
    """
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    semester_id = db.Column(db.Integer, db.ForeignKey("semester.id"), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    credits = db.Column(db.Float, nullable=False)
    grade = db.Column(db.String(20), nullable=False)
    points = db.Column(db.Float, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "semesterId": str(self.semester_id),
            "name": self.name,
            "credits": self.credits,
            "grade": self.grade,
            "points": self.points,
        }


class TargetGoal(db.Model):
    """
    A user's single target GPA slot.

    Attributes:
        target_gpa (float): GPA to reach.
        target_semester (str): 'year-semester' key, e.g. '3-2'.
        current_credits (float): Credits earned when the target was saved.
        current_gpa (float): Cumulative GPA when the target was saved.
    """
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, unique=True)
    target_gpa = db.Column(db.Float, nullable=False)
    target_semester = db.Column(db.String(10), nullable=False)
    current_credits = db.Column(db.Float, nullable=False, default=0)
    current_gpa = db.Column(db.Float, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "targetGpa": self.target_gpa,
            "targetSemester": self.target_semester,
            "currentCredits": self.current_credits,
            "currentGpa": self.current_gpa,
            "createdAt": _iso(self.created_at),
        }

# -------------------------------
# Planner events
# -------------------------------

class PlannerEvent(db.Model):
    """
    Stores calendar entries (classes, assignments, deadlines, exams, ...).

    Attributes:
        date (str): ISO date of the event. Ignored for placement when the
            event is recurring.
        type (str): One of consts.EVENT_TYPES.
        time (str): 'HH:MM' or empty.
        priority (str): low, medium or high.
        reminders (list): Lead-time tokens such as '15m' or '1d'.
        is_recurring (bool): True if the event is a weekly template.
        recurring_days (list): Weekday indices, 0 = Sunday .. 6 = Saturday.
    """
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    date = db.Column(db.String(50), nullable=False)
    type = db.Column(db.String(20), nullable=False)
    time = db.Column(db.String(10), nullable=True)
    priority = db.Column(db.String(10), nullable=False, default="medium")
    reminders = db.Column(db.JSON, nullable=False, default=list)
    is_recurring = db.Column(db.Boolean, nullable=False, default=False)
    recurring_days = db.Column(db.JSON, nullable=False, default=list)
    course_code = db.Column(db.String(50), nullable=True)
    location = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description or "",
            "date": self.date,
            "type": self.type,
            "time": self.time or "",
            "priority": self.priority,
            "reminders": list(self.reminders or []),
            "isRecurring": bool(self.is_recurring),
            "recurringDays": list(self.recurring_days or []),
            "courseCode": self.course_code or "",
            "location": self.location or "",
        }

# -------------------------------
# Journal
# -------------------------------

class JournalEntry(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text, nullable=False)
    mood = db.Column(db.String(20), nullable=False)
    tags = db.Column(db.JSON, nullable=False, default=list)
    date = db.Column(db.String(50), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "title": self.title,
            "content": self.content,
            "mood": self.mood,
            "tags": list(self.tags or []),
            "date": self.date,
        }

# -------------------------------
# Notifications
# -------------------------------

class Notification(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(20), nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    urgent = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "read": bool(self.is_read),
            "urgent": bool(self.urgent),
            "timestamp": _iso(self.created_at),
        }


class NotificationSettings(db.Model):
    """
    Per-user notification preferences.

    Attributes:
        assignment_frequency (str): Hours before an assignment is due.
        deadline_timings (list): Hours before a deadline or exam, as strings.
    """
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, unique=True)
    assignments = db.Column(db.Boolean, nullable=False, default=True)
    deadlines = db.Column(db.Boolean, nullable=False, default=True)
    gpa_updates = db.Column(db.Boolean, nullable=False, default=True)
    weekly_reports = db.Column(db.Boolean, nullable=False, default=False)
    assignment_frequency = db.Column(
        db.String(10), nullable=False,
        default=DEFAULT_NOTIFICATION_SETTINGS["assignment_frequency"],
    )
    deadline_timings = db.Column(
        db.JSON, nullable=False,
        default=lambda: list(DEFAULT_NOTIFICATION_SETTINGS["deadline_timings"]),
    )

    def to_dict(self):
        return {
            "assignments": self.assignments,
            "deadlines": self.deadlines,
            "gpaUpdates": self.gpa_updates,
            "weeklyReports": self.weekly_reports,
            "assignmentFrequency": self.assignment_frequency,
            "deadlineTimings": list(self.deadline_timings or []),
        }
