FROM_EMAIL = "Royal Planner <noreply@royalplanner.app>"

# Scale ceiling used when a grade scale is empty or not supplied
GPA_SCALE_MAX = 4.0

DEFAULT_GRADE_SCALE = {
    "A+": 4.0, "A": 4.0, "A-": 3.7,
    "B+": 3.3, "B": 3.0, "B-": 2.7,
    "C+": 2.3, "C": 2.0, "C-": 1.7,
    "D+": 1.3, "D": 1.0, "F": 0.0,
}

SEMESTERS_PER_YEAR = 2

# -------------------------------
# Planner events
# -------------------------------

EVENT_TYPES = ("class", "assignment", "deadline", "quiz", "exam", "study")
EVENT_PRIORITIES = ("low", "medium", "high")

# Estimated hours of work per event, keyed by workload category
EVENT_HOURS = {
    "assignments": 3,
    "exams": 4,          # exams and quizzes
    "deadlines": 6,
    "classes": 2,
    "study": 2,
    "other": 2,
}

# Weekly difficulty: first threshold the total hours strictly exceed wins
DIFFICULTY_THRESHOLDS = (
    (20, "critical"),
    (15, "high"),
    (10, "medium"),
)

# Event types that count as due dates for clustering
CLUSTER_TYPES = ("deadline", "assignment", "exam")

# Same-day cluster severity: first minimum count reached wins
CLUSTER_SEVERITY = (
    (4, "critical"),
    (3, "high"),
    (2, "medium"),
)

# More than this many due dates in the next 7 days raises the weekly alert
WEEKLY_ALERT_THRESHOLD = 3

DEFAULT_HORIZON_WEEKS = 16

# -------------------------------
# Journal
# -------------------------------

MOODS = (
    "motivated", "stressed", "happy", "anxious",
    "confident", "overwhelmed", "focused", "tired",
)

# -------------------------------
# Notifications
# -------------------------------

NOTIFICATION_TYPES = ("assignment", "deadline", "gpa", "reminder", "system")

DEFAULT_NOTIFICATION_SETTINGS = {
    "assignments": True,
    "deadlines": True,
    "gpa_updates": True,
    "weekly_reports": False,
    "assignment_frequency": "24",     # hours before an assignment is due
    "deadline_timings": ["2", "24"],  # hours before a deadline/exam
}
