"""
GPA calculations.

Pure functions over in-memory course and semester records. Records may be
ORM objects or plain dicts; anything exposing `credits` and `points` works.
No function here touches the database or validates its input.
"""

from dataclasses import dataclass, asdict
from itertools import groupby

from .consts import DEFAULT_GRADE_SCALE, GPA_SCALE_MAX, SEMESTERS_PER_YEAR


class UnknownGradeError(KeyError):
    """The grade label is not part of the user's grade scale."""


def _field(record, name, default=None):
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


# --- Grade points ---

def compute_weighted_average(items):
    """
    Credit-weighted average of the points of `items`.

    Args:
        items (iterable): Records with `credits` and `points`.

    Returns:
        float: sum(points * credits) / sum(credits), or exactly 0 when the
            total credits are 0 (including an empty input).
    """
    total_points = 0.0
    total_credits = 0.0
    for item in items:
        credits = _field(item, "credits", 0)
        total_points += _field(item, "points", 0) * credits
        total_credits += credits
    if total_credits == 0:
        return 0
    return total_points / total_credits


def build_grade_scale(rows):
    """
    Build a {label: points} mapping from stored grade settings.

    Falls back to the default scale when the user has no rows.
    """
    scale = {_field(row, "grade"): _field(row, "points") for row in rows}
    return scale or dict(DEFAULT_GRADE_SCALE)


def resolve_points(scale, grade):
    """
    Look up the point value of a grade label.

    Raises:
        UnknownGradeError: If `grade` is not in `scale`.
    """
    try:
        return scale[grade]
    except KeyError:
        raise UnknownGradeError(grade)


def scale_ceiling(scale):
    """Highest point value of a scale; GPA_SCALE_MAX for an empty one."""
    return max(scale.values()) if scale else GPA_SCALE_MAX


def round_gpa(value):
    return round(value, 2)


# --- Academic progress ---

@dataclass
class Standing:
    """
    Where a student currently stands.

    Attributes:
        gpa: Cumulative GPA over every recorded course.
        credits: Total credits over every recorded course.
        semester_index: Index of the latest semester that has courses.
    """
    gpa: float
    credits: float
    semester_index: int = 1


@dataclass
class Projection:
    """Result of a target GPA projection."""
    remaining_semesters: int
    future_credits: float
    required_average_gpa: float
    is_achievable: bool
    credits_per_semester: float

    def to_dict(self):
        data = asdict(self)
        return {
            "remainingSemesters": data["remaining_semesters"],
            "futureCredits": data["future_credits"],
            "requiredAverageGpa": data["required_average_gpa"],
            "isAchievable": data["is_achievable"],
            "creditsPerSemester": data["credits_per_semester"],
        }


def semester_index(year, semester_number):
    """
    Linear position of a semester, assuming two semesters per year.

    Year 1 Sem 1 -> 1, Year 1 Sem 2 -> 2, Year 2 Sem 1 -> 3, ...
    """
    return (year - 1) * SEMESTERS_PER_YEAR + semester_number


def parse_semester_key(key):
    """
    Turn a 'year-semester' key such as '3-2' into (year, semester_number).

    Raises:
        ValueError: If the key is malformed.
    """
    year, _, number = str(key).partition("-")
    year, number = int(year), int(number)
    if year < 1 or number not in (1, 2):
        raise ValueError(f"Invalid semester key: {key!r}")
    return year, number


def semester_courses(semester):
    return _field(semester, "courses", None) or []


def semester_gpa(courses):
    return compute_weighted_average(courses)


def cumulative_gpa(semesters):
    """
    GPA over the union of all courses in `semesters`.

    This is NOT the mean of the semester GPAs: a 3-credit semester and a
    30-credit semester do not weigh the same.
    """
    return compute_weighted_average(
        course for semester in semesters for course in semester_courses(semester)
    )


def total_credits(semesters):
    return sum(
        _field(course, "credits", 0)
        for semester in semesters
        for course in semester_courses(semester)
    )


def current_standing(semesters):
    """
    Summarise recorded semesters into a Standing.

    The current semester is the latest one (by index) holding at least one
    course; it defaults to 1 when nothing has been recorded yet.
    """
    active = [
        semester_index(_field(s, "year"), _field(s, "semester_number"))
        for s in semesters
        if semester_courses(s)
    ]
    return Standing(
        gpa=cumulative_gpa(semesters),
        credits=total_credits(semesters),
        semester_index=max(active) if active else 1,
    )


def required_future_gpa(current, target_gpa, remaining_semesters,
                        credits_per_semester, max_gpa=GPA_SCALE_MAX):
    """
    Average GPA needed over the remaining semesters to reach `target_gpa`.

    Solves (current.gpa * current.credits + x * future) /
    (current.credits + future) == target_gpa for x.

    Args:
        current: Record with `gpa` and `credits` (a Standing or a dict).
        target_gpa (float): Cumulative GPA to reach.
        remaining_semesters (int): Target index minus current index.
        credits_per_semester (float): Expected load per future semester.
        max_gpa (float): Ceiling of the active grade scale.

    Returns:
        Projection | None: None when the target semester is not in the
            future, since no projection is possible.
    """
    if remaining_semesters <= 0:
        return None

    current_gpa = _field(current, "gpa", 0)
    current_credits = _field(current, "credits", 0)

    future_credits = remaining_semesters * credits_per_semester
    if future_credits == 0:
        required = 0
    else:
        required_total_points = target_gpa * (current_credits + future_credits)
        required = (required_total_points - current_gpa * current_credits) / future_credits

    return Projection(
        remaining_semesters=remaining_semesters,
        future_credits=future_credits,
        required_average_gpa=required,
        is_achievable=0 <= required <= max_gpa,
        credits_per_semester=credits_per_semester,
    )


def project_target(semesters, target_gpa, target_semester, credits_per_semester,
                   max_gpa=GPA_SCALE_MAX):
    """
    Projection for a saved target against the live semester records.

    Args:
        target_semester (str): 'year-semester' key of the target.

    Returns:
        tuple: (Standing, Projection | None)
    """
    standing = current_standing(semesters)
    target_index = semester_index(*parse_semester_key(target_semester))
    projection = required_future_gpa(
        standing,
        target_gpa,
        target_index - standing.semester_index,
        credits_per_semester,
        max_gpa=max_gpa,
    )
    return standing, projection


def target_semester_options(current_index, academic_years):
    """
    Selectable target semesters after `current_index`, up to the end of
    the programme.
    """
    options = []
    for index in range(current_index + 1, academic_years * SEMESTERS_PER_YEAR + 1):
        year = (index + 1) // SEMESTERS_PER_YEAR
        number = 2 if index % SEMESTERS_PER_YEAR == 0 else 1
        options.append({
            "value": f"{year}-{number}",
            "label": f"Year {year} - Semester {number}",
        })
    return options


def collapse_duplicate_semesters(semesters):
    """
    Plan the cleanup of semesters sharing the same (year, semester_number).

    The semester with the lowest id in each group is kept.

    Returns:
        list[dict]: One entry per duplicated group:
            {"year", "semester", "keep": id, "remove": [ids]}
    """
    def natural_key(s):
        return (_field(s, "year"), _field(s, "semester_number"))

    plan = []
    ordered = sorted(semesters, key=lambda s: (natural_key(s), _field(s, "id")))
    for (year, number), group in groupby(ordered, key=natural_key):
        ids = [_field(s, "id") for s in group]
        if len(ids) > 1:
            plan.append({"year": year, "semester": number, "keep": ids[0], "remove": ids[1:]})
    return plan
