import pytest

from royalplanner.algorithms import (
    Standing,
    UnknownGradeError,
    build_grade_scale,
    collapse_duplicate_semesters,
    compute_weighted_average,
    cumulative_gpa,
    current_standing,
    parse_semester_key,
    project_target,
    required_future_gpa,
    resolve_points,
    round_gpa,
    scale_ceiling,
    semester_gpa,
    semester_index,
    target_semester_options,
    total_credits,
)
from royalplanner.consts import DEFAULT_GRADE_SCALE


def course(credits, points):
    return {"credits": credits, "points": points}


def semester(year, number, courses=(), id=None):
    return {"id": id, "year": year, "semester_number": number, "courses": list(courses)}


# ----------------------------------------------------
#                  WEIGHTED AVERAGE
# ----------------------------------------------------

def test_weighted_average_of_nothing_is_zero():
    assert compute_weighted_average([]) == 0
    assert compute_weighted_average([course(0, 4.0), course(0, 2.0)]) == 0


@pytest.mark.parametrize(
    "items, expected",
    [
        ([course(3, 4.0)], 4.0),
        ([course(3, 4.0), course(3, 2.0)], 3.0),
        ([course(3, 4.0), course(4, 3.0)], 24 / 7),
        ([course(1.5, 3.7), course(4.5, 2.3)], (1.5 * 3.7 + 4.5 * 2.3) / 6),
    ],
)
def test_weighted_average_weighs_by_credits(items, expected):
    assert compute_weighted_average(items) == pytest.approx(expected)


def test_weighted_average_stays_within_point_range():
    items = [course(3, 1.7), course(2, 3.3), course(5, 2.7)]
    result = compute_weighted_average(items)
    assert 1.7 <= result <= 3.3


def test_weighted_average_reads_attributes():
    class Row:
        def __init__(self, credits, points):
            self.credits = credits
            self.points = points

    assert compute_weighted_average([Row(2, 4.0), Row(2, 3.0)]) == pytest.approx(3.5)


def test_semester_gpa_matches_worked_example():
    # A (4.0, 3 credits) and B (3.0, 4 credits)
    assert round_gpa(semester_gpa([course(3, 4.0), course(4, 3.0)])) == 3.43


# ----------------------------------------------------
#                  CUMULATIVE GPA
# ----------------------------------------------------

def test_cumulative_gpa_is_over_all_courses_not_semester_mean():
    semesters = [
        semester(1, 1, [course(3, 4.0)]),
        semester(1, 2, [course(30, 2.0)]),
    ]
    cumulative = cumulative_gpa(semesters)

    assert cumulative == pytest.approx(72 / 33)
    assert round_gpa(cumulative) == 2.18
    # The mean of the two semester GPAs would be 3.0
    assert cumulative != pytest.approx(3.0)


def test_total_credits_sums_every_course():
    semesters = [
        semester(1, 1, [course(3, 4.0), course(4, 3.0)]),
        semester(1, 2, []),
        semester(2, 1, [course(5, 2.0)]),
    ]
    assert total_credits(semesters) == 12


# ----------------------------------------------------
#                  GRADE SCALE
# ----------------------------------------------------

def test_empty_rows_fall_back_to_default_scale():
    assert build_grade_scale([]) == DEFAULT_GRADE_SCALE


def test_custom_rows_replace_default_scale():
    scale = build_grade_scale([{"grade": "P", "points": 4.0}, {"grade": "NP", "points": 0.0}])
    assert scale == {"P": 4.0, "NP": 0.0}


def test_resolve_points_unknown_grade():
    with pytest.raises(UnknownGradeError):
        resolve_points(DEFAULT_GRADE_SCALE, "Z")
    # Still a KeyError for callers that only know about mappings
    with pytest.raises(KeyError):
        resolve_points({}, "A")


def test_resolve_points_known_grade():
    assert resolve_points(DEFAULT_GRADE_SCALE, "B+") == 3.3


def test_scale_ceiling():
    assert scale_ceiling(DEFAULT_GRADE_SCALE) == 4.0
    assert scale_ceiling({"A": 5.0, "B": 4.0}) == 5.0
    assert scale_ceiling({}) == 4.0


# ----------------------------------------------------
#                  SEMESTER INDEXING
# ----------------------------------------------------

@pytest.mark.parametrize(
    "year, number, expected",
    [(1, 1, 1), (1, 2, 2), (2, 1, 3), (2, 2, 4), (4, 2, 8)],
)
def test_semester_index(year, number, expected):
    assert semester_index(year, number) == expected


def test_parse_semester_key():
    assert parse_semester_key("3-2") == (3, 2)


@pytest.mark.parametrize("key", ["abc", "3", "0-1", "2-3", "-1-1", ""])
def test_parse_semester_key_rejects_malformed(key):
    with pytest.raises(ValueError):
        parse_semester_key(key)


def test_current_standing_uses_latest_semester_with_courses():
    semesters = [
        semester(1, 1, [course(15, 3.0)]),
        semester(1, 2, [course(15, 3.0)]),
        semester(2, 1, []),  # created but nothing recorded yet
    ]
    standing = current_standing(semesters)
    assert standing.semester_index == 2
    assert standing.credits == 30
    assert standing.gpa == pytest.approx(3.0)


def test_current_standing_without_courses():
    standing = current_standing([semester(1, 1)])
    assert standing == Standing(gpa=0, credits=0, semester_index=1)


def test_target_semester_options_after_current():
    options = target_semester_options(current_index=2, academic_years=2)
    assert [o["value"] for o in options] == ["2-1", "2-2"]
    assert options[0]["label"] == "Year 2 - Semester 1"


def test_target_semester_options_empty_at_end_of_programme():
    assert target_semester_options(current_index=8, academic_years=4) == []


# ----------------------------------------------------
#                  TARGET PROJECTION
# ----------------------------------------------------

def test_projection_round_trip_reaches_target():
    projection = required_future_gpa(
        Standing(gpa=3.0, credits=30), target_gpa=3.5, remaining_semesters=2, credits_per_semester=15
    )
    assert projection.future_credits == 30
    assert projection.required_average_gpa == pytest.approx(4.0)
    assert projection.is_achievable

    blended = (3.0 * 30 + projection.required_average_gpa * projection.future_credits) / 60
    assert blended == pytest.approx(3.5)


def test_projection_unachievable_target():
    projection = required_future_gpa(
        {"gpa": 2.0, "credits": 60}, target_gpa=3.9, remaining_semesters=1, credits_per_semester=15
    )
    assert projection.required_average_gpa == pytest.approx(11.5)
    assert not projection.is_achievable


def test_projection_negative_requirement_is_not_achievable():
    projection = required_future_gpa(
        Standing(gpa=3.9, credits=90), target_gpa=3.0, remaining_semesters=1, credits_per_semester=15
    )
    assert projection.required_average_gpa < 0
    assert not projection.is_achievable


def test_projection_respects_scale_ceiling():
    args = (Standing(gpa=3.0, credits=30), 3.5, 2, 15)
    assert required_future_gpa(*args, max_gpa=4.0).is_achievable
    assert not required_future_gpa(*args, max_gpa=3.7).is_achievable


@pytest.mark.parametrize("remaining", [0, -1, -5])
def test_no_projection_when_target_is_not_in_the_future(remaining):
    assert required_future_gpa(Standing(3.0, 30), 3.5, remaining, 15) is None


def test_projection_without_future_credits():
    projection = required_future_gpa(Standing(3.0, 30), 3.5, 2, 0)
    assert projection.future_credits == 0
    assert projection.required_average_gpa == 0


def test_projection_to_dict_keys():
    data = required_future_gpa(Standing(3.0, 30), 3.5, 2, 15).to_dict()
    assert set(data) == {
        "remainingSemesters",
        "futureCredits",
        "requiredAverageGpa",
        "isAchievable",
        "creditsPerSemester",
    }


def test_project_target_against_semesters():
    semesters = [
        semester(1, 1, [course(15, 3.0)]),
        semester(1, 2, [course(15, 3.0)]),
    ]
    standing, projection = project_target(semesters, 3.5, "2-2", 15)
    assert standing.semester_index == 2
    assert projection.remaining_semesters == 2
    assert projection.required_average_gpa == pytest.approx(4.0)


def test_project_target_in_the_past():
    semesters = [semester(2, 1, [course(15, 3.0)])]
    standing, projection = project_target(semesters, 3.5, "1-2", 15)
    assert standing.semester_index == 3
    assert projection is None


# ----------------------------------------------------
#                  DUPLICATE SEMESTERS
# ----------------------------------------------------

def test_collapse_duplicate_semesters_keeps_lowest_id():
    semesters = [
        semester(1, 1, id=5),
        semester(1, 1, id=2),
        semester(1, 2, id=3),
        semester(1, 1, id=9),
    ]
    plan = collapse_duplicate_semesters(semesters)
    assert plan == [{"year": 1, "semester": 1, "keep": 2, "remove": [5, 9]}]


def test_collapse_duplicate_semesters_nothing_to_do():
    assert collapse_duplicate_semesters([semester(1, 1, id=1), semester(1, 2, id=2)]) == []
