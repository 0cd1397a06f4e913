import numpy as np
import pytest

from gpa_tracker.backend_logic import (
    GRADE_CHOICES,
    credit_value,
    format_gpa,
    grade_point_average,
    grade_point_totals,
    points_for,
    round_2dp_half_up,
    weighted_mean,
    year_for_semester,
)


@pytest.mark.parametrize(
    "grade, points",
    [("O", 10), ("A+", 9), ("A", 8), ("B+", 7), ("B", 6), ("C+", 5), ("C", 4), ("F", 0)],
)
def test_points_for_scale(grade, points):
    assert points_for(grade) == points


@pytest.mark.parametrize("grade", ["Z", "", None, "a+", ["O"]])
def test_points_for_unknown_is_zero(grade):
    assert points_for(grade) == 0


def test_grade_choices_keep_scale_order():
    assert GRADE_CHOICES == ["O", "A+", "A", "B+", "B", "C+", "C", "F"]


@pytest.mark.parametrize("n, year", [(1, 1), (2, 1), (3, 2), (4, 2), (7, 4), (8, 4), (9, 4), (12, 4)])
def test_year_for_semester(n, year):
    assert year_for_semester(n) == year


def test_round_half_up():
    assert round_2dp_half_up(8.125) == 8.13
    assert round_2dp_half_up(8.124) == 8.12
    assert round_2dp_half_up(2 / 3) == 0.67


def test_totals_are_integer_sums():
    total_points, total_credits = grade_point_totals([("O", 4), ("B", 3), ("F", 2)])
    assert (total_points, total_credits) == (40 + 18, 9)
    assert isinstance(total_points, int)


def test_totals_treat_missing_credits_as_zero():
    assert grade_point_totals([("O", None), ("A", 2)]) == (16, 2)


def test_weighted_mean_empty_and_zero_credits():
    mean, credits = weighted_mean(np.zeros((0, 2)))
    assert np.isnan(mean) and credits == 0.0

    mean, credits = weighted_mean(np.array([[10, 0], [9, 0]]))
    assert np.isnan(mean) and credits == 0.0


def test_weighted_mean():
    mean, credits = weighted_mean(np.array([[10, 4], [6, 3]]))
    assert mean == round_2dp_half_up(58 / 7)
    assert credits == 7.0


def test_grade_point_average_zero_credits_is_zero():
    assert grade_point_average([]) == (0.0, 0)
    assert grade_point_average([("O", 0)]) == (0.0, 0)


def test_grade_point_average_trusts_out_of_range_credits():
    # credits are not clamped to 1..10
    assert grade_point_average([("O", 20), ("F", 20)]) == (5.0, 40)


def test_format_gpa():
    assert format_gpa(0.0) == "0.00"
    assert format_gpa(8.5) == "8.50"


@pytest.mark.parametrize(
    "raw, expected",
    [
        (4, 4),
        ("4", 4),
        (" 3 ", 3),
        (4.0, 4),
        ("4.5", 4),
        ("x", 0),
        (None, 0),
        (True, 0),
        (float("nan"), 0),
        ("inf", 0),
        ([4], 0),
    ],
)
def test_credit_value(raw, expected):
    assert credit_value(raw) == expected


def test_totals_accept_credits_as_text():
    assert grade_point_totals([("O", "4"), ("A", "x")]) == (40, 4)
