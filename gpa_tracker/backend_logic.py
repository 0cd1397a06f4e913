import math
from typing import Iterable, List, Optional, Tuple
import numpy as np
from decimal import Decimal, ROUND_HALF_UP


# ------------------------
# Grade scale
# ------------------------
GRADE_POINTS = {
    "O": 10,
    "A+": 9,
    "A": 8,
    "B+": 7,
    "B": 6,
    "C+": 5,
    "C": 4,
    "F": 0,
}

GRADE_CHOICES: List[str] = list(GRADE_POINTS.keys())

DEFAULT_GRADE = "O"
DEFAULT_CREDITS = 4
MAX_YEAR = 4


def points_for(grade) -> int:
    """Grade points for a letter grade; anything off the scale is worth 0."""
    try:
        return GRADE_POINTS.get(grade, 0)
    except TypeError:
        # unhashable junk from a hand-edited store
        return 0


def year_for_semester(semester_number: int) -> int:
    # Sem 1-2 -> year 1, 3-4 -> year 2, ... capped at the 4th year
    return min(MAX_YEAR, math.ceil(semester_number / 2))


# ------------------------
# Core logic
# ------------------------
def round_2dp_half_up(x: float) -> float:
    return float(Decimal(str(x)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def credit_value(credits) -> int:
    """Stored credits -> whole credit hours. "4", 4.0 and 4 all give 4; anything else is 0."""
    if credits is None or isinstance(credits, bool):
        return 0
    try:
        value = float(credits.strip()) if isinstance(credits, str) else float(credits)
        if math.isnan(value):
            return 0
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return 0


def points_credits_array(pairs: Iterable[Tuple[str, Optional[int]]]) -> np.ndarray:
    """
    pairs: iterable of (grade symbol, credits)
    returns: Nx2 integer numpy array -> [grade points, credits]
    """
    rows = [(points_for(grade), credit_value(credits)) for grade, credits in pairs]
    if not rows:
        return np.zeros((0, 2), dtype=np.int64)
    return np.array(rows, dtype=np.int64)


def grade_point_totals(pairs: Iterable[Tuple[str, Optional[int]]]) -> Tuple[int, int]:
    """
    Integer totals over (grade, credits) pairs.

    Returns
    -------
    (total_points, total_credits)
        total_points is sum(points * credits), total_credits is sum(credits).
    """
    gc = points_credits_array(pairs)
    if gc.size == 0:
        return 0, 0
    total_points = int(np.dot(gc[:, 0], gc[:, 1]))
    total_credits = int(gc[:, 1].sum())
    return total_points, total_credits


def weighted_mean(gc: np.ndarray) -> Tuple[float, float]:
    """
    gc: Nx2 numpy array -> [grade points, credit]
    returns: (credit-weighted mean grade point, total credits)
    """
    if gc.size == 0:
        return np.nan, 0.0

    points = gc[:, 0].astype(np.int64)
    credits = gc[:, 1].astype(np.int64)
    total_credits = int(credits.sum())
    if total_credits == 0:
        return np.nan, 0.0

    # integer numerator, a single division at the end
    mean = int(np.dot(points, credits)) / total_credits
    return round_2dp_half_up(mean), float(total_credits)


def grade_point_average(pairs: Iterable[Tuple[str, Optional[int]]]) -> Tuple[float, int]:
    """
    Credit-weighted grade point average of (grade, credits) pairs.

    Returns ``(0.0, 0)`` when there are no credits, so callers can always
    show a number.
    """
    gc = points_credits_array(pairs)
    mean, total_credits = weighted_mean(gc)
    if np.isnan(mean):
        return 0.0, int(total_credits)
    return mean, int(total_credits)


def format_gpa(value: float) -> str:
    return f"{value:.2f}"
