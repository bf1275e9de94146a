"""
Score aggregation for thesis defense evaluations.

Pure functions that turn raw rubric scores into averages, a weighted score
per rater, the committee's final score, a percentage and a grade tier.
Values keep full precision throughout; round_for_display() is applied only
when a number is shown to a person.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

SHEET1_WEIGHT = 0.35
SHEET2_WEIGHT = 0.65

# A score of 0 means "not scored yet" and never counts as filled.
MIN_SCORE = 1
MAX_SCORE = 5

PERCENT_FACTOR = 20


@dataclass(frozen=True)
class GradeInfo:
    """GPA tier for a final score."""

    gpa: float
    letter_grade: str
    meaning: str

    def to_dict(self) -> dict:
        return {
            "gpa": self.gpa,
            "letter_grade": self.letter_grade,
            "meaning": self.meaning,
        }


# (minimum percentage, grade), checked top-down
GRADE_TABLE: Tuple[Tuple[float, GradeInfo], ...] = (
    (85.0, GradeInfo(4.0, "A", "Excellent")),
    (80.0, GradeInfo(3.5, "B+", "Very Good")),
    (75.0, GradeInfo(3.0, "B", "Good")),
    (70.0, GradeInfo(2.5, "C+", "Fairly Good")),
    (65.0, GradeInfo(2.0, "C", "Fair")),
    (60.0, GradeInfo(1.5, "D+", "Poor")),
    (50.0, GradeInfo(1.0, "D", "Very Poor")),
)
FAILING_GRADE = GradeInfo(0.0, "F", "Fail")


def average(values: Optional[Sequence[float]]) -> float:
    """Arithmetic mean of ``values``, or 0 when there are none."""
    if not values:
        return 0
    return sum(values) / len(values)


def weighted_score(sheet1_average: float, sheet2_average: float) -> float:
    """Combine one rater's sheet averages at the fixed 35% / 65% weights.

    Inputs are trusted to be on the 0-5 scale; callers only pass averages of
    complete sheets.
    """
    return sheet1_average * SHEET1_WEIGHT + sheet2_average * SHEET2_WEIGHT


def final_score(weighted_scores: Optional[Sequence[float]]) -> float:
    """Unweighted mean of the raters' weighted scores (0 for no raters)."""
    return average(weighted_scores)


def to_percent(score: float) -> float:
    """Rescale a 0-5 score to 0-100. Out-of-range values pass through."""
    return score * PERCENT_FACTOR


def round_for_display(value: float, decimals: int = 2) -> float:
    """Round ``value`` to ``decimals`` places for presentation.

    Halves round towards positive infinity. Never feed the result back into
    a calculation.
    """
    if not math.isfinite(value):
        return value
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def is_valid_score(score) -> bool:
    """True if ``score`` is a whole number between MIN_SCORE and MAX_SCORE."""
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return False
    if isinstance(score, float) and not score.is_integer():
        return False
    return MIN_SCORE <= score <= MAX_SCORE


def valid_scores(sheet: Optional[Iterable[float]]) -> List[float]:
    """The entries of one sheet that pass is_valid_score(), in order."""
    if sheet is None:
        return []
    return [score for score in sheet if is_valid_score(score)]


def count_filled(sheets: Iterable[Optional[Iterable[float]]]) -> int:
    """Count valid scores across all ``sheets`` (drives the progress meter)."""
    return sum(len(valid_scores(sheet)) for sheet in sheets)


def validate_all_scores(sheets: Iterable[Iterable[float]]) -> bool:
    """True if every entry of every sheet is a valid score."""
    for sheet in sheets:
        for score in sheet:
            if not is_valid_score(score):
                return False
    return True


def classify(score: float) -> GradeInfo:
    """Map a 0-5 score to its GPA tier via its percentage.

    Tier lower bounds are inclusive, so exactly 85% is an A.
    """
    percentage = to_percent(score)
    for minimum, grade in GRADE_TABLE:
        if percentage >= minimum:
            return grade
    return FAILING_GRADE
