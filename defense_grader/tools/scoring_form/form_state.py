"""Editable state of the scoring form."""

import logging
import math
from typing import Optional, Union

from defense_grader.libs.scoring import is_valid_score
from .models import (
    RATER_COUNT,
    EvaluationSession,
    RaterRecord,
    SessionSummary,
    StudentInfo,
    empty_sheet,
    normalize_sheet_name,
)
from .summary import DEFAULT_NAME_TEMPLATE, summarize_session

LOG = logging.getLogger(__name__)

STUDENT_FIELDS = tuple(StudentInfo.model_fields)


def parse_score_input(value: Union[str, int, float, None]) -> Union[int, float]:
    """Turn raw form input into a stored score; blank input means unscored (0)."""
    if value is None:
        return 0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"Score must be a whole number, got {value!r}")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Score must be a number, got {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Score must be a finite number, got {value!r}")
    return value


class FormState:
    """Owns one EvaluationSession and applies the edits made on the form.

    Summaries are recomputed from the session on every call to summary().
    """

    def __init__(self, session: Optional[EvaluationSession] = None,
                 name_template: str = DEFAULT_NAME_TEMPLATE):
        self.session = session if session is not None else EvaluationSession()
        self.name_template = name_template

    def _rater(self, rater_index: int) -> RaterRecord:
        if not 0 <= rater_index < RATER_COUNT:
            raise IndexError(f"Rater index {rater_index} out of range (0-{RATER_COUNT - 1})")
        return self.session.raters[rater_index]

    def update_student(self, **fields: str) -> StudentInfo:
        """Set any of name, student_id, department and thesis_title."""
        unknown = set(fields) - set(STUDENT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown student field(s): {', '.join(sorted(unknown))}")
        for field, value in fields.items():
            setattr(self.session.student, field, "" if value is None else str(value))
        LOG.debug("Updated student fields: %s", ", ".join(sorted(fields)))
        return self.session.student

    def set_score(self, rater_index: int, sheet: Union[str, int], item_index: int,
                  value: Union[str, int, float, None]) -> Union[int, float]:
        """Store one score. Out-of-range values are kept but never counted."""
        scores = self._rater(rater_index).sheet(sheet)
        if not 0 <= item_index < len(scores):
            raise IndexError(f"Item index {item_index} out of range (0-{len(scores) - 1})")
        score = parse_score_input(value)
        if score != 0 and not is_valid_score(score):
            LOG.warning("Rater %d %s item %d: %r is not a valid score and will be ignored",
                        rater_index + 1, normalize_sheet_name(sheet), item_index + 1, score)
        scores[item_index] = score
        LOG.debug("Rater %d %s item %d = %r",
                  rater_index + 1, normalize_sheet_name(sheet), item_index + 1, score)
        return score

    def fill_sheet(self, rater_index: int, sheet: Union[str, int],
                   value: Union[str, int, float, None]) -> None:
        """Give every item of a sheet the same score."""
        name = normalize_sheet_name(sheet)
        record = self._rater(rater_index)
        score = parse_score_input(value)
        if score != 0 and not is_valid_score(score):
            LOG.warning("Rater %d %s: %r is not a valid score and will be ignored",
                        rater_index + 1, name, score)
        setattr(record, name, [score] * len(getattr(record, name)))
        LOG.debug("Filled rater %d %s with %r", rater_index + 1, name, score)

    def clear_sheet(self, rater_index: int, sheet: Union[str, int]) -> None:
        name = normalize_sheet_name(sheet)
        setattr(self._rater(rater_index), name, empty_sheet(name))
        LOG.debug("Cleared rater %d %s", rater_index + 1, name)

    def reset(self) -> None:
        """Discard all student details and scores."""
        self.session = EvaluationSession()
        LOG.info("Form reset")

    def load(self, session: EvaluationSession) -> None:
        self.session = session

    def summary(self) -> SessionSummary:
        return summarize_session(self.session, self.name_template)
