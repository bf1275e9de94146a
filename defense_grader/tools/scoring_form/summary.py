"""Derive per-rater and committee scores from an evaluation session."""

from typing import List, Sequence

from defense_grader.libs.scoring import (
    MAX_SCORE,
    average,
    classify,
    count_filled,
    final_score,
    round_for_display,
    to_percent,
    valid_scores,
    weighted_score,
)
from .models import (
    RATER_COUNT,
    SHEET_LENGTHS,
    EvaluationSession,
    RaterRecord,
    RaterSummary,
    SessionSummary,
    SheetSummary,
)

DEFAULT_NAME_TEMPLATE = "Rater #{number}"


def rater_name(index: int, name_template: str = DEFAULT_NAME_TEMPLATE) -> str:
    """Display name for the rater at zero-based ``index``."""
    return name_template.format(number=index + 1)


def summarize_sheet(sheet: Sequence[float], expected_length: int) -> SheetSummary:
    """Summarize one sheet; the average is only reported once it is complete."""
    scores = valid_scores(sheet)
    is_complete = len(scores) == expected_length
    return SheetSummary(
        filled=len(scores),
        total=expected_length,
        sum=sum(scores),
        max_sum=expected_length * MAX_SCORE,
        average=average(scores) if is_complete else 0,
        is_complete=is_complete,
    )


def summarize_rater(record: RaterRecord, name: str) -> RaterSummary:
    sheet1 = summarize_sheet(record.sheet1, SHEET_LENGTHS["sheet1"])
    sheet2 = summarize_sheet(record.sheet2, SHEET_LENGTHS["sheet2"])
    is_complete = sheet1.is_complete and sheet2.is_complete
    return RaterSummary(
        name=name,
        sheet1=sheet1,
        sheet2=sheet2,
        weighted_score=weighted_score(sheet1.average, sheet2.average) if is_complete else 0,
        is_complete=is_complete,
    )


def summarize_session(session: EvaluationSession,
                      name_template: str = DEFAULT_NAME_TEMPLATE) -> SessionSummary:
    """Compute every derived score for ``session``.

    The final score, percentage and grade are only filled in when all three
    raters have completed both sheets.
    """
    raters: List[RaterSummary] = [
        summarize_rater(record, rater_name(i, name_template))
        for i, record in enumerate(session.raters)
    ]
    completed = [r for r in raters if r.is_complete]
    can_calculate_final = len(completed) == RATER_COUNT

    final = final_score([r.weighted_score for r in completed]) if can_calculate_final else 0
    all_sheets = [sheet for record in session.raters for sheet in (record.sheet1, record.sheet2)]

    return SessionSummary(
        raters=raters,
        completed_raters=len(completed),
        can_calculate_final=can_calculate_final,
        final_score=final,
        percent=to_percent(final) if can_calculate_final else 0,
        grade=classify(final) if can_calculate_final else None,
        filled_count=count_filled(all_sheets),
    )


def calculation_detail(summary: SessionSummary, decimals: int = 2) -> str:
    """Human-readable formula for the final score, e.g. ``(4.21 + 3.95 + 4.47) ÷ 3 = 4.21``."""
    terms = " + ".join(
        f"{round_for_display(r.weighted_score, decimals):g}" for r in summary.raters
    )
    final = round_for_display(summary.final_score, decimals)
    return f"({terms}) ÷ {len(summary.raters)} = {final:g}"
