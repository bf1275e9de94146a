"""Console and YAML reports for an evaluation session."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from rich.console import Console
from rich.table import Table

from defense_grader.libs.scoring import round_for_display
from .models import RATER_COUNT, EvaluationSession, SessionSummary, SheetSummary
from .summary import calculation_detail

LOG = logging.getLogger(__name__)

PLACEHOLDER = "-.--"

STUDENT_LABELS = (
    ("name", "Name"),
    ("student_id", "Student ID"),
    ("department", "Department"),
    ("thesis_title", "Thesis title"),
)


def format_score(value: float, show: bool, decimals: int = 2) -> str:
    """Rounded score, or the placeholder while the value is not defined yet."""
    if not show:
        return PLACEHOLDER
    return f"{round_for_display(value, decimals):.{decimals}f}"


def sheet_status(sheet: SheetSummary) -> str:
    if sheet.is_complete:
        return "complete"
    return f"{sheet.remaining} left"


def render_summary(console: Console, session: EvaluationSession, summary: SessionSummary,
                   decimals: int = 2) -> None:
    """Print the student details, rater comparison and final result."""
    student = session.student
    if any(getattr(student, field) for field, _ in STUDENT_LABELS):
        info = Table(title="Student", show_header=False)
        info.add_column("Field", style="cyan")
        info.add_column("Value")
        for field, label in STUDENT_LABELS:
            info.add_row(label, getattr(student, field) or "-")
        console.print(info)

    table = Table(title="Rater Comparison")
    table.add_column("Rater", style="cyan")
    table.add_column("Filled", justify="right")
    table.add_column("Sheet 1 avg", justify="right")
    table.add_column("Sheet 2 avg", justify="right")
    table.add_column("Weighted", justify="right")
    table.add_column("Status")

    for rater in summary.raters:
        table.add_row(
            rater.name,
            f"{rater.filled}/{rater.sheet1.total + rater.sheet2.total}",
            format_score(rater.sheet1_average, rater.sheet1.is_complete, decimals),
            format_score(rater.sheet2_average, rater.sheet2.is_complete, decimals),
            format_score(rater.weighted_score, rater.is_complete, decimals),
            "[green]complete[/green]" if rater.is_complete
            else f"[red]incomplete[/red] (sheet 1: {sheet_status(rater.sheet1)}, "
                 f"sheet 2: {sheet_status(rater.sheet2)})",
        )

    console.print(table)
    console.print(f"Filled {summary.filled_count}/{summary.total_items} items "
                  f"({summary.progress:.0f}%)")

    if summary.can_calculate_final:
        grade = summary.grade
        console.print("\n[bold cyan]Final Score[/bold cyan]")
        console.print(f"  Score (out of 5): {format_score(summary.final_score, True, decimals)}")
        console.print(f"  Percentage: {format_score(summary.percent, True, decimals)}%")
        console.print(f"  GPA: {grade.gpa:g} ({grade.letter_grade})")
        console.print(f"  [bold]{grade.meaning}[/bold]")
        console.print(f"  [dim]{calculation_detail(summary, decimals)}[/dim]")
    else:
        console.print("\n[yellow]Complete all three raters to calculate the final score.[/yellow]")
        console.print(f"Raters complete: {summary.completed_raters}/{RATER_COUNT}")


def summary_to_yaml_dict(session: EvaluationSession, summary: SessionSummary,
                         decimals: int = 2) -> Dict[str, Any]:
    """Convert a session summary to a dictionary suitable for YAML serialization.

    Values that are not defined yet (incomplete sheets or raters) are None.
    """
    def shown(value: float, defined: bool) -> Optional[float]:
        return round_for_display(value, decimals) if defined else None

    raters = []
    for rater in summary.raters:
        raters.append({
            'name': rater.name,
            'sheet1': {
                'filled': rater.sheet1.filled,
                'total': rater.sheet1.total,
                'sum': rater.sheet1.sum,
                'max_sum': rater.sheet1.max_sum,
                'average': shown(rater.sheet1_average, rater.sheet1.is_complete),
            },
            'sheet2': {
                'filled': rater.sheet2.filled,
                'total': rater.sheet2.total,
                'sum': rater.sheet2.sum,
                'max_sum': rater.sheet2.max_sum,
                'average': shown(rater.sheet2_average, rater.sheet2.is_complete),
            },
            'weighted_score': shown(rater.weighted_score, rater.is_complete),
            'is_complete': rater.is_complete,
        })

    result = {
        'student': session.student.model_dump(),
        'raters': raters,
        'progress': {
            'filled': summary.filled_count,
            'total': summary.total_items,
        },
        'completed_raters': summary.completed_raters,
    }
    if summary.can_calculate_final:
        result['final'] = {
            'score': round_for_display(summary.final_score, decimals),
            'percent': round_for_display(summary.percent, decimals),
            'gpa': summary.grade.gpa,
            'letter_grade': summary.grade.letter_grade,
            'meaning': summary.grade.meaning,
            'calculation': calculation_detail(summary, decimals),
        }
    return result


def write_summary_yaml(session: EvaluationSession, summary: SessionSummary,
                       output_path: Path, decimals: int = 2) -> Path:
    """Write the YAML report, stamped with the time it was generated."""
    data = {'generated_at': datetime.now().isoformat(timespec='seconds')}
    data.update(summary_to_yaml_dict(session, summary, decimals))
    output_path = Path(output_path)
    with open(output_path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
    LOG.info("Wrote summary report to %s", output_path)
    return output_path
