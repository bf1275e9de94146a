"""Pydantic models for an evaluation session and its derived summaries."""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, computed_field, field_validator

from defense_grader.libs.scoring import GradeInfo

SHEET_LENGTHS = {"sheet1": 14, "sheet2": 24}
SHEET_NAMES = tuple(SHEET_LENGTHS)
RATER_COUNT = 3
ITEMS_PER_RATER = sum(SHEET_LENGTHS.values())
TOTAL_ITEMS = RATER_COUNT * ITEMS_PER_RATER

Score = Union[StrictInt, StrictFloat]


def normalize_sheet_name(sheet: Union[str, int]) -> str:
    """Accept ``"sheet1"``, ``"1"`` or ``1`` and return the canonical sheet name."""
    name = str(sheet).strip().lower()
    if name.isdigit():
        name = f"sheet{name}"
    if name not in SHEET_LENGTHS:
        raise ValueError(f"Unknown sheet {sheet!r}; expected one of {', '.join(SHEET_NAMES)}")
    return name


def empty_sheet(sheet: str) -> List[Score]:
    return [0] * SHEET_LENGTHS[sheet]


class StudentInfo(BaseModel):
    """The candidate being evaluated."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(default="", description="Full name of the student")
    student_id: str = Field(default="", alias="studentId", description="Student identifier")
    department: str = Field(default="", description="Department or program")
    thesis_title: str = Field(default="", alias="thesisTitle", description="Thesis title (optional)")


class RaterRecord(BaseModel):
    """Both rubric sheets filled in by one committee member."""
    sheet1: List[Score] = Field(
        default_factory=lambda: empty_sheet("sheet1"),
        description="14 scores for the first rubric sheet, 0 when unscored"
    )
    sheet2: List[Score] = Field(
        default_factory=lambda: empty_sheet("sheet2"),
        description="24 scores for the second rubric sheet, 0 when unscored"
    )

    @field_validator("sheet1", "sheet2")
    @classmethod
    def _check_length(cls, value: List[Score], info) -> List[Score]:
        expected = SHEET_LENGTHS[info.field_name]
        if len(value) != expected:
            raise ValueError(f"{info.field_name} must have {expected} scores, got {len(value)}")
        return value

    def sheet(self, sheet: Union[str, int]) -> List[Score]:
        return getattr(self, normalize_sheet_name(sheet))


class EvaluationSession(BaseModel):
    """Everything entered for one thesis defense."""
    student: StudentInfo = Field(default_factory=StudentInfo)
    raters: List[RaterRecord] = Field(
        default_factory=lambda: [RaterRecord() for _ in range(RATER_COUNT)],
        description="Exactly three rater records"
    )

    @field_validator("raters")
    @classmethod
    def _check_rater_count(cls, value: List[RaterRecord]) -> List[RaterRecord]:
        if len(value) != RATER_COUNT:
            raise ValueError(f"expected {RATER_COUNT} raters, got {len(value)}")
        return value


class SheetSummary(BaseModel):
    """Progress and average for one sheet of one rater."""
    filled: int = Field(description="Number of valid scores entered")
    total: int = Field(description="Number of items on the sheet")
    sum: float = Field(description="Sum of the valid scores")
    max_sum: float = Field(description="Highest possible sum for the sheet")
    average: float = Field(description="Average of the sheet, 0 until the sheet is complete")
    is_complete: bool = Field(description="True when every item holds a valid score")

    @computed_field
    @property
    def remaining(self) -> int:
        return self.total - self.filled


class RaterSummary(BaseModel):
    """Derived scores for one rater."""
    name: str
    sheet1: SheetSummary
    sheet2: SheetSummary
    weighted_score: float = Field(description="35/65 weighted score, 0 until both sheets are complete")
    is_complete: bool

    @computed_field
    @property
    def sheet1_average(self) -> float:
        return self.sheet1.average

    @computed_field
    @property
    def sheet2_average(self) -> float:
        return self.sheet2.average

    @property
    def filled(self) -> int:
        return self.sheet1.filled + self.sheet2.filled


class SessionSummary(BaseModel):
    """Derived scores for the whole committee."""
    raters: List[RaterSummary]
    completed_raters: int
    can_calculate_final: bool
    final_score: float = Field(description="Mean of the weighted scores, 0 until all raters are complete")
    percent: float = Field(description="final_score on a 0-100 scale")
    grade: Optional[GradeInfo] = Field(default=None, description="GPA tier, None until final")
    filled_count: int
    total_items: int = TOTAL_ITEMS

    @computed_field
    @property
    def progress(self) -> float:
        """Share of all items filled, as a percentage."""
        return self.filled_count / self.total_items * 100
