"""
Mark Aggregation

Turns an applicant's interview marks into per-subject percentages, letter
grades and a total. Pure functions; no storage access.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from admissions_api.modules.admissions.helpers import percentage
from admissions_api.modules.admissions.schemas import (
    InterviewMarkView,
    ScoreSummary,
    ScoreTotal,
    SubjectScore,
)

# (minimum percentage, grade), highest first
GRADE_BOUNDARIES: list[tuple[int, str]] = [
    (80, "A+"),
    (70, "A"),
    (60, "B+"),
    (50, "B"),
    (40, "C"),
]
FAILING_GRADE = "F"


def grade_for(percent: int) -> str:
    for minimum, grade in GRADE_BOUNDARIES:
        if percent >= minimum:
            return grade
    return FAILING_GRADE


def _read(record: Any, key: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, key, None)


def aggregate(records: Iterable[Mapping[str, Any] | Any]) -> ScoreSummary:
    """
    Aggregate mark records into per-subject and total scores.

    Each record provides `obtained` (None counts as 0), `max` and optionally
    `name`, either as a mapping or as attributes. Percentages are rounded
    half up; a subject or total with a max of 0 scores 0%.
    """
    per_subject: list[SubjectScore] = []
    total_obtained = 0
    total_max = 0

    for record in records:
        obtained = _read(record, "obtained")
        max_marks = _read(record, "max") or 0
        score = obtained or 0
        percent = percentage(score, max_marks)

        per_subject.append(
            SubjectScore(
                name=_read(record, "name") or "",
                obtained=obtained,
                max=max_marks,
                percentage=percent,
                grade=grade_for(percent) if obtained is not None else None,
            )
        )
        total_obtained += score
        total_max += max_marks

    return ScoreSummary(
        per_subject=per_subject,
        total=ScoreTotal(
            obtained=total_obtained,
            max=total_max,
            percentage=percentage(total_obtained, total_max),
        ),
    )


def aggregate_marks(interview_marks: list[InterviewMarkView]) -> ScoreSummary:
    """Aggregate the rows of a mark sheet."""
    return aggregate(
        {
            "name": mark.subject_name,
            "obtained": mark.marks_obtained,
            "max": mark.max_marks,
        }
        for mark in interview_marks
    )
