"""
Interview Mark Entry

Staff record an applicant's interview marks against the pool's active
subjects, and read them back as a mark sheet.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from admissions_api.modules.admissions import repository
from admissions_api.modules.admissions.exceptions import (
    ApplicationNotFoundError,
    DuplicateSubjectError,
    MarkEntryError,
    UnknownSubjectError,
    ValidationError,
)
from admissions_api.modules.admissions.models import ApplicantPool, InterviewMark
from admissions_api.modules.admissions.schemas import InterviewMarkView, MarkEntry, MarkSheet
from admissions_api.modules.admissions.scoring import aggregate_marks

logger = logging.getLogger(__name__)

# Used for marks recorded before a pool had any subjects configured
DEFAULT_MAX_MARKS = 25


async def load_interview_marks(
    db: AsyncSession, pool: ApplicantPool, application_id: UUID
) -> list[InterviewMarkView]:
    """
    Get the mark sheet rows for an application.

    One row per active subject of the pool, with marks_obtained None where
    nothing is recorded. When the pool has no active subjects but marks
    exist, the stored marks are listed instead with a default maximum.
    """
    rows = await repository.list_templates_with_marks(db, pool, application_id)

    if rows:
        return [
            InterviewMarkView(
                subject_name=template.subject_name,
                marks_obtained=mark.marks if mark is not None else None,
                max_marks=template.max_marks,
                display_order=template.display_order,
            )
            for template, mark in rows
        ]

    stored = await repository.list_marks(db, pool, application_id)
    return [
        InterviewMarkView(
            subject_name=mark.subject_name,
            marks_obtained=mark.marks,
            max_marks=mark.max_marks or DEFAULT_MAX_MARKS,
        )
        for mark in stored
    ]


async def get_mark_sheet(db: AsyncSession, pool: ApplicantPool, application_id: UUID) -> MarkSheet:
    """
    Get an application's marks with their aggregate.

    Raises:
        ApplicationNotFoundError: No such application in the pool
    """
    application = await repository.get_application(db, pool, application_id)
    if application is None:
        raise ApplicationNotFoundError(pool, application_id)

    interview_marks = await load_interview_marks(db, pool, application_id)
    return MarkSheet(
        pool=pool,
        application_id=application_id,
        interview_marks=interview_marks,
        scores=aggregate_marks(interview_marks),
    )


async def record_interview_marks(
    db: AsyncSession,
    pool: ApplicantPool,
    application_id: UUID,
    entries: list[MarkEntry],
) -> MarkSheet:
    """
    Replace an application's interview marks.

    Every entry must name an active subject of the pool and carry a mark
    between 0 and the subject's max_marks. Entries without a mark are not
    stored, which clears any earlier mark for that subject.

    Raises:
        ApplicationNotFoundError: No such application in the pool
        UnknownSubjectError: An entry names a subject that is not active
        DuplicateSubjectError: An entry names the same subject twice
        ValidationError: A mark is out of range
        MarkEntryError: The storage layer rejected the marks
    """
    application = await repository.get_application(db, pool, application_id)
    if application is None:
        raise ApplicationNotFoundError(pool, application_id)

    templates = {t.subject_name: t for t in await repository.list_templates(db, pools=[pool])}

    names = [entry.subject_name.strip() for entry in entries]
    unknown = {name for name in names if name not in templates}
    if unknown:
        raise UnknownSubjectError(pool, unknown)

    duplicates = {name for name in names if names.count(name) > 1}
    if duplicates:
        raise DuplicateSubjectError(pool, duplicates)

    marks: list[InterviewMark] = []
    for name, entry in zip(names, entries, strict=True):
        if entry.marks is None:
            continue
        max_marks = templates[name].max_marks
        if entry.marks > max_marks:
            raise ValidationError(
                f"Marks for {name} must be between 0 and {max_marks}",
                error_code="MARKS_OUT_OF_RANGE",
            )
        marks.append(
            InterviewMark(
                application_id=application_id,
                pool=pool,
                subject_name=name,
                max_marks=max_marks,
                marks=entry.marks,
            )
        )

    try:
        await repository.replace_marks(db, pool, application_id, marks)
    except SQLAlchemyError as e:
        logger.error(f"Failed to save marks for {application.application_number}: {e}")
        raise MarkEntryError(f"Could not save interview marks: {e}") from e

    logger.info(f"Recorded {len(marks)} interview marks for {application.application_number}")
    return await get_mark_sheet(db, pool, application_id)
