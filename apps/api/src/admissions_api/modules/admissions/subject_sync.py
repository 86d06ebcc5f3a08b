"""
Interview Subject Template Synchronizer

Replaces the interview subjects of one or both pools and repairs the marks
already recorded against them.

Replacement Flow:
1. Load every template of both pools, including soft-deleted ones
2. Clean the submitted lists (trim names, drop blanks, reject duplicates)
3. Diff against the stored templates and patch them in one transaction:
   matching names are updated in place, soft-deleted names are reactivated,
   new names are inserted and missing names are soft-deleted.
   display_order runs 1..N across both pools, early years first.
4. For every subject in a replaced pool, bring the mark rows' max_marks in
   line (only rows that differ are written)
5. Delete the mark rows of subjects that were removed

A renamed subject is a removal plus an addition, so its marks are deleted.
Mark repair commits per subject. If some subjects fail, the templates stay
saved and SyncPartialFailureError names the subjects to retry.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from admissions_api.modules.admissions import repository
from admissions_api.modules.admissions.exceptions import (
    DuplicateSubjectError,
    SyncPartialFailureError,
    TemplateSaveError,
    ValidationError,
)
from admissions_api.modules.admissions.models import ApplicantPool, InterviewSubjectTemplate
from admissions_api.modules.admissions.schemas import (
    PoolSyncReport,
    SubjectTemplateIn,
    SubjectTemplateListResponse,
    SubjectTemplateOut,
    SyncReport,
)

logger = logging.getLogger(__name__)


@dataclass
class TemplatePlan:
    """Template rows to write and mark repairs to run after they are saved."""

    inserts: list[InterviewSubjectTemplate] = field(default_factory=list)
    changed: list[InterviewSubjectTemplate] = field(default_factory=list)
    reports: dict[ApplicantPool, PoolSyncReport] = field(default_factory=dict)
    # subject name -> max_marks, per replaced pool
    kept: dict[ApplicantPool, dict[str, int]] = field(default_factory=dict)
    removed: dict[ApplicantPool, list[str]] = field(default_factory=dict)


def clean_subjects(
    pool: ApplicantPool, subjects: list[SubjectTemplateIn]
) -> list[tuple[str, int]]:
    """
    Trim names, drop blank ones and reject duplicates.

    Returns:
        (subject_name, max_marks) pairs in submitted order

    Raises:
        DuplicateSubjectError: A name appears more than once
        ValidationError: A max_marks is not positive
    """
    cleaned: list[tuple[str, int]] = []
    seen: set[str] = set()
    duplicates: set[str] = set()

    for subject in subjects:
        name = subject.subject_name.strip()
        if not name:
            continue
        if subject.max_marks <= 0:
            raise ValidationError(f"max_marks for {name} must be greater than 0")
        if name in seen:
            duplicates.add(name)
            continue
        seen.add(name)
        cleaned.append((name, subject.max_marks))

    if duplicates:
        raise DuplicateSubjectError(pool, duplicates)

    return cleaned


def plan_template_changes(
    existing: list[InterviewSubjectTemplate],
    new_subjects: dict[ApplicantPool, list[SubjectTemplateIn]],
) -> TemplatePlan:
    """
    Work out which template rows to insert or modify.

    Pools missing from new_subjects keep their active subjects; only their
    display_order may shift. Existing rows are modified in place.

    Args:
        existing: Every stored template of both pools, active or not,
            ordered by display_order
        new_subjects: Submitted subject lists for the pools being replaced
    """
    cleaned = {pool: clean_subjects(pool, subjects) for pool, subjects in new_subjects.items()}
    plan = TemplatePlan()
    display_order = 0

    for pool in ApplicantPool:
        pool_rows = [row for row in existing if row.pool == pool]

        # One row per name, preferring the active one
        by_name: dict[str, InterviewSubjectTemplate] = {}
        for row in pool_rows:
            current = by_name.get(row.subject_name)
            if current is None or (row.is_active and not current.is_active):
                by_name[row.subject_name] = row

        old_names = list(dict.fromkeys(row.subject_name for row in pool_rows if row.is_active))

        if pool in cleaned:
            subjects = cleaned[pool]
        else:
            subjects = [(name, by_name[name].max_marks) for name in old_names]

        report = PoolSyncReport(pool=pool)
        changed: list[InterviewSubjectTemplate] = []

        for name, max_marks in subjects:
            display_order += 1
            row = by_name.get(name)

            if row is None:
                plan.inserts.append(
                    InterviewSubjectTemplate(
                        pool=pool,
                        subject_name=name,
                        max_marks=max_marks,
                        display_order=display_order,
                        is_active=True,
                    )
                )
                report.added.append(name)
                continue

            if not row.is_active:
                report.added.append(name)
            elif row.max_marks != max_marks:
                report.updated.append(name)

            if (row.is_active, row.max_marks, row.display_order) != (True, max_marks, display_order):
                changed.append(row)
            row.is_active = True
            row.max_marks = max_marks
            row.display_order = display_order

        new_names = {name for name, _ in subjects}
        for name in old_names:
            if name not in new_names:
                by_name[name].is_active = False
                changed.append(by_name[name])
                report.removed.append(name)

        # Older data may hold the same active name twice
        for row in pool_rows:
            if row.is_active and row is not by_name[row.subject_name]:
                row.is_active = False
                changed.append(row)

        plan.changed.extend(changed)

        if pool in cleaned:
            plan.reports[pool] = report
            plan.kept[pool] = dict(subjects)
            plan.removed[pool] = report.removed

    return plan


async def _repair_marks(db: AsyncSession, plan: TemplatePlan) -> None:
    """Run the per-subject mark repairs of a saved plan, recording failures."""
    for pool, subjects in plan.kept.items():
        report = plan.reports[pool]

        for name, max_marks in subjects.items():
            try:
                report.marks_updated += await repository.sync_marks_max(db, pool, name, max_marks)
            except SQLAlchemyError as e:
                await db.rollback()
                logger.warning(f"Failed to update {pool.value} marks for '{name}': {e}")
                report.failed_subjects.append(name)

        for name in plan.removed[pool]:
            try:
                report.marks_deleted += await repository.delete_marks_for_subject(db, pool, name)
            except SQLAlchemyError as e:
                await db.rollback()
                logger.warning(f"Failed to delete {pool.value} marks for '{name}': {e}")
                report.failed_subjects.append(name)


async def replace_all_templates(
    db: AsyncSession,
    templates_by_pool: dict[ApplicantPool, list[SubjectTemplateIn]],
) -> SyncReport:
    """
    Replace the interview subjects of the given pools and repair their marks.

    Args:
        db: Database session
        templates_by_pool: New subject list for each pool being replaced

    Returns:
        SyncReport with one entry per replaced pool

    Raises:
        DuplicateSubjectError: A pool's list names a subject twice (nothing is written)
        TemplateSaveError: The template transaction failed (nothing is written)
        SyncPartialFailureError: Templates saved, but some mark repairs failed
    """
    try:
        existing = await repository.list_templates(db, include_inactive=True)
    except SQLAlchemyError as e:
        logger.error(f"Failed to load interview subjects: {e}")
        raise TemplateSaveError(f"Could not load interview subjects: {e}") from e

    plan = plan_template_changes(existing, templates_by_pool)

    try:
        await repository.save_templates(db, plan.inserts + plan.changed)
    except SQLAlchemyError as e:
        logger.error(f"Failed to save interview subjects: {e}")
        raise TemplateSaveError(f"Could not save interview subjects: {e}") from e

    for pool, pool_report in plan.reports.items():
        logger.info(
            f"Interview subjects for {pool.value}: added={pool_report.added} "
            f"updated={pool_report.updated} removed={pool_report.removed}"
        )

    await _repair_marks(db, plan)

    report = SyncReport(pools=[plan.reports[pool] for pool in ApplicantPool if pool in plan.reports])
    if report.failed_subjects:
        raise SyncPartialFailureError(report, report.failed_subjects)

    return report


async def replace_templates(
    db: AsyncSession, pool: ApplicantPool, templates: list[SubjectTemplateIn]
) -> SyncReport:
    """Replace one pool's interview subjects, leaving the other pool's as they are."""
    return await replace_all_templates(db, {pool: templates})


async def get_templates(db: AsyncSession) -> SubjectTemplateListResponse:
    """Get the active interview subjects of both pools."""
    templates = await repository.list_templates(db)
    grouped: dict[ApplicantPool, list[SubjectTemplateOut]] = {pool: [] for pool in ApplicantPool}
    for template in templates:
        grouped[template.pool].append(SubjectTemplateOut.model_validate(template))

    return SubjectTemplateListResponse(
        early_years=grouped[ApplicantPool.EARLY_YEARS],
        senior_entry=grouped[ApplicantPool.SENIOR_ENTRY],
    )
