"""
Application Status Machine

Review states run submitted -> under_review -> shortlisted_for_interview ->
interview_complete -> admitted / not_admitted. Staff may set any state
directly; the order only drives the progress shown to applicants.

Moving an application to shortlisted_for_interview requires an interview
date and time, which are written in the same commit as the status.
"""

import logging
from collections import defaultdict
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from admissions_api.modules.admissions import repository
from admissions_api.modules.admissions.exceptions import (
    ApplicationNotFoundError,
    StatusUpdateError,
    ValidationError,
)
from admissions_api.modules.admissions.helpers import round_half_up
from admissions_api.modules.admissions.models import ApplicantPool, ApplicationStatus
from admissions_api.modules.admissions.repository import ApplicationModel
from admissions_api.modules.admissions.schemas import (
    ApplicationRef,
    BulkTransitionReport,
    InterviewSchedule,
    PoolTransitionResult,
)

logger = logging.getLogger(__name__)

STATUS_ORDER: list[ApplicationStatus] = list(ApplicationStatus)

STATUS_LABELS: dict[ApplicationStatus, str] = {
    ApplicationStatus.SUBMITTED: "Submitted",
    ApplicationStatus.UNDER_REVIEW: "Under Review",
    ApplicationStatus.SHORTLISTED_FOR_INTERVIEW: "Shortlisted for Interview",
    ApplicationStatus.INTERVIEW_COMPLETE: "Interview Complete",
    ApplicationStatus.ADMITTED: "Admitted",
    ApplicationStatus.NOT_ADMITTED: "Not Admitted",
}

STATUS_DESCRIPTIONS: dict[ApplicationStatus, str] = {
    ApplicationStatus.SUBMITTED: "Your application has been received.",
    ApplicationStatus.UNDER_REVIEW: "Your application is being reviewed by the admissions team.",
    ApplicationStatus.SHORTLISTED_FOR_INTERVIEW: (
        "You have been shortlisted. Please attend the interview on the scheduled date and time."
    ),
    ApplicationStatus.INTERVIEW_COMPLETE: "Your interview is complete. Results will be published soon.",
    ApplicationStatus.ADMITTED: "Congratulations! You have been admitted.",
    ApplicationStatus.NOT_ADMITTED: "We are unable to offer admission at this time.",
}


def progress_percentage(status: ApplicationStatus) -> int:
    """Position of a status in the canonical order as a whole-number percentage."""
    index = STATUS_ORDER.index(status)
    return round_half_up((index + 1) * 100 / len(STATUS_ORDER))


def _side_effect_fields(
    new_status: ApplicationStatus, schedule: InterviewSchedule | None
) -> dict:
    """
    Validate the side data a transition needs and return the extra columns to set.

    Raises:
        ValidationError: Shortlisting without both an interview date and time
    """
    if new_status != ApplicationStatus.SHORTLISTED_FOR_INTERVIEW:
        return {}

    if schedule is None or not schedule.is_complete:
        raise ValidationError(
            "Interview date and time are required to shortlist for interview",
            error_code="INTERVIEW_SCHEDULE_REQUIRED",
        )

    return {
        "interview_date": schedule.interview_date,
        "interview_time": schedule.interview_time,
    }


async def transition_status(
    db: AsyncSession,
    pool: ApplicantPool,
    application_id: UUID,
    new_status: ApplicationStatus,
    schedule: InterviewSchedule | None = None,
) -> ApplicationModel:
    """
    Move one application to a new status.

    Args:
        db: Database session
        pool: Pool the application belongs to
        application_id: Application UUID
        new_status: Target status
        schedule: Interview slot, required when shortlisting

    Returns:
        The updated application

    Raises:
        ValidationError: Required side data is missing (nothing is written)
        ApplicationNotFoundError: No such application in the pool
        StatusUpdateError: The storage layer rejected the update
    """
    fields = _side_effect_fields(new_status, schedule)

    try:
        application = await repository.get_application(db, pool, application_id)
        if application is None:
            raise ApplicationNotFoundError(pool, application_id)

        old_status = application.status
        application = await repository.update_application_status(
            db, application, new_status, **fields
        )
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to update status of {pool.value} application {application_id}: {e}")
        raise StatusUpdateError(f"Could not update application status: {e}") from e

    logger.info(
        f"Application {application.application_number} status: "
        f"{old_status.value} -> {new_status.value}"
    )
    return application


async def transition_many(
    db: AsyncSession,
    applications: list[ApplicationRef],
    new_status: ApplicationStatus,
    schedule: InterviewSchedule | None = None,
) -> BulkTransitionReport:
    """
    Move many applications, possibly from both pools, to one status.

    The references are partitioned by pool and one UPDATE is issued per pool.
    Each pool commits on its own, so one pool can succeed while the other
    fails; the report says which.

    Raises:
        ValidationError: Required side data is missing (nothing is written)
    """
    fields = _side_effect_fields(new_status, schedule)

    ids_by_pool: dict[ApplicantPool, list[UUID]] = defaultdict(list)
    for ref in applications:
        if ref.id not in ids_by_pool[ref.pool]:
            ids_by_pool[ref.pool].append(ref.id)

    results: list[PoolTransitionResult] = []

    for pool in ApplicantPool:
        ids = ids_by_pool.get(pool)
        if not ids:
            continue

        result = PoolTransitionResult(pool=pool, requested=len(ids))
        try:
            result.updated = await repository.bulk_update_status(
                db, pool, ids, new_status, **fields
            )
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Bulk status update to {new_status.value} failed for {pool.value}: {e}")
            result.error = str(e)
        else:
            logger.info(
                f"Bulk status update: {result.updated}/{result.requested} "
                f"{pool.value} applications -> {new_status.value}"
            )
        results.append(result)

    return BulkTransitionReport(status=new_status, results=results)
