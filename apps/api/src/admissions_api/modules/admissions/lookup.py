"""
Application Lookup Service

Lets an applicant track an application with only its application number
and the mobile number given on the form.

Lookup Flow:
1. Exact match: look for the number and the mobile exactly as stored,
   early years first. Storage errors are logged and fall through.
2. Tolerant match: read each pool's row by number alone (senior entry
   first) and compare mobiles on their last 10 digits, so "+91 96454-99929"
   matches "9645499929". Legacy early-years rows with child_name are read
   as well.
3. A row found by number whose mobile did not match gives
   MobileMismatchError; no row at all gives NotFoundError. If a pool could
   not be read, LookupUnavailableError is raised instead of NotFoundError.

Security considerations:
- Mobile numbers are masked in logs
- The public endpoint is rate limited per client
"""

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from admissions_api.modules.admissions import repository
from admissions_api.modules.admissions.admission_forms import get_academic_year
from admissions_api.modules.admissions.exceptions import (
    LookupUnavailableError,
    MobileMismatchError,
    NotFoundError,
)
from admissions_api.modules.admissions.helpers import (
    mask_mobile,
    model_to_application_dict,
    normalize_mobile,
    row_to_application_dict,
)
from admissions_api.modules.admissions.marks import load_interview_marks
from admissions_api.modules.admissions.models import ApplicantPool, ApplicationStatus
from admissions_api.modules.admissions.schemas import ApplicationLookupResponse
from admissions_api.modules.admissions.scoring import aggregate_marks
from admissions_api.modules.admissions.status_machine import (
    STATUS_DESCRIPTIONS,
    STATUS_LABELS,
    progress_percentage,
)

logger = logging.getLogger(__name__)

EXACT_MATCH_ORDER = [ApplicantPool.EARLY_YEARS, ApplicantPool.SENIOR_ENTRY]
TOLERANT_MATCH_ORDER = [ApplicantPool.SENIOR_ENTRY, ApplicantPool.EARLY_YEARS]


async def _build_result(
    db: AsyncSession, pool: ApplicantPool, application: dict[str, Any]
) -> ApplicationLookupResponse:
    """Attach academic year, interview marks and progress to a matched application."""
    status = ApplicationStatus(application["status"])
    academic_year = await get_academic_year(db, pool)
    interview_marks = await load_interview_marks(db, pool, application["id"])

    return ApplicationLookupResponse(
        application=application,
        pool=pool,
        academic_year=academic_year,
        status=status,
        status_label=STATUS_LABELS[status],
        status_description=STATUS_DESCRIPTIONS[status],
        progress_percentage=progress_percentage(status),
        interview_marks=interview_marks,
        scores=aggregate_marks(interview_marks),
    )


async def _exact_match(
    db: AsyncSession, application_number: str, mobile_number: str
) -> ApplicationLookupResponse | None:
    for pool in EXACT_MATCH_ORDER:
        application = await repository.find_by_number_and_mobile(
            db, pool, application_number, mobile_number
        )
        if application is not None:
            return await _build_result(db, pool, model_to_application_dict(application))
    return None


async def _tolerant_match(
    db: AsyncSession, application_number: str, mobile_number: str
) -> ApplicationLookupResponse:
    claimed = normalize_mobile(mobile_number)
    mismatch = False
    last_error: SQLAlchemyError | None = None
    failed_pools = 0

    for pool in TOLERANT_MATCH_ORDER:
        try:
            row = await repository.fetch_raw_by_number(db, pool, application_number)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning(f"Tolerant lookup in {pool.value} failed: {e}")
            last_error = e
            failed_pools += 1
            continue

        if row is None:
            continue

        if claimed and normalize_mobile(row.get("mobile_number")) == claimed:
            return await _build_result(db, pool, row_to_application_dict(row))

        mismatch = True

    if mismatch:
        logger.info(
            f"Lookup for {application_number} refused: mobile {mask_mobile(mobile_number)} "
            "does not match"
        )
        raise MobileMismatchError()

    # A failed pool may hold the application, so "not found" cannot be claimed
    if last_error is not None:
        logger.error(
            f"Lookup for {application_number} incomplete: "
            f"{failed_pools}/{len(TOLERANT_MATCH_ORDER)} pools failed: {last_error}"
        )
        raise LookupUnavailableError() from last_error

    raise NotFoundError()


async def resolve_application(
    db: AsyncSession, application_number: str, mobile_number: str
) -> ApplicationLookupResponse:
    """
    Find an application by number and verify the applicant's mobile number.

    Args:
        db: Database session
        application_number: Number printed on the application acknowledgement
        mobile_number: Mobile number as typed by the applicant

    Returns:
        ApplicationLookupResponse with the application, marks and progress

    Raises:
        MobileMismatchError: The application exists but the mobile differs
        NotFoundError: No application has this number
        LookupUnavailableError: Storage failed before an answer was certain
    """
    application_number = application_number.strip()
    mobile_number = mobile_number.strip()

    try:
        result = await _exact_match(db, application_number, mobile_number)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning(f"Exact lookup for {application_number} failed, trying tolerant match: {e}")
        result = None

    if result is not None:
        logger.info(f"Application {application_number} looked up ({result.pool.value})")
        return result

    try:
        result = await _tolerant_match(db, application_number, mobile_number)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Lookup for {application_number} failed: {e}")
        raise LookupUnavailableError() from e

    logger.info(f"Application {application_number} looked up via tolerant match ({result.pool.value})")
    return result
