"""
Application Intake Service

Persists a new application under a freshly generated application number.

Submission Flow:
1. Refuse the submission if the pool's admission form is switched off
2. Probe the pool's table to pick the record shape to write
3. Up to MAX_SUBMISSION_ATTEMPTS times:
   - generate a candidate application number
   - insert with the chosen shape; if the table turns out to lack a
     preferred-only column, retry the same number once with the legacy shape
   - on a number collision, start the next attempt with a fresh number
4. Any other storage failure ends the submission immediately

Each insert is its own transaction and is rolled back on failure, so no
partial application is ever readable.
"""

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from admissions_api.modules.admissions import repository
from admissions_api.modules.admissions.exceptions import (
    AdmissionsClosedError,
    CollisionError,
    IntakeError,
    IntakeExhaustedError,
    SchemaMismatchError,
)
from admissions_api.modules.admissions.identifiers import generate_application_number
from admissions_api.modules.admissions.models import ApplicantPool
from admissions_api.modules.admissions.repository import SchemaShape
from admissions_api.modules.admissions.schemas import (
    ApplicationSubmitted,
    EarlyYearsApplicationCreate,
    SeniorEntryApplicationCreate,
)

logger = logging.getLogger(__name__)

MAX_SUBMISSION_ATTEMPTS = 3


def _to_values(data: EarlyYearsApplicationCreate | SeniorEntryApplicationCreate) -> dict[str, Any]:
    """Column values of the preferred record shape."""
    return data.model_dump(exclude={"pool"})


async def _ensure_admissions_open(db: AsyncSession, pool: ApplicantPool) -> None:
    """
    Raise AdmissionsClosedError when the pool's form is switched off.

    A pool without a form row accepts submissions.
    """
    try:
        form = await repository.get_admission_form(db, pool)
    except SQLAlchemyError as e:
        logger.error(f"Failed to read admission form for {pool.value}: {e}")
        raise IntakeError(f"Could not store the application: {e}") from e

    if form is not None and not form.is_active:
        raise AdmissionsClosedError(pool)


async def _insert_with_fallback(
    db: AsyncSession,
    pool: ApplicantPool,
    application_number: str,
    values: dict[str, Any],
    shape: SchemaShape,
) -> str:
    """
    Insert with the given shape, falling back to the legacy shape once.

    The fallback reuses the same application number and does not count as
    an attempt. A legacy insert that still hits a missing column fails the
    submission.
    """
    try:
        return await repository.insert_application(db, pool, application_number, values, shape)
    except SchemaMismatchError as e:
        if shape == SchemaShape.LEGACY:
            raise IntakeError(e.message) from e
        logger.warning(
            f"Preferred insert into {pool.value} failed on a missing column, "
            f"retrying {application_number} with legacy shape"
        )
        try:
            return await repository.insert_application(
                db, pool, application_number, values, SchemaShape.LEGACY
            )
        except SchemaMismatchError as legacy_error:
            raise IntakeError(legacy_error.message) from legacy_error


async def submit_application(
    db: AsyncSession,
    data: EarlyYearsApplicationCreate | SeniorEntryApplicationCreate,
) -> ApplicationSubmitted:
    """
    Persist a new application and return its application number.

    Args:
        db: Database session
        data: Validated application payload; data.pool selects the table

    Returns:
        ApplicationSubmitted with the persisted application number

    Raises:
        AdmissionsClosedError: The pool's admission form is inactive
        IntakeExhaustedError: Every attempt collided with an existing number
        IntakeError: Any other storage failure
    """
    pool = data.pool
    await _ensure_admissions_open(db, pool)

    shape = await repository.detect_schema_shape(db, pool)
    values = _to_values(data)
    last_error: CollisionError | None = None

    for attempt in range(1, MAX_SUBMISSION_ATTEMPTS + 1):
        application_number = generate_application_number()

        try:
            persisted = await _insert_with_fallback(db, pool, application_number, values, shape)
        except CollisionError as e:
            logger.warning(
                f"Application number {application_number} collided "
                f"(attempt {attempt}/{MAX_SUBMISSION_ATTEMPTS})"
            )
            last_error = e
            continue
        except SQLAlchemyError as e:
            logger.error(f"Failed to store {pool.value} application: {e}")
            raise IntakeError(f"Could not store the application: {e}") from e

        logger.info(f"Application submitted: {persisted} ({pool.value})")
        return ApplicationSubmitted(application_number=persisted, pool=pool)

    logger.error(
        f"Gave up storing {pool.value} application after {MAX_SUBMISSION_ATTEMPTS} collisions"
    )
    raise IntakeExhaustedError(MAX_SUBMISSION_ATTEMPTS, last_error) from last_error
