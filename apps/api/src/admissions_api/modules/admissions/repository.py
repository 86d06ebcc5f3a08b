"""
Admissions Repository

Database operations for applications, interview subject templates,
interview marks and admission form settings. All operations are async and
only touch storage; the services hold the business rules.

Design Principles:
- All queries are parameterized (no SQL injection)
- Pool-to-table routing goes through POOL_MODELS only
- Storage failures that the services act on are translated into
  admissions errors; everything else propagates as SQLAlchemyError
"""

import enum
import logging
import uuid
from typing import Any
from uuid import UUID

from sqlalchemy import and_, column, delete, insert, inspect, or_, select, table, text, update
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import CollisionError, SchemaMismatchError
from .models import (
    AdmissionForm,
    ApplicantPool,
    ApplicationStatus,
    EarlyYearsApplication,
    InterviewMark,
    InterviewSubjectTemplate,
    SeniorEntryApplication,
)

logger = logging.getLogger(__name__)

ApplicationModel = EarlyYearsApplication | SeniorEntryApplication

POOL_MODELS: dict[ApplicantPool, type[ApplicationModel]] = {
    ApplicantPool.EARLY_YEARS: EarlyYearsApplication,
    ApplicantPool.SENIOR_ENTRY: SeniorEntryApplication,
}

# Columns added after the first admission season. Older tables lack them.
PREFERRED_ONLY_COLUMNS: dict[ApplicantPool, tuple[str, ...]] = {
    ApplicantPool.EARLY_YEARS: (
        "stage",
        "need_madrassa",
        "previous_madrassa",
        "has_siblings",
        "siblings_names",
    ),
    ApplicantPool.SENIOR_ENTRY: ("landmark", "has_siblings", "siblings_names"),
}

# Legacy early-years tables keep the applicant's name here instead of full_name
LEGACY_NAME_COLUMN = "child_name"

# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
UNDEFINED_COLUMN = "42703"


class SchemaShape(str, enum.Enum):
    """Which generation of the application table a pool is stored in."""

    PREFERRED = "preferred"
    LEGACY = "legacy"


def get_model(pool: ApplicantPool) -> type[ApplicationModel]:
    """Get the ORM model for a pool."""
    return POOL_MODELS[pool]


def get_table_name(pool: ApplicantPool) -> str:
    return POOL_MODELS[pool].__tablename__


# ============================================
# Schema detection
# ============================================


async def detect_schema_shape(db: AsyncSession, pool: ApplicantPool) -> SchemaShape:
    """
    Inspect the pool's table and report which record shape it accepts.

    A table missing any preferred-only column (or, for early years, the
    full_name column) is LEGACY. If the inspection itself fails the
    preferred shape is assumed and insert errors decide.
    """
    table_name = get_table_name(pool)

    def _column_names(session) -> set[str]:
        return {col["name"] for col in inspect(session.connection()).get_columns(table_name)}

    try:
        columns = await db.run_sync(_column_names)
    except SQLAlchemyError as e:
        logger.warning(f"Schema probe for {table_name} failed, assuming preferred shape: {e}")
        return SchemaShape.PREFERRED

    required = set(PREFERRED_ONLY_COLUMNS[pool]) | {"full_name"}
    missing = required - columns
    if missing:
        logger.info(f"{table_name} is missing {sorted(missing)}, using legacy shape")
        return SchemaShape.LEGACY

    return SchemaShape.PREFERRED


# ============================================
# Application intake
# ============================================


def get_sqlstate(exc: DBAPIError) -> str | None:
    """Read the SQLSTATE from a DBAPI error, whichever driver raised it."""
    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return code
    return None


def _legacy_values(pool: ApplicantPool, values: dict[str, Any]) -> dict[str, Any]:
    """Reduce preferred-shape values to the columns a legacy table has."""
    legacy = {
        key: value.value if isinstance(value, enum.Enum) else value
        for key, value in values.items()
        if key not in PREFERRED_ONLY_COLUMNS[pool]
    }
    if pool == ApplicantPool.EARLY_YEARS:
        legacy[LEGACY_NAME_COLUMN] = legacy.pop("full_name")
    return legacy


async def insert_application(
    db: AsyncSession,
    pool: ApplicantPool,
    application_number: str,
    values: dict[str, Any],
    shape: SchemaShape = SchemaShape.PREFERRED,
) -> str:
    """
    Insert one application and commit.

    Args:
        db: Database session
        pool: Applicant pool to insert into
        application_number: Candidate application number
        values: Column values of the preferred record shape
        shape: Record shape to write

    Returns:
        The persisted application number

    Raises:
        CollisionError: The application number already exists (SQLSTATE 23505)
        SchemaMismatchError: The table lacks a column being written (SQLSTATE 42703)
        SQLAlchemyError: Any other storage failure
    """
    model = get_model(pool)

    try:
        if shape == SchemaShape.PREFERRED:
            db.add(model(application_number=application_number, **values))
        else:
            row = _legacy_values(pool, values)
            row.update(
                id=uuid.uuid4(),
                application_number=application_number,
                status=ApplicationStatus.SUBMITTED.value,
            )
            legacy_table = table(model.__tablename__, *(column(name) for name in row))
            await db.execute(insert(legacy_table).values(**row))
        await db.commit()
    except DBAPIError as e:
        await db.rollback()
        sqlstate = get_sqlstate(e)
        if sqlstate == UNIQUE_VIOLATION:
            raise CollisionError(application_number) from e
        if sqlstate == UNDEFINED_COLUMN:
            raise SchemaMismatchError(pool, str(e.orig)) from e
        raise
    except SQLAlchemyError:
        await db.rollback()
        raise

    return application_number


# ============================================
# Application reads and status updates
# ============================================


async def get_application(
    db: AsyncSession, pool: ApplicantPool, application_id: UUID
) -> ApplicationModel | None:
    """Get application by ID within a pool."""
    return await db.get(get_model(pool), application_id)


async def update_application_status(
    db: AsyncSession,
    application: ApplicationModel,
    status: ApplicationStatus,
    **fields,
) -> ApplicationModel:
    """
    Set an application's status and any extra fields in one commit.

    Args:
        db: Database session
        application: Loaded application to update
        status: New status to set
        **fields: Additional columns to set (e.g., interview_date)
    """
    application.status = status

    for key, value in fields.items():
        if hasattr(application, key):
            setattr(application, key, value)

    await db.commit()
    await db.refresh(application)

    return application


async def bulk_update_status(
    db: AsyncSession,
    pool: ApplicantPool,
    application_ids: list[UUID],
    status: ApplicationStatus,
    **fields,
) -> int:
    """
    Set the status of many applications in one pool with a single UPDATE.

    Returns:
        Number of rows updated
    """
    model = get_model(pool)
    result = await db.execute(
        update(model)
        .where(model.id.in_(application_ids))
        .values(status=status, **fields)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount


async def find_by_number_and_mobile(
    db: AsyncSession,
    pool: ApplicantPool,
    application_number: str,
    mobile_number: str,
) -> ApplicationModel | None:
    """Get the application whose number and stored mobile both match exactly."""
    model = get_model(pool)
    result = await db.execute(
        select(model).where(
            model.application_number == application_number,
            model.mobile_number == mobile_number,
        )
    )
    return result.scalar_one_or_none()


async def fetch_raw_by_number(
    db: AsyncSession, pool: ApplicantPool, application_number: str
) -> dict[str, Any] | None:
    """
    Read an application row by number without relying on the ORM column set.

    Works against both table shapes, so the caller gets child_name from a
    legacy early-years table.
    """
    result = await db.execute(
        text(f"SELECT * FROM {get_table_name(pool)} WHERE application_number = :number LIMIT 1"),
        {"number": application_number},
    )
    row = result.mappings().first()
    return dict(row) if row is not None else None


# ============================================
# Interview subject templates
# ============================================


async def list_templates(
    db: AsyncSession,
    pools: list[ApplicantPool] | None = None,
    include_inactive: bool = False,
) -> list[InterviewSubjectTemplate]:
    """Get templates ordered by display_order, optionally limited to some pools."""
    stmt = select(InterviewSubjectTemplate)
    if pools is not None:
        stmt = stmt.where(InterviewSubjectTemplate.pool.in_(pools))
    if not include_inactive:
        stmt = stmt.where(InterviewSubjectTemplate.is_active == True)  # noqa: E712
    stmt = stmt.order_by(InterviewSubjectTemplate.display_order)

    result = await db.execute(stmt)
    return list(result.scalars().all())


async def save_templates(db: AsyncSession, templates: list[InterviewSubjectTemplate]) -> None:
    """
    Commit new and modified templates in one transaction.

    Templates already loaded in the session only need their attributes set
    before this call; new ones are added here.
    """
    try:
        db.add_all(templates)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise


# ============================================
# Interview marks
# ============================================


async def list_marks(
    db: AsyncSession, pool: ApplicantPool, application_id: UUID
) -> list[InterviewMark]:
    """Get an application's stored marks in insertion order."""
    result = await db.execute(
        select(InterviewMark)
        .where(InterviewMark.pool == pool, InterviewMark.application_id == application_id)
        .order_by(InterviewMark.created_at, InterviewMark.subject_name)
    )
    return list(result.scalars().all())


async def list_templates_with_marks(
    db: AsyncSession, pool: ApplicantPool, application_id: UUID
) -> list[tuple[InterviewSubjectTemplate, InterviewMark | None]]:
    """Get the pool's active templates left-joined to one application's marks."""
    result = await db.execute(
        select(InterviewSubjectTemplate, InterviewMark)
        .outerjoin(
            InterviewMark,
            and_(
                InterviewMark.pool == InterviewSubjectTemplate.pool,
                InterviewMark.subject_name == InterviewSubjectTemplate.subject_name,
                InterviewMark.application_id == application_id,
            ),
        )
        .where(
            InterviewSubjectTemplate.pool == pool,
            InterviewSubjectTemplate.is_active == True,  # noqa: E712
        )
        .order_by(InterviewSubjectTemplate.display_order)
    )
    return [(template, mark) for template, mark in result.all()]


async def replace_marks(
    db: AsyncSession,
    pool: ApplicantPool,
    application_id: UUID,
    marks: list[InterviewMark],
) -> None:
    """Delete an application's marks and insert the given ones in one transaction."""
    try:
        await db.execute(
            delete(InterviewMark).where(
                InterviewMark.pool == pool,
                InterviewMark.application_id == application_id,
            )
        )
        db.add_all(marks)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise


async def sync_marks_max(
    db: AsyncSession, pool: ApplicantPool, subject_name: str, max_marks: int
) -> int:
    """
    Bring the denormalized max_marks of a subject's mark rows in line.

    Only rows whose max_marks differs are written.

    Returns:
        Number of rows updated
    """
    result = await db.execute(
        update(InterviewMark)
        .where(
            InterviewMark.pool == pool,
            InterviewMark.subject_name == subject_name,
            or_(InterviewMark.max_marks.is_(None), InterviewMark.max_marks != max_marks),
        )
        .values(max_marks=max_marks)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount


async def delete_marks_for_subject(db: AsyncSession, pool: ApplicantPool, subject_name: str) -> int:
    """
    Delete every mark row of a subject in a pool.

    Returns:
        Number of rows deleted
    """
    result = await db.execute(
        delete(InterviewMark)
        .where(InterviewMark.pool == pool, InterviewMark.subject_name == subject_name)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount


# ============================================
# Admission forms
# ============================================


async def get_admission_form(db: AsyncSession, pool: ApplicantPool) -> AdmissionForm | None:
    result = await db.execute(select(AdmissionForm).where(AdmissionForm.pool == pool))
    return result.scalar_one_or_none()


async def list_admission_forms(db: AsyncSession) -> list[AdmissionForm]:
    result = await db.execute(select(AdmissionForm).order_by(AdmissionForm.pool))
    return list(result.scalars().all())


async def save_admission_form(db: AsyncSession, form: AdmissionForm) -> AdmissionForm:
    """Insert or update an admission form row."""
    db.add(form)
    await db.commit()
    await db.refresh(form)
    return form
