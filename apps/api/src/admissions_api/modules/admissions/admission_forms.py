"""
Admission Form Settings

Each pool has one admission form row holding the academic year shown to
applicants and whether the form accepts submissions.
"""

import logging
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from admissions_api.modules.admissions import repository
from admissions_api.modules.admissions.models import AdmissionForm, ApplicantPool
from admissions_api.modules.admissions.schemas import AdmissionFormOut

logger = logging.getLogger(__name__)


def default_academic_year(today: date | None = None) -> str:
    """Academic year starting in the current calendar year, e.g. 2026-27."""
    year = (today or date.today()).year
    return f"{year}-{(year + 1) % 100:02d}"


async def get_admission_forms(db: AsyncSession) -> list[AdmissionFormOut]:
    forms = await repository.list_admission_forms(db)
    return [AdmissionFormOut.model_validate(form) for form in forms]


async def get_academic_year(db: AsyncSession, pool: ApplicantPool) -> str | None:
    """Academic year of the pool's admission form, None when the pool has no form row."""
    form = await repository.get_admission_form(db, pool)
    return form.academic_year if form is not None else None


async def update_admission_form(
    db: AsyncSession,
    pool: ApplicantPool,
    is_active: bool | None = None,
    academic_year: str | None = None,
) -> AdmissionFormOut:
    """
    Update a pool's admission form, creating the row if it does not exist.

    A new row defaults to the current academic year and an inactive form.
    """
    form = await repository.get_admission_form(db, pool)
    if form is None:
        form = AdmissionForm(pool=pool, academic_year=default_academic_year(), is_active=False)

    if academic_year is not None:
        form.academic_year = academic_year
    if is_active is not None:
        form.is_active = is_active

    form = await repository.save_admission_form(db, form)
    logger.info(
        f"Admission form for {pool.value}: academic_year={form.academic_year} "
        f"is_active={form.is_active}"
    )
    return AdmissionFormOut.model_validate(form)
