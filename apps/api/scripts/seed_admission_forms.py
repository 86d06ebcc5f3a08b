"""
Seed Admission Forms and Interview Subjects

Creates the admission form row of each pool and a starter set of interview
subjects. Existing rows are left untouched, so the script can be re-run.

Usage:
    cd apps/api
    python scripts/seed_admission_forms.py
"""

import asyncio
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from admissions_api.core.config import settings
from admissions_api.modules.admissions.admission_forms import default_academic_year
from admissions_api.modules.admissions.models import (
    AdmissionForm,
    ApplicantPool,
    InterviewSubjectTemplate,
)

STARTER_SUBJECTS: dict[ApplicantPool, list[tuple[str, int]]] = {
    ApplicantPool.EARLY_YEARS: [("English", 25), ("Mathematics", 25), ("General Awareness", 25)],
    ApplicantPool.SENIOR_ENTRY: [("English", 25), ("Mathematics", 25), ("Science", 25)],
}


async def seed_admission_forms() -> None:
    """Create missing admission forms and, for an empty pool, starter subjects."""

    engine = create_async_engine(settings.async_database_url, echo=False)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    academic_year = default_academic_year()

    async with async_session() as db:
        result = await db.execute(select(AdmissionForm.pool))
        existing_forms = set(result.scalars().all())

        for pool in ApplicantPool:
            if pool in existing_forms:
                print(f"Admission form already exists: {pool.value}")
                continue
            db.add(AdmissionForm(pool=pool, academic_year=academic_year, is_active=False))
            print(f"Admission form created: {pool.value} ({academic_year}, closed)")

        result = await db.execute(select(InterviewSubjectTemplate.pool).distinct())
        pools_with_subjects = set(result.scalars().all())

        display_order = 0
        for pool in ApplicantPool:
            subjects = STARTER_SUBJECTS[pool]
            if pool in pools_with_subjects:
                print(f"Interview subjects already configured: {pool.value}")
                display_order += len(subjects)
                continue
            for name, max_marks in subjects:
                display_order += 1
                db.add(
                    InterviewSubjectTemplate(
                        pool=pool,
                        subject_name=name,
                        max_marks=max_marks,
                        display_order=display_order,
                        is_active=True,
                    )
                )
            print(f"Interview subjects created: {pool.value} ({len(subjects)} subjects)")

        await db.commit()

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_admission_forms())
