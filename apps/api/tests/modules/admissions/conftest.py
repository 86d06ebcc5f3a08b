"""
Fixtures for admissions tests.
"""

from datetime import UTC, date, datetime, time
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from admissions_api.modules.admissions.models import (
    ApplicantPool,
    ApplicationStatus,
    EarlyYearsApplication,
    Gender,
    InterviewMark,
    InterviewSubjectTemplate,
    SeniorEntryApplication,
)
from admissions_api.modules.admissions.schemas import (
    EarlyYearsApplicationCreate,
    SeniorEntryApplicationCreate,
)


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.add_all = MagicMock()
    return db


def _address() -> dict:
    return {
        "gender": Gender.GIRL,
        "date_of_birth": date(2019, 6, 14),
        "father_name": "Abdul Rahman",
        "mother_name": "Fathima Beevi",
        "house_name": "Noor Manzil",
        "post_office": "Kuttippuram",
        "village": "Naduvattom",
        "pincode": "679571",
        "district": "Malappuram",
        "mobile_number": "+91 96454-99929",
    }


@pytest.fixture
def early_years_create():
    """Create a sample early-years application request."""
    return EarlyYearsApplicationCreate(
        full_name="Aysha Rahman",
        stage="STD 3",
        need_madrassa=True,
        previous_madrassa="Hidayathul Islam Madrassa",
        has_siblings=True,
        siblings_names="Ameen Rahman (STD 7)",
        **_address(),
    )


@pytest.fixture
def senior_entry_create():
    """Create a sample senior-entry application request."""
    return SeniorEntryApplicationCreate(
        full_name="Muhammed Shifan",
        landmark="Near Juma Masjid",
        tenth_school="GHSS Kuttippuram",
        board="SSLC",
        exam_roll_number="284113",
        exam_year="2025",
        stream="Science",
        **{**_address(), "gender": Gender.BOY, "date_of_birth": date(2009, 1, 3)},
    )


def _application_model(model, pool: ApplicantPool, **overrides):
    app = MagicMock(spec=model)
    app.id = uuid4()
    app.application_number = "MHS2026-4821"
    app.full_name = "Aysha Rahman"
    app.mobile_number = "+91 96454-99929"
    app.email = None
    app.status = ApplicationStatus.SUBMITTED
    app.interview_date = None
    app.interview_time = None
    app.created_at = datetime.now(UTC)
    app.updated_at = datetime.now(UTC)
    for key, value in overrides.items():
        setattr(app, key, value)
    return app


@pytest.fixture
def early_years_model():
    """Create a sample early-years application model."""
    return _application_model(EarlyYearsApplication, ApplicantPool.EARLY_YEARS, stage="STD 3")


@pytest.fixture
def senior_entry_model():
    """Create a sample senior-entry application model."""
    return _application_model(
        SeniorEntryApplication,
        ApplicantPool.SENIOR_ENTRY,
        application_number="MHS2026-7310",
        full_name="Muhammed Shifan",
    )


@pytest.fixture
def interview_slot():
    return {"interview_date": date(2026, 4, 20), "interview_time": time(10, 30)}


def make_template(
    pool: ApplicantPool,
    subject_name: str,
    max_marks: int,
    display_order: int,
    is_active: bool = True,
) -> InterviewSubjectTemplate:
    """Build a real (transient) template row so attribute changes can be asserted."""
    return InterviewSubjectTemplate(
        id=uuid4(),
        pool=pool,
        subject_name=subject_name,
        max_marks=max_marks,
        display_order=display_order,
        is_active=is_active,
    )


def make_mark(
    pool: ApplicantPool,
    subject_name: str,
    marks: int | None,
    max_marks: int | None = None,
) -> InterviewMark:
    return InterviewMark(
        id=uuid4(),
        application_id=uuid4(),
        pool=pool,
        subject_name=subject_name,
        marks=marks,
        max_marks=max_marks,
    )


@pytest.fixture(name="make_template")
def make_template_fixture():
    """Factory for template rows."""
    return make_template


@pytest.fixture(name="make_mark")
def make_mark_fixture():
    """Factory for mark rows."""
    return make_mark
