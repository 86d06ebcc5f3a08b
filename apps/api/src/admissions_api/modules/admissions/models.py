"""
Admissions Models

Database models for the two applicant pools, interview subject templates,
interview marks and per-pool admission form settings.

Early-years and senior-entry applications live in separate tables with
overlapping but different columns. Both share the columns declared on
ApplicationColumnsMixin.
"""

import enum
import uuid
from datetime import date, datetime, time

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from admissions_api.core.database import Base


class ApplicantPool(str, enum.Enum):
    """The two applicant categories, each with its own record schema."""

    EARLY_YEARS = "early_years"
    SENIOR_ENTRY = "senior_entry"


class ApplicationStatus(str, enum.Enum):
    """Review states, listed in canonical forward order."""

    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    SHORTLISTED_FOR_INTERVIEW = "shortlisted_for_interview"
    INTERVIEW_COMPLETE = "interview_complete"
    ADMITTED = "admitted"
    NOT_ADMITTED = "not_admitted"


class Gender(str, enum.Enum):
    BOY = "boy"
    GIRL = "girl"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class ApplicationColumnsMixin:
    """Columns shared by both application tables."""

    # Primary key
    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Generated identifier, e.g. MHS2026-4821
    application_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    # Applicant identity
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    gender: Mapped[Gender] = mapped_column(
        Enum(Gender, name="applicant_gender", values_callable=_enum_values), nullable=False
    )
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    father_name: Mapped[str] = mapped_column(String(200), nullable=False)
    mother_name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Address
    house_name: Mapped[str] = mapped_column(String(200), nullable=False)
    post_office: Mapped[str] = mapped_column(String(100), nullable=False)
    village: Mapped[str] = mapped_column(String(100), nullable=False)
    pincode: Mapped[str] = mapped_column(String(10), nullable=False)
    district: Mapped[str] = mapped_column(String(100), nullable=False)

    # Contact - mobile is stored exactly as entered
    mobile_number: Mapped[str] = mapped_column(String(20), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Siblings already studying here
    has_siblings: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=False)
    siblings_names: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Review tracking
    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="application_status", values_callable=_enum_values),
        nullable=False,
        default=ApplicationStatus.SUBMITTED,
    )
    interview_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    interview_time: Mapped[time | None] = mapped_column(Time, nullable=True)

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class EarlyYearsApplication(ApplicationColumnsMixin, Base):
    """
    Early-years (LKG, UKG and STD 1-10) application.

    Older deployments store the applicant's name in `child_name` and lack the
    stage, madrassa and sibling columns; see repository.SchemaShape.
    """

    __tablename__ = "early_years_applications"

    # Null on rows submitted before the column existed
    stage: Mapped[str | None] = mapped_column(String(20), nullable=True)
    need_madrassa: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=False)
    previous_madrassa: Mapped[str | None] = mapped_column(String(200), nullable=True)
    guardian_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    previous_school: Mapped[str | None] = mapped_column(String(200), nullable=True)

    __table_args__ = (
        Index("ix_early_years_applications_status", "status"),
        Index("ix_early_years_applications_created_at", "created_at"),
    )


class SeniorEntryApplication(ApplicationColumnsMixin, Base):
    """Senior-entry (+1 / higher secondary) application."""

    __tablename__ = "senior_entry_applications"

    landmark: Mapped[str | None] = mapped_column(String(200), nullable=True)
    tenth_school: Mapped[str] = mapped_column(String(200), nullable=False)
    board: Mapped[str] = mapped_column(String(50), nullable=False)
    exam_roll_number: Mapped[str] = mapped_column(String(50), nullable=False)
    exam_year: Mapped[str] = mapped_column(String(4), nullable=False)
    stream: Mapped[str] = mapped_column(String(100), nullable=False)

    __table_args__ = (
        Index("ix_senior_entry_applications_status", "status"),
        Index("ix_senior_entry_applications_created_at", "created_at"),
    )


class InterviewSubjectTemplate(Base):
    """
    Staff-configured interview subject for one pool.

    Removed subjects are soft-deleted (is_active = False) so that the active
    set is never empty while staff save changes.
    """

    __tablename__ = "interview_subject_templates"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    pool: Mapped[ApplicantPool] = mapped_column(
        Enum(ApplicantPool, name="applicant_pool", values_callable=_enum_values), nullable=False
    )
    subject_name: Mapped[str] = mapped_column(String(100), nullable=False)
    max_marks: Mapped[int] = mapped_column(Integer, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_interview_subject_templates_pool_active", "pool", "is_active"),
    )


class InterviewMark(Base):
    """
    One applicant's mark on one interview subject.

    Not a foreign key to InterviewSubjectTemplate: the subject name and its
    maximum are copied at write time and kept in step by the synchronizer.
    """

    __tablename__ = "interview_marks"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Points into early_years_applications or senior_entry_applications depending on pool
    application_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    pool: Mapped[ApplicantPool] = mapped_column(
        Enum(ApplicantPool, name="applicant_pool", values_callable=_enum_values), nullable=False
    )
    subject_name: Mapped[str] = mapped_column(String(100), nullable=False)
    max_marks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    marks: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "pool", "application_id", "subject_name", name="uq_interview_marks_application_subject"
        ),
        Index("ix_interview_marks_pool_subject", "pool", "subject_name"),
    )


class AdmissionForm(Base):
    """Per-pool admission form settings shown on the public site."""

    __tablename__ = "admission_forms"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    pool: Mapped[ApplicantPool] = mapped_column(
        Enum(ApplicantPool, name="applicant_pool", values_callable=_enum_values),
        unique=True,
        nullable=False,
    )
    academic_year: Mapped[str] = mapped_column(String(9), nullable=False)  # e.g. 2026-27
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
