"""
Admissions Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import date, datetime, time
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

# Re-use enums from models (they work with Pydantic too!)
from admissions_api.modules.admissions.models import ApplicantPool, ApplicationStatus, Gender

EARLY_YEARS_STAGES = (
    "LKG",
    "UKG",
    "STD 1",
    "STD 2",
    "STD 3",
    "STD 4",
    "STD 5",
    "STD 6",
    "STD 7",
    "STD 8",
    "STD 9",
    "STD 10",
)

# Madrassa is offered alongside STD 1-7; a previous madrassa only exists from STD 2
MADRASSA_STAGES = frozenset(f"STD {n}" for n in range(1, 8))
PREVIOUS_MADRASSA_STAGES = frozenset(f"STD {n}" for n in range(2, 8))
PREVIOUS_SCHOOL_STAGES = frozenset(f"STD {n}" for n in range(1, 11))


# ============================================
# Intake
# ============================================


class ApplicationCreateBase(BaseModel):
    """Fields collected by both admission forms."""

    model_config = ConfigDict(str_strip_whitespace=True)

    full_name: str = Field(..., min_length=2, max_length=200)
    gender: Gender
    date_of_birth: date
    father_name: str = Field(..., min_length=2, max_length=200)
    mother_name: str = Field(..., min_length=2, max_length=200)

    house_name: str = Field(..., min_length=2, max_length=200)
    post_office: str = Field(..., min_length=2, max_length=100)
    village: str = Field(..., min_length=2, max_length=100)
    pincode: str = Field(..., min_length=6, max_length=10)
    district: str = Field(..., min_length=2, max_length=100)

    email: EmailStr | None = None
    mobile_number: str = Field(..., min_length=10, max_length=20)

    has_siblings: bool = False
    siblings_names: str | None = Field(None, max_length=500)

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("date_of_birth")
    @classmethod
    def date_of_birth_in_past(cls, value: date) -> date:
        if value >= date.today():
            raise ValueError("date_of_birth must be in the past")
        return value

    @model_validator(mode="after")
    def drop_siblings_names_without_siblings(self):
        if not self.has_siblings:
            self.siblings_names = None
        return self


class EarlyYearsApplicationCreate(ApplicationCreateBase):
    """Request body for an early-years (KG & STD) application."""

    pool: Literal[ApplicantPool.EARLY_YEARS] = ApplicantPool.EARLY_YEARS

    stage: str
    need_madrassa: bool = False
    previous_madrassa: str | None = Field(None, max_length=200)
    guardian_name: str | None = Field(None, max_length=200)
    previous_school: str | None = Field(None, max_length=200)

    @field_validator("stage")
    @classmethod
    def validate_stage(cls, value: str) -> str:
        if value not in EARLY_YEARS_STAGES:
            raise ValueError(f"stage must be one of: {', '.join(EARLY_YEARS_STAGES)}")
        return value

    @model_validator(mode="after")
    def clear_fields_not_offered_for_stage(self) -> "EarlyYearsApplicationCreate":
        """Drop answers to questions the form does not ask for the chosen stage."""
        if self.stage not in MADRASSA_STAGES:
            self.need_madrassa = False
        if not (self.need_madrassa and self.stage in PREVIOUS_MADRASSA_STAGES):
            self.previous_madrassa = None
        if self.stage not in PREVIOUS_SCHOOL_STAGES:
            self.previous_school = None
        return self


class SeniorEntryApplicationCreate(ApplicationCreateBase):
    """Request body for a senior-entry (+1 / HSS) application."""

    pool: Literal[ApplicantPool.SENIOR_ENTRY] = ApplicantPool.SENIOR_ENTRY

    landmark: str | None = Field(None, max_length=200)
    tenth_school: str = Field(..., min_length=2, max_length=200)
    board: str = Field(..., min_length=1, max_length=50)
    exam_roll_number: str = Field(..., min_length=1, max_length=50)
    exam_year: str = Field(..., pattern=r"^\d{4}$")
    stream: str = Field(..., min_length=1, max_length=100)


ApplicationCreate = Annotated[
    EarlyYearsApplicationCreate | SeniorEntryApplicationCreate,
    Field(discriminator="pool"),
]


class ApplicationSubmitted(BaseModel):
    """Response after submitting an application."""

    application_number: str
    pool: ApplicantPool
    status: ApplicationStatus = ApplicationStatus.SUBMITTED
    message: str = "Application submitted. Keep your application number to track its status."


# ============================================
# Status transitions
# ============================================


class InterviewSchedule(BaseModel):
    """Interview slot stamped when an application is shortlisted."""

    interview_date: date | None = None
    interview_time: time | None = None

    @property
    def is_complete(self) -> bool:
        return self.interview_date is not None and self.interview_time is not None


class StatusTransitionRequest(InterviewSchedule):
    """Request body for changing one application's status."""

    status: ApplicationStatus


class ApplicationRef(BaseModel):
    """Identifies an application in one of the two pools."""

    pool: ApplicantPool
    id: UUID


class BulkStatusTransitionRequest(InterviewSchedule):
    """Request body for changing the status of many applications at once."""

    applications: list[ApplicationRef] = Field(..., min_length=1)
    status: ApplicationStatus


class PoolTransitionResult(BaseModel):
    """Outcome of the bulk update issued for one pool."""

    pool: ApplicantPool
    requested: int
    updated: int = 0
    error: str | None = None


class BulkTransitionReport(BaseModel):
    """Per-pool outcome of a bulk status change."""

    status: ApplicationStatus
    results: list[PoolTransitionResult]

    @property
    def failed_pools(self) -> list[ApplicantPool]:
        return [result.pool for result in self.results if result.error is not None]


class ApplicationSummary(BaseModel):
    """Staff view of an application's identity and review state."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_number: str
    full_name: str
    mobile_number: str
    email: str | None = None
    status: ApplicationStatus
    interview_date: date | None = None
    interview_time: time | None = None
    created_at: datetime
    updated_at: datetime


class ApplicationDetailResponse(BaseModel):
    """Response for staff application detail and status changes."""

    pool: ApplicantPool
    application: ApplicationSummary
    status_label: str
    progress_percentage: int


# ============================================
# Interview subjects and marks
# ============================================


class SubjectTemplateIn(BaseModel):
    """One subject in a staff-submitted template list."""

    subject_name: str = Field(..., max_length=100)
    max_marks: int = Field(25, gt=0, le=1000)


class SubjectTemplateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    pool: ApplicantPool
    subject_name: str
    max_marks: int
    display_order: int


class ReplaceTemplatesRequest(BaseModel):
    """Request body for replacing one pool's interview subjects."""

    subjects: list[SubjectTemplateIn]


class ReplaceAllTemplatesRequest(BaseModel):
    """
    Request body for the interview settings screen, which saves both pools.

    Both lists are required; an empty list clears that pool's subjects.
    """

    early_years: list[SubjectTemplateIn] = Field(...)
    senior_entry: list[SubjectTemplateIn] = Field(...)

    def by_pool(self) -> dict[ApplicantPool, list[SubjectTemplateIn]]:
        return {
            ApplicantPool.EARLY_YEARS: self.early_years,
            ApplicantPool.SENIOR_ENTRY: self.senior_entry,
        }


class SubjectTemplateListResponse(BaseModel):
    early_years: list[SubjectTemplateOut]
    senior_entry: list[SubjectTemplateOut]


class PoolSyncReport(BaseModel):
    """What a template replacement changed for one pool."""

    pool: ApplicantPool
    added: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    marks_updated: int = 0
    marks_deleted: int = 0
    failed_subjects: list[str] = Field(default_factory=list)


class SyncReport(BaseModel):
    pools: list[PoolSyncReport]

    @property
    def failed_subjects(self) -> list[str]:
        return [name for pool in self.pools for name in pool.failed_subjects]


class MarkEntry(BaseModel):
    """A staff-entered mark for one subject. None clears the mark."""

    subject_name: str = Field(..., min_length=1, max_length=100)
    marks: int | None = Field(None, ge=0)


class RecordMarksRequest(BaseModel):
    marks: list[MarkEntry]


class InterviewMarkView(BaseModel):
    """A subject row on the mark sheet; marks_obtained is None when not yet entered."""

    subject_name: str
    marks_obtained: int | None = None
    max_marks: int | None = None
    display_order: int | None = None


class SubjectScore(BaseModel):
    name: str
    obtained: int | None
    max: int
    percentage: int
    grade: str | None = None


class ScoreTotal(BaseModel):
    obtained: int
    max: int
    percentage: int


class ScoreSummary(BaseModel):
    per_subject: list[SubjectScore]
    total: ScoreTotal


class MarkSheet(BaseModel):
    pool: ApplicantPool
    application_id: UUID
    interview_marks: list[InterviewMarkView]
    scores: ScoreSummary


# ============================================
# Applicant lookup
# ============================================


class ApplicationLookupRequest(BaseModel):
    """Request body for tracking an application."""

    model_config = ConfigDict(str_strip_whitespace=True)

    application_number: str = Field(..., min_length=1, max_length=32)
    mobile_number: str = Field(..., min_length=1, max_length=20)


class ApplicationLookupResponse(BaseModel):
    """Applicant-facing status of an application."""

    application: dict[str, Any]
    pool: ApplicantPool
    academic_year: str | None = None
    status: ApplicationStatus
    status_label: str
    status_description: str
    progress_percentage: int
    interview_marks: list[InterviewMarkView]
    scores: ScoreSummary


# ============================================
# Admission forms
# ============================================


class AdmissionFormOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pool: ApplicantPool
    academic_year: str
    is_active: bool


class AdmissionFormUpdate(BaseModel):
    academic_year: str | None = Field(None, pattern=r"^\d{4}-\d{2}$")
    is_active: bool | None = None

    @model_validator(mode="after")
    def require_a_change(self) -> "AdmissionFormUpdate":
        if self.academic_year is None and self.is_active is None:
            raise ValueError("At least one of academic_year or is_active is required")
        return self


class AdmissionFormListResponse(BaseModel):
    forms: list[AdmissionFormOut]
