"""
Admissions Admin Router

API endpoints for admissions staff: status changes, interview scheduling,
interview subject settings, mark entry and admission form settings.

Access control is enforced in front of this service (reverse proxy / staff
portal); these endpoints trust their callers.

Endpoints:
- GET /admin/admissions/applications/{pool}/{id} - Application summary
- POST /admin/admissions/applications/{pool}/{id}/status - Change one status
- POST /admin/admissions/applications/status - Change many statuses
- GET /admin/admissions/subject-templates - Interview subjects of both pools
- PUT /admin/admissions/subject-templates - Replace both pools' subjects
- PUT /admin/admissions/subject-templates/{pool} - Replace one pool's subjects
- GET /admin/admissions/applications/{pool}/{id}/marks - Mark sheet
- PUT /admin/admissions/applications/{pool}/{id}/marks - Record marks
- GET /admin/admissions/forms - Admission form settings
- PATCH /admin/admissions/forms/{pool} - Open/close a form, set its year

Partial failures (bulk status changes, mark repair after a subject change)
answer 207 Multi-Status with the per-part report.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from admissions_api.core.database import get_db
from admissions_api.modules.admissions import (
    admission_forms,
    marks,
    repository,
    status_machine,
    subject_sync,
)
from admissions_api.modules.admissions.exceptions import (
    ApplicationNotFoundError,
    ApplicationServiceError,
    SyncPartialFailureError,
)
from admissions_api.modules.admissions.models import ApplicantPool
from admissions_api.modules.admissions.schemas import (
    AdmissionFormListResponse,
    AdmissionFormOut,
    AdmissionFormUpdate,
    ApplicationDetailResponse,
    ApplicationSummary,
    BulkStatusTransitionRequest,
    BulkTransitionReport,
    MarkSheet,
    RecordMarksRequest,
    ReplaceAllTemplatesRequest,
    ReplaceTemplatesRequest,
    StatusTransitionRequest,
    SubjectTemplateListResponse,
    SyncReport,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Helper Functions
# ============================================


def _handle_service_error(e: ApplicationServiceError) -> None:
    """Convert service errors to HTTPExceptions."""
    raise HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    )


def _application_to_detail(pool: ApplicantPool, application) -> ApplicationDetailResponse:
    return ApplicationDetailResponse(
        pool=pool,
        application=ApplicationSummary.model_validate(application),
        status_label=status_machine.STATUS_LABELS[application.status],
        progress_percentage=status_machine.progress_percentage(application.status),
    )


# ============================================
# Applications & Status
# ============================================


@router.get(
    "/applications/{pool}/{application_id}",
    response_model=ApplicationDetailResponse,
    summary="Get Application",
)
async def get_application(
    pool: ApplicantPool,
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> ApplicationDetailResponse:
    application = await repository.get_application(db, pool, application_id)
    if application is None:
        _handle_service_error(ApplicationNotFoundError(pool, application_id))

    return _application_to_detail(pool, application)


@router.post(
    "/applications/{pool}/{application_id}/status",
    response_model=ApplicationDetailResponse,
    summary="Change Application Status",
    description="""
Move an application to any review status.

`shortlisted_for_interview` requires `interview_date` and `interview_time`;
they are saved together with the status.
""",
    responses={
        400: {"description": "Interview date and time missing when shortlisting"},
        404: {"description": "Application not found"},
    },
)
async def change_status(
    pool: ApplicantPool,
    application_id: UUID,
    data: StatusTransitionRequest,
    db: AsyncSession = Depends(get_db),
) -> ApplicationDetailResponse:
    try:
        application = await status_machine.transition_status(
            db, pool, application_id, data.status, schedule=data
        )
    except ApplicationServiceError as e:
        logger.warning(f"Status change rejected for {application_id}: {e.message}")
        _handle_service_error(e)

    return _application_to_detail(pool, application)


@router.post(
    "/applications/status",
    response_model=BulkTransitionReport,
    summary="Change Many Application Statuses",
    description="""
Move applications from either pool to one status. One update is issued per
pool; if a pool fails the response is 207 and the report names it.
""",
    responses={
        207: {"description": "Some pools failed to update", "model": BulkTransitionReport},
        400: {"description": "Interview date and time missing when shortlisting"},
    },
)
async def change_status_bulk(
    data: BulkStatusTransitionRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> BulkTransitionReport:
    try:
        report = await status_machine.transition_many(
            db, data.applications, data.status, schedule=data
        )
    except ApplicationServiceError as e:
        logger.warning(f"Bulk status change rejected: {e.message}")
        _handle_service_error(e)

    if report.failed_pools:
        response.status_code = status.HTTP_207_MULTI_STATUS

    return report


# ============================================
# Interview Subjects
# ============================================


@router.get(
    "/subject-templates",
    response_model=SubjectTemplateListResponse,
    summary="List Interview Subjects",
)
async def list_subject_templates(
    db: AsyncSession = Depends(get_db),
) -> SubjectTemplateListResponse:
    return await subject_sync.get_templates(db)


async def _replace(
    db: AsyncSession,
    response: Response,
    templates_by_pool: dict,
) -> SyncReport:
    try:
        return await subject_sync.replace_all_templates(db, templates_by_pool)
    except SyncPartialFailureError as e:
        logger.warning(e.message)
        response.status_code = status.HTTP_207_MULTI_STATUS
        return e.report
    except ApplicationServiceError as e:
        logger.warning(f"Interview subject update rejected: {e.message}")
        _handle_service_error(e)


@router.put(
    "/subject-templates",
    response_model=SyncReport,
    summary="Replace Interview Subjects",
    description="""
Save the interview subjects of both pools, as on the interview settings screen.
Both `early_years` and `senior_entry` are required; send `[]` to clear a pool.

Recorded marks follow the change: a new maximum is copied onto existing marks
and marks of removed subjects are deleted. Renaming a subject removes the
marks recorded under the old name.
""",
    responses={
        207: {"description": "Subjects saved, some marks not synchronized", "model": SyncReport},
        400: {"description": "Duplicate subject names"},
    },
)
async def replace_all_subject_templates(
    data: ReplaceAllTemplatesRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> SyncReport:
    return await _replace(db, response, data.by_pool())


@router.put(
    "/subject-templates/{pool}",
    response_model=SyncReport,
    summary="Replace One Pool's Interview Subjects",
    responses={
        207: {"description": "Subjects saved, some marks not synchronized", "model": SyncReport},
        400: {"description": "Duplicate subject names"},
    },
)
async def replace_subject_templates(
    pool: ApplicantPool,
    data: ReplaceTemplatesRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> SyncReport:
    return await _replace(db, response, {pool: data.subjects})


# ============================================
# Interview Marks
# ============================================


@router.get(
    "/applications/{pool}/{application_id}/marks",
    response_model=MarkSheet,
    summary="Get Mark Sheet",
)
async def get_mark_sheet(
    pool: ApplicantPool,
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> MarkSheet:
    try:
        return await marks.get_mark_sheet(db, pool, application_id)
    except ApplicationServiceError as e:
        _handle_service_error(e)


@router.put(
    "/applications/{pool}/{application_id}/marks",
    response_model=MarkSheet,
    summary="Record Interview Marks",
    description="""
Replace an applicant's interview marks. Subjects must be active interview
subjects of the pool; a subject sent without `marks` is cleared.
""",
    responses={
        400: {"description": "Unknown subject or mark out of range"},
        404: {"description": "Application not found"},
    },
)
async def record_marks(
    pool: ApplicantPool,
    application_id: UUID,
    data: RecordMarksRequest,
    db: AsyncSession = Depends(get_db),
) -> MarkSheet:
    try:
        return await marks.record_interview_marks(db, pool, application_id, data.marks)
    except ApplicationServiceError as e:
        logger.warning(f"Mark entry rejected for {application_id}: {e.message}")
        _handle_service_error(e)


# ============================================
# Admission Forms
# ============================================


@router.get(
    "/forms",
    response_model=AdmissionFormListResponse,
    summary="List Admission Form Settings",
)
async def list_admission_forms(
    db: AsyncSession = Depends(get_db),
) -> AdmissionFormListResponse:
    return AdmissionFormListResponse(forms=await admission_forms.get_admission_forms(db))


@router.patch(
    "/forms/{pool}",
    response_model=AdmissionFormOut,
    summary="Update Admission Form Settings",
)
async def update_admission_form(
    pool: ApplicantPool,
    data: AdmissionFormUpdate,
    db: AsyncSession = Depends(get_db),
) -> AdmissionFormOut:
    return await admission_forms.update_admission_form(
        db, pool, is_active=data.is_active, academic_year=data.academic_year
    )
