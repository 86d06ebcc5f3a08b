"""
Admissions Router

Public API endpoints used by the admission forms and the application
tracking page. No authentication is required.

Endpoints:
- POST /admissions/applications - Submit an application to either pool
- POST /admissions/applications/lookup - Track an application by number and mobile
- GET /admissions/forms - Academic year and open/closed state of each form

Security:
- Rate limiting per client IP on submission and lookup (Redis, memory fallback)
- Lookup requires the mobile number given on the form
- Input validation via Pydantic schemas
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from admissions_api.core.config import settings
from admissions_api.core.database import get_db
from admissions_api.core.rate_limit import enforce_rate_limit
from admissions_api.modules.admissions import admission_forms, intake, lookup
from admissions_api.modules.admissions.exceptions import (
    ApplicationServiceError,
    MobileMismatchError,
    NotFoundError,
)
from admissions_api.modules.admissions.schemas import (
    AdmissionFormListResponse,
    ApplicationCreate,
    ApplicationLookupRequest,
    ApplicationLookupResponse,
    ApplicationSubmitted,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _handle_service_error(e: ApplicationServiceError) -> HTTPException:
    """Convert a service error to an HTTPException."""
    return HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    )


@router.post(
    "/applications",
    response_model=ApplicationSubmitted,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Admission Application",
    description="""
Submit an admission application for early years (KG & STD) or senior entry (+1).

The `pool` field selects the form: `early_years` or `senior_entry`.

**Response:**
Returns the generated application number (e.g. `MHS2026-4821`). The
applicant needs it, together with the mobile number on the form, to track
the application.
""",
    responses={
        201: {"description": "Application stored", "model": ApplicationSubmitted},
        409: {
            "description": "Admissions are closed for this pool",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "error": "ADMISSIONS_CLOSED",
                            "message": "Admissions are currently closed for senior entry.",
                        }
                    }
                }
            },
        },
        429: {"description": "Too many submissions from this client"},
        503: {"description": "Could not allocate an application number, try again"},
    },
)
async def submit_application(
    data: ApplicationCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> ApplicationSubmitted:
    """
    Submit a new admission application.

    Raises:
        HTTPException 409: Admissions closed for the pool
        HTTPException 429: Rate limit exceeded
        HTTPException 500/503: The application could not be stored
    """
    await enforce_rate_limit(
        request,
        "submit",
        settings.submit_rate_limit,
        settings.submit_rate_window_seconds,
    )

    try:
        return await intake.submit_application(db, data)
    except ApplicationServiceError as e:
        logger.error(f"Application submission failed: {e.error_code} {e.message}")
        raise _handle_service_error(e) from e


@router.post(
    "/applications/lookup",
    response_model=ApplicationLookupResponse,
    summary="Track Application",
    description="""
Get the status of an application using the application number and the
mobile number given on the form.

Mobile numbers match on their last 10 digits, so `+91 96454-99929` and
`9645499929` are the same number.

**Response:**
The application, its review status and progress, the academic year and,
once entered, the interview marks with scores.
""",
    responses={
        200: {"description": "Application found", "model": ApplicationLookupResponse},
        403: {
            "description": "Mobile number does not match",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "error": "MOBILE_MISMATCH",
                            "message": "The mobile number does not match the application",
                        }
                    }
                }
            },
        },
        404: {
            "description": "No application with this number",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "error": "NOT_FOUND",
                            "message": "No application found for the given details",
                        }
                    }
                }
            },
        },
        429: {"description": "Too many lookups from this client"},
        503: {"description": "Application status temporarily unavailable"},
    },
)
async def lookup_application(
    data: ApplicationLookupRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> ApplicationLookupResponse:
    """
    Track an application.

    Raises:
        HTTPException 403: Mobile number does not match
        HTTPException 404: Application not found
        HTTPException 429: Rate limit exceeded
        HTTPException 503: Storage unavailable
    """
    await enforce_rate_limit(
        request,
        "lookup",
        settings.lookup_rate_limit,
        settings.lookup_rate_window_seconds,
    )

    try:
        return await lookup.resolve_application(db, data.application_number, data.mobile_number)
    except (NotFoundError, MobileMismatchError) as e:
        logger.info(f"Lookup refused for {data.application_number}: {e.error_code}")
        raise _handle_service_error(e) from e
    except ApplicationServiceError as e:
        logger.error(f"Lookup failed for {data.application_number}: {e.message}")
        raise _handle_service_error(e) from e


@router.get(
    "/forms",
    response_model=AdmissionFormListResponse,
    summary="List Admission Forms",
    description="Academic year and whether each pool's admission form is open.",
)
async def list_admission_forms(
    db: AsyncSession = Depends(get_db),
) -> AdmissionFormListResponse:
    forms = await admission_forms.get_admission_forms(db)
    return AdmissionFormListResponse(forms=forms)
