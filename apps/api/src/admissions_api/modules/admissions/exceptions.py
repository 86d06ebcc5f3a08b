"""
Admissions Errors

Every error raised by the admissions services carries a stable error code
and the HTTP status the routers answer with.
"""

from collections.abc import Iterable
from uuid import UUID

from admissions_api.modules.admissions.models import ApplicantPool


class ApplicationServiceError(Exception):
    """Base exception for admissions service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


# ============================================
# Intake
# ============================================


class CollisionError(ApplicationServiceError):
    """The generated application number already exists in the pool."""

    def __init__(self, application_number: str):
        self.application_number = application_number
        super().__init__(
            message=f"Application number {application_number} is already taken",
            error_code="APPLICATION_NUMBER_COLLISION",
            status_code=409,
        )


class SchemaMismatchError(ApplicationServiceError):
    """The pool's table lacks one or more columns of the preferred record shape."""

    def __init__(self, pool: ApplicantPool, detail: str):
        self.pool = pool
        super().__init__(
            message=f"Storage schema for {pool.value} is missing expected columns: {detail}",
            error_code="SCHEMA_MISMATCH",
            status_code=500,
        )


class IntakeError(ApplicationServiceError):
    """A submission failed for a reason that retrying will not fix."""

    def __init__(
        self,
        reason: str,
        error_code: str = "INTAKE_FAILED",
        status_code: int = 500,
    ):
        self.reason = reason
        super().__init__(message=reason, error_code=error_code, status_code=status_code)


class IntakeExhaustedError(IntakeError):
    """Every attempt collided with an existing application number."""

    def __init__(self, attempts: int, last_error: Exception | None):
        self.attempts = attempts
        self.last_error = last_error
        reason = str(last_error) if last_error else "no attempt succeeded"
        super().__init__(
            reason=f"Could not allocate an application number after {attempts} attempts: {reason}",
            error_code="INTAKE_EXHAUSTED",
            status_code=503,
        )


class AdmissionsClosedError(ApplicationServiceError):
    """The pool's admission form is switched off."""

    def __init__(self, pool: ApplicantPool):
        self.pool = pool
        super().__init__(
            message=f"Admissions are currently closed for {pool.value.replace('_', ' ')}.",
            error_code="ADMISSIONS_CLOSED",
            status_code=409,
        )


# ============================================
# Staff actions
# ============================================


class ValidationError(ApplicationServiceError):
    """A request is missing required side data or carries invalid values."""

    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(message=message, error_code=error_code, status_code=400)


class DuplicateSubjectError(ValidationError):
    """The same subject name appears twice in one pool's template list."""

    def __init__(self, pool: ApplicantPool, subject_names: Iterable[str]):
        self.pool = pool
        self.subject_names = sorted(subject_names)
        super().__init__(
            message=(
                f"Duplicate interview subjects for {pool.value}: {', '.join(self.subject_names)}"
            ),
            error_code="DUPLICATE_SUBJECT",
        )


class UnknownSubjectError(ValidationError):
    """Marks were entered for subjects that are not active templates of the pool."""

    def __init__(self, pool: ApplicantPool, subject_names: Iterable[str]):
        self.pool = pool
        self.subject_names = sorted(subject_names)
        super().__init__(
            message=(
                f"Not an active interview subject for {pool.value}: "
                f"{', '.join(self.subject_names)}"
            ),
            error_code="UNKNOWN_SUBJECT",
        )


class ApplicationNotFoundError(ApplicationServiceError):
    """Raised when a staff action targets an application that does not exist."""

    def __init__(self, pool: ApplicantPool, application_id: UUID | None = None):
        message = (
            f"Application {application_id} not found in {pool.value}"
            if application_id
            else "Application not found"
        )
        super().__init__(
            message=message,
            error_code="APPLICATION_NOT_FOUND",
            status_code=404,
        )


class StatusUpdateError(ApplicationServiceError):
    """The storage layer rejected a status update."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="STATUS_UPDATE_FAILED",
            status_code=500,
        )


class MarkEntryError(ApplicationServiceError):
    """The storage layer rejected a mark entry."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="MARK_ENTRY_FAILED",
            status_code=500,
        )


class TemplateSaveError(ApplicationServiceError):
    """The storage layer rejected a template replacement; nothing was changed."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="TEMPLATE_SAVE_FAILED",
            status_code=500,
        )


class SyncPartialFailureError(ApplicationServiceError):
    """
    Templates were replaced but some mark rows could not be repaired.

    The template change stays committed. `failed_subjects` names the subjects
    whose mark repair should be retried.
    """

    def __init__(self, report, failed_subjects: list[str]):
        self.report = report
        self.failed_subjects = failed_subjects
        super().__init__(
            message=(
                "Interview subjects saved, but marks could not be synchronized for: "
                f"{', '.join(failed_subjects)}"
            ),
            error_code="SYNC_PARTIAL_FAILURE",
            status_code=207,
        )


# ============================================
# Applicant lookup
# ============================================


class NotFoundError(ApplicationServiceError):
    """No application exists for the given number."""

    def __init__(self):
        super().__init__(
            message="No application found for the given details",
            error_code="NOT_FOUND",
            status_code=404,
        )


class LookupUnavailableError(ApplicationServiceError):
    """The application could not be looked up because storage failed."""

    def __init__(self):
        super().__init__(
            message="Application status is temporarily unavailable. Please try again later.",
            error_code="LOOKUP_UNAVAILABLE",
            status_code=503,
        )


class MobileMismatchError(ApplicationServiceError):
    """The application exists but the mobile number does not match it."""

    def __init__(self):
        super().__init__(
            message="The mobile number does not match the application",
            error_code="MOBILE_MISMATCH",
            status_code=403,
        )
