"""
Unit tests for the applicant-facing lookup service.

These tests cover:
- Exact number + mobile match across both pools
- Tolerant match on normalized mobile numbers
- Legacy early-years rows (child_name)
- Mobile mismatch versus not found
- Infrastructure errors on the exact path falling through
- Storage failures reported as unavailable rather than not found
"""

from datetime import date
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

from admissions_api.modules.admissions.exceptions import (
    LookupUnavailableError,
    MobileMismatchError,
    NotFoundError,
)
from admissions_api.modules.admissions.lookup import resolve_application
from admissions_api.modules.admissions.models import (
    ApplicantPool,
    ApplicationStatus,
    EarlyYearsApplication,
    Gender,
)
from admissions_api.modules.admissions.schemas import InterviewMarkView

LOOKUP = "admissions_api.modules.admissions.lookup"
EARLY = ApplicantPool.EARLY_YEARS
SENIOR = ApplicantPool.SENIOR_ENTRY


def _raw_row(**overrides) -> dict:
    row = {
        "id": uuid4(),
        "application_number": "MHS2026-7310",
        "full_name": "Muhammed Shifan",
        "gender": "boy",
        "mobile_number": "9645499929",
        "email": None,
        "status": "shortlisted_for_interview",
        "interview_date": date(2026, 4, 20),
    }
    row.update(overrides)
    return row


@pytest.fixture
def lookup_mocks():
    """Patch the lookup's collaborators and hand them to the test."""
    marks = [
        InterviewMarkView(subject_name="English", marks_obtained=45, max_marks=50),
        InterviewMarkView(subject_name="Maths", marks_obtained=0, max_marks=50),
    ]
    with (
        patch(f"{LOOKUP}.repository") as mock_repo,
        patch(f"{LOOKUP}.get_academic_year", AsyncMock(return_value="2026-27")) as mock_year,
        patch(f"{LOOKUP}.load_interview_marks", AsyncMock(return_value=marks)) as mock_marks,
    ):
        mock_repo.find_by_number_and_mobile = AsyncMock(return_value=None)
        mock_repo.fetch_raw_by_number = AsyncMock(return_value=None)
        yield mock_repo, mock_year, mock_marks


class TestExactMatch:
    @pytest.mark.asyncio
    async def test_exact_match_in_early_years(self, mock_db, lookup_mocks):
        mock_repo, mock_year, mock_marks = lookup_mocks
        application = EarlyYearsApplication(
            id=uuid4(),
            application_number="MHS2026-4821",
            full_name="Aysha Rahman",
            gender=Gender.GIRL,
            mobile_number="+91 96454-99929",
            status=ApplicationStatus.UNDER_REVIEW,
            stage="STD 3",
        )
        mock_repo.find_by_number_and_mobile.return_value = application

        result = await resolve_application(mock_db, " MHS2026-4821 ", "+91 96454-99929 ")

        mock_repo.find_by_number_and_mobile.assert_called_once_with(
            mock_db, EARLY, "MHS2026-4821", "+91 96454-99929"
        )
        mock_repo.fetch_raw_by_number.assert_not_called()
        assert result.pool == EARLY
        assert result.academic_year == "2026-27"
        assert result.status == ApplicationStatus.UNDER_REVIEW
        assert result.status_label == "Under Review"
        assert result.progress_percentage == 33
        assert result.application["full_name"] == "Aysha Rahman"
        # Null columns are left out
        assert "email" not in result.application
        assert [s.percentage for s in result.scores.per_subject] == [90, 0]
        assert result.scores.total.percentage == 45
        mock_year.assert_called_once_with(mock_db, EARLY)
        mock_marks.assert_called_once_with(mock_db, EARLY, application.id)

    @pytest.mark.asyncio
    async def test_exact_match_checks_senior_entry_second(self, mock_db, lookup_mocks):
        mock_repo, _, _ = lookup_mocks

        with pytest.raises(NotFoundError):
            await resolve_application(mock_db, "MHS2026-0000", "9645499929")

        pools = [c.args[1] for c in mock_repo.find_by_number_and_mobile.call_args_list]
        assert pools == [EARLY, SENIOR]

    @pytest.mark.asyncio
    async def test_exact_path_error_falls_back(self, mock_db, lookup_mocks):
        mock_repo, _, _ = lookup_mocks
        mock_repo.find_by_number_and_mobile.side_effect = ProgrammingError(
            "SELECT", {}, Exception('column "stage" does not exist')
        )
        mock_repo.fetch_raw_by_number.side_effect = [_raw_row(), None]

        result = await resolve_application(mock_db, "MHS2026-7310", "9645499929")

        assert result.pool == SENIOR
        mock_db.rollback.assert_called_once()


class TestTolerantMatch:
    @pytest.mark.asyncio
    async def test_formatted_mobile_matches_senior_entry(self, mock_db, lookup_mocks):
        mock_repo, _, _ = lookup_mocks
        mock_repo.fetch_raw_by_number.side_effect = [_raw_row(), None]

        result = await resolve_application(mock_db, "MHS2026-7310", "+91 96454-99929")

        assert result.pool == SENIOR
        assert result.status == ApplicationStatus.SHORTLISTED_FOR_INTERVIEW
        assert result.application["interview_date"] == date(2026, 4, 20)
        pools = [c.args[1] for c in mock_repo.fetch_raw_by_number.call_args_list]
        assert pools == [SENIOR]

    @pytest.mark.asyncio
    async def test_senior_entry_mismatch_raises_mobile_mismatch(self, mock_db, lookup_mocks):
        mock_repo, _, _ = lookup_mocks
        mock_repo.fetch_raw_by_number.side_effect = [_raw_row(mobile_number="9000000000"), None]

        with pytest.raises(MobileMismatchError) as exc_info:
            await resolve_application(mock_db, "MHS2026-7310", "9645499929")

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "The mobile number does not match the application"

    @pytest.mark.asyncio
    async def test_legacy_early_years_row(self, mock_db, lookup_mocks):
        """An early-years row with child_name and no full_name is still matched."""
        mock_repo, _, _ = lookup_mocks
        legacy = _raw_row(
            application_number="MHS2025-1234",
            full_name=None,
            child_name="Aysha Rahman",
            mobile_number="96454 99929",
            status="submitted",
        )
        del legacy["full_name"]
        mock_repo.fetch_raw_by_number.side_effect = [None, legacy]

        result = await resolve_application(mock_db, "MHS2025-1234", "+919645499929")

        assert result.pool == EARLY
        assert result.application["full_name"] == "Aysha Rahman"
        assert "child_name" not in result.application
        assert result.progress_percentage == 17

    @pytest.mark.asyncio
    async def test_mismatch_in_one_pool_does_not_hide_match_in_other(
        self, mock_db, lookup_mocks
    ):
        mock_repo, _, _ = lookup_mocks
        mock_repo.fetch_raw_by_number.side_effect = [
            _raw_row(mobile_number="9000000000"),
            _raw_row(status="admitted"),
        ]

        result = await resolve_application(mock_db, "MHS2026-7310", "9645499929")

        assert result.pool == EARLY

    @pytest.mark.asyncio
    async def test_unknown_number_raises_not_found(self, mock_db, lookup_mocks):
        with pytest.raises(NotFoundError) as exc_info:
            await resolve_application(mock_db, "MHS2026-0000", "9645499929")

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "No application found for the given details"

    @pytest.mark.asyncio
    async def test_error_in_one_pool_still_checks_the_other(self, mock_db, lookup_mocks):
        mock_repo, _, _ = lookup_mocks
        mock_repo.fetch_raw_by_number.side_effect = [
            OperationalError("SELECT", {}, Exception("timeout")),
            _raw_row(),
        ]

        result = await resolve_application(mock_db, "MHS2026-7310", "9645499929")

        assert result.pool == EARLY

    @pytest.mark.asyncio
    async def test_failed_pool_is_not_reported_as_not_found(self, mock_db, lookup_mocks):
        """The application may sit in the pool that could not be read."""
        mock_repo, _, _ = lookup_mocks
        error = OperationalError("SELECT", {}, Exception("senior table down"))
        mock_repo.fetch_raw_by_number.side_effect = [error, None]

        with pytest.raises(LookupUnavailableError) as exc_info:
            await resolve_application(mock_db, "MHS2026-7310", "9645499929")

        assert exc_info.value.status_code == 503
        assert exc_info.value.error_code == "LOOKUP_UNAVAILABLE"
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_mismatch_wins_over_failed_pool(self, mock_db, lookup_mocks):
        mock_repo, _, _ = lookup_mocks
        mock_repo.fetch_raw_by_number.side_effect = [
            OperationalError("SELECT", {}, Exception("timeout")),
            _raw_row(mobile_number="9000000000"),
        ]

        with pytest.raises(MobileMismatchError):
            await resolve_application(mock_db, "MHS2026-7310", "9645499929")

    @pytest.mark.asyncio
    async def test_every_pool_failing_is_service_error(self, mock_db, lookup_mocks):
        mock_repo, _, _ = lookup_mocks
        error = OperationalError("SELECT", {}, Exception("database down"))
        mock_repo.fetch_raw_by_number.side_effect = [error, error]

        with pytest.raises(LookupUnavailableError):
            await resolve_application(mock_db, "MHS2026-7310", "9645499929")

    @pytest.mark.asyncio
    async def test_failure_building_result_is_service_error(self, mock_db, lookup_mocks):
        mock_repo, _, mock_marks = lookup_mocks
        mock_repo.fetch_raw_by_number.side_effect = [_raw_row(), None]
        mock_marks.side_effect = OperationalError("SELECT", {}, Exception("marks down"))

        with pytest.raises(LookupUnavailableError):
            await resolve_application(mock_db, "MHS2026-7310", "9645499929")

        mock_db.rollback.assert_called()
