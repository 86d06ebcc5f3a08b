"""
Unit tests for the application status machine.
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from admissions_api.modules.admissions.exceptions import (
    ApplicationNotFoundError,
    StatusUpdateError,
    ValidationError,
)
from admissions_api.modules.admissions.models import ApplicantPool, ApplicationStatus
from admissions_api.modules.admissions.schemas import ApplicationRef, InterviewSchedule
from admissions_api.modules.admissions.status_machine import (
    STATUS_DESCRIPTIONS,
    STATUS_LABELS,
    STATUS_ORDER,
    progress_percentage,
    transition_many,
    transition_status,
)

STATUS_MACHINE = "admissions_api.modules.admissions.status_machine"


class TestProgressPercentage:
    """Tests for progress_percentage."""

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (ApplicationStatus.SUBMITTED, 17),
            (ApplicationStatus.UNDER_REVIEW, 33),
            (ApplicationStatus.SHORTLISTED_FOR_INTERVIEW, 50),
            (ApplicationStatus.INTERVIEW_COMPLETE, 67),
            (ApplicationStatus.ADMITTED, 83),
            (ApplicationStatus.NOT_ADMITTED, 100),
        ],
    )
    def test_progress_follows_canonical_order(self, status, expected):
        assert progress_percentage(status) == expected

    def test_canonical_order(self):
        assert STATUS_ORDER[0] == ApplicationStatus.SUBMITTED
        assert STATUS_ORDER[-1] == ApplicationStatus.NOT_ADMITTED
        assert len(STATUS_ORDER) == 6

    def test_every_status_has_label_and_description(self):
        for status in ApplicationStatus:
            assert STATUS_LABELS[status]
            assert STATUS_DESCRIPTIONS[status]


class TestTransitionStatus:
    """Tests for transition_status."""

    @pytest.mark.asyncio
    async def test_shortlisting_without_date_is_rejected_before_any_write(self, mock_db):
        """Missing interview date fails validation without touching storage."""
        with patch(f"{STATUS_MACHINE}.repository") as mock_repo:
            mock_repo.get_application = AsyncMock()
            mock_repo.update_application_status = AsyncMock()

            with pytest.raises(ValidationError):
                await transition_status(
                    mock_db,
                    ApplicantPool.EARLY_YEARS,
                    uuid4(),
                    ApplicationStatus.SHORTLISTED_FOR_INTERVIEW,
                    schedule=InterviewSchedule(interview_time="10:30"),
                )

            mock_repo.get_application.assert_not_called()
            mock_repo.update_application_status.assert_not_called()
            mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_shortlisting_without_schedule_is_rejected(self, mock_db):
        with patch(f"{STATUS_MACHINE}.repository") as mock_repo:
            mock_repo.update_application_status = AsyncMock()

            with pytest.raises(ValidationError) as exc_info:
                await transition_status(
                    mock_db,
                    ApplicantPool.SENIOR_ENTRY,
                    uuid4(),
                    ApplicationStatus.SHORTLISTED_FOR_INTERVIEW,
                )

            assert exc_info.value.status_code == 400
            mock_repo.update_application_status.assert_not_called()

    @pytest.mark.asyncio
    async def test_shortlisting_stamps_interview_slot_with_status(
        self, mock_db, early_years_model, interview_slot
    ):
        """Status, date and time are written in the same update."""
        with patch(f"{STATUS_MACHINE}.repository") as mock_repo:
            mock_repo.get_application = AsyncMock(return_value=early_years_model)
            mock_repo.update_application_status = AsyncMock(return_value=early_years_model)

            await transition_status(
                mock_db,
                ApplicantPool.EARLY_YEARS,
                early_years_model.id,
                ApplicationStatus.SHORTLISTED_FOR_INTERVIEW,
                schedule=InterviewSchedule(**interview_slot),
            )

            mock_repo.update_application_status.assert_called_once_with(
                mock_db,
                early_years_model,
                ApplicationStatus.SHORTLISTED_FOR_INTERVIEW,
                **interview_slot,
            )

    @pytest.mark.asyncio
    async def test_other_targets_leave_interview_fields_untouched(
        self, mock_db, early_years_model, interview_slot
    ):
        """A schedule sent with a non-shortlisting status is ignored."""
        with patch(f"{STATUS_MACHINE}.repository") as mock_repo:
            mock_repo.get_application = AsyncMock(return_value=early_years_model)
            mock_repo.update_application_status = AsyncMock(return_value=early_years_model)

            await transition_status(
                mock_db,
                ApplicantPool.EARLY_YEARS,
                early_years_model.id,
                ApplicationStatus.ADMITTED,
                schedule=InterviewSchedule(**interview_slot),
            )

            mock_repo.update_application_status.assert_called_once_with(
                mock_db, early_years_model, ApplicationStatus.ADMITTED
            )

    @pytest.mark.asyncio
    async def test_any_state_can_be_set_directly(self, mock_db, senior_entry_model):
        """Staff may move straight from submitted to a final state."""
        with patch(f"{STATUS_MACHINE}.repository") as mock_repo:
            mock_repo.get_application = AsyncMock(return_value=senior_entry_model)
            mock_repo.update_application_status = AsyncMock(return_value=senior_entry_model)

            result = await transition_status(
                mock_db,
                ApplicantPool.SENIOR_ENTRY,
                senior_entry_model.id,
                ApplicationStatus.NOT_ADMITTED,
            )

            assert result is senior_entry_model

    @pytest.mark.asyncio
    async def test_unknown_application_raises_not_found(self, mock_db):
        with patch(f"{STATUS_MACHINE}.repository") as mock_repo:
            mock_repo.get_application = AsyncMock(return_value=None)
            mock_repo.update_application_status = AsyncMock()

            with pytest.raises(ApplicationNotFoundError) as exc_info:
                await transition_status(
                    mock_db, ApplicantPool.SENIOR_ENTRY, uuid4(), ApplicationStatus.UNDER_REVIEW
                )

            assert exc_info.value.status_code == 404
            mock_repo.update_application_status.assert_not_called()

    @pytest.mark.asyncio
    async def test_storage_failure_raises_status_update_error(self, mock_db, early_years_model):
        with patch(f"{STATUS_MACHINE}.repository") as mock_repo:
            mock_repo.get_application = AsyncMock(return_value=early_years_model)
            mock_repo.update_application_status = AsyncMock(
                side_effect=OperationalError("UPDATE", {}, Exception("timeout"))
            )

            with pytest.raises(StatusUpdateError):
                await transition_status(
                    mock_db,
                    ApplicantPool.EARLY_YEARS,
                    early_years_model.id,
                    ApplicationStatus.UNDER_REVIEW,
                )

            mock_db.rollback.assert_called_once()


class TestTransitionMany:
    """Tests for transition_many."""

    @pytest.mark.asyncio
    async def test_one_update_per_pool(self, mock_db):
        """References are partitioned by pool and each pool is updated once."""
        early_ids = [uuid4(), uuid4()]
        senior_ids = [uuid4()]
        refs = [
            ApplicationRef(pool=ApplicantPool.EARLY_YEARS, id=early_ids[0]),
            ApplicationRef(pool=ApplicantPool.SENIOR_ENTRY, id=senior_ids[0]),
            ApplicationRef(pool=ApplicantPool.EARLY_YEARS, id=early_ids[1]),
        ]

        with patch(f"{STATUS_MACHINE}.repository") as mock_repo:
            mock_repo.bulk_update_status = AsyncMock(side_effect=[2, 1])

            report = await transition_many(mock_db, refs, ApplicationStatus.UNDER_REVIEW)

            calls = mock_repo.bulk_update_status.call_args_list
            assert len(calls) == 2
            assert calls[0].args[1:] == (
                ApplicantPool.EARLY_YEARS,
                early_ids,
                ApplicationStatus.UNDER_REVIEW,
            )
            assert calls[1].args[1:] == (
                ApplicantPool.SENIOR_ENTRY,
                senior_ids,
                ApplicationStatus.UNDER_REVIEW,
            )
            assert [r.updated for r in report.results] == [2, 1]
            assert report.failed_pools == []

    @pytest.mark.asyncio
    async def test_pool_failure_is_reported_not_swallowed(self, mock_db, interview_slot):
        """One pool failing leaves the other pool's update in place and is reported."""
        refs = [
            ApplicationRef(pool=ApplicantPool.EARLY_YEARS, id=uuid4()),
            ApplicationRef(pool=ApplicantPool.SENIOR_ENTRY, id=uuid4()),
        ]

        with patch(f"{STATUS_MACHINE}.repository") as mock_repo:
            mock_repo.bulk_update_status = AsyncMock(
                side_effect=[1, OperationalError("UPDATE", {}, Exception("deadlock"))]
            )

            report = await transition_many(
                mock_db,
                refs,
                ApplicationStatus.SHORTLISTED_FOR_INTERVIEW,
                schedule=InterviewSchedule(**interview_slot),
            )

            assert report.failed_pools == [ApplicantPool.SENIOR_ENTRY]
            early, senior = report.results
            assert early.updated == 1 and early.error is None
            assert senior.updated == 0 and "deadlock" in senior.error
            assert mock_repo.bulk_update_status.call_args_list[0].kwargs == interview_slot
            mock_db.rollback.assert_called_once()

    @pytest.mark.asyncio
    async def test_bulk_shortlisting_requires_schedule(self, mock_db):
        refs = [ApplicationRef(pool=ApplicantPool.EARLY_YEARS, id=uuid4())]

        with patch(f"{STATUS_MACHINE}.repository") as mock_repo:
            mock_repo.bulk_update_status = AsyncMock()

            with pytest.raises(ValidationError):
                await transition_many(
                    mock_db, refs, ApplicationStatus.SHORTLISTED_FOR_INTERVIEW
                )

            mock_repo.bulk_update_status.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate_references_are_updated_once(self, mock_db):
        application_id = uuid4()
        refs = [
            ApplicationRef(pool=ApplicantPool.SENIOR_ENTRY, id=application_id),
            ApplicationRef(pool=ApplicantPool.SENIOR_ENTRY, id=application_id),
        ]

        with patch(f"{STATUS_MACHINE}.repository") as mock_repo:
            mock_repo.bulk_update_status = AsyncMock(return_value=1)

            report = await transition_many(mock_db, refs, ApplicationStatus.ADMITTED)

            assert report.results[0].requested == 1
            assert mock_repo.bulk_update_status.call_args.args[2] == [application_id]
