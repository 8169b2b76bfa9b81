"""Tests for the application lifecycle rules."""

from datetime import datetime, timedelta, timezone

import pytest

from kheticulture.jobs import lifecycle
from kheticulture.jobs.errors import (
    InvalidTransitionError,
    NotEligibleError,
    ReasonCode,
    TerminalStateViolation,
)
from kheticulture.jobs.models import Application, ApplicationStatus, Job, JobStatus

T0 = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


def _job(**overrides) -> Job:
    fields = dict(id="job-1", owner_id="farmer-1", title="Harvest", wage=500.0, required_workers=2)
    fields.update(overrides)
    return Job(**fields)


def _app(status="pending", worker_id="w1", rejected_at=None, app_id="app-1") -> Application:
    return Application(
        id=app_id,
        job_id="job-1",
        worker_id=worker_id,
        status=status,
        rejected_at=rejected_at,
        created_at=T0,
    )


class TestHoursUntilReapply:
    """Tests for cooldown arithmetic."""

    @pytest.mark.parametrize(
        "elapsed, expected",
        [
            (timedelta(minutes=30), 24),
            (timedelta(hours=1), 23),
            (timedelta(hours=23, minutes=30), 1),
            (timedelta(hours=24), 0),
            (timedelta(hours=25), 0),
        ],
    )
    def test_rounds_remaining_time_up(self, elapsed, expected):
        assert lifecycle.hours_until_reapply(T0, T0 + elapsed) == expected

    def test_custom_cooldown(self):
        assert lifecycle.hours_until_reapply(T0, T0 + timedelta(hours=1), cooldown_hours=6) == 5


class TestReapplyStatus:
    """Tests for the worker-facing reapply view."""

    def test_nothing_to_reapply_from(self):
        status = lifecycle.reapply_status([], T0)
        assert status.can_reapply is False
        assert status.hours_left == 0
        assert status.message == ""

    def test_pending_application_blocks(self):
        assert lifecycle.reapply_status([_app()], T0).can_reapply is False

    def test_cooldown_running(self):
        status = lifecycle.reapply_status(
            [_app(status="rejected", rejected_at=T0)], T0 + timedelta(hours=1)
        )
        assert status.can_reapply is False
        assert status.hours_left == 23
        assert status.message == "Can reapply in 23 hours"

    def test_cooldown_elapsed(self):
        status = lifecycle.reapply_status(
            [_app(status="rejected", rejected_at=T0)], T0 + timedelta(hours=25)
        )
        assert status.can_reapply is True
        assert status.message == ""

    def test_uses_latest_rejection(self):
        apps = [
            _app(status="rejected", rejected_at=T0, app_id="a1"),
            _app(status="rejected", rejected_at=T0 + timedelta(hours=30), app_id="a2"),
        ]
        status = lifecycle.reapply_status(apps, T0 + timedelta(hours=32))
        assert status.can_reapply is False
        assert status.hours_left == 22


class TestCheckApplyEligibility:
    """Tests for apply preconditions."""

    def test_eligible(self):
        lifecycle.check_apply_eligibility(_job(), "w1", [], T0)

    def test_owner_cannot_apply(self):
        with pytest.raises(NotEligibleError) as exc:
            lifecycle.check_apply_eligibility(_job(), "farmer-1", [], T0)
        assert exc.value.code == ReasonCode.OWN_JOB

    def test_pending_application_blocks(self):
        with pytest.raises(NotEligibleError) as exc:
            lifecycle.check_apply_eligibility(_job(), "w1", [_app()], T0)
        assert exc.value.code == ReasonCode.ALREADY_APPLIED

    def test_accepted_application_blocks(self):
        with pytest.raises(NotEligibleError) as exc:
            lifecycle.check_apply_eligibility(
                _job(accepted_worker_ids=["w1"]), "w1", [_app(status="accepted")], T0
            )
        assert exc.value.code == ReasonCode.ALREADY_ACCEPTED

    def test_cooldown_blocks_with_remaining_hours(self):
        with pytest.raises(NotEligibleError, match="Can reapply in 23 hours") as exc:
            lifecycle.check_apply_eligibility(
                _job(), "w1", [_app(status="rejected", rejected_at=T0)], T0 + timedelta(hours=1)
            )
        assert exc.value.code == ReasonCode.COOLDOWN_ACTIVE

    def test_cooldown_elapsed_allows(self):
        lifecycle.check_apply_eligibility(
            _job(), "w1", [_app(status="rejected", rejected_at=T0)], T0 + timedelta(hours=24)
        )

    def test_filled_job(self):
        job = _job(required_workers=1, accepted_worker_ids=["w9"], status="filled")
        with pytest.raises(NotEligibleError) as exc:
            lifecycle.check_apply_eligibility(job, "w1", [], T0)
        assert exc.value.code == ReasonCode.JOB_FILLED

    def test_open_but_full_job(self):
        """Stale 'open' status on a full job still refuses applications."""
        job = _job(required_workers=1, accepted_worker_ids=["w9"], status="open")
        with pytest.raises(NotEligibleError) as exc:
            lifecycle.check_apply_eligibility(job, "w1", [], T0)
        assert exc.value.code == ReasonCode.JOB_FILLED

    @pytest.mark.parametrize("status", [JobStatus.IN_PROGRESS, JobStatus.COMPLETED])
    def test_job_not_open(self, status):
        with pytest.raises(NotEligibleError, match="not accepting") as exc:
            lifecycle.check_apply_eligibility(_job(status=status), "w1", [], T0)
        assert exc.value.code == ReasonCode.JOB_NOT_OPEN


class TestAccept:
    """Tests for accepting an application."""

    def test_accept_adds_worker(self):
        job, app = lifecycle.accept(_app(), _job(), T0)

        assert app.status == ApplicationStatus.ACCEPTED
        assert app.decided_at == T0
        assert job.accepted_worker_ids == ["w1"]
        # Status is left to the status manager
        assert job.status == JobStatus.OPEN

    def test_accept_is_idempotent_for_existing_member(self):
        job, _ = lifecycle.accept(_app(), _job(accepted_worker_ids=["w1"]), T0)
        assert job.accepted_worker_ids == ["w1"]

    def test_accept_does_not_mutate_inputs(self):
        original_job = _job()
        original_app = _app()
        lifecycle.accept(original_app, original_job, T0)
        assert original_job.accepted_worker_ids == []
        assert original_app.is_pending

    def test_accept_non_pending_fails(self):
        with pytest.raises(InvalidTransitionError, match="already accepted") as exc:
            lifecycle.accept(_app(status="accepted"), _job(), T0)
        assert exc.value.code == ReasonCode.NOT_PENDING

    def test_accept_on_full_job_fails(self):
        job = _job(required_workers=1, accepted_worker_ids=["w9"])
        with pytest.raises(InvalidTransitionError) as exc:
            lifecycle.accept(_app(), job, T0)
        assert exc.value.code == ReasonCode.JOB_FILLED

    def test_accept_worker_already_counted_on_full_job(self):
        """Finishing an acceptance whose job write already landed is allowed."""
        job = _job(required_workers=1, accepted_worker_ids=["w1"], status="filled")
        updated_job, app = lifecycle.accept(_app(), job, T0)

        assert updated_job.accepted_worker_ids == ["w1"]
        assert app.status == ApplicationStatus.ACCEPTED

    def test_accept_on_completed_job_fails(self):
        with pytest.raises(TerminalStateViolation):
            lifecycle.accept(_app(), _job(status="completed"), T0)


class TestReject:
    """Tests for rejecting an application."""

    def test_reject_stamps_time(self):
        rejected = lifecycle.reject(_app(), T0)

        assert rejected.status == ApplicationStatus.REJECTED
        assert rejected.rejected_at == T0
        assert rejected.decided_at == T0

    def test_reject_non_pending_fails(self):
        with pytest.raises(InvalidTransitionError):
            lifecycle.reject(_app(status="rejected", rejected_at=T0), T0)


class TestNewApplication:
    def test_new_application_is_pending(self):
        app = lifecycle.new_application("job-1", "w1", T0)

        assert app.status == ApplicationStatus.PENDING
        assert app.created_at == T0
        assert app.id
