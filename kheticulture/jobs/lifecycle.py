"""
Application lifecycle.

    pending --accept--> accepted   (final for that application)
    pending --reject--> rejected   (stamps rejected_at)

A rejected worker may apply to the same job again once the cooldown
has passed since the rejection. That creates a new application; the
rejected one stays as history.

Functions here take records and return new records. They never touch
storage; ``JobService`` persists what they return.
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from kheticulture.jobs.errors import (
    InvalidTransitionError,
    NotEligibleError,
    ReasonCode,
    TerminalStateViolation,
)
from kheticulture.jobs.models import Application, ApplicationStatus, Job, JobStatus
from kheticulture.utils import new_id

DEFAULT_COOLDOWN_HOURS = 24


@dataclass(frozen=True)
class ReapplyStatus:
    """Whether a worker may apply again after a rejection."""

    can_reapply: bool
    hours_left: int = 0

    @property
    def message(self) -> str:
        if self.can_reapply or self.hours_left <= 0:
            return ""
        return f"Can reapply in {self.hours_left} hours"


def hours_until_reapply(
    rejected_at: datetime,
    now: datetime,
    cooldown_hours: int = DEFAULT_COOLDOWN_HOURS,
) -> int:
    """Whole hours left in the cooldown, rounded up. 0 once it has elapsed."""
    remaining = timedelta(hours=cooldown_hours) - (now - rejected_at)
    if remaining <= timedelta(0):
        return 0
    return math.ceil(remaining / timedelta(hours=1))


def latest_rejection(applications: Iterable[Application]) -> Optional[Application]:
    rejected = [a for a in applications if a.is_rejected]
    if not rejected:
        return None
    return max(rejected, key=lambda a: a.rejected_at)


def reapply_status(
    applications: Iterable[Application],
    now: datetime,
    cooldown_hours: int = DEFAULT_COOLDOWN_HOURS,
) -> ReapplyStatus:
    """Reapplication state for one worker's applications to one job.

    Returns ``can_reapply=False`` with no wait when there is nothing to
    reapply from (no rejection, or an application is still active).
    """
    applications = list(applications)
    if any(a.is_active for a in applications):
        return ReapplyStatus(can_reapply=False)
    last = latest_rejection(applications)
    if last is None:
        return ReapplyStatus(can_reapply=False)
    hours_left = hours_until_reapply(last.rejected_at, now, cooldown_hours)
    return ReapplyStatus(can_reapply=hours_left == 0, hours_left=hours_left)


def check_apply_eligibility(
    job: Job,
    worker_id: str,
    pair_applications: Iterable[Application],
    now: datetime,
    cooldown_hours: int = DEFAULT_COOLDOWN_HOURS,
) -> None:
    """Raise NotEligibleError unless ``worker_id`` may apply to ``job`` now.

    Args:
        job: The job being applied to
        worker_id: The applying worker
        pair_applications: Every existing application by this worker to this job
        now: Current time
        cooldown_hours: Wait after a rejection before reapplying
    """
    if worker_id == job.owner_id:
        raise NotEligibleError("You cannot apply to your own job", ReasonCode.OWN_JOB)

    pair_applications = list(pair_applications)
    for app in pair_applications:
        if app.is_accepted:
            raise NotEligibleError(
                "Your application for this job was already accepted",
                ReasonCode.ALREADY_ACCEPTED,
            )
        if app.is_pending:
            raise NotEligibleError(
                "You have already applied to this job", ReasonCode.ALREADY_APPLIED
            )

    last = latest_rejection(pair_applications)
    if last is not None:
        hours_left = hours_until_reapply(last.rejected_at, now, cooldown_hours)
        if hours_left > 0:
            raise NotEligibleError(
                f"Can reapply in {hours_left} hours", ReasonCode.COOLDOWN_ACTIVE
            )

    if job.status == JobStatus.FILLED or (job.is_open and job.is_full):
        raise NotEligibleError("All positions are filled", ReasonCode.JOB_FILLED)
    if not job.is_open:
        raise NotEligibleError(
            f"Job is not accepting applications (status: {job.status.value})",
            ReasonCode.JOB_NOT_OPEN,
        )


def new_application(job_id: str, worker_id: str, now: datetime) -> Application:
    """Build a fresh pending application."""
    return Application(
        id=new_id(),
        job_id=job_id,
        worker_id=worker_id,
        status=ApplicationStatus.PENDING,
        created_at=now,
    )


def _require_pending(application: Application) -> None:
    if not application.is_pending:
        raise InvalidTransitionError(
            f"Application is already {application.status.value}", ReasonCode.NOT_PENDING
        )


def accept(application: Application, job: Job, now: datetime) -> Tuple[Job, Application]:
    """Accept a pending application.

    Returns the job with the worker added to ``accepted_worker_ids`` (adding
    a worker already present changes nothing) and the accepted application.
    The job's status is left for the status manager to derive.
    """
    if job.is_terminal:
        raise TerminalStateViolation("Cannot accept workers for a completed job")
    _require_pending(application)
    if application.worker_id not in job.accepted_worker_ids and job.is_full:
        raise InvalidTransitionError("All positions are already filled", ReasonCode.JOB_FILLED)

    accepted_ids: List[str] = list(job.accepted_worker_ids)
    if application.worker_id not in accepted_ids:
        accepted_ids.append(application.worker_id)

    updated_job = replace(job, accepted_worker_ids=accepted_ids, updated_at=now)
    updated_app = replace(application, status=ApplicationStatus.ACCEPTED, decided_at=now)
    return updated_job, updated_app


def reject(application: Application, now: datetime) -> Application:
    """Reject a pending application, stamping ``rejected_at``."""
    _require_pending(application)
    return replace(
        application,
        status=ApplicationStatus.REJECTED,
        rejected_at=now,
        decided_at=now,
    )
