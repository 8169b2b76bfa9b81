"""
Job service for the Kheticulture marketplace.

Provides the operations farmers and workers perform on jobs: posting,
applying, accepting or rejecting applicants, editing a posting, and
deleting it. Each operation checks its preconditions, writes complete
records back to storage, and lets the status manager settle the job's
status afterwards.

Caller identity (``actor_id``) is trusted as given; authentication is
handled before requests reach this layer.
"""

import logging
import math
from dataclasses import replace
from datetime import datetime
from typing import Callable, List, Optional, Tuple, Union

from kheticulture.config import Settings, get_settings
from kheticulture.jobs import lifecycle
from kheticulture.jobs.errors import (
    ApplicationNotFoundError,
    CapacityError,
    JobNotFoundError,
    NotEligibleError,
    ReasonCode,
    TerminalStateViolation,
    UnauthorizedError,
    ValidationFailure,
    WageLockedError,
)
from kheticulture.jobs.models import (
    Application,
    ApplicationStatus,
    DurationType,
    Job,
    JobStateTransition,
    JobStatus,
)
from kheticulture.jobs.status import JobStatusManager
from kheticulture.jobs.storage import JobStorage
from kheticulture.jobs.validation import can_set_required_workers, validate_wage_change
from kheticulture.logging_config import log_apply, log_decision, log_edit, log_job_event
from kheticulture.utils import new_id, utc_now

logger = logging.getLogger(__name__)


class JobService:
    """Service for job marketplace operations.

    Args:
        storage: Persistence backend for jobs, applications, and transitions
        settings: Marketplace settings (defaults to environment settings)
        now_fn: Clock, injectable for tests
    """

    def __init__(
        self,
        storage: JobStorage,
        settings: Optional[Settings] = None,
        now_fn: Callable[[], datetime] = utc_now,
    ):
        self.storage = storage
        self.settings = settings or get_settings()
        self._now = now_fn
        self.status_manager = JobStatusManager(storage, now_fn=now_fn)

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_job(self, job_id: str) -> Job:
        job = self.storage.get_job(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    def get_application(self, application_id: str) -> Application:
        application = self.storage.get_application(application_id)
        if application is None:
            raise ApplicationNotFoundError(f"Application {application_id} not found")
        return application

    def _require_owner(self, job: Job, actor_id: str, action: str) -> None:
        if actor_id != job.owner_id:
            raise UnauthorizedError(f"Only the job owner can {action}")

    def _require_not_completed(self, job: Job, message: str) -> None:
        if job.is_terminal:
            raise TerminalStateViolation(message)

    def _check_wage(self, wage: float) -> None:
        if wage is None or not math.isfinite(wage) or wage <= 0:
            raise ValidationFailure("Wage must be positive", ReasonCode.INVALID_WAGE)
        if wage > self.settings.max_wage:
            raise ValidationFailure(
                f"Wage cannot exceed {self.settings.max_wage:g}", ReasonCode.INVALID_WAGE
            )

    # =========================================================================
    # Posting
    # =========================================================================

    def create_job(
        self,
        owner_id: str,
        title: str,
        wage: float,
        required_workers: int = 1,
        description: str = "",
        location: str = "",
        owner_name: str = "",
        duration: int = 1,
        duration_type: Union[DurationType, str] = DurationType.DAYS,
        preferred_date: Optional[str] = None,
    ) -> Job:
        """Post a new job. It starts ``open`` with no accepted workers."""
        title = (title or "").strip()
        if not title:
            raise ValidationFailure("Job title is required", ReasonCode.INVALID_JOB)
        self._check_wage(wage)
        if isinstance(required_workers, bool) or not isinstance(required_workers, int) or required_workers <= 0:
            raise ValidationFailure(
                "Please enter a valid number of workers needed", ReasonCode.INVALID_CAPACITY
            )

        now = self._now()
        try:
            job = Job(
                id=new_id(),
                owner_id=owner_id,
                owner_name=owner_name,
                title=title,
                description=(description or "").strip(),
                location=(location or "").strip(),
                wage=float(wage),
                duration=duration,
                duration_type=duration_type,
                preferred_date=preferred_date,
                required_workers=required_workers,
                status=JobStatus.OPEN,
                created_at=now,
                updated_at=now,
            )
        except ValueError as e:
            raise ValidationFailure(str(e), ReasonCode.INVALID_JOB) from e

        self.storage.put_job(job)
        self.status_manager.record_transition(job.id, None, JobStatus.OPEN, owner_id, "created")
        logger.info("Job %s posted by %s (%d workers)", job.id, owner_id, required_workers)
        return job

    # =========================================================================
    # Applications
    # =========================================================================

    def apply(self, job_id: str, worker_id: str) -> Application:
        """Apply to a job as ``worker_id``.

        Also covers reapplying after a rejection: once the cooldown has
        passed a new pending application is created next to the rejected one.

        Raises:
            JobNotFoundError: Job does not exist
            NotEligibleError: Job not open or full, worker already has an
                active application, or the cooldown is still running
        """
        job = self.status_manager.recompute(self.get_job(job_id))
        pair = self.storage.list_applications(job_id=job_id, worker_id=worker_id)
        now = self._now()

        lifecycle.check_apply_eligibility(
            job, worker_id, pair, now, self.settings.reapply_cooldown_hours
        )

        application = lifecycle.new_application(job_id, worker_id, now)
        self.storage.put_application(application)
        log_apply(worker_id, job_id, application.id)
        logger.info("Worker %s applied to job %s", worker_id, job_id)
        return application

    def accept(self, application_id: str, actor_id: str) -> Tuple[Job, Application]:
        """Accept a pending application (job owner only).

        Returns:
            The updated job and application
        """
        application = self.get_application(application_id)
        job = self.get_job(application.job_id)
        self._require_owner(job, actor_id, "accept applications")

        job_with_worker, accepted = lifecycle.accept(application, job, self._now())
        updated_job = self.status_manager.reconcile(job_with_worker)

        # Job before application; a retry after a failed second write re-adds the worker idempotently
        self.storage.put_job(updated_job)
        self.storage.put_application(accepted)
        if updated_job.status != job.status:
            self.status_manager.record_transition(
                job.id, job.status, updated_job.status, actor_id, "worker accepted"
            )

        log_decision(actor_id, application_id, "accepted")
        logger.info(
            "Accepted %s for job %s (%d/%d)",
            accepted.worker_id,
            job.id,
            updated_job.accepted_count,
            updated_job.required_workers,
        )
        return updated_job, accepted

    def reject(self, application_id: str, actor_id: str) -> Application:
        """Reject a pending application (job owner only)."""
        application = self.get_application(application_id)
        job = self.get_job(application.job_id)
        self._require_owner(job, actor_id, "reject applications")

        rejected = lifecycle.reject(application, self._now())
        self.storage.put_application(rejected)

        log_decision(actor_id, application_id, "rejected")
        logger.info("Rejected %s for job %s", rejected.worker_id, job.id)
        return rejected

    def list_applications(
        self,
        job_id: Optional[str] = None,
        worker_id: Optional[str] = None,
    ) -> List[Application]:
        return self.storage.list_applications(job_id=job_id, worker_id=worker_id)

    def application_status_for(self, job_id: str, worker_id: str) -> Optional[ApplicationStatus]:
        """Status of the worker's most recent application to the job, if any."""
        pair = self.storage.list_applications(job_id=job_id, worker_id=worker_id)
        if not pair:
            return None
        active = [a for a in pair if a.is_active]
        return (active or pair)[-1].status

    def reapply_status(self, job_id: str, worker_id: str) -> lifecycle.ReapplyStatus:
        pair = self.storage.list_applications(job_id=job_id, worker_id=worker_id)
        return lifecycle.reapply_status(pair, self._now(), self.settings.reapply_cooldown_hours)

    def can_apply(self, job_id: str, worker_id: str) -> bool:
        """Whether ``apply`` would currently succeed. Never raises for ineligibility."""
        job = self.get_job(job_id)
        pair = self.storage.list_applications(job_id=job_id, worker_id=worker_id)
        try:
            lifecycle.check_apply_eligibility(
                self.status_manager.reconcile(job),
                worker_id,
                pair,
                self._now(),
                self.settings.reapply_cooldown_hours,
            )
        except NotEligibleError:
            return False
        return True

    # =========================================================================
    # Owner edits
    # =========================================================================

    def edit_wage(self, job_id: str, actor_id: str, new_wage: float) -> Job:
        """Change a job's wage. Locked once anyone has applied."""
        job = self.get_job(job_id)
        self._require_owner(job, actor_id, "edit this job")
        self._require_not_completed(job, "Cannot edit completed jobs. The job has been closed.")

        application_count = len(self.storage.list_applications(job_id=job_id))
        result = validate_wage_change(job.wage, new_wage, application_count)
        if not result.allowed:
            if result.code == ReasonCode.WAGE_LOCKED:
                raise WageLockedError(result.reason, result.code)
            raise ValidationFailure(result.reason, result.code)

        if new_wage == job.wage:
            return job
        self._check_wage(new_wage)

        updated = replace(job, wage=float(new_wage), updated_at=self._now())
        self.storage.put_job(updated)
        log_edit(actor_id, job_id, "wage", job.wage, updated.wage)
        return updated

    def edit_required_workers(self, job_id: str, actor_id: str, new_count: int) -> Job:
        """Change how many workers a job needs, then re-derive its status."""
        job = self.get_job(job_id)
        self._require_owner(job, actor_id, "edit this job")
        self._require_not_completed(job, "Cannot edit completed jobs. The job has been closed.")

        application_count = len(self.storage.list_applications(job_id=job_id))
        result = can_set_required_workers(
            new_count, job.accepted_count, application_count, job.required_workers
        )
        if not result.allowed:
            raise CapacityError(result.reason, result.code)

        if new_count == job.required_workers:
            return self.status_manager.recompute(job, actor_id)

        resized = replace(job, required_workers=new_count, updated_at=self._now())
        updated = self.status_manager.reconcile(resized)
        self.storage.put_job(updated)
        if updated.status != job.status:
            self.status_manager.record_transition(
                job_id, job.status, updated.status, actor_id, "capacity change"
            )
        log_edit(actor_id, job_id, "required_workers", job.required_workers, new_count)
        return updated

    def edit_status(self, job_id: str, actor_id: str, new_status: Union[JobStatus, str]) -> Job:
        """Set a job's status by hand.

        The derived rules are applied straight after, so asking for ``open``
        on a job with every opening filled leaves it ``filled``.
        """
        try:
            target = JobStatus(new_status)
        except ValueError:
            raise ValidationFailure(
                f"Invalid status: {new_status!r}", ReasonCode.INVALID_STATUS
            ) from None

        job = self.get_job(job_id)
        self._require_owner(job, actor_id, "change job status")
        self._require_not_completed(job, "Cannot edit completed jobs. The job has been closed.")

        manual = replace(job, status=target, updated_at=self._now())
        updated = self.status_manager.reconcile(manual)
        self.storage.put_job(updated)

        if target != job.status:
            self.status_manager.record_transition(job_id, job.status, target, actor_id, "manual edit")
        if updated.status != target:
            self.status_manager.record_transition(job_id, target, updated.status, reason="recompute")

        log_edit(actor_id, job_id, "status", job.status.value, updated.status.value)
        return updated

    def delete_job(self, job_id: str, actor_id: str) -> int:
        """Delete a job and every application to it.

        Returns:
            Number of applications removed with the job
        """
        job = self.get_job(job_id)
        self._require_owner(job, actor_id, "delete this job")
        self._require_not_completed(
            job,
            "Cannot delete completed jobs. The job has been closed and is now part "
            "of the historical record.",
        )

        # Job before applications; leftovers are orphans for purge_orphan_applications
        self.storage.delete_job(job_id)
        removed = self.storage.delete_applications(job_id)
        log_job_event("delete", f"job={job_id}, applications={removed}", actor_id)
        logger.info("Job %s deleted by %s (%d applications removed)", job_id, actor_id, removed)
        return removed

    # =========================================================================
    # Reconciliation and views
    # =========================================================================

    def recompute_all_statuses(self) -> List[Job]:
        """Repair every job's status. Safe to call on every read."""
        return self.status_manager.recompute_all()

    def list_jobs(
        self,
        owner_id: Optional[str] = None,
        status: Optional[Union[JobStatus, str]] = None,
    ) -> List[Job]:
        """List jobs after a recompute pass, optionally filtered."""
        jobs = self.recompute_all_statuses()
        if owner_id is not None:
            jobs = [j for j in jobs if j.owner_id == owner_id]
        if status is not None:
            try:
                wanted = JobStatus(status)
            except ValueError:
                raise ValidationFailure(
                    f"Invalid status: {status!r}", ReasonCode.INVALID_STATUS
                ) from None
            jobs = [j for j in jobs if j.status == wanted]
        return jobs

    def get_jobs_for_owner(self, owner_id: str) -> List[Job]:
        return self.list_jobs(owner_id=owner_id)

    def get_jobs_for_worker(self, worker_id: str) -> List[Job]:
        """Jobs the worker has applied to that still exist."""
        jobs = self.recompute_all_statuses()
        applied = {a.job_id for a in self.storage.list_applications(worker_id=worker_id)}
        return [j for j in jobs if j.id in applied]

    def workers_hired(self, owner_id: str) -> int:
        """Total accepted workers across an owner's jobs."""
        return sum(j.accepted_count for j in self.storage.list_jobs() if j.owner_id == owner_id)

    def purge_orphan_applications(self) -> int:
        """Remove applications whose job no longer exists.

        Returns:
            Number of applications removed
        """
        job_ids = {j.id for j in self.storage.list_jobs()}
        orphaned = {
            a.job_id for a in self.storage.list_applications() if a.job_id not in job_ids
        }
        removed = sum(self.storage.delete_applications(job_id) for job_id in orphaned)
        if removed:
            logger.info("Removed %d applications for deleted jobs", removed)
        return removed

    def get_job_history(self, job_id: str) -> List[JobStateTransition]:
        """Status transitions for a job, oldest first."""
        self.get_job(job_id)
        return self.storage.get_transitions(job_id)
