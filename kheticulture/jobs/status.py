"""
Job status derivation and repair.

``open`` and ``filled`` are derived from how many workers have been
accepted. ``in-progress`` and ``completed`` are only ever set by the
owner, and derivation leaves them alone:

- ``completed`` is terminal.
- ``in-progress`` stays put even if acceptances change the fill level;
  only the owner moves a job out of it.

Stored status can drift (another browsing context wrote an older copy,
or a capacity edit changed the threshold), so ``recompute_all`` is run on
every read session to bring each job back in line.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, List, Optional

from kheticulture.jobs.models import Job, JobStateTransition, JobStatus
from kheticulture.jobs.storage import JobStorage
from kheticulture.logging_config import log_recompute
from kheticulture.utils import new_id, utc_now

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


def derive_status(job: Job) -> JobStatus:
    """Status the job should have given its current acceptance state."""
    if job.status in (JobStatus.COMPLETED, JobStatus.IN_PROGRESS):
        return job.status
    return JobStatus.FILLED if job.is_full else JobStatus.OPEN


class JobStatusManager:
    """Keeps ``Job.status`` consistent with acceptances and logs changes."""

    def __init__(
        self,
        storage: JobStorage,
        now_fn: Callable[[], datetime] = utc_now,
    ):
        self.storage = storage
        self._now = now_fn

    def reconcile(self, job: Job) -> Job:
        """Return ``job`` with its derived status. Does not persist."""
        status = derive_status(job)
        if status == job.status:
            return job
        return replace(job, status=status, updated_at=self._now())

    def record_transition(
        self,
        job_id: str,
        from_status: Optional[JobStatus],
        to_status: JobStatus,
        actor_id: str = SYSTEM_ACTOR,
        reason: Optional[str] = None,
    ) -> JobStateTransition:
        transition = JobStateTransition(
            id=new_id(),
            job_id=job_id,
            from_status=from_status.value if from_status else None,
            to_status=to_status.value,
            actor_id=actor_id,
            reason=reason,
            created_at=self._now(),
        )
        self.storage.save_transition(transition)
        logger.debug(
            "Job %s: %s -> %s (%s)",
            job_id,
            transition.from_status,
            transition.to_status,
            reason or actor_id,
        )
        return transition

    def recompute(self, job: Job, actor_id: str = SYSTEM_ACTOR, reason: str = "recompute") -> Job:
        """Reconcile one job and persist it if its status changed."""
        updated = self.reconcile(job)
        if updated.status != job.status:
            self.storage.put_job(updated)
            self.record_transition(job.id, job.status, updated.status, actor_id, reason)
        return updated

    def recompute_all(self) -> List[Job]:
        """Reconcile every stored job in one pass.

        Only jobs whose status changed are written back. Returns the
        collection re-read from storage afterwards, since that is what
        callers should trust rather than any copy they already hold.
        """
        jobs = self.storage.list_jobs()
        changed = 0
        for job in jobs:
            updated = self.recompute(job)
            if updated.status != job.status:
                changed += 1

        if changed:
            logger.info("Status recompute repaired %d of %d jobs", changed, len(jobs))
            log_recompute(len(jobs), changed)
        return self.storage.list_jobs()
