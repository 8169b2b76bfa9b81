"""
Jobs storage layer.

Defines the persistence contract for jobs, applications, and the status
transition log, plus an in-memory backend. Every ``put_*`` replaces the
whole record in one step; callers never issue partial field updates.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from kheticulture.jobs.models import Application, Job, JobStateTransition

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class JobStorage(Protocol):
    """Protocol for job persistence backends."""

    # Jobs
    def list_jobs(self) -> List[Job]:
        """List every job, oldest first."""
        ...

    def get_job(self, job_id: str) -> Optional[Job]:
        """Get a job by ID."""
        ...

    def put_job(self, job: Job) -> None:
        """Insert or replace a job (whole record)."""
        ...

    def delete_job(self, job_id: str) -> None:
        """Delete a job. Missing IDs are ignored."""
        ...

    # Applications
    def list_applications(
        self,
        job_id: Optional[str] = None,
        worker_id: Optional[str] = None,
    ) -> List[Application]:
        """List applications, oldest first, with optional filters."""
        ...

    def get_application(self, application_id: str) -> Optional[Application]:
        """Get an application by ID."""
        ...

    def put_application(self, application: Application) -> None:
        """Insert or replace an application (whole record)."""
        ...

    def delete_applications(self, job_id: str) -> int:
        """Delete every application for a job. Returns the number removed."""
        ...

    # Transitions (audit log)
    def save_transition(self, transition: JobStateTransition) -> str:
        """Append a state transition record. Returns the transition ID."""
        ...

    def get_transitions(self, job_id: str) -> List[JobStateTransition]:
        """Get all state transitions for a job, oldest first."""
        ...


class InMemoryJobStorage:
    """In-memory job storage for testing and local development.

    Records are held in their serialized form so that objects handed to
    or returned from the store never alias stored state.
    """

    def __init__(self):
        """Initialize empty storage."""
        self._jobs: Dict[str, dict] = {}
        self._applications: Dict[str, dict] = {}
        self._transitions: Dict[str, List[dict]] = {}  # job_id -> list

    # === Jobs ===

    def list_jobs(self) -> List[Job]:
        jobs = [Job.from_dict(d) for d in self._jobs.values()]
        jobs.sort(key=lambda j: j.created_at or _EPOCH)
        return jobs

    def get_job(self, job_id: str) -> Optional[Job]:
        data = self._jobs.get(job_id)
        return Job.from_dict(data) if data else None

    def put_job(self, job: Job) -> None:
        self._jobs[job.id] = job.to_dict()

    def delete_job(self, job_id: str) -> None:
        self._jobs.pop(job_id, None)

    # === Applications ===

    def list_applications(
        self,
        job_id: Optional[str] = None,
        worker_id: Optional[str] = None,
    ) -> List[Application]:
        apps = [Application.from_dict(d) for d in self._applications.values()]

        if job_id is not None:
            apps = [a for a in apps if a.job_id == job_id]
        if worker_id is not None:
            apps = [a for a in apps if a.worker_id == worker_id]

        apps.sort(key=lambda a: a.created_at or _EPOCH)
        return apps

    def get_application(self, application_id: str) -> Optional[Application]:
        data = self._applications.get(application_id)
        return Application.from_dict(data) if data else None

    def put_application(self, application: Application) -> None:
        self._applications[application.id] = application.to_dict()

    def delete_applications(self, job_id: str) -> int:
        doomed = [app_id for app_id, d in self._applications.items() if d["job_id"] == job_id]
        for app_id in doomed:
            del self._applications[app_id]
        return len(doomed)

    # === Transitions ===

    def save_transition(self, transition: JobStateTransition) -> str:
        self._transitions.setdefault(transition.job_id, []).append(transition.to_dict())
        return transition.id

    def get_transitions(self, job_id: str) -> List[JobStateTransition]:
        # Stable sort keeps insertion order for equal timestamps
        transitions = [JobStateTransition.from_dict(d) for d in self._transitions.get(job_id, [])]
        return sorted(transitions, key=lambda t: t.created_at or _EPOCH)
