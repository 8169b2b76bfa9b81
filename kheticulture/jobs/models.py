"""
Job marketplace data models.

Jobs are posted by farmers; workers apply to fill one of the job's
openings. Status values are closed enumerations, and the invariants that
can be checked on a single record are enforced at construction time.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from kheticulture.utils import format_datetime, parse_datetime

MAX_TITLE_LENGTH = 200


class JobStatus(str, Enum):
    """Job lifecycle status."""

    OPEN = "open"  # Accepting applications
    FILLED = "filled"  # Every opening has an accepted worker
    IN_PROGRESS = "in-progress"  # Set by the owner; not derived automatically
    COMPLETED = "completed"  # Terminal; kept as historical record


class ApplicationStatus(str, Enum):
    """Application lifecycle status."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class DurationType(str, Enum):
    """Unit the wage is quoted per."""

    HOURS = "hours"
    DAYS = "days"


def _coerce_enum(enum_cls, value, label: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValueError(f"Invalid {label}: {value!r}") from None


def _unique(ids) -> List[str]:
    seen: List[str] = []
    for worker_id in ids or ():
        if worker_id not in seen:
            seen.append(worker_id)
    return seen


@dataclass
class Job:
    """A job listing posted by a farmer.

    Attributes:
        id: Unique identifier
        owner_id: Farmer who posted the job
        title: Short headline
        wage: Amount paid per ``duration_type`` unit
        required_workers: Number of openings
        accepted_worker_ids: Workers accepted so far, in acceptance order
        status: Lifecycle status
    """

    id: str
    owner_id: str
    title: str
    wage: float
    required_workers: int
    description: str = ""
    owner_name: str = ""
    location: str = ""
    duration: int = 1
    duration_type: Union[DurationType, str] = DurationType.DAYS
    preferred_date: Optional[str] = None
    accepted_worker_ids: List[str] = field(default_factory=list)
    status: Union[JobStatus, str] = JobStatus.OPEN
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Job id is required")
        if not self.owner_id:
            raise ValueError("Job owner is required")
        if len(self.title) > MAX_TITLE_LENGTH:
            raise ValueError(f"Title too long (max {MAX_TITLE_LENGTH} characters)")
        if self.wage is None or not math.isfinite(self.wage) or self.wage <= 0:
            raise ValueError("Wage must be positive")
        if isinstance(self.required_workers, bool) or not isinstance(self.required_workers, int):
            raise ValueError("Required workers must be an integer")
        if self.required_workers <= 0:
            raise ValueError("Required workers must be positive")
        if self.duration <= 0:
            raise ValueError("Duration must be positive")

        self.status = _coerce_enum(JobStatus, self.status, "status")
        self.duration_type = _coerce_enum(DurationType, self.duration_type, "duration type")
        self.accepted_worker_ids = _unique(self.accepted_worker_ids)

        if len(self.accepted_worker_ids) > self.required_workers:
            raise ValueError(
                f"Accepted workers ({len(self.accepted_worker_ids)}) exceed "
                f"required workers ({self.required_workers})"
            )

    @property
    def accepted_count(self) -> int:
        return len(self.accepted_worker_ids)

    @property
    def open_slots(self) -> int:
        return self.required_workers - self.accepted_count

    @property
    def is_full(self) -> bool:
        return self.accepted_count >= self.required_workers

    @property
    def is_open(self) -> bool:
        return self.status == JobStatus.OPEN

    @property
    def is_terminal(self) -> bool:
        return self.status == JobStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe dictionary."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "owner_name": self.owner_name,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "wage": self.wage,
            "duration": self.duration,
            "duration_type": self.duration_type.value,
            "preferred_date": self.preferred_date,
            "required_workers": self.required_workers,
            "accepted_worker_ids": list(self.accepted_worker_ids),
            "status": self.status.value,
            "created_at": format_datetime(self.created_at),
            "updated_at": format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        """Create from dictionary.

        A missing or null ``accepted_worker_ids`` is read as no accepted
        workers; this is the only place that default is applied.
        """
        return cls(
            id=data["id"],
            owner_id=data["owner_id"],
            owner_name=data.get("owner_name") or "",
            title=data.get("title") or "",
            description=data.get("description") or "",
            location=data.get("location") or "",
            wage=float(data["wage"]),
            duration=int(data.get("duration") or 1),
            duration_type=data.get("duration_type") or DurationType.DAYS,
            preferred_date=data.get("preferred_date"),
            required_workers=int(data["required_workers"]),
            accepted_worker_ids=list(data.get("accepted_worker_ids") or []),
            status=data.get("status") or JobStatus.OPEN,
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
        )


@dataclass
class Application:
    """A worker's request to fill one opening on a job.

    ``rejected_at`` is set exactly when the application is rejected; the
    reapplication cooldown is measured from it.
    """

    id: str
    job_id: str
    worker_id: str
    status: Union[ApplicationStatus, str] = ApplicationStatus.PENDING
    rejected_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Application id is required")
        if not self.job_id or not self.worker_id:
            raise ValueError("Application requires job_id and worker_id")

        self.status = _coerce_enum(ApplicationStatus, self.status, "status")

        if self.status == ApplicationStatus.REJECTED and self.rejected_at is None:
            raise ValueError("Rejected application requires rejected_at")
        if self.status != ApplicationStatus.REJECTED and self.rejected_at is not None:
            raise ValueError("rejected_at is only valid on rejected applications")

    @property
    def is_pending(self) -> bool:
        return self.status == ApplicationStatus.PENDING

    @property
    def is_accepted(self) -> bool:
        return self.status == ApplicationStatus.ACCEPTED

    @property
    def is_rejected(self) -> bool:
        return self.status == ApplicationStatus.REJECTED

    @property
    def is_active(self) -> bool:
        """Pending or accepted; at most one per (job, worker)."""
        return self.status != ApplicationStatus.REJECTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "worker_id": self.worker_id,
            "status": self.status.value,
            "rejected_at": format_datetime(self.rejected_at),
            "decided_at": format_datetime(self.decided_at),
            "created_at": format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Application":
        return cls(
            id=data["id"],
            job_id=data["job_id"],
            worker_id=data["worker_id"],
            status=data.get("status") or ApplicationStatus.PENDING,
            rejected_at=parse_datetime(data.get("rejected_at")),
            decided_at=parse_datetime(data.get("decided_at")),
            created_at=parse_datetime(data.get("created_at")),
        )


@dataclass
class JobStateTransition:
    """Audit log entry for a job status change.

    ``from_status`` is None for the initial transition at creation.
    """

    id: str
    job_id: str
    to_status: str
    from_status: Optional[str] = None
    actor_id: str = "system"
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "actor_id": self.actor_id,
            "reason": self.reason,
            "created_at": format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobStateTransition":
        return cls(
            id=data["id"],
            job_id=data["job_id"],
            from_status=data.get("from_status"),
            to_status=data["to_status"],
            actor_id=data.get("actor_id") or "system",
            reason=data.get("reason"),
            created_at=parse_datetime(data.get("created_at")),
        )
