"""Jobs marketplace subsystem for Kheticulture.

Models:
- Job: A work listing posted by a farmer
- Application: A worker's application to a job
- JobStatus / ApplicationStatus: Lifecycle statuses
- JobStateTransition: Audit log entry for status changes

Rules:
- validate_wage_change, can_set_required_workers: Owner edit checks
- lifecycle: Apply / accept / reject transitions and reapply cooldown
- JobStatusManager: Status derivation and the recompute pass

Service:
- JobService: The operations callers use
"""

from kheticulture.jobs.errors import (
    ApplicationNotFoundError,
    CapacityError,
    InvalidTransitionError,
    JobNotFoundError,
    JobServiceError,
    NotEligibleError,
    NotFoundError,
    ReasonCode,
    StorageError,
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
from kheticulture.jobs.service import JobService
from kheticulture.jobs.sqlite_storage import SQLiteJobStorage
from kheticulture.jobs.status import JobStatusManager, derive_status
from kheticulture.jobs.storage import InMemoryJobStorage, JobStorage
from kheticulture.jobs.validation import (
    ValidationResult,
    can_set_required_workers,
    validate_wage_change,
)

__all__ = [
    # Models
    "Job",
    "Application",
    "JobStatus",
    "ApplicationStatus",
    "DurationType",
    "JobStateTransition",
    # Rules
    "ValidationResult",
    "validate_wage_change",
    "can_set_required_workers",
    "JobStatusManager",
    "derive_status",
    # Storage
    "JobStorage",
    "InMemoryJobStorage",
    "SQLiteJobStorage",
    # Service
    "JobService",
    # Errors
    "ReasonCode",
    "JobServiceError",
    "ValidationFailure",
    "WageLockedError",
    "CapacityError",
    "NotEligibleError",
    "InvalidTransitionError",
    "UnauthorizedError",
    "TerminalStateViolation",
    "NotFoundError",
    "JobNotFoundError",
    "ApplicationNotFoundError",
    "StorageError",
]
