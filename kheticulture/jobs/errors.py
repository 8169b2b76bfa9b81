"""Error taxonomy for the job marketplace.

Every failure carries a machine-checkable ``code`` alongside a message
meant for people. ``ValidationFailure`` covers unmet preconditions (the
caller must change its inputs); ``NotFoundError`` is kept separate so a
missing record is never mistaken for a rule violation.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ReasonCode(str, Enum):
    """Machine-checkable failure reasons."""

    # Wage / capacity edits
    INVALID_WAGE = "invalid_wage"
    WAGE_LOCKED = "wage_locked"
    INVALID_CAPACITY = "invalid_capacity"
    BELOW_ACCEPTED = "below_accepted"
    CAPACITY_LOCKED = "capacity_locked"

    # Apply eligibility
    JOB_NOT_OPEN = "job_not_open"
    JOB_FILLED = "job_filled"
    ALREADY_APPLIED = "already_applied"
    ALREADY_ACCEPTED = "already_accepted"
    COOLDOWN_ACTIVE = "cooldown_active"
    OWN_JOB = "own_job"

    # Lifecycle
    NOT_PENDING = "not_pending"
    INVALID_STATUS = "invalid_status"
    INVALID_JOB = "invalid_job"
    NOT_OWNER = "not_owner"
    JOB_COMPLETED = "job_completed"

    # Lookups / backend
    JOB_NOT_FOUND = "job_not_found"
    APPLICATION_NOT_FOUND = "application_not_found"
    STORAGE_ERROR = "storage_error"


class JobServiceError(Exception):
    """Base exception for job marketplace operations."""

    default_code = ReasonCode.INVALID_JOB

    def __init__(self, message: str, code: Optional[ReasonCode] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> Dict[str, Any]:
        """Structured form for callers that report failures as values."""
        return {
            "error": type(self).__name__,
            "code": self.code.value,
            "message": self.message,
        }


class ValidationFailure(JobServiceError):
    """A precondition was not met. Recoverable by changing inputs."""


class WageLockedError(ValidationFailure):
    """Wage cannot change because workers already applied."""

    default_code = ReasonCode.WAGE_LOCKED


class CapacityError(ValidationFailure):
    """Required-worker count cannot be set to the requested value."""

    default_code = ReasonCode.BELOW_ACCEPTED


class NotEligibleError(ValidationFailure):
    """Worker cannot apply to this job right now."""

    default_code = ReasonCode.JOB_NOT_OPEN


class InvalidTransitionError(ValidationFailure):
    """Application or job is not in a state that allows the operation."""

    default_code = ReasonCode.NOT_PENDING


class UnauthorizedError(ValidationFailure):
    """Caller is not the job's owner."""

    default_code = ReasonCode.NOT_OWNER


class TerminalStateViolation(ValidationFailure):
    """Attempted to mutate or delete a completed job."""

    default_code = ReasonCode.JOB_COMPLETED


class NotFoundError(JobServiceError):
    """Referenced record does not exist."""


class JobNotFoundError(NotFoundError):
    default_code = ReasonCode.JOB_NOT_FOUND


class ApplicationNotFoundError(NotFoundError):
    default_code = ReasonCode.APPLICATION_NOT_FOUND


class StorageError(JobServiceError):
    """Persistence backend failure, passed through uninterpreted."""

    default_code = ReasonCode.STORAGE_ERROR
