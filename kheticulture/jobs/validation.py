"""
Edit rules for a job's wage and required-worker count.

Both checks are pure: they look only at the numbers passed in and return
a ``ValidationResult``. The service consults them before writing and does
not repeat the rules anywhere else.
"""

import math
from dataclasses import dataclass
from typing import Optional

from kheticulture.jobs.errors import ReasonCode


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of an edit check."""

    allowed: bool
    reason: Optional[str] = None
    code: Optional[ReasonCode] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(allowed=True)

    @classmethod
    def denied(cls, code: ReasonCode, reason: str) -> "ValidationResult":
        return cls(allowed=False, reason=reason, code=code)

    def __bool__(self) -> bool:
        return self.allowed


def _plural_workers(count: int) -> str:
    return f"{count} worker has" if count == 1 else f"{count} workers have"


def validate_wage_change(
    current_wage: float,
    proposed_wage: float,
    application_count: int,
) -> ValidationResult:
    """Decide whether a job's wage may change.

    Once anyone has applied the wage is locked: workers applied against the
    advertised amount. Re-submitting the current wage is always allowed.
    """
    if proposed_wage is None or not math.isfinite(proposed_wage) or proposed_wage <= 0:
        return ValidationResult.denied(
            ReasonCode.INVALID_WAGE, "Please enter a valid wage amount"
        )

    if application_count > 0 and proposed_wage != current_wage:
        return ValidationResult.denied(
            ReasonCode.WAGE_LOCKED,
            f"Cannot change wage from {current_wage:g} to {proposed_wage:g}. "
            f"{_plural_workers(application_count)} already applied based on the "
            "original wage amount.",
        )

    return ValidationResult.ok()


def can_set_required_workers(
    new_count: int,
    accepted_count: int,
    application_count: int,
    original_count: int,
) -> ValidationResult:
    """Decide whether a job's required-worker count may be set to ``new_count``.

    Increases are always allowed. A decrease is refused once anyone has
    applied, and the count can never drop below the workers already accepted.
    When both apply, the applied-already reason is reported.
    """
    if isinstance(new_count, bool) or not isinstance(new_count, int) or new_count <= 0:
        return ValidationResult.denied(
            ReasonCode.INVALID_CAPACITY, "Please enter a valid number of workers"
        )

    if application_count > 0 and new_count < original_count:
        return ValidationResult.denied(
            ReasonCode.CAPACITY_LOCKED,
            f"Cannot reduce the number of required workers from {original_count} to "
            f"{new_count} when there are applications. Workers applied based on the "
            "original job requirements.",
        )

    if new_count < accepted_count:
        plural = "" if accepted_count == 1 else "s"
        return ValidationResult.denied(
            ReasonCode.BELOW_ACCEPTED,
            f"Cannot reduce workers below {accepted_count} as you have already "
            f"accepted {accepted_count} worker{plural}",
        )

    return ValidationResult.ok()
