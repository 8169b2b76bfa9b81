"""Tests for wage and capacity edit rules."""

import pytest

from kheticulture.jobs.errors import ReasonCode
from kheticulture.jobs.validation import (
    ValidationResult,
    can_set_required_workers,
    validate_wage_change,
)


class TestValidateWageChange:
    """Tests for the wage lock."""

    def test_no_applications_any_positive_wage(self):
        """Without applications the wage may change freely."""
        result = validate_wage_change(500, 800, application_count=0)
        assert result.allowed is True
        assert result.reason is None
        assert result.code is None

    def test_locked_once_anyone_applied(self):
        result = validate_wage_change(500, 600, application_count=1)

        assert result.allowed is False
        assert result.code == ReasonCode.WAGE_LOCKED
        assert "Cannot change wage from 500 to 600" in result.reason
        assert "1 worker has already applied" in result.reason

    def test_locked_message_pluralizes(self):
        result = validate_wage_change(500, 400, application_count=3)
        assert "3 workers have already applied" in result.reason

    @pytest.mark.parametrize("count", [0, 1, 7])
    def test_same_wage_always_allowed(self, count):
        """Re-submitting the current wage is a no-op, never an error."""
        assert validate_wage_change(500, 500, application_count=count).allowed is True

    @pytest.mark.parametrize("wage", [0, -1, float("nan"), float("inf")])
    def test_invalid_wage_rejected(self, wage):
        result = validate_wage_change(500, wage, application_count=0)
        assert result.allowed is False
        assert result.code == ReasonCode.INVALID_WAGE

    def test_result_is_truthy_only_when_allowed(self):
        assert bool(ValidationResult.ok()) is True
        assert bool(ValidationResult.denied(ReasonCode.WAGE_LOCKED, "no")) is False


class TestCanSetRequiredWorkers:
    """Tests for the capacity edit rule."""

    def test_increase_always_allowed(self):
        result = can_set_required_workers(5, accepted_count=2, application_count=4, original_count=3)
        assert result.allowed is True

    def test_unchanged_allowed_with_applications(self):
        assert can_set_required_workers(3, 1, 2, 3).allowed is True

    def test_decrease_without_applications_allowed(self):
        assert can_set_required_workers(1, 0, 0, 3).allowed is True

    def test_cannot_drop_below_accepted(self):
        result = can_set_required_workers(1, accepted_count=2, application_count=0, original_count=3)

        assert result.allowed is False
        assert result.code == ReasonCode.BELOW_ACCEPTED
        assert "already accepted 2 workers" in result.reason

    def test_cannot_shrink_once_anyone_applied(self):
        """Even unaccepted applications lock the advertised opening count."""
        result = can_set_required_workers(2, accepted_count=0, application_count=1, original_count=3)

        assert result.allowed is False
        assert result.code == ReasonCode.CAPACITY_LOCKED
        assert "from 3 to 2" in result.reason

    def test_applied_rule_takes_precedence(self):
        """When both rules fire the stricter applied-already reason is reported."""
        result = can_set_required_workers(1, accepted_count=2, application_count=2, original_count=3)
        assert result.code == ReasonCode.CAPACITY_LOCKED

    @pytest.mark.parametrize("count", [0, -2])
    def test_non_positive_rejected(self, count):
        result = can_set_required_workers(count, 0, 0, 3)
        assert result.allowed is False
        assert result.code == ReasonCode.INVALID_CAPACITY
