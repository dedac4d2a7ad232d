"""Tests for the domain error taxonomy."""

import pytest

from ledgerlink.domain.errors import (
    AmbiguousMergeError,
    ConflictError,
    DependencyError,
    DomainError,
    NotFoundError,
    RuleConfigurationError,
    ValidationError,
    account_delete_blocked,
    status_code_for,
)


@pytest.mark.parametrize(
    "error, status",
    [
        (NotFoundError("missing"), 404),
        (ValidationError("bad"), 400),
        (ConflictError("stale"), 500),
        (RuleConfigurationError("broken"), 500),
        (RuntimeError("boom"), 500),
    ],
)
def test_status_code_for(error, status):
    assert status_code_for(error) == status


def test_domain_errors_are_value_errors():
    assert issubclass(DomainError, ValueError)
    with pytest.raises(ValueError):
        raise DependencyError("in use")


def test_ambiguous_merge_error_keeps_counts():
    error = AmbiguousMergeError(3, 2)

    assert error.rule_id == 3
    assert error.candidate_count == 2
    assert "found 2 candidates" in str(error)


def test_account_delete_blocked_message():
    assert "2 entries, 1 rule" in account_delete_blocked(5, 2, 1)
    assert "1 entry." in account_delete_blocked(5, 1, 0)
