"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as a stale transaction version or duplicate name."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class RuleConfigurationError(DomainError):
    """A stored rule cannot be evaluated, e.g. its pattern is not a valid regex."""


class AmbiguousMergeError(DomainError):
    """A merge rule found zero or several candidates instead of exactly one."""

    def __init__(self, rule_id: int, candidate_count: int):
        super().__init__(
            f"Merge rule {rule_id} found {candidate_count} candidates, expected exactly 1"
        )
        self.rule_id = rule_id
        self.candidate_count = candidate_count


def status_code_for(error: Exception) -> int:
    """Return the HTTP status an outer web layer should use for an error."""
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ValidationError):
        return 400
    return 500


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def rule_not_found(rule_id: int) -> str:
    """Return message for missing rule."""
    return f"Rule {rule_id} not found"


def invalid_pattern(pattern: str, reason: str) -> str:
    """Return message for a pattern that does not compile."""
    return f"Invalid pattern '{pattern}': {reason}"


def stale_transaction(transaction_id: int, expected: int, actual: int) -> str:
    """Return message for an optimistic-concurrency version mismatch."""
    return (
        f"Transaction {transaction_id} was modified concurrently "
        f"(expected version {expected}, found {actual}); reload and retry"
    )


def account_delete_blocked(account_id: int, entry_count: int, rule_count: int) -> str:
    """Return message when account has dependent entries or rules."""
    parts = []
    if entry_count > 0:
        parts.append(f"{entry_count} entr{'ies' if entry_count != 1 else 'y'}")
    if rule_count > 0:
        parts.append(f"{rule_count} rule{'s' if rule_count != 1 else ''}")
    return (
        f"Cannot delete account {account_id}: it is referenced by {', '.join(parts)}. "
        "Please reassign or delete them first."
    )
