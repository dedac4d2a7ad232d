"""Rule domain service."""

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable, Optional

from ledgerlink.database.base import Database
from ledgerlink.domain.entities import (
    DestinationAccount,
    Rule as RuleEntity,
    RuleEntryType,
    RuleType,
)
from ledgerlink.domain.errors import (
    NotFoundError,
    RuleConfigurationError,
    ValidationError,
    account_not_found,
    rule_not_found,
)
from ledgerlink.domain.matcher import compile_pattern
from ledgerlink.domain.rule_application import allocate


@dataclass(frozen=True)
class RuleTestResult:
    """Outcome of testing a rule against a sample description and amount."""

    is_match: bool
    description: str
    amount: Decimal
    destination_amounts: list[tuple[DestinationAccount, Decimal]]


class RuleService:
    """Service for managing rules."""

    def __init__(self, db: Database):
        """Initialize rule service.

        Args:
            db: Database instance
        """
        self.db = db

    def _validate(self, rule: RuleEntity) -> None:
        """Check type-specific requirements and referenced accounts.

        Raises:
            ValidationError: If the rule is incomplete or malformed
            NotFoundError: If a referenced account doesn't exist
        """
        if not rule.name or not rule.name.strip():
            raise ValidationError("Rule name is required")
        if not rule.pattern:
            raise ValidationError("Pattern for matching descriptions is required")
        try:
            compile_pattern(rule.pattern)
        except RuleConfigurationError as e:
            raise ValidationError(str(e)) from e

        if rule.type == RuleType.EDIT and not rule.new_description:
            raise ValidationError("New description is required for edit rules")
        if rule.type == RuleType.MERGE and (
            rule.max_date_difference is None or rule.max_date_difference < 1
        ):
            raise ValidationError("Maximum date difference is required for merge rules")
        if rule.type == RuleType.COMPLEMENTARY:
            if not rule.destination_accounts:
                raise ValidationError("Destination accounts are required for complementary rules")
            if any(dest.ratio < 0 for dest in rule.destination_accounts):
                raise ValidationError("Destination ratios must not be negative")

        account_ids = set(rule.source_accounts)
        account_ids.update(dest.account_id for dest in rule.destination_accounts)
        for account_id in sorted(account_ids):
            if self.db.get_account(account_id) is None:
                raise NotFoundError(account_not_found(account_id))

    @staticmethod
    def _coerce(
        type: RuleType | str, entry_type: RuleEntryType | str
    ) -> tuple[RuleType, RuleEntryType]:
        try:
            rule_type = RuleType(type)
        except ValueError as e:
            raise ValidationError(
                "Invalid rule type. Must be one of: edit, merge, complementary"
            ) from e
        try:
            rule_entry_type = RuleEntryType(entry_type)
        except ValueError as e:
            raise ValidationError("Entry type must be one of: debit, credit, both") from e
        return rule_type, rule_entry_type

    def create_rule(
        self,
        name: str,
        type: RuleType | str,
        pattern: str,
        source_accounts: Iterable[int] = (),
        priority: int = 0,
        auto_apply: bool = True,
        entry_type: RuleEntryType | str = RuleEntryType.BOTH,
        description: Optional[str] = None,
        new_description: Optional[str] = None,
        max_date_difference: Optional[int] = None,
        destination_accounts: Iterable[DestinationAccount] = (),
    ) -> int:
        """Create a rule.

        Args:
            name: Rule name, also used in the marker of generated entries
            type: edit, merge or complementary
            pattern: Regular expression matched case-insensitively against descriptions
            source_accounts: Account IDs filtering which transactions match (empty = any)
            priority: Higher priority rules are applied later and win conflicts
            auto_apply: Whether the rule runs automatically on transaction writes
            entry_type: Restrict source entries to debit, credit or both
            description: Optional free-text description of the rule
            new_description: Replacement description (edit rules)
            max_date_difference: Merge window in days (merge rules)
            destination_accounts: Allocation targets (complementary rules)

        Returns:
            Rule ID

        Raises:
            ValidationError: If the rule is invalid
            NotFoundError: If a referenced account doesn't exist
        """
        rule_type, rule_entry_type = self._coerce(type, entry_type)
        candidate = RuleEntity(
            id=0,
            name=name,
            type=rule_type,
            pattern=pattern,
            source_accounts=tuple(source_accounts),
            priority=priority,
            auto_apply=auto_apply,
            entry_type=rule_entry_type,
            description=description,
            new_description=new_description,
            max_date_difference=max_date_difference,
            destination_accounts=tuple(destination_accounts),
        )
        self._validate(candidate)

        return self.db.create_rule(
            name=candidate.name.strip(),
            type=rule_type.value,
            pattern=pattern,
            source_accounts=candidate.source_accounts,
            priority=priority,
            auto_apply=auto_apply,
            entry_type=rule_entry_type.value,
            description=description,
            new_description=new_description,
            max_date_difference=max_date_difference,
            destination_accounts=candidate.destination_accounts,
        )

    def get_rule(self, rule_id: int) -> Optional[RuleEntity]:
        """Get rule by ID.

        Args:
            rule_id: Rule ID

        Returns:
            Rule entity or None if not found
        """
        return self.db.get_rule(rule_id)

    def require_rule(self, rule_id: int) -> RuleEntity:
        """Get rule by ID or raise NotFoundError."""
        rule = self.db.get_rule(rule_id)
        if rule is None:
            raise NotFoundError(rule_not_found(rule_id))
        return rule

    def list_rules(self) -> list[RuleEntity]:
        """List all rules, highest priority first."""
        return sorted(self.db.list_rules(), key=lambda rule: rule.priority, reverse=True)

    def update_rule(self, rule_id: int, **changes) -> RuleEntity:
        """Update a rule.

        Args:
            rule_id: Rule ID
            **changes: Fields to replace, named as on the Rule entity

        Returns:
            The updated rule

        Raises:
            NotFoundError: If the rule or a referenced account doesn't exist
            ValidationError: If the resulting rule is invalid
        """
        rule = self.require_rule(rule_id)
        unknown = set(changes) - set(RuleEntity.__dataclass_fields__) - {"id", "created_at"}
        if unknown or "id" in changes or "created_at" in changes:
            raise ValidationError(f"Cannot update rule fields: {', '.join(sorted(changes))}")

        rule_type, rule_entry_type = self._coerce(
            changes.pop("type", rule.type), changes.pop("entry_type", rule.entry_type)
        )
        for key in ("source_accounts", "destination_accounts"):
            if key in changes:
                changes[key] = tuple(changes[key])
        updated = replace(rule, type=rule_type, entry_type=rule_entry_type, **changes)
        self._validate(updated)

        self.db.update_rule(updated)
        return updated

    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule.

        Raises:
            NotFoundError: If the rule doesn't exist
        """
        self.require_rule(rule_id)
        self.db.delete_rule(rule_id)

    def test_rule(self, rule_id: int, description: str, amount: Decimal) -> RuleTestResult:
        """Test a rule's pattern against a sample description and amount.

        For a match, the result lists the credits a complementary rule would
        generate from a source entry of ``amount``.

        Raises:
            NotFoundError: If the rule doesn't exist
            ValidationError: If description is empty or amount is not positive
        """
        if not description or amount is None or amount <= 0:
            raise ValidationError("Description and a positive amount are required for testing")
        rule = self.require_rule(rule_id)
        try:
            is_match = compile_pattern(rule.pattern).matches(description)
        except RuleConfigurationError as e:
            raise ValidationError(str(e)) from e

        destination_amounts = []
        if is_match and rule.type == RuleType.COMPLEMENTARY:
            destination_amounts = allocate(amount, rule.destination_accounts)
        return RuleTestResult(
            is_match=is_match,
            description=description,
            amount=amount,
            destination_amounts=destination_amounts,
        )
