"""Rule application: per-kind state transitions and the orchestration loop.

``RuleApplicator`` knows how each rule kind mutates a transaction.
``RuleApplicationService`` loads the auto-apply rules for a transaction,
orders them and drives the applicator over each one, isolating per-rule
failures so that one bad rule never blocks the others.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, UTC
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from ledgerlink.database.base import Database
from ledgerlink.domain.balance import refresh_balance
from ledgerlink.domain.entities import (
    AppliedRule,
    DestinationAccount,
    EntryLine,
    EntryType,
    Rule,
    RuleApplicationResult,
    RuleEntryType,
    RuleType,
    Transaction,
)
from ledgerlink.domain.errors import (
    AmbiguousMergeError,
    ConflictError,
    DomainError,
    NotFoundError,
    RuleConfigurationError,
    ValidationError,
    account_not_found,
    rule_not_found,
    transaction_not_found,
)
from ledgerlink.domain.matcher import compile_pattern, find_source_entry, matches

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass(frozen=True)
class RuleOutcome:
    """Result of applying one rule.

    ``transaction`` is the latest state of the triggering transaction, or the
    merge target when ``consumed`` is True (the trigger was deleted).
    """

    applied: bool
    transaction: Transaction
    consumed: bool = False


@dataclass
class BatchApplicationResult:
    """Summary of running the orchestrator over many transactions."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    details: list[dict] = field(default_factory=list)


@dataclass(frozen=True)
class RulePreview:
    """Transactions a prospective rule would match."""

    matching: list[Transaction]
    total_unbalanced: int

    @property
    def total_matching(self) -> int:
        return len(self.matching)


def allocate(
    source_amount: Decimal, destinations: Iterable[DestinationAccount]
) -> list[tuple[DestinationAccount, Decimal]]:
    """Split a source amount across destinations by ratio, rounded to cents.

    Ratios are applied as given; they need not sum to 1.
    """
    return [
        (dest, (source_amount * dest.ratio).quantize(CENT, rounding=ROUND_HALF_UP))
        for dest in destinations
    ]


class RuleApplicator:
    """Applies a single rule to a transaction and persists the result."""

    def __init__(self, db: Database):
        """Initialize rule applicator.

        Args:
            db: Database instance
        """
        self.db = db

    def apply(self, rule: Rule, transaction: Transaction) -> RuleOutcome:
        """Apply a rule according to its type.

        A rule already recorded in ``transaction.applied_rules`` is never applied
        again.

        Raises:
            RuleConfigurationError: If the rule pattern is malformed
            NotFoundError: If a complementary destination account is missing
            ConflictError: If the transaction changed underneath us
        """
        if transaction.has_applied_rule(rule.id):
            logger.debug("Rule %s already applied to transaction %s", rule.id, transaction.id)
            return RuleOutcome(applied=False, transaction=transaction)

        if rule.type == RuleType.EDIT:
            return self.apply_edit(rule, transaction)
        if rule.type == RuleType.MERGE:
            return self.apply_merge(rule, transaction)
        if rule.type == RuleType.COMPLEMENTARY:
            return self.apply_complementary(rule, transaction)
        raise RuleConfigurationError(f"Rule {rule.id} has unknown type '{rule.type}'")

    def _mark_applied(self, transaction: Transaction, rule: Rule) -> Transaction:
        applied = AppliedRule(rule_id=rule.id, applied_at=datetime.now(UTC))
        return replace(transaction, applied_rules=transaction.applied_rules + (applied,))

    def apply_edit(self, rule: Rule, transaction: Transaction) -> RuleOutcome:
        """Replace the whole description with the rule's new description."""
        if not matches(rule, transaction):
            logger.debug(
                "Transaction %s does not match rule %s with pattern %r",
                transaction.id,
                rule.id,
                rule.pattern,
            )
            return RuleOutcome(applied=False, transaction=transaction)

        updated = replace(self._mark_applied(transaction, rule), description=rule.new_description)
        saved = self.db.save_transaction(updated)
        logger.info(
            "Rule %r renamed transaction %s: %r -> %r",
            rule.name,
            transaction.id,
            transaction.description,
            saved.description,
        )
        return RuleOutcome(applied=True, transaction=saved)

    def find_merge_candidates(self, rule: Rule, transaction: Transaction) -> list[Transaction]:
        """Return other transactions a merge rule could combine with ``transaction``.

        Candidates match the pattern, fall within ``max_date_difference`` days on
        or after the transaction's date, and have an entry on a source account
        (any account when the rule has none). Order is date ascending, then id.
        """
        pattern = compile_pattern(rule.pattern)
        window_end = transaction.date + timedelta(days=rule.max_date_difference or 0)
        candidates = self.db.list_transactions(
            start_date=transaction.date,
            end_date=window_end,
            account_ids=rule.source_accounts or None,
            exclude_id=transaction.id,
            ascending=True,
        )
        return [c for c in candidates if pattern.matches(c.description)]

    def _single_merge_target(self, rule: Rule, transaction: Transaction) -> Transaction:
        candidates = self.find_merge_candidates(rule, transaction)
        if len(candidates) != 1:
            raise AmbiguousMergeError(rule.id, len(candidates))
        return candidates[0]

    def apply_merge(self, rule: Rule, transaction: Transaction) -> RuleOutcome:
        """Fold the transaction into its single merge candidate.

        The triggering transaction's entries are appended to the candidate, the
        candidate is saved and the trigger is deleted.
        """
        try:
            target = self._single_merge_target(rule, transaction)
        except AmbiguousMergeError as e:
            logger.info("Skipping merge for transaction %s: %s", transaction.id, e)
            return RuleOutcome(applied=False, transaction=transaction)

        moved = tuple(replace(entry, id=None) for entry in transaction.entries)
        merged = replace(self._mark_applied(target, rule), entries=target.entries + moved)
        saved = self.db.save_transaction(merged)
        self.db.delete_transaction(transaction.id)
        logger.info(
            "Rule %r merged transaction %s into %s", rule.name, transaction.id, saved.id
        )
        return RuleOutcome(applied=True, transaction=saved, consumed=True)

    def apply_complementary(self, rule: Rule, transaction: Transaction) -> RuleOutcome:
        """Allocate the source entry's amount to the destination accounts as credits."""
        if not matches(rule, transaction):
            return RuleOutcome(applied=False, transaction=transaction)
        source_entry = find_source_entry(rule, transaction)
        if source_entry is None:
            return RuleOutcome(applied=False, transaction=transaction)

        marker = rule.marker
        destination_ids = {dest.account_id for dest in rule.destination_accounts}
        if any(
            entry.account_id in destination_ids and entry.description and marker in entry.description
            for entry in transaction.entries
        ):
            logger.debug("Transaction %s already has entries from rule %s", transaction.id, rule.id)
            return RuleOutcome(applied=False, transaction=transaction)

        new_entries = []
        for dest, amount in allocate(source_entry.amount, rule.destination_accounts):
            if amount <= 0:
                logger.debug("Rule %s allocates nothing to account %s", rule.id, dest.account_id)
                continue
            account = self.db.get_account(dest.account_id)
            if account is None:
                raise NotFoundError(account_not_found(dest.account_id))
            new_entries.append(
                EntryLine(
                    account_id=dest.account_id,
                    amount=amount,
                    type=EntryType.CREDIT,
                    unit=account.unit,
                    description=marker,
                )
            )
        if not new_entries:
            return RuleOutcome(applied=False, transaction=transaction)

        updated = replace(
            self._mark_applied(transaction, rule),
            entries=transaction.entries + tuple(new_entries),
        )
        saved = self.db.save_transaction(updated)
        logger.info(
            "Rule %r added %d complementary entries to transaction %s",
            rule.name,
            len(new_entries),
            transaction.id,
        )
        return RuleOutcome(applied=True, transaction=saved)


class RuleApplicationService:
    """Service that runs rules against transactions."""

    def __init__(self, db: Database):
        """Initialize rule application service.

        Args:
            db: Database instance
        """
        self.db = db
        self.applicator = RuleApplicator(db)

    def ordered_auto_apply_rules(self) -> list[Rule]:
        """Return auto-apply rules in the order they are evaluated.

        Rules are sorted by priority descending (stable for ties) and that list
        is then walked in reverse: the lowest priority runs first and the
        highest priority runs last, so its changes are the ones that remain
        when two rules touch the same field.
        """
        rules = self.db.list_rules(auto_apply=True)
        by_priority = sorted(rules, key=lambda rule: rule.priority, reverse=True)
        by_priority.reverse()
        return by_priority

    def apply_rules_to_transaction(self, transaction_id: int) -> RuleApplicationResult:
        """Apply all auto-apply rules to a transaction.

        Args:
            transaction_id: Transaction ID

        Returns:
            RuleApplicationResult with applied and skipped rule IDs

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))

        applied_rules: list[int] = []
        skipped_rules: list[int] = []
        merged_into: Optional[int] = None

        for rule in self.ordered_auto_apply_rules():
            if merged_into is not None:
                # The transaction no longer exists; nothing left to apply to.
                skipped_rules.append(rule.id)
                continue

            try:
                outcome = self.applicator.apply(rule, transaction)
            except DomainError as e:
                logger.warning(
                    "Skipping rule %s (%r) for transaction %s: %s",
                    rule.id,
                    rule.name,
                    transaction_id,
                    e,
                )
                skipped_rules.append(rule.id)
                if isinstance(e, ConflictError):
                    reloaded = self.db.get_transaction(transaction_id)
                    if reloaded is None:
                        raise NotFoundError(transaction_not_found(transaction_id)) from e
                    transaction = reloaded
                continue
            except Exception:
                logger.exception(
                    "Rule %s (%r) failed for transaction %s", rule.id, rule.name, transaction_id
                )
                skipped_rules.append(rule.id)
                continue

            if not outcome.applied:
                skipped_rules.append(rule.id)
                continue

            applied_rules.append(rule.id)
            if outcome.consumed:
                merged_into = outcome.transaction.id
            else:
                transaction = outcome.transaction

        logger.info(
            "Rules for transaction %s: applied=%s skipped=%s%s",
            transaction_id,
            applied_rules,
            skipped_rules,
            f" merged_into={merged_into}" if merged_into is not None else "",
        )
        return RuleApplicationResult(
            transaction_id=transaction_id,
            applied_rules=applied_rules,
            skipped_rules=skipped_rules,
            merged_into=merged_into,
        )

    def apply_rule(self, rule_id: int, transaction_id: int) -> RuleOutcome:
        """Apply one rule to one transaction regardless of its auto_apply flag.

        Raises:
            NotFoundError: If the rule or transaction doesn't exist
            RuleConfigurationError: If the rule pattern is malformed
        """
        rule = self.db.get_rule(rule_id)
        if rule is None:
            raise NotFoundError(rule_not_found(rule_id))
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))

        outcome = self.applicator.apply(rule, transaction)
        if outcome.applied:
            refresh_balance(self.db, outcome.transaction.id)
        return outcome

    def apply_rules_to_unbalanced(self) -> BatchApplicationResult:
        """Run the auto-apply rules over every unbalanced transaction.

        A failure on one transaction is recorded and the batch continues.
        """
        unbalanced = self.db.list_transactions(is_balanced=False, ascending=True)
        result = BatchApplicationResult(total=len(unbalanced))
        logger.info("Applying rules to %d unbalanced transactions", len(unbalanced))

        for transaction in unbalanced:
            if self.db.get_transaction(transaction.id) is None:
                # Consumed by a merge earlier in this batch.
                result.details.append({"transaction_id": transaction.id, "status": "merged"})
                continue
            try:
                outcome = self.apply_rules_to_transaction(transaction.id)
                refresh_balance(self.db, outcome.surviving_transaction_id)
            except DomainError as e:
                logger.error("Error processing transaction %s: %s", transaction.id, e)
                result.failed += 1
                result.details.append(
                    {"transaction_id": transaction.id, "status": "error", "message": str(e)}
                )
                continue

            result.successful += 1
            result.details.append(
                {
                    "transaction_id": transaction.id,
                    "status": "success",
                    "applied_rules": outcome.applied_rules,
                    "skipped_rules": outcome.skipped_rules,
                    "merged_into": outcome.merged_into,
                }
            )
        return result

    def preview_rule(
        self,
        pattern: str,
        source_accounts: Iterable[int] = (),
        entry_type: RuleEntryType = RuleEntryType.BOTH,
    ) -> RulePreview:
        """List transactions a rule with these criteria would match, without mutating anything.

        Raises:
            ValidationError: If the pattern is empty or malformed
        """
        if not pattern:
            raise ValidationError("A pattern is required for previewing rules")
        candidate_rule = Rule(
            id=0,
            name="preview",
            type=RuleType.EDIT,
            pattern=pattern,
            source_accounts=tuple(source_accounts),
            entry_type=entry_type,
        )
        try:
            compile_pattern(pattern)
        except RuleConfigurationError as e:
            raise ValidationError(str(e)) from e

        transactions = self.db.list_transactions()
        matching = [txn for txn in transactions if matches(candidate_rule, txn)]
        total_unbalanced = sum(1 for txn in transactions if not txn.is_balanced)
        return RulePreview(matching=matching, total_unbalanced=total_unbalanced)
