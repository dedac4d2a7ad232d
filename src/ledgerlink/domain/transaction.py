"""Transaction domain service."""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, Optional

from ledgerlink.database.base import Database
from ledgerlink.domain.balance import (
    TransactionBalance,
    compute_balance,
    is_balanced as entries_balanced,
    refresh_balance,
)
from ledgerlink.domain.entities import (
    EntryLine,
    EntryType,
    RuleApplicationResult,
    Transaction as TransactionEntity,
)
from ledgerlink.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    transaction_not_found,
)
from ledgerlink.domain.rule_application import RuleApplicationService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionWriteResult:
    """State after a write and the rule run that followed it.

    ``transaction`` is the surviving transaction: the merge target when a
    merge rule consumed the written one.
    """

    transaction: TransactionEntity
    rules: RuleApplicationResult

    @property
    def merged(self) -> bool:
        return self.rules.merged_into is not None


class TransactionService:
    """Service for managing transactions."""

    def __init__(self, db: Database):
        """Initialize transaction service.

        Args:
            db: Database instance
        """
        self.db = db
        self.rule_application = RuleApplicationService(db)

    def _require(self, transaction_id: int) -> TransactionEntity:
        txn = self.db.get_transaction(transaction_id)
        if txn is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return txn

    def _validate_entry(self, entry: EntryLine) -> EntryLine:
        """Check that an entry is positive and on an existing account of the same unit.

        Returns:
            The entry with its type coerced to EntryType and its unit filled in

        Raises:
            ValidationError: If amount or unit is invalid
            NotFoundError: If the account doesn't exist
        """
        if entry.amount is None or entry.amount <= 0:
            raise ValidationError(f"Entry amount must be positive, got {entry.amount}")
        if entry.quantity is not None and entry.quantity < 0:
            raise ValidationError("Entry quantity must not be negative")
        try:
            entry_type = EntryType(entry.type)
        except ValueError as e:
            raise ValidationError("Entry type must be either debit or credit") from e

        account = self.db.get_account(entry.account_id)
        if account is None:
            raise NotFoundError(account_not_found(entry.account_id))
        if entry.unit is None:
            return replace(entry, type=entry_type, unit=account.unit)
        if entry.unit != account.unit:
            raise ValidationError(
                f"Entry unit '{entry.unit}' does not match account '{account.name}' unit '{account.unit}'"
            )
        return replace(entry, type=entry_type)

    def _after_write(self, transaction_id: int) -> TransactionWriteResult:
        """Run auto-apply rules, then persist the balanced flag of the survivor."""
        rules = self.rule_application.apply_rules_to_transaction(transaction_id)
        survivor = refresh_balance(self.db, rules.surviving_transaction_id)
        if survivor is None:
            raise NotFoundError(transaction_not_found(rules.surviving_transaction_id))
        return TransactionWriteResult(transaction=survivor, rules=rules)

    def create_transaction(
        self,
        date: date,
        description: str,
        entries: Iterable[EntryLine],
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> TransactionWriteResult:
        """Create a transaction and run the auto-apply rules on it.

        Args:
            date: Transaction date
            description: Transaction description, matched by rule patterns
            entries: Entry lines (at least one)
            reference: Optional external reference
            notes: Optional notes

        Returns:
            TransactionWriteResult with the surviving transaction

        Raises:
            ValidationError: If description or entries are invalid
            NotFoundError: If an entry account doesn't exist
        """
        if not description or not description.strip():
            raise ValidationError("Transaction description is required")
        entries = tuple(replace(entry, id=None) for entry in entries)
        if not entries:
            raise ValidationError("A transaction needs at least one entry")
        entries = tuple(self._validate_entry(entry) for entry in entries)

        txn = TransactionEntity(
            id=None,
            date=date,
            description=description.strip(),
            entries=entries,
            reference=reference,
            notes=notes,
            is_balanced=entries_balanced(entries),
        )
        saved = self.db.save_transaction(txn)
        logger.info("Created transaction %s with %d entries", saved.id, len(entries))
        return self._after_write(saved.id)

    def get_transaction(self, transaction_id: int) -> Optional[TransactionEntity]:
        """Get transaction by ID.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction entity or None if not found
        """
        return self.db.get_transaction(transaction_id)

    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
        unbalanced_only: bool = False,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[TransactionEntity]:
        """List transactions with filters, newest first.

        Args:
            start_date: Optional start date filter
            end_date: Optional end date filter
            account_id: Optional account ID filter
            unbalanced_only: If True, only transactions whose entries don't balance
            offset: Number of transactions to skip
            limit: Maximum number of transactions to return

        Returns:
            List of transaction entities
        """
        return self.db.list_transactions(
            start_date=start_date,
            end_date=end_date,
            account_ids=[account_id] if account_id is not None else None,
            is_balanced=False if unbalanced_only else None,
            offset=offset,
            limit=limit,
        )

    def list_unbalanced(self) -> list[TransactionEntity]:
        """List all unbalanced transactions, newest first."""
        return self.list_transactions(unbalanced_only=True)

    def update_transaction(
        self,
        transaction_id: int,
        date: Optional[date] = None,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        entries: Optional[Iterable[EntryLine]] = None,
    ) -> TransactionWriteResult:
        """Update transaction fields, then run the auto-apply rules.

        Args:
            transaction_id: Transaction ID to update
            date: Optional new date
            description: Optional new description
            reference: Optional new reference
            notes: Optional new notes
            entries: Optional replacement for the whole entry list

        Raises:
            NotFoundError: If the transaction or an entry account doesn't exist
            ValidationError: If the new values are invalid
            ConflictError: If the transaction changed concurrently
        """
        txn = self._require(transaction_id)

        changes = {}
        if date is not None:
            changes["date"] = date
        if description is not None:
            if not description.strip():
                raise ValidationError("Transaction description is required")
            changes["description"] = description.strip()
        if reference is not None:
            changes["reference"] = reference
        if notes is not None:
            changes["notes"] = notes
        if entries is not None:
            entries = tuple(self._validate_entry(entry) for entry in entries)
            if not entries:
                raise ValidationError("A transaction needs at least one entry")
            changes["entries"] = entries

        self.db.save_transaction(replace(txn, **changes))
        return self._after_write(transaction_id)

    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction.

        Args:
            transaction_id: Transaction ID to delete

        Raises:
            NotFoundError: If transaction doesn't exist
        """
        self._require(transaction_id)
        self.db.delete_transaction(transaction_id)

    def add_entry(self, transaction_id: int, entry: EntryLine) -> TransactionWriteResult:
        """Append an entry line, then run the auto-apply rules.

        Raises:
            NotFoundError: If the transaction or account doesn't exist
            ValidationError: If the entry is invalid
        """
        txn = self._require(transaction_id)
        entry = replace(self._validate_entry(entry), id=None)
        self.db.save_transaction(replace(txn, entries=txn.entries + (entry,)))
        return self._after_write(transaction_id)

    def update_entry(
        self, transaction_id: int, entry_index: int, entry: EntryLine
    ) -> TransactionWriteResult:
        """Replace the entry at ``entry_index``, then run the auto-apply rules.

        Raises:
            NotFoundError: If the transaction or account doesn't exist
            ValidationError: If the index or entry is invalid
        """
        txn = self._require(transaction_id)
        if not 0 <= entry_index < len(txn.entries):
            raise ValidationError(f"Invalid entry index {entry_index}")
        entry = self._validate_entry(entry)

        entries = list(txn.entries)
        entries[entry_index] = replace(entry, id=txn.entries[entry_index].id)
        self.db.save_transaction(replace(txn, entries=tuple(entries)))
        return self._after_write(transaction_id)

    def delete_entry(self, transaction_id: int, entry_index: int) -> TransactionEntity:
        """Remove the entry at ``entry_index``.

        Rules are not re-run; only the balanced flag is refreshed.

        Raises:
            NotFoundError: If the transaction doesn't exist
            ValidationError: If the index is invalid or it is the last entry
        """
        txn = self._require(transaction_id)
        if not 0 <= entry_index < len(txn.entries):
            raise ValidationError(f"Invalid entry index {entry_index}")
        if len(txn.entries) == 1:
            raise ValidationError("Cannot delete the last entry; delete the transaction instead")

        entries = txn.entries[:entry_index] + txn.entries[entry_index + 1 :]
        self.db.save_transaction(replace(txn, entries=entries))
        return refresh_balance(self.db, transaction_id)

    def get_balance(self, transaction_id: int) -> TransactionBalance:
        """Compute the balance of a stored transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        return compute_balance(self._require(transaction_id))

