"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Iterable, Optional
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from ledgerlink.domain.entities import (
    Account,
    DestinationAccount,
    EntryType,
    ImbalanceRow,
    Rule,
    Transaction,
)


class Database(ABC):
    """Abstract ledger store for ledgerlink."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        name: str,
        type: str,
        unit: str,
        parent_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_name(self, name: str) -> Optional[Account]:
        """Get account by its unique name."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts."""
        pass

    @abstractmethod
    def update_account(
        self,
        account_id: int,
        name: Optional[str] = None,
        type: Optional[str] = None,
        parent_id: Optional[int] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> None:
        """Update account fields that are not None."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Delete an account."""
        pass

    @abstractmethod
    def get_account_entry_count(self, account_id: int) -> int:
        """Count entry lines posted against an account."""
        pass

    @abstractmethod
    def get_account_rule_count(self, account_id: int) -> int:
        """Count rules referencing an account as source or destination."""
        pass

    # Transaction operations
    @abstractmethod
    def save_transaction(self, transaction: Transaction) -> Transaction:
        """Insert or update a transaction together with its entries and applied rules.

        The whole document is written in one commit. For an existing transaction
        ``transaction.version`` must match the stored version.

        Returns:
            The persisted transaction with ids and version refreshed

        Raises:
            NotFoundError: If the transaction has an id that does not exist
            ConflictError: If the stored version differs from ``transaction.version``
        """
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_ids: Optional[Iterable[int]] = None,
        exclude_id: Optional[int] = None,
        is_balanced: Optional[bool] = None,
        ascending: bool = False,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """List transactions with optional filters.

        Args:
            start_date: Optional inclusive start date
            end_date: Optional inclusive end date
            account_ids: Only transactions with at least one entry on one of these accounts
            exclude_id: Transaction ID to leave out
            is_balanced: Filter on the cached balanced flag
            ascending: Sort by date (then id) ascending instead of descending
            offset: Number of rows to skip
            limit: Maximum number of rows to return
        """
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction with its entries."""
        pass

    @abstractmethod
    def delete_transactions(self, transaction_ids: Iterable[int]) -> int:
        """Delete several transactions. Returns the number deleted."""
        pass

    @abstractmethod
    def find_transactions_by_imbalance(
        self,
        start_date: date,
        end_date: date,
        entry_type: EntryType,
        amount: Decimal,
        tolerance: Decimal,
        exclude_id: Optional[int] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> tuple[list[ImbalanceRow], int]:
        """Find transactions whose imbalance is within ``tolerance`` of ``amount``.

        Entry lines are grouped per transaction with conditional debit/credit
        sums. For ``EntryType.DEBIT`` the imbalance must be positive and close to
        ``amount``; for ``EntryType.CREDIT`` it must be negative and close to
        ``-amount``. Rows are sorted by date descending.

        Returns:
            Tuple of (page of rows, total number of matching rows)
        """
        pass

    # Rule operations
    @abstractmethod
    def create_rule(
        self,
        name: str,
        type: str,
        pattern: str,
        source_accounts: Iterable[int] = (),
        priority: int = 0,
        auto_apply: bool = True,
        entry_type: str = "both",
        description: Optional[str] = None,
        new_description: Optional[str] = None,
        max_date_difference: Optional[int] = None,
        destination_accounts: Iterable[DestinationAccount] = (),
    ) -> int:
        """Create a rule. Returns rule ID."""
        pass

    @abstractmethod
    def get_rule(self, rule_id: int) -> Optional[Rule]:
        """Get rule by ID."""
        pass

    @abstractmethod
    def list_rules(self, auto_apply: Optional[bool] = None) -> list[Rule]:
        """List rules in creation order, optionally filtered on auto_apply."""
        pass

    @abstractmethod
    def update_rule(self, rule: Rule) -> None:
        """Replace all fields of an existing rule."""
        pass

    @abstractmethod
    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule."""
        pass
