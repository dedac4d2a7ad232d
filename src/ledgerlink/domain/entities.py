"""Domain model entities for ledgerlink.

These are pure data classes representing business concepts, independent of
database schema. Entities are immutable; services produce modified copies with
``dataclasses.replace`` and hand them to the database layer to persist.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional

DEFAULT_UNIT = "USD"
COMPLEMENTARY_MARKER = "Auto-generated by rule: {rule_name}"


class AccountType(str, Enum):
    """Kind of ledger account."""

    ASSET = "asset"
    LIABILITY = "liability"
    INCOME = "income"
    EXPENSE = "expense"
    EQUITY = "equity"


class EntryType(str, Enum):
    """Side of an entry line."""

    DEBIT = "debit"
    CREDIT = "credit"

    @property
    def opposite(self) -> "EntryType":
        return EntryType.CREDIT if self is EntryType.DEBIT else EntryType.DEBIT


class RuleType(str, Enum):
    """Kind of transformation a rule performs."""

    EDIT = "edit"
    MERGE = "merge"
    COMPLEMENTARY = "complementary"


class RuleEntryType(str, Enum):
    """Which side of a source entry a rule is restricted to."""

    DEBIT = "debit"
    CREDIT = "credit"
    BOTH = "both"


@dataclass(frozen=True)
class Account:
    """Ledger account domain entity."""

    id: int
    name: str
    type: AccountType
    unit: str
    parent_id: Optional[int]
    created_at: datetime
    description: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class EntryLine:
    """One debit or credit row within a transaction.

    ``id`` is None until the entry has been persisted. A ``unit`` of None means
    the unit of the entry's account.
    """

    account_id: int
    amount: Decimal
    type: EntryType
    unit: Optional[str] = None
    description: Optional[str] = None
    quantity: Optional[Decimal] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class AppliedRule:
    """Record that a rule has already mutated a transaction."""

    rule_id: int
    applied_at: datetime


@dataclass(frozen=True)
class Transaction:
    """Transaction domain entity with its entry lines."""

    id: Optional[int]
    date: date
    description: str
    entries: tuple[EntryLine, ...] = ()
    reference: Optional[str] = None
    notes: Optional[str] = None
    applied_rules: tuple[AppliedRule, ...] = ()
    is_balanced: bool = False
    version: int = 0
    created_at: Optional[datetime] = None

    def has_applied_rule(self, rule_id: int) -> bool:
        """Return True if the rule is already recorded on this transaction."""
        return any(applied.rule_id == rule_id for applied in self.applied_rules)


@dataclass(frozen=True)
class DestinationAccount:
    """Allocation target of a complementary rule."""

    account_id: int
    ratio: Decimal


@dataclass(frozen=True)
class Rule:
    """Rule domain entity.

    Only the fields for the rule's own type are meaningful: ``new_description``
    for edit rules, ``max_date_difference`` for merge rules and
    ``destination_accounts`` for complementary rules.
    """

    id: int
    name: str
    type: RuleType
    pattern: str
    source_accounts: tuple[int, ...] = ()
    priority: int = 0
    auto_apply: bool = True
    entry_type: RuleEntryType = RuleEntryType.BOTH
    description: Optional[str] = None
    new_description: Optional[str] = None
    max_date_difference: Optional[int] = None
    destination_accounts: tuple[DestinationAccount, ...] = ()
    created_at: Optional[datetime] = None

    @property
    def marker(self) -> str:
        """Description tag placed on entries generated by this rule."""
        return COMPLEMENTARY_MARKER.format(rule_name=self.name)


@dataclass(frozen=True)
class ImbalanceRow:
    """Aggregated debit/credit totals for one transaction, as returned by the store."""

    transaction: Transaction
    total_debit: Decimal
    total_credit: Decimal

    @property
    def imbalance(self) -> Decimal:
        return self.total_debit - self.total_credit


@dataclass(frozen=True)
class RuleApplicationResult:
    """Outcome of running the auto-apply rules against one transaction."""

    transaction_id: int
    applied_rules: list[int] = field(default_factory=list)
    skipped_rules: list[int] = field(default_factory=list)
    merged_into: Optional[int] = None

    @property
    def surviving_transaction_id(self) -> int:
        return self.merged_into if self.merged_into is not None else self.transaction_id
