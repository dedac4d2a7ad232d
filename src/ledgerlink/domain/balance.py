"""Balance calculation for transactions.

Everything here except ``refresh_balance`` is a pure function of a
transaction's entry lines. Callers re-run ``compute_balance`` after every
mutation and persist the cached ``is_balanced`` flag, usually through
``refresh_balance``.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Optional

from ledgerlink.domain.entities import DEFAULT_UNIT, EntryLine, EntryType, Transaction

if TYPE_CHECKING:
    from ledgerlink.database.base import Database

BALANCE_EPSILON = Decimal("0.01")


@dataclass(frozen=True)
class SuggestedFix:
    """Entry that, if added to the transaction, would zero its imbalance."""

    type: EntryType
    amount: Decimal
    unit: str


@dataclass(frozen=True)
class UnitBalance:
    """Debit/credit totals for the entries of a single unit."""

    unit: str
    total_debit: Decimal
    total_credit: Decimal

    @property
    def imbalance(self) -> Decimal:
        return self.total_debit - self.total_credit

    @property
    def is_balanced(self) -> bool:
        return abs(self.imbalance) < BALANCE_EPSILON


@dataclass(frozen=True)
class TransactionBalance:
    """Balance summary of a transaction."""

    total_debit: Decimal
    total_credit: Decimal
    imbalance: Decimal
    is_balanced: bool
    unit: str
    suggested_fix: Optional[SuggestedFix]
    by_unit: dict[str, UnitBalance] = field(default_factory=dict)


def totals(entries: Iterable[EntryLine]) -> tuple[Decimal, Decimal]:
    """Return (total_debit, total_credit) of the given entries."""
    total_debit = Decimal("0")
    total_credit = Decimal("0")
    for entry in entries:
        if entry.type == EntryType.DEBIT:
            total_debit += entry.amount
        else:
            total_credit += entry.amount
    return total_debit, total_credit


def is_balanced(entries: Iterable[EntryLine]) -> bool:
    """Return True if debits and credits agree within one cent."""
    total_debit, total_credit = totals(entries)
    return abs(total_debit - total_credit) < BALANCE_EPSILON


def suggest_fix(imbalance: Decimal, unit: str) -> Optional[SuggestedFix]:
    """Return the entry that would cancel ``imbalance``, or None if already balanced."""
    if abs(imbalance) < BALANCE_EPSILON:
        return None
    fix_type = EntryType.CREDIT if imbalance > 0 else EntryType.DEBIT
    return SuggestedFix(type=fix_type, amount=abs(imbalance), unit=unit)


def _unit_of(entry: EntryLine) -> str:
    return entry.unit or DEFAULT_UNIT


def compute_balance(transaction: Transaction) -> TransactionBalance:
    """Compute totals, imbalance and a suggested fix for a transaction.

    The headline figures cover all entries; the primary unit is the unit of the
    first entry. ``by_unit`` breaks the same totals down per unit for
    transactions that mix currencies or assets.
    """
    entries = transaction.entries
    total_debit, total_credit = totals(entries)
    imbalance = total_debit - total_credit
    unit = _unit_of(entries[0]) if entries else DEFAULT_UNIT

    by_unit: dict[str, UnitBalance] = {}
    for entry_unit in dict.fromkeys(_unit_of(entry) for entry in entries):
        unit_debit, unit_credit = totals(e for e in entries if _unit_of(e) == entry_unit)
        by_unit[entry_unit] = UnitBalance(
            unit=entry_unit, total_debit=unit_debit, total_credit=unit_credit
        )

    return TransactionBalance(
        total_debit=total_debit,
        total_credit=total_credit,
        imbalance=imbalance,
        is_balanced=abs(imbalance) < BALANCE_EPSILON,
        unit=unit,
        suggested_fix=suggest_fix(imbalance, unit),
        by_unit=by_unit,
    )


def refresh_balance(db: "Database", transaction_id: int) -> Optional[Transaction]:
    """Recompute and persist the cached ``is_balanced`` flag of a stored transaction.

    Returns:
        The up-to-date transaction, or None if it no longer exists (merged away)
    """
    transaction = db.get_transaction(transaction_id)
    if transaction is None:
        return None
    balanced = compute_balance(transaction).is_balanced
    if balanced == transaction.is_balanced:
        return transaction
    return db.save_transaction(replace(transaction, is_balanced=balanced))
