"""Search for transactions and entries that can balance an unbalanced transaction.

The complementary search looks for transactions whose imbalance has the SAME
sign as the requested entry type and (within one cent) the same size: a
``debit`` request returns transactions with excess debits of ``amount``. The
caller then moves an entry between the two transactions to balance both.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from ledgerlink.database.base import Database
from ledgerlink.domain.balance import compute_balance
from ledgerlink.domain.entities import EntryLine, EntryType, Transaction
from ledgerlink.domain.errors import (
    NotFoundError,
    RuleConfigurationError,
    ValidationError,
    transaction_not_found,
)
from ledgerlink.domain.matcher import compile_pattern

logger = logging.getLogger(__name__)

MATCH_TOLERANCE = Decimal("0.01")
DEFAULT_DATE_RANGE = 15
DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class ComplementaryMatch:
    """A candidate transaction with its totals and account names for display."""

    transaction: Transaction
    total_debit: Decimal
    total_credit: Decimal
    imbalance: Decimal
    account_names: dict[int, str]


@dataclass(frozen=True)
class MatchPage:
    """One page of complementary matches."""

    items: list[ComplementaryMatch]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass(frozen=True)
class EntryMatch:
    """A loose entry found by ``search_entries`` with its parent transaction."""

    entry: EntryLine
    transaction: Transaction
    account_name: str


@dataclass(frozen=True)
class EntryPage:
    """One page of entry search results."""

    items: list[EntryMatch]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def parse_target_amount(amount) -> Decimal:
    """Parse a search amount, which must be a finite positive number.

    Raises:
        ValidationError: If the amount is missing, not a number, infinite or <= 0
    """
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValidationError(f"Amount must be a positive number, got {amount!r}") from e
    if not value.is_finite() or value <= 0:
        raise ValidationError(f"Amount must be a positive number, got {amount!r}")
    return value


def date_window(reference_date: date, date_range: int) -> tuple[date, date]:
    """Return the symmetric window of ``date_range // 2`` days around a date."""
    half = date_range // 2
    return reference_date - timedelta(days=half), reference_date + timedelta(days=half)


def _validate_paging(page: int, limit: int) -> None:
    if page < 1:
        raise ValidationError("Page must be at least 1")
    if limit < 1:
        raise ValidationError("Limit must be at least 1")


class MatchService:
    """Service for finding balancing counterparts of unbalanced transactions."""

    def __init__(self, db: Database):
        """Initialize match service.

        Args:
            db: Database instance
        """
        self.db = db

    def _account_names(self) -> dict[int, str]:
        return {account.id: account.name for account in self.db.list_accounts()}

    def find_complementary_matches(
        self,
        amount,
        type: EntryType | str,
        date_range: int = DEFAULT_DATE_RANGE,
        reference_date: Optional[date] = None,
        exclude_transaction_id: Optional[int] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> MatchPage:
        """Find transactions whose imbalance equals ``amount`` on the ``type`` side.

        Args:
            amount: Target imbalance size (must be a finite positive number)
            type: ``debit`` keeps transactions with imbalance > 0, ``credit``
                keeps transactions with imbalance < 0
            date_range: Width of the window in days, centred on ``reference_date``
            reference_date: Centre of the window (defaults to today)
            exclude_transaction_id: Transaction to leave out, usually the one being balanced
            page: 1-based page number
            limit: Page size

        Returns:
            MatchPage sorted by date descending

        Raises:
            ValidationError: If amount, type, date range or paging is invalid
        """
        target = parse_target_amount(amount)
        try:
            entry_type = EntryType(type)
        except ValueError as e:
            raise ValidationError(f"Type must be either debit or credit, got {type!r}") from e
        if date_range < 0:
            raise ValidationError("Date range must not be negative")
        _validate_paging(page, limit)

        start, end = date_window(reference_date or date.today(), date_range)
        rows, total = self.db.find_transactions_by_imbalance(
            start_date=start,
            end_date=end,
            entry_type=entry_type,
            amount=target,
            tolerance=MATCH_TOLERANCE,
            exclude_id=exclude_transaction_id,
            offset=(page - 1) * limit,
            limit=limit,
        )
        logger.debug(
            "Complementary search %s %s in [%s, %s]: %d total",
            entry_type.value,
            target,
            start,
            end,
            total,
        )

        names = self._account_names() if rows else {}
        items = [
            ComplementaryMatch(
                transaction=row.transaction,
                total_debit=row.total_debit,
                total_credit=row.total_credit,
                imbalance=row.imbalance,
                account_names={
                    entry.account_id: names.get(entry.account_id, "Unknown")
                    for entry in row.transaction.entries
                },
            )
            for row in rows
        ]
        return MatchPage(items=items, total=total, page=page, limit=limit)

    def find_matches_for_transaction(
        self,
        transaction_id: int,
        date_range: int = DEFAULT_DATE_RANGE,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> MatchPage:
        """Search with the suggested fix of a stored transaction, excluding itself.

        Raises:
            NotFoundError: If the transaction doesn't exist
            ValidationError: If the transaction is already balanced
        """
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))

        fix = compute_balance(transaction).suggested_fix
        if fix is None:
            raise ValidationError(f"Transaction {transaction_id} is already balanced")

        return self.find_complementary_matches(
            amount=fix.amount,
            type=fix.type,
            date_range=date_range,
            reference_date=transaction.date,
            exclude_transaction_id=transaction_id,
            page=page,
            limit=limit,
        )

    def search_entries(
        self,
        min_amount: Optional[Decimal] = None,
        max_amount: Optional[Decimal] = None,
        account_id: Optional[int] = None,
        type: Optional[EntryType | str] = None,
        search_text: Optional[str] = None,
        date_range: int = DEFAULT_DATE_RANGE,
        reference_date: Optional[date] = None,
        exclude_transaction_id: Optional[int] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> EntryPage:
        """Search loose entries of unbalanced transactions in a date window.

        Raises:
            ValidationError: If the text pattern, type or paging is invalid
        """
        _validate_paging(page, limit)
        entry_type = None
        if type is not None:
            try:
                entry_type = EntryType(type)
            except ValueError as e:
                raise ValidationError(f"Type must be either debit or credit, got {type!r}") from e

        text_matcher = None
        if search_text:
            try:
                text_matcher = compile_pattern(search_text)
            except RuleConfigurationError as e:
                raise ValidationError(str(e)) from e

        start, end = date_window(reference_date or date.today(), date_range)
        transactions = self.db.list_transactions(
            start_date=start,
            end_date=end,
            exclude_id=exclude_transaction_id,
            is_balanced=False,
        )

        names = self._account_names()
        found = []
        for transaction in transactions:
            if text_matcher is not None and not text_matcher.matches(transaction.description):
                continue
            for entry in transaction.entries:
                if min_amount is not None and entry.amount < min_amount:
                    continue
                if max_amount is not None and entry.amount > max_amount:
                    continue
                if account_id is not None and entry.account_id != account_id:
                    continue
                if entry_type is not None and entry.type != entry_type:
                    continue
                found.append(
                    EntryMatch(
                        entry=entry,
                        transaction=transaction,
                        account_name=names.get(entry.account_id, "Unknown"),
                    )
                )

        offset = (page - 1) * limit
        return EntryPage(items=found[offset : offset + limit], total=len(found), page=page, limit=limit)
