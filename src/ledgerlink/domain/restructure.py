"""Manual restructuring of transactions: moving entries, splitting and merging."""

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional

from ledgerlink.database.base import Database
from ledgerlink.domain.balance import is_balanced, refresh_balance
from ledgerlink.domain.entities import Transaction
from ledgerlink.domain.errors import NotFoundError, ValidationError, transaction_not_found

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MoveResult:
    """Transactions left after moving an entry.

    ``source`` is None when the move emptied and deleted the source transaction.
    """

    source: Optional[Transaction]
    destination: Transaction

    @property
    def source_deleted(self) -> bool:
        return self.source is None


@dataclass(frozen=True)
class SplitResult:
    """The shrunk original transaction and the newly created one."""

    original: Transaction
    created: Transaction


class RestructureService:
    """Service for moving entry lines between transactions."""

    def __init__(self, db: Database):
        """Initialize restructure service.

        Args:
            db: Database instance
        """
        self.db = db

    def _require(self, transaction_id: int) -> Transaction:
        txn = self.db.get_transaction(transaction_id)
        if txn is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return txn

    def move_entry(self, source_id: int, entry_index: int, destination_id: int) -> MoveResult:
        """Move one entry line from a transaction to another.

        The source transaction is deleted when the move leaves it empty.

        Args:
            source_id: Transaction the entry currently belongs to
            entry_index: Position of the entry in the source transaction
            destination_id: Transaction receiving the entry

        Returns:
            MoveResult with the refreshed transactions

        Raises:
            NotFoundError: If either transaction doesn't exist
            ValidationError: If the ids are the same or the index is invalid
        """
        if source_id == destination_id:
            raise ValidationError("Source and destination transactions must differ")
        source = self._require(source_id)
        destination = self._require(destination_id)
        if not 0 <= entry_index < len(source.entries):
            raise ValidationError(f"Invalid entry index {entry_index}")

        entry = source.entries[entry_index]
        remaining = source.entries[:entry_index] + source.entries[entry_index + 1 :]

        self.db.save_transaction(
            replace(destination, entries=destination.entries + (replace(entry, id=None),))
        )
        if remaining:
            self.db.save_transaction(replace(source, entries=remaining))
        else:
            self.db.delete_transaction(source_id)
            logger.info("Deleted transaction %s after moving its last entry", source_id)

        logger.info(
            "Moved entry %d of transaction %s to transaction %s",
            entry_index,
            source_id,
            destination_id,
        )
        return MoveResult(
            source=refresh_balance(self.db, source_id) if remaining else None,
            destination=refresh_balance(self.db, destination_id),
        )

    def split_transaction(
        self,
        transaction_id: int,
        entry_indices: Iterable[int],
        description: Optional[str] = None,
    ) -> SplitResult:
        """Split selected entries off into a new transaction with the same date.

        Args:
            transaction_id: Transaction to split
            entry_indices: Positions of the entries to move to the new transaction
            description: Description for the new transaction
                (defaults to "Split from: <original description>")

        Returns:
            SplitResult with the refreshed original and the new transaction

        Raises:
            NotFoundError: If the transaction doesn't exist
            ValidationError: If no index is given, an index is invalid, or
                every entry would be moved
        """
        txn = self._require(transaction_id)
        indices = sorted(set(entry_indices))
        if not indices:
            raise ValidationError("Select at least one entry to split off")
        if any(not 0 <= index < len(txn.entries) for index in indices):
            raise ValidationError("Invalid entry indices")
        if len(indices) == len(txn.entries):
            raise ValidationError("Cannot move all entries to the new transaction")

        selected = set(indices)
        moved = tuple(
            replace(entry, id=None) for i, entry in enumerate(txn.entries) if i in selected
        )
        kept = tuple(entry for i, entry in enumerate(txn.entries) if i not in selected)

        created = self.db.save_transaction(
            Transaction(
                id=None,
                date=txn.date,
                description=description or f"Split from: {txn.description}",
                entries=moved,
                reference=txn.reference,
                is_balanced=is_balanced(moved),
            )
        )
        self.db.save_transaction(replace(txn, entries=kept))
        logger.info(
            "Split %d entries from transaction %s into %s", len(moved), transaction_id, created.id
        )
        return SplitResult(
            original=refresh_balance(self.db, transaction_id),
            created=created,
        )

    def merge_transactions(self, source_id: int, destination_id: int) -> Transaction:
        """Merge all entries of one transaction into another and delete the source.

        Descriptions are joined with " + " when they differ; notes with a
        "---" separator line.

        Returns:
            The refreshed destination transaction

        Raises:
            NotFoundError: If either transaction doesn't exist
            ValidationError: If source and destination are the same transaction
        """
        if source_id == destination_id:
            raise ValidationError("Cannot merge a transaction with itself")
        source = self._require(source_id)
        destination = self._require(destination_id)

        description = destination.description
        if source.description != destination.description:
            description = f"{destination.description} + {source.description}"

        notes = [n for n in (destination.notes, source.notes) if n]
        merged = replace(
            destination,
            description=description,
            notes="\n---\n".join(notes) if notes else None,
            entries=destination.entries + tuple(replace(e, id=None) for e in source.entries),
        )
        self.db.save_transaction(merged)
        self.db.delete_transaction(source_id)
        logger.info("Merged transaction %s into %s", source_id, destination_id)
        return refresh_balance(self.db, destination_id)
