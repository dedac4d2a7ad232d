"""Tests for moving, splitting and merging transactions."""

from datetime import date

import pytest

from ledgerlink.domain.errors import NotFoundError, ValidationError


@pytest.fixture
def halves(accounts, make_transaction):
    """Two unbalanced halves of the same card payment."""
    paid = make_transaction(
        "Card payment", [(accounts["Checking"], "200", "credit")], notes="from checking"
    )
    received = make_transaction(
        "Payment received",
        [(accounts["Credit Card"], "200", "debit"), (accounts["Groceries"], "15", "debit")],
        txn_date=date(2024, 3, 16),
        notes="statement",
    )
    return paid, received


class TestMoveEntry:
    """Tests for move_entry."""

    def test_moves_entry_and_refreshes_both(self, restructure_service, accounts, halves, temp_db):
        paid, received = halves

        result = restructure_service.move_entry(received.id, 0, paid.id)

        assert result.destination.is_balanced
        assert [e.account_id for e in result.destination.entries] == [
            accounts["Checking"].id,
            accounts["Credit Card"].id,
        ]
        assert not result.source_deleted
        assert [e.account_id for e in result.source.entries] == [accounts["Groceries"].id]
        assert not result.source.is_balanced

    def test_deletes_emptied_source(self, restructure_service, halves, temp_db):
        paid, received = halves

        result = restructure_service.move_entry(paid.id, 0, received.id)

        assert result.source_deleted
        assert temp_db.get_transaction(paid.id) is None
        assert len(result.destination.entries) == 3

    def test_invalid_index(self, restructure_service, halves):
        paid, received = halves
        with pytest.raises(ValidationError, match="Invalid entry index"):
            restructure_service.move_entry(paid.id, 3, received.id)

    def test_same_transaction(self, restructure_service, halves):
        paid, _ = halves
        with pytest.raises(ValidationError):
            restructure_service.move_entry(paid.id, 0, paid.id)

    def test_missing_destination(self, restructure_service, halves):
        paid, _ = halves
        with pytest.raises(NotFoundError):
            restructure_service.move_entry(paid.id, 0, 999)


class TestSplitTransaction:
    """Tests for split_transaction."""

    def test_split_with_default_description(self, restructure_service, accounts, halves):
        _, received = halves

        result = restructure_service.split_transaction(received.id, [1])

        assert result.created.description == "Split from: Payment received"
        assert result.created.date == received.date
        assert [e.account_id for e in result.created.entries] == [accounts["Groceries"].id]
        assert [e.account_id for e in result.original.entries] == [accounts["Credit Card"].id]

    def test_split_with_description(self, restructure_service, halves):
        _, received = halves

        result = restructure_service.split_transaction(received.id, [0], description="Card")

        assert result.created.description == "Card"

    def test_cannot_move_all_entries(self, restructure_service, halves):
        _, received = halves
        with pytest.raises(ValidationError, match="all entries"):
            restructure_service.split_transaction(received.id, [0, 1])

    @pytest.mark.parametrize("indices", [[], [7], [-1]])
    def test_invalid_indices(self, restructure_service, halves, indices):
        _, received = halves
        with pytest.raises(ValidationError):
            restructure_service.split_transaction(received.id, indices)


class TestMergeTransactions:
    """Tests for merge_transactions."""

    def test_merge(self, restructure_service, halves, temp_db):
        paid, received = halves

        merged = restructure_service.merge_transactions(paid.id, received.id)

        assert merged.id == received.id
        assert merged.description == "Payment received + Card payment"
        assert merged.notes == "statement\n---\nfrom checking"
        assert len(merged.entries) == 3
        assert temp_db.get_transaction(paid.id) is None

    def test_same_description_kept(self, restructure_service, accounts, make_transaction):
        first = make_transaction("Rent", [(accounts["Checking"], "100", "credit")])
        second = make_transaction("Rent", [(accounts["Rent"], "100", "debit")])

        merged = restructure_service.merge_transactions(first.id, second.id)

        assert merged.description == "Rent"
        assert merged.notes is None
        assert merged.is_balanced

    def test_merge_with_itself(self, restructure_service, halves):
        paid, _ = halves
        with pytest.raises(ValidationError):
            restructure_service.merge_transactions(paid.id, paid.id)
