"""Shared pytest fixtures for ledgerlink tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal
import pytest

from ledgerlink.database.factories import create_sqlite_database
from ledgerlink.domain.account import AccountService
from ledgerlink.domain.balance import is_balanced
from ledgerlink.domain.entities import EntryLine, EntryType, Transaction
from ledgerlink.domain.matching import MatchService
from ledgerlink.domain.restructure import RestructureService
from ledgerlink.domain.rule import RuleService
from ledgerlink.domain.rule_application import RuleApplicationService
from ledgerlink.domain.transaction import TransactionService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def transaction_service(temp_db):
    """Create a TransactionService with a temporary database."""
    return TransactionService(temp_db)


@pytest.fixture
def rule_service(temp_db):
    """Create a RuleService with a temporary database."""
    return RuleService(temp_db)


@pytest.fixture
def rule_application_service(temp_db):
    """Create a RuleApplicationService with a temporary database."""
    return RuleApplicationService(temp_db)


@pytest.fixture
def match_service(temp_db):
    """Create a MatchService with a temporary database."""
    return MatchService(temp_db)


@pytest.fixture
def restructure_service(temp_db):
    """Create a RestructureService with a temporary database."""
    return RestructureService(temp_db)


@pytest.fixture
def accounts(account_service):
    """Create a small chart of accounts, keyed by name."""
    chart = [
        ("Checking", "asset", "USD"),
        ("Credit Card", "liability", "USD"),
        ("Groceries", "expense", "USD"),
        ("Rent", "expense", "USD"),
        ("Utilities", "expense", "USD"),
        ("Salary", "income", "USD"),
        ("Bitcoin", "asset", "BTC"),
    ]
    created = {}
    for name, account_type, unit in chart:
        account_id = account_service.create_account(name=name, type=account_type, unit=unit)
        created[name] = account_service.get_account(account_id)
    return created


@pytest.fixture
def make_transaction(temp_db):
    """Store a transaction directly, without running any rules.

    Entries are ``(account, amount, "debit" | "credit")`` tuples where
    ``account`` is an Account entity.
    """

    def _make(description, entries, txn_date=date(2024, 3, 15), notes=None):
        lines = tuple(
            EntryLine(
                account_id=account.id,
                amount=Decimal(str(amount)),
                type=EntryType(entry_type),
                unit=account.unit,
            )
            for account, amount, entry_type in entries
        )
        return temp_db.save_transaction(
            Transaction(
                id=None,
                date=txn_date,
                description=description,
                entries=lines,
                notes=notes,
                is_balanced=is_balanced(lines),
            )
        )

    return _make


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
