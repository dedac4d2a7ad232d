"""Tests for the account service and account commands."""

import pytest
from ledgerlink.cli.main import cli
from ledgerlink.domain.entities import AccountType
from ledgerlink.domain.errors import ConflictError, DependencyError, NotFoundError, ValidationError


class TestAccountService:
    """Tests for AccountService."""

    def test_create_account(self, account_service):
        account_id = account_service.create_account(
            name="Brokerage", type="asset", unit="AAPL", description="Shares"
        )

        account = account_service.get_account(account_id)
        assert account.name == "Brokerage"
        assert account.type == AccountType.ASSET
        assert account.unit == "AAPL"
        assert account.description == "Shares"
        assert account.is_active

    def test_create_with_parent(self, account_service, accounts):
        account_id = account_service.create_account(
            name="Dining", type="expense", parent_id=accounts["Groceries"].id
        )

        assert account_service.get_account(account_id).parent_id == accounts["Groceries"].id

    def test_duplicate_name(self, account_service, accounts):
        with pytest.raises(ConflictError, match="already exists"):
            account_service.create_account(name="Checking")

    def test_missing_parent(self, account_service):
        with pytest.raises(NotFoundError):
            account_service.create_account(name="Orphan", parent_id=99)

    @pytest.mark.parametrize(
        "kwargs",
        [{"name": ""}, {"name": "X", "unit": " "}, {"name": "X", "type": "savings"}],
    )
    def test_invalid(self, account_service, kwargs):
        with pytest.raises(ValidationError):
            account_service.create_account(**kwargs)

    def test_update_account(self, account_service, accounts):
        account_id = accounts["Rent"].id

        account_service.update_account(account_id, name="Housing", is_active=False)

        account = account_service.get_account(account_id)
        assert account.name == "Housing"
        assert not account.is_active

    def test_update_rejects_self_parent(self, account_service, accounts):
        account_id = accounts["Rent"].id
        with pytest.raises(ValidationError):
            account_service.update_account(account_id, parent_id=account_id)

    def test_update_rejects_taken_name(self, account_service, accounts):
        with pytest.raises(ConflictError):
            account_service.update_account(accounts["Rent"].id, name="Checking")

    def test_delete_unused_account(self, account_service, accounts):
        account_service.delete_account(accounts["Salary"].id)

        assert account_service.get_account(accounts["Salary"].id) is None

    def test_delete_blocked_by_entries(self, account_service, accounts, make_transaction):
        make_transaction("Pay", [(accounts["Salary"], "1000", "credit")])

        with pytest.raises(DependencyError, match="1 entry"):
            account_service.delete_account(accounts["Salary"].id)

    def test_delete_blocked_by_rules(self, account_service, rule_service, accounts):
        rule_service.create_rule(
            name="Payroll",
            type="edit",
            pattern="payroll",
            new_description="Salary",
            source_accounts=[accounts["Salary"].id],
        )

        with pytest.raises(DependencyError, match="1 rule"):
            account_service.delete_account(accounts["Salary"].id)

    def test_delete_missing(self, account_service):
        with pytest.raises(NotFoundError):
            account_service.delete_account(42)


def test_account_create(cli_runner, temp_db):
    """Test creating an account from the command line."""
    result = cli_runner.invoke(
        cli,
        ["--db-path", temp_db.database_path, "account", "create", "Savings", "--unit", "EUR"],
    )

    assert result.exit_code == 0
    assert "Created account 'Savings'" in result.output
    assert "ID:" in result.output
    assert temp_db.get_account_by_name("Savings").unit == "EUR"


def test_account_create_with_parent(cli_runner, temp_db, accounts):
    """Test that --parent accepts an account name."""
    result = cli_runner.invoke(
        cli,
        [
            "--db-path", temp_db.database_path,
            "account", "create", "Coffee", "--type", "expense", "--parent", "Groceries",
        ],
    )

    assert result.exit_code == 0
    assert temp_db.get_account_by_name("Coffee").parent_id == accounts["Groceries"].id


def test_account_list_empty(cli_runner, temp_db):
    """Test listing accounts when none exist."""
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "account", "list"])

    assert result.exit_code == 0
    assert "No accounts found" in result.output


def test_account_list_with_data(cli_runner, temp_db, accounts):
    """Test listing accounts with data."""
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "account", "list"])

    assert result.exit_code == 0
    assert "Checking" in result.output
    assert "BTC" in result.output


def test_account_create_duplicate(cli_runner, temp_db):
    """Test creating duplicate account name fails."""
    result1 = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "account", "create", "Wallet"]
    )
    assert result1.exit_code == 0

    result2 = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "account", "create", "Wallet"]
    )

    assert result2.exit_code == 1
    assert "already exists" in result2.output.lower()


def test_account_delete(cli_runner, temp_db, accounts):
    """Test deleting an account by name without confirmation."""
    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "account", "delete", "Salary", "--yes"]
    )

    assert result.exit_code == 0
    assert "Deleted account 'Salary'" in result.output
    assert temp_db.get_account_by_name("Salary") is None


def test_account_delete_cancelled(cli_runner, temp_db, accounts):
    """Test that declining the prompt keeps the account."""
    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "account", "delete", "Salary"], input="n\n"
    )

    assert result.exit_code == 0
    assert "Deletion cancelled." in result.output
    assert temp_db.get_account_by_name("Salary") is not None


def test_account_delete_in_use(cli_runner, temp_db, accounts, make_transaction):
    """Test that an account with entries cannot be deleted."""
    make_transaction("Pay", [(accounts["Salary"], "1000", "credit")])

    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "account", "delete", "Salary", "--yes"]
    )

    assert result.exit_code == 1
    assert "Cannot delete account" in result.output
