"""Tests for transaction, rule, match and restructure commands."""

from datetime import date
from decimal import Decimal

import pytest
from ledgerlink.cli.main import cli


@pytest.fixture
def run(cli_runner, temp_db):
    """Invoke the CLI against the temporary database."""

    def _run(*args, **kwargs):
        return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args], **kwargs)

    return _run


def test_help_does_not_need_database(cli_runner):
    result = cli_runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "transaction" in result.output
    assert "restructure" in result.output


class TestTransactionCommands:
    """Tests for the transaction command group."""

    def test_create_balanced(self, run, temp_db, accounts):
        result = run(
            "transaction", "create",
            "--date", "2024-01-15",
            "--description", "Grocery store",
            "--debit", "Groceries:$45.20",
            "--credit", "Checking:45.20",
        )

        assert result.exit_code == 0, result.output
        assert "Created transaction" in result.output
        assert "is balanced" in result.output
        [txn] = temp_db.list_transactions()
        assert txn.date == date(2024, 1, 15)
        assert [e.amount for e in txn.entries] == [Decimal("45.20"), Decimal("45.20")]

    def test_create_unknown_account(self, run, accounts):
        result = run("transaction", "create", "--description", "x", "--debit", "Nowhere:5")

        assert result.exit_code == 1
        assert "Nowhere" in result.output

    def test_create_bad_entry_format(self, run, accounts):
        result = run("transaction", "create", "--description", "x", "--debit", "Groceries")

        assert result.exit_code == 1
        assert "ACCOUNT:AMOUNT" in result.output

    def test_create_without_entries(self, run, accounts):
        result = run("transaction", "create", "--description", "Empty")

        assert result.exit_code == 1
        assert "at least one entry" in result.output

    def test_create_invalid_date(self, run, accounts):
        result = run(
            "transaction", "create", "--date", "someday", "--description", "x",
            "--debit", "Groceries:5",
        )

        assert result.exit_code == 1
        assert "Invalid date" in result.output

    def test_create_reports_applied_rules(self, run, rule_service, accounts):
        rule_id = rule_service.create_rule(
            name="Coffee", type="edit", pattern="blue bottle", new_description="Coffee"
        )

        result = run(
            "transaction", "create", "--description", "SQ *BLUE BOTTLE",
            "--debit", "Groceries:4.50",
        )

        assert result.exit_code == 0, result.output
        assert f"Applied rules: {rule_id}" in result.output
        assert "is unbalanced" in result.output

    def test_show(self, run, accounts, make_transaction):
        txn = make_transaction(
            "Dinner",
            [(accounts["Groceries"], "60", "debit"), (accounts["Checking"], "40", "credit")],
        )

        result = run("transaction", "show", str(txn.id))

        assert result.exit_code == 0
        assert "Dinner" in result.output
        assert "[1] credit" in result.output
        assert "Suggested fix: credit 20.00 USD" in result.output

    def test_show_missing(self, run, accounts):
        result = run("transaction", "show", "99")

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_list_filters(self, run, accounts, make_transaction):
        make_transaction(
            "Balanced lunch",
            [(accounts["Groceries"], "9", "debit"), (accounts["Checking"], "9", "credit")],
        )
        make_transaction("Half transfer", [(accounts["Checking"], "100", "credit")])

        everything = run("transaction", "list")
        unbalanced = run("transaction", "list", "--unbalanced")
        by_account = run("transaction", "list", "--account", "Groceries")

        assert "Found 2 transaction(s)" in everything.output
        assert "Found 1 transaction(s)" in unbalanced.output
        assert "Half transfer" in unbalanced.output
        assert "Balanced lunch" in by_account.output
        assert "Half transfer" not in by_account.output

    def test_list_empty(self, run, accounts):
        result = run("transaction", "list", "--start-date", "2030-01-01")

        assert result.exit_code == 0
        assert "No transactions found." in result.output

    def test_list_period_conflict(self, run, accounts):
        result = run("transaction", "list", "--period", "this-month", "--start-date", "2024-01-01")

        assert result.exit_code == 1
        assert "cannot be combined" in result.output

    def test_add_entry_and_balance(self, run, temp_db, accounts, make_transaction):
        txn = make_transaction("Half transfer", [(accounts["Checking"], "100", "credit")])

        added = run("transaction", "add-entry", str(txn.id), "--debit", "Credit Card:100")
        balance = run("transaction", "balance", str(txn.id))

        assert added.exit_code == 0, added.output
        assert f"Transaction {txn.id} is balanced" in added.output
        assert "Balanced" in balance.output
        assert temp_db.get_transaction(txn.id).is_balanced

    def test_add_entry_needs_one_side(self, run, accounts, make_transaction):
        txn = make_transaction("Half transfer", [(accounts["Checking"], "100", "credit")])

        result = run(
            "transaction", "add-entry", str(txn.id),
            "--debit", "Rent:1", "--credit", "Rent:1",
        )

        assert result.exit_code == 1
        assert "exactly one" in result.output

    def test_delete_entry(self, run, temp_db, accounts, make_transaction):
        txn = make_transaction(
            "Dinner",
            [(accounts["Groceries"], "60", "debit"), (accounts["Checking"], "60", "credit")],
        )

        result = run("transaction", "delete-entry", str(txn.id), "1")

        assert result.exit_code == 0
        assert "(unbalanced)" in result.output
        assert len(temp_db.get_transaction(txn.id).entries) == 1

    def test_delete(self, run, temp_db, accounts, make_transaction):
        txn = make_transaction("Dinner", [(accounts["Groceries"], "60", "debit")])

        result = run("transaction", "delete", str(txn.id), "--yes")

        assert result.exit_code == 0
        assert f"Deleted transaction {txn.id}" in result.output
        assert temp_db.get_transaction(txn.id) is None


class TestRuleCommands:
    """Tests for the rule command group."""

    def test_create_and_list(self, run, accounts):
        created = run(
            "rule", "create", "Rent split",
            "--type", "complementary",
            "--pattern", "RENT",
            "--source", "Checking",
            "--destination", "Rent:60%",
            "--destination", "Utilities:0.4",
        )
        listed = run("rule", "list")

        assert created.exit_code == 0, created.output
        assert "Created complementary rule 'Rent split'" in created.output
        assert "Rent split" in listed.output
        assert "/RENT/" in listed.output

    def test_create_invalid(self, run, accounts):
        result = run("rule", "create", "Broken", "--type", "edit", "--pattern", "x")

        assert result.exit_code == 1
        assert "New description" in result.output

    def test_list_empty(self, run, accounts):
        result = run("rule", "list")

        assert "No rules found." in result.output

    def test_test_command(self, run, rule_service, accounts):
        rule_id = rule_service.create_rule(
            name="Coffee", type="edit", pattern="^sq", new_description="Coffee"
        )

        matched = run("rule", "test", str(rule_id), "SQ *CAFE", "4.50")
        missed = run("rule", "test", str(rule_id), "Grocery", "4.50")

        assert "Match" in matched.output
        assert "No match" in missed.output

    def test_apply_and_apply_all(self, run, temp_db, rule_service, accounts, make_transaction):
        rule_id = rule_service.create_rule(
            name="Rename", type="edit", pattern="amzn", new_description="Amazon", auto_apply=False
        )
        first = make_transaction("AMZN MKTP", [(accounts["Groceries"], "10", "debit")])
        make_transaction("AMZN PRIME", [(accounts["Groceries"], "12", "debit")])

        applied = run("rule", "apply", str(rule_id), str(first.id))
        batch = run("rule", "apply-all")

        assert f"Applied rule {rule_id} to transaction {first.id}" in applied.output
        assert temp_db.get_transaction(first.id).description == "Amazon"
        assert "Processed 2 unbalanced transaction(s): 2 succeeded, 0 failed" in batch.output

    def test_preview(self, run, accounts, make_transaction):
        make_transaction("AMZN MKTP", [(accounts["Groceries"], "10", "debit")])
        make_transaction("Rent", [(accounts["Rent"], "10", "debit")])

        result = run("rule", "preview", "amzn")

        assert result.exit_code == 0
        assert "1 matching transaction(s) (2 unbalanced in total)" in result.output

    def test_delete(self, run, rule_service, accounts):
        rule_id = rule_service.create_rule(name="R", type="edit", pattern="x", new_description="y")

        deleted = run("rule", "delete", str(rule_id))
        missing = run("rule", "delete", str(rule_id))

        assert f"Deleted rule {rule_id}" in deleted.output
        assert missing.exit_code == 1


class TestMatchCommands:
    """Tests for the match command group."""

    @pytest.fixture
    def halves(self, accounts, make_transaction):
        credit_half = make_transaction("Card payment", [(accounts["Checking"], "50", "credit")])
        debit_half = make_transaction("Payment received", [(accounts["Credit Card"], "50", "debit")])
        return credit_half, debit_half

    def test_complementary(self, run, halves):
        _, debit_half = halves

        result = run("match", "complementary", "50", "debit", "--date", "2024-03-15")

        assert result.exit_code == 0, result.output
        assert "Found 1 match(es)" in result.output
        assert "Payment received" in result.output

    def test_for_transaction(self, run, halves):
        credit_half, _ = halves

        result = run("match", "transaction", str(credit_half.id))

        assert "Payment received" in result.output
        assert "Card payment" not in result.output

    def test_no_matches(self, run, halves):
        result = run("match", "complementary", "999", "debit", "--date", "2024-03-15")

        assert "No matching transactions found." in result.output

    def test_invalid_amount(self, run, halves):
        result = run("match", "complementary", "abc", "debit")

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_entries(self, run, halves):
        result = run("match", "entries", "--account", "Checking", "--date", "2024-03-15")

        assert result.exit_code == 0
        assert "Found 1 entry" in result.output
        assert "Checking" in result.output


class TestRestructureCommands:
    """Tests for the restructure command group."""

    def test_merge(self, run, temp_db, accounts, make_transaction):
        paid = make_transaction("Card payment", [(accounts["Checking"], "50", "credit")])
        received = make_transaction("Payment received", [(accounts["Credit Card"], "50", "debit")])

        result = run("restructure", "merge", str(paid.id), str(received.id))

        assert result.exit_code == 0, result.output
        assert "(balanced)" in result.output
        assert temp_db.get_transaction(paid.id) is None

    def test_split(self, run, accounts, make_transaction):
        txn = make_transaction(
            "Mixed",
            [(accounts["Groceries"], "10", "debit"), (accounts["Rent"], "20", "debit")],
        )

        result = run("restructure", "split", str(txn.id), "1", "--description", "Rent part")

        assert result.exit_code == 0, result.output
        assert "Created transaction" in result.output

    def test_move_entry_deletes_empty_source(self, run, accounts, make_transaction):
        paid = make_transaction("Card payment", [(accounts["Checking"], "50", "credit")])
        received = make_transaction("Payment received", [(accounts["Credit Card"], "50", "debit")])

        result = run("restructure", "move-entry", str(paid.id), "0", str(received.id))

        assert result.exit_code == 0, result.output
        assert "was deleted" in result.output
        assert f"Transaction {received.id} is balanced" in result.output

    def test_invalid_index(self, run, accounts, make_transaction):
        paid = make_transaction("Card payment", [(accounts["Checking"], "50", "credit")])
        received = make_transaction("Payment received", [(accounts["Credit Card"], "50", "debit")])

        result = run("restructure", "move-entry", str(paid.id), "5", str(received.id))

        assert result.exit_code == 1
        assert "Invalid entry index" in result.output
