"""Transaction management commands."""

from dataclasses import replace

import click
from ledgerlink.cli.account_resolution import resolve_account_or_exit
from ledgerlink.cli.date_filters import parse_date_or_exit, period_option, resolve_cli_date_range
from ledgerlink.cli.error_handling import handle_domain_error
from ledgerlink.cli.formatting import account_names, echo_transaction, echo_transaction_row
from ledgerlink.domain.account import AccountService
from ledgerlink.domain.entities import EntryLine, EntryType
from ledgerlink.domain.errors import DomainError
from ledgerlink.domain.transaction import TransactionService, TransactionWriteResult
from ledgerlink.utils.amount_parser import parse_amount


@click.group()
def transaction_group():
    """Manage transactions."""
    pass


def parse_entry_or_exit(
    ctx: click.Context, account_service: AccountService, spec: str, entry_type: EntryType
) -> EntryLine:
    """Parse an ``ACCOUNT:AMOUNT`` option into an entry line."""
    account, sep, amount = spec.rpartition(":")
    if not sep or not account:
        click.echo(f"Error: Entry '{spec}' must look like ACCOUNT:AMOUNT", err=True)
        ctx.exit(1)
    try:
        value = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    account_id = resolve_account_or_exit(ctx, account_service, account)
    return EntryLine(account_id=account_id, amount=value, type=entry_type)


def parse_entries_or_exit(
    ctx: click.Context,
    account_service: AccountService,
    debits: tuple[str, ...],
    credits: tuple[str, ...],
) -> list[EntryLine]:
    entries = [parse_entry_or_exit(ctx, account_service, d, EntryType.DEBIT) for d in debits]
    entries += [parse_entry_or_exit(ctx, account_service, c, EntryType.CREDIT) for c in credits]
    return entries


def echo_write_result(result: TransactionWriteResult, written_id: int | None = None) -> None:
    """Report what the auto-apply rules did after a write."""
    rules = result.rules
    if rules.applied_rules:
        click.echo(f"Applied rules: {', '.join(str(r) for r in rules.applied_rules)}")
    if result.merged:
        click.echo(f"Transaction {written_id or rules.transaction_id} was merged into {rules.merged_into}")
    status = "balanced" if result.transaction.is_balanced else "unbalanced"
    click.echo(f"Transaction {result.transaction.id} is {status}")


@transaction_group.command("create")
@click.option("--date", "date_str", default="today", show_default=True, help="Transaction date")
@click.option("--description", required=True, help="Transaction description")
@click.option("--debit", "debits", multiple=True, metavar="ACCOUNT:AMOUNT", help="Debit entry (repeatable)")
@click.option("--credit", "credits", multiple=True, metavar="ACCOUNT:AMOUNT", help="Credit entry (repeatable)")
@click.option("--reference", help="External reference")
@click.option("--notes", help="Notes")
@click.pass_context
def create_transaction(
    ctx,
    date_str: str,
    description: str,
    debits: tuple[str, ...],
    credits: tuple[str, ...],
    reference: str | None,
    notes: str | None,
) -> None:
    """Create a transaction from debit and credit entries.

    Auto-apply rules run right after the transaction is stored.

    Examples:
        ledgerlink transaction create --description "Grocery store" \\
            --debit Groceries:45.20 --credit Checking:45.20
        ledgerlink transaction create --date yesterday --description "Salary" \\
            --debit Checking:3000
    """
    db = ctx.obj["db"]
    service = TransactionService(db)
    account_service = AccountService(db)

    txn_date = parse_date_or_exit(ctx, date_str, "date")
    entries = parse_entries_or_exit(ctx, account_service, debits, credits)

    try:
        result = service.create_transaction(
            date=txn_date,
            description=description,
            entries=entries,
            reference=reference,
            notes=notes,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Created transaction {result.rules.transaction_id}")
    echo_write_result(result)


@transaction_group.command("show")
@click.argument("transaction_id", type=int)
@click.pass_context
def show_transaction(ctx, transaction_id: int) -> None:
    """Show a transaction with its entries and balance."""
    db = ctx.obj["db"]
    service = TransactionService(db)

    txn = service.get_transaction(transaction_id)
    if txn is None:
        click.echo(f"Error: Transaction {transaction_id} not found", err=True)
        ctx.exit(1)
    echo_transaction(txn, account_names(db))


@transaction_group.command("list")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month', 'this year')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today', 'this month')")
@period_option
@click.option("--account", help="Account name or ID")
@click.option("--unbalanced", is_flag=True, help="Show only unbalanced transactions")
@click.option("--verbose", "-v", is_flag=True, help="Show entry lines of each transaction")
@click.pass_context
def list_transactions(
    ctx,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    account: str | None,
    unbalanced: bool,
    verbose: bool,
) -> None:
    """View transactions with optional filters, newest first.

    Account can be specified by name or ID.
    """
    db = ctx.obj["db"]
    service = TransactionService(db)
    account_service = AccountService(db)

    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    account_id = None
    if account:
        account_id = resolve_account_or_exit(ctx, account_service, account)

    transactions = service.list_transactions(
        start_date=start, end_date=end, account_id=account_id, unbalanced_only=unbalanced
    )
    if not transactions:
        click.echo("No transactions found.")
        return

    click.echo(f"\nFound {len(transactions)} transaction(s):")
    if verbose:
        names = account_names(db)
        for txn in transactions:
            echo_transaction(txn, names)
        return

    click.echo("-" * 100)
    click.echo(f"{'ID':<6} {'Date':<12} {'Description':<40} {'Entries':>11}  Status")
    click.echo("-" * 100)
    for txn in transactions:
        echo_transaction_row(txn)


@transaction_group.command("delete")
@click.argument("transaction_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_transaction(ctx, transaction_id: int, yes: bool) -> None:
    """Delete a transaction.

    Examples:
        ledgerlink transaction delete 1
    """
    db = ctx.obj["db"]
    service = TransactionService(db)

    if service.get_transaction(transaction_id) is None:
        click.echo(f"Error: Transaction {transaction_id} not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(f"Are you sure you want to delete transaction {transaction_id}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_transaction(transaction_id)
        click.echo(f"Deleted transaction {transaction_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@transaction_group.command("add-entry")
@click.argument("transaction_id", type=int)
@click.option("--debit", help="Debit entry as ACCOUNT:AMOUNT")
@click.option("--credit", help="Credit entry as ACCOUNT:AMOUNT")
@click.option("--description", help="Entry description")
@click.pass_context
def add_entry(
    ctx, transaction_id: int, debit: str | None, credit: str | None, description: str | None
) -> None:
    """Add one debit or credit entry to a transaction.

    Examples:
        ledgerlink transaction add-entry 3 --credit Checking:45.20
    """
    if (debit is None) == (credit is None):
        click.echo("Error: Specify exactly one of --debit or --credit", err=True)
        ctx.exit(1)

    db = ctx.obj["db"]
    service = TransactionService(db)
    account_service = AccountService(db)

    if debit is not None:
        entry = parse_entry_or_exit(ctx, account_service, debit, EntryType.DEBIT)
    else:
        entry = parse_entry_or_exit(ctx, account_service, credit, EntryType.CREDIT)
    if description:
        entry = replace(entry, description=description)

    try:
        result = service.add_entry(transaction_id, entry)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Added {entry.type.value} of {entry.amount:,.2f} to transaction {transaction_id}")
    echo_write_result(result, transaction_id)


@transaction_group.command("delete-entry")
@click.argument("transaction_id", type=int)
@click.argument("entry_index", type=int)
@click.pass_context
def delete_entry(ctx, transaction_id: int, entry_index: int) -> None:
    """Delete the entry at ENTRY_INDEX (as shown by 'transaction show')."""
    db = ctx.obj["db"]
    service = TransactionService(db)

    try:
        txn = service.delete_entry(transaction_id, entry_index)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    status = "balanced" if txn.is_balanced else "unbalanced"
    click.echo(f"Deleted entry {entry_index} of transaction {transaction_id} ({status})")


@transaction_group.command("balance")
@click.argument("transaction_id", type=int)
@click.pass_context
def show_balance(ctx, transaction_id: int) -> None:
    """Show debit and credit totals and the entry that would balance them."""
    db = ctx.obj["db"]
    service = TransactionService(db)

    try:
        balance = service.get_balance(transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Total debit:  {balance.total_debit:,.2f} {balance.unit}")
    click.echo(f"Total credit: {balance.total_credit:,.2f} {balance.unit}")
    click.echo(f"Imbalance:    {balance.imbalance:+,.2f}")
    if len(balance.by_unit) > 1:
        for unit, unit_balance in balance.by_unit.items():
            click.echo(f"  {unit}: {unit_balance.imbalance:+,.2f}")
    if balance.suggested_fix is None:
        click.echo("Balanced")
    else:
        fix = balance.suggested_fix
        click.echo(f"Suggested fix: {fix.type.value} {fix.amount:,.2f} {fix.unit}")


def register_commands(cli: click.Group) -> None:
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
