"""Commands for finding counterparts of unbalanced transactions."""

import click
from ledgerlink.cli.account_resolution import resolve_account_or_exit
from ledgerlink.cli.date_filters import parse_date_or_exit
from ledgerlink.cli.error_handling import handle_domain_error
from ledgerlink.domain.account import AccountService
from ledgerlink.domain.entities import EntryType
from ledgerlink.domain.errors import DomainError
from ledgerlink.domain.matching import DEFAULT_DATE_RANGE, DEFAULT_PAGE_SIZE, MatchPage, MatchService
from ledgerlink.utils.amount_parser import parse_amount


@click.group()
def match_group():
    """Find transactions and entries that balance each other."""
    pass


def paging_options(func):
    func = click.option("--limit", type=int, default=DEFAULT_PAGE_SIZE, show_default=True)(func)
    func = click.option("--page", type=int, default=1, show_default=True)(func)
    func = click.option(
        "--date-range",
        type=int,
        default=DEFAULT_DATE_RANGE,
        show_default=True,
        help="Window width in days, centred on the reference date",
    )(func)
    return func


def echo_match_page(result: MatchPage) -> None:
    if not result.items:
        click.echo("No matching transactions found.")
        return

    click.echo(f"\nFound {result.total} match(es), page {result.page} of {result.pages}:")
    click.echo("-" * 100)
    for match in result.items:
        txn = match.transaction
        accounts = ", ".join(sorted(set(match.account_names.values())))
        click.echo(
            f"{txn.id:<6} {str(txn.date):<12} {txn.description[:36]:<36} "
            f"imbalance {match.imbalance:+,.2f}  [{accounts}]"
        )


@match_group.command("complementary")
@click.argument("amount")
@click.argument("entry_type", metavar="TYPE", type=click.Choice([t.value for t in EntryType]))
@click.option("--date", "date_str", help="Reference date (defaults to today)")
@click.option("--exclude", type=int, help="Transaction ID to leave out")
@paging_options
@click.pass_context
def complementary(
    ctx,
    amount: str,
    entry_type: str,
    date_str: str | None,
    exclude: int | None,
    date_range: int,
    page: int,
    limit: int,
) -> None:
    """Find transactions whose imbalance is AMOUNT on the TYPE side.

    Examples:
        ledgerlink match complementary 50.00 debit
        ledgerlink match complementary 120 credit --date 2024-03-01 --date-range 30
    """
    db = ctx.obj["db"]
    service = MatchService(db)
    reference_date = parse_date_or_exit(ctx, date_str, "date")

    try:
        result = service.find_complementary_matches(
            amount=amount,
            type=entry_type,
            date_range=date_range,
            reference_date=reference_date,
            exclude_transaction_id=exclude,
            page=page,
            limit=limit,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    echo_match_page(result)


@match_group.command("transaction")
@click.argument("transaction_id", type=int)
@paging_options
@click.pass_context
def for_transaction(ctx, transaction_id: int, date_range: int, page: int, limit: int) -> None:
    """Find transactions that would balance TRANSACTION_ID."""
    db = ctx.obj["db"]
    service = MatchService(db)

    try:
        result = service.find_matches_for_transaction(
            transaction_id, date_range=date_range, page=page, limit=limit
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    echo_match_page(result)


@match_group.command("entries")
@click.option("--min-amount", help="Minimum entry amount")
@click.option("--max-amount", help="Maximum entry amount")
@click.option("--account", help="Account name or ID")
@click.option("--type", "entry_type", type=click.Choice([t.value for t in EntryType]))
@click.option("--search", "search_text", help="Pattern matched against transaction descriptions")
@click.option("--date", "date_str", help="Reference date (defaults to today)")
@click.option("--exclude", type=int, help="Transaction ID to leave out")
@paging_options
@click.pass_context
def entries(
    ctx,
    min_amount: str | None,
    max_amount: str | None,
    account: str | None,
    entry_type: str | None,
    search_text: str | None,
    date_str: str | None,
    exclude: int | None,
    date_range: int,
    page: int,
    limit: int,
) -> None:
    """Search entry lines of unbalanced transactions."""
    db = ctx.obj["db"]
    service = MatchService(db)
    account_service = AccountService(db)

    try:
        low = parse_amount(min_amount) if min_amount else None
        high = parse_amount(max_amount) if max_amount else None
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)
    account_id = resolve_account_or_exit(ctx, account_service, account) if account else None
    reference_date = parse_date_or_exit(ctx, date_str, "date")

    try:
        result = service.search_entries(
            min_amount=low,
            max_amount=high,
            account_id=account_id,
            type=entry_type,
            search_text=search_text,
            date_range=date_range,
            reference_date=reference_date,
            exclude_transaction_id=exclude,
            page=page,
            limit=limit,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not result.items:
        click.echo("No matching entries found.")
        return
    click.echo(f"\nFound {result.total} entr{'ies' if result.total != 1 else 'y'}, page {result.page} of {result.pages}:")
    for match in result.items:
        entry = match.entry
        click.echo(
            f"  txn {match.transaction.id:<5} {str(match.transaction.date):<12} "
            f"{entry.type.value:<6} {entry.amount:>12,.2f} {entry.unit:<5} {match.account_name}"
        )


def register_commands(cli: click.Group) -> None:
    """Register match commands with main CLI."""
    cli.add_command(match_group, name="match")
