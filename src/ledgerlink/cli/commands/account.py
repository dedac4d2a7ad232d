"""Account management commands."""

import click
from ledgerlink.cli.account_resolution import resolve_account_or_exit
from ledgerlink.cli.error_handling import handle_domain_error
from ledgerlink.domain.account import AccountService
from ledgerlink.domain.entities import AccountType, DEFAULT_UNIT
from ledgerlink.domain.errors import DomainError


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--type",
    "account_type",
    type=click.Choice([t.value for t in AccountType]),
    default=AccountType.ASSET.value,
    show_default=True,
    help="Account type",
)
@click.option("--unit", default=DEFAULT_UNIT, show_default=True, help="Currency, stock or crypto symbol")
@click.option("--parent", help="Parent account name or ID")
@click.option("--description", help="Account description")
@click.pass_context
def create_account(
    ctx, name: str, account_type: str, unit: str, parent: str | None, description: str | None
):
    """Create a new account.

    Examples:
        ledgerlink account create "Checking"
        ledgerlink account create "Groceries" --type expense
        ledgerlink account create "Bitcoin" --unit BTC --parent "Investments"
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    parent_id = None
    if parent is not None:
        parent_id = resolve_account_or_exit(ctx, service, parent)

    try:
        account_id = service.create_account(
            name=name,
            type=account_type,
            unit=unit,
            parent_id=parent_id,
            description=description,
        )
        click.echo(f"Created account '{name}' (ID: {account_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List all accounts."""
    db = ctx.obj["db"]
    service = AccountService(db)

    accounts = service.list_accounts()
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 60)
    for acc in accounts:
        status = "" if acc.is_active else " (inactive)"
        click.echo(f"ID: {acc.id:3d} | {acc.name:20s} | {acc.type.value:9s} | {acc.unit}{status}")


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_account(ctx, account: str, yes: bool) -> None:
    """Delete an account.

    ACCOUNT can be an account name or ID.

    The account can only be deleted if no entry line or rule references it.

    Examples:
        ledgerlink account delete "Checking"
        ledgerlink account delete 1 --yes
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    account_id = resolve_account_or_exit(ctx, service, account)
    account_obj = service.get_account(account_id)

    if not yes and not click.confirm(
        f"Are you sure you want to delete account '{account_obj.name}' (ID: {account_id})?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_account(account_id)
        click.echo(f"Deleted account '{account_obj.name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
