"""Commands for moving entries between transactions."""

import click
from ledgerlink.cli.error_handling import handle_domain_error
from ledgerlink.domain.errors import DomainError
from ledgerlink.domain.restructure import RestructureService


@click.group()
def restructure_group():
    """Move, split and merge transaction entries."""
    pass


def _status(txn) -> str:
    return "balanced" if txn.is_balanced else "unbalanced"


@restructure_group.command("move-entry")
@click.argument("source_id", type=int)
@click.argument("entry_index", type=int)
@click.argument("destination_id", type=int)
@click.pass_context
def move_entry(ctx, source_id: int, entry_index: int, destination_id: int) -> None:
    """Move entry ENTRY_INDEX of SOURCE_ID into DESTINATION_ID.

    The source transaction is deleted if it has no entries left.
    """
    service = RestructureService(ctx.obj["db"])
    try:
        result = service.move_entry(source_id, entry_index, destination_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Moved entry {entry_index} from transaction {source_id} to {destination_id}")
    if result.source_deleted:
        click.echo(f"Transaction {source_id} had no entries left and was deleted")
    else:
        click.echo(f"Transaction {source_id} is {_status(result.source)}")
    click.echo(f"Transaction {destination_id} is {_status(result.destination)}")


@restructure_group.command("split")
@click.argument("transaction_id", type=int)
@click.argument("entry_indices", type=int, nargs=-1, required=True)
@click.option("--description", help="Description of the new transaction")
@click.pass_context
def split(ctx, transaction_id: int, entry_indices: tuple[int, ...], description: str | None) -> None:
    """Split the entries at ENTRY_INDICES off into a new transaction.

    Examples:
        ledgerlink restructure split 4 2 3 --description "Refund"
    """
    service = RestructureService(ctx.obj["db"])
    try:
        result = service.split_transaction(transaction_id, entry_indices, description)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Created transaction {result.created.id} ({_status(result.created)})")
    click.echo(f"Transaction {transaction_id} is {_status(result.original)}")


@restructure_group.command("merge")
@click.argument("source_id", type=int)
@click.argument("destination_id", type=int)
@click.pass_context
def merge(ctx, source_id: int, destination_id: int) -> None:
    """Merge all entries of SOURCE_ID into DESTINATION_ID and delete SOURCE_ID."""
    service = RestructureService(ctx.obj["db"])
    try:
        merged = service.merge_transactions(source_id, destination_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Merged transaction {source_id} into {destination_id} ({_status(merged)})")


def register_commands(cli: click.Group) -> None:
    """Register restructure commands with main CLI."""
    cli.add_command(restructure_group, name="restructure")
