"""Shared output helpers for CLI commands."""

import click

from ledgerlink.domain.balance import compute_balance
from ledgerlink.domain.entities import Transaction


def account_names(db) -> dict[int, str]:
    """Return a mapping of account ID to name for display."""
    return {acc.id: acc.name for acc in db.list_accounts()}


def echo_transaction_row(txn: Transaction) -> None:
    """Print one line summarizing a transaction."""
    balance = compute_balance(txn)
    status = "balanced" if balance.is_balanced else f"off by {balance.imbalance:+,.2f}"
    description = txn.description[:40]
    click.echo(
        f"{txn.id:<6} {str(txn.date):<12} {description:<40} "
        f"{len(txn.entries):>3} entries  {status}"
    )


def echo_transaction(txn: Transaction, accounts: dict[int, str]) -> None:
    """Print a transaction with its entry lines and balance."""
    balance = compute_balance(txn)

    click.echo(f"\nTransaction ID: {txn.id}")
    click.echo(f"  Date: {txn.date}")
    click.echo(f"  Description: {txn.description}")
    if txn.reference:
        click.echo(f"  Reference: {txn.reference}")
    if txn.notes:
        click.echo(f"  Notes: {txn.notes}")
    if txn.applied_rules:
        rule_ids = ", ".join(str(applied.rule_id) for applied in txn.applied_rules)
        click.echo(f"  Applied rules: {rule_ids}")

    click.echo("  Entries:")
    for index, entry in enumerate(txn.entries):
        account_name = accounts.get(entry.account_id, "Unknown")
        line = f"    [{index}] {entry.type.value:<6} {entry.amount:>12,.2f} {entry.unit:<5} {account_name}"
        if entry.description:
            line += f"  ({entry.description})"
        click.echo(line)

    if balance.is_balanced:
        click.echo("  Balanced")
    else:
        fix = balance.suggested_fix
        click.echo(
            f"  Unbalanced: debits {balance.total_debit:,.2f}, credits {balance.total_credit:,.2f}"
        )
        click.echo(f"  Suggested fix: {fix.type.value} {fix.amount:,.2f} {fix.unit}")
