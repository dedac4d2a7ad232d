"""CLI helpers for account resolution."""

from __future__ import annotations

import click
from ledgerlink.domain.account import AccountService
from ledgerlink.domain.errors import DomainError
from ledgerlink.utils.account_resolver import resolve_account
from ledgerlink.cli.error_handling import handle_domain_error


def resolve_account_or_exit(
    ctx: click.Context, account_service: AccountService, account: str | int
) -> int:
    """Resolve account name or ID, or exit with a CLI error."""
    try:
        return resolve_account(account_service, account)
    except DomainError as exc:
        handle_domain_error(ctx, exc)


def resolve_accounts_or_exit(
    ctx: click.Context, account_service: AccountService, accounts: tuple[str, ...]
) -> list[int]:
    """Resolve several account names or IDs, preserving order."""
    return [resolve_account_or_exit(ctx, account_service, account) for account in accounts]
