"""CLI helpers for date range resolution."""

from datetime import date

import click

from ledgerlink.utils.date_parser import PERIODS, get_date_range, parse_date

period_option = click.option(
    "--period",
    type=click.Choice(PERIODS, case_sensitive=False),
    help="Named date range; cannot be combined with --start-date/--end-date",
)


def parse_date_or_exit(ctx: click.Context, value: str | None, label: str) -> date | None:
    """Parse an optional date option, exiting with a CLI error when invalid."""
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def resolve_cli_date_range(
    ctx: click.Context,
    *,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
) -> tuple[date | None, date | None]:
    """Resolve a CLI date range from --period or explicit --start-date/--end-date."""
    if period and (start_date or end_date):
        click.echo("Error: --period cannot be combined with --start-date or --end-date.", err=True)
        ctx.exit(1)
    if period:
        return get_date_range(period)
    return (
        parse_date_or_exit(ctx, start_date, "start date"),
        parse_date_or_exit(ctx, end_date, "end date"),
    )
