"""Rule management commands."""

import click
from ledgerlink.cli.account_resolution import resolve_account_or_exit, resolve_accounts_or_exit
from ledgerlink.cli.error_handling import handle_domain_error
from ledgerlink.cli.formatting import echo_transaction_row
from ledgerlink.domain.account import AccountService
from ledgerlink.domain.entities import DestinationAccount, RuleEntryType, RuleType
from ledgerlink.domain.errors import DomainError
from ledgerlink.domain.rule import RuleService
from ledgerlink.domain.rule_application import RuleApplicationService
from ledgerlink.utils.amount_parser import parse_amount, parse_ratio


@click.group()
def rule_group():
    """Manage and apply transaction rules."""
    pass


def parse_destinations_or_exit(
    ctx: click.Context, account_service: AccountService, specs: tuple[str, ...]
) -> list[DestinationAccount]:
    """Parse ``ACCOUNT:RATIO`` options into destination accounts."""
    destinations = []
    for spec in specs:
        account, sep, ratio = spec.rpartition(":")
        if not sep or not account:
            click.echo(f"Error: Destination '{spec}' must look like ACCOUNT:RATIO", err=True)
            ctx.exit(1)
        try:
            value = parse_ratio(ratio)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        account_id = resolve_account_or_exit(ctx, account_service, account)
        destinations.append(DestinationAccount(account_id=account_id, ratio=value))
    return destinations


@rule_group.command("create")
@click.argument("name")
@click.option(
    "--type",
    "rule_type",
    type=click.Choice([t.value for t in RuleType]),
    required=True,
    help="Rule type",
)
@click.option("--pattern", required=True, help="Regular expression matched against descriptions")
@click.option("--source", "sources", multiple=True, help="Source account name or ID (repeatable)")
@click.option("--priority", type=int, default=0, show_default=True, help="Higher priority runs later and wins")
@click.option("--auto-apply/--manual", default=True, show_default=True, help="Run automatically on writes")
@click.option(
    "--entry-type",
    type=click.Choice([t.value for t in RuleEntryType]),
    default=RuleEntryType.BOTH.value,
    show_default=True,
    help="Which source entries qualify",
)
@click.option("--description", help="Rule description")
@click.option("--new-description", help="Replacement description (edit rules)")
@click.option("--max-date-difference", type=int, help="Merge window in days (merge rules)")
@click.option(
    "--destination",
    "destinations",
    multiple=True,
    metavar="ACCOUNT:RATIO",
    help="Allocation target (complementary rules, repeatable)",
)
@click.pass_context
def create_rule(
    ctx,
    name: str,
    rule_type: str,
    pattern: str,
    sources: tuple[str, ...],
    priority: int,
    auto_apply: bool,
    entry_type: str,
    description: str | None,
    new_description: str | None,
    max_date_difference: int | None,
    destinations: tuple[str, ...],
) -> None:
    """Create a rule.

    Examples:
        ledgerlink rule create "Coffee" --type edit --pattern "^SQ \\*BLUE" \\
            --new-description "Blue Bottle Coffee"
        ledgerlink rule create "Card payment" --type merge --pattern "PAYMENT" \\
            --source Checking --max-date-difference 3
        ledgerlink rule create "Rent split" --type complementary --pattern "RENT" \\
            --source Checking --destination Rent:0.6 --destination Utilities:0.4
    """
    db = ctx.obj["db"]
    service = RuleService(db)
    account_service = AccountService(db)

    source_ids = resolve_accounts_or_exit(ctx, account_service, sources)
    destination_accounts = parse_destinations_or_exit(ctx, account_service, destinations)

    try:
        rule_id = service.create_rule(
            name=name,
            type=rule_type,
            pattern=pattern,
            source_accounts=source_ids,
            priority=priority,
            auto_apply=auto_apply,
            entry_type=entry_type,
            description=description,
            new_description=new_description,
            max_date_difference=max_date_difference,
            destination_accounts=destination_accounts,
        )
        click.echo(f"Created {rule_type} rule '{name}' (ID: {rule_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@rule_group.command("list")
@click.pass_context
def list_rules(ctx) -> None:
    """List rules, highest priority first."""
    db = ctx.obj["db"]
    service = RuleService(db)

    rules = service.list_rules()
    if not rules:
        click.echo("No rules found.")
        return

    click.echo("\nRules:")
    click.echo("-" * 80)
    for rule in rules:
        mode = "auto" if rule.auto_apply else "manual"
        click.echo(
            f"ID: {rule.id:3d} | {rule.name:20s} | {rule.type.value:13s} | "
            f"priority {rule.priority:3d} | {mode:6s} | /{rule.pattern}/"
        )


@rule_group.command("delete")
@click.argument("rule_id", type=int)
@click.pass_context
def delete_rule(ctx, rule_id: int) -> None:
    """Delete a rule."""
    db = ctx.obj["db"]
    service = RuleService(db)

    try:
        service.delete_rule(rule_id)
        click.echo(f"Deleted rule {rule_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@rule_group.command("apply")
@click.argument("rule_id", type=int)
@click.argument("transaction_id", type=int)
@click.pass_context
def apply_rule(ctx, rule_id: int, transaction_id: int) -> None:
    """Apply one rule to one transaction, even if the rule is manual."""
    db = ctx.obj["db"]
    service = RuleApplicationService(db)

    try:
        outcome = service.apply_rule(rule_id, transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not outcome.applied:
        click.echo(f"Rule {rule_id} was not applied to transaction {transaction_id}")
    elif outcome.consumed:
        click.echo(f"Transaction {transaction_id} was merged into {outcome.transaction.id}")
    else:
        click.echo(f"Applied rule {rule_id} to transaction {transaction_id}")


@rule_group.command("apply-all")
@click.pass_context
def apply_all(ctx) -> None:
    """Run the auto-apply rules over every unbalanced transaction."""
    db = ctx.obj["db"]
    service = RuleApplicationService(db)

    result = service.apply_rules_to_unbalanced()
    click.echo(
        f"Processed {result.total} unbalanced transaction(s): "
        f"{result.successful} succeeded, {result.failed} failed"
    )
    for detail in result.details:
        if detail["status"] == "error":
            click.echo(f"  Transaction {detail['transaction_id']}: {detail['message']}", err=True)


@rule_group.command("preview")
@click.argument("pattern")
@click.option("--source", "sources", multiple=True, help="Source account name or ID (repeatable)")
@click.option(
    "--entry-type",
    type=click.Choice([t.value for t in RuleEntryType]),
    default=RuleEntryType.BOTH.value,
    show_default=True,
)
@click.pass_context
def preview_rule(ctx, pattern: str, sources: tuple[str, ...], entry_type: str) -> None:
    """Show transactions a rule with PATTERN would match, without changing them."""
    db = ctx.obj["db"]
    service = RuleApplicationService(db)
    account_service = AccountService(db)

    source_ids = resolve_accounts_or_exit(ctx, account_service, sources)
    try:
        preview = service.preview_rule(
            pattern, source_accounts=source_ids, entry_type=RuleEntryType(entry_type)
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(
        f"{preview.total_matching} matching transaction(s) "
        f"({preview.total_unbalanced} unbalanced in total)"
    )
    for txn in preview.matching:
        echo_transaction_row(txn)


@rule_group.command("test")
@click.argument("rule_id", type=int)
@click.argument("description")
@click.argument("amount")
@click.pass_context
def test_rule(ctx, rule_id: int, description: str, amount: str) -> None:
    """Test whether DESCRIPTION matches a rule and what it would allocate from AMOUNT."""
    db = ctx.obj["db"]
    service = RuleService(db)

    try:
        value = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    try:
        result = service.test_rule(rule_id, description, value)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not result.is_match:
        click.echo("No match")
        return
    click.echo("Match")
    for dest, dest_amount in result.destination_amounts:
        click.echo(f"  account {dest.account_id}: {dest_amount:,.2f}")


def register_commands(cli: click.Group) -> None:
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
