"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the domain entities stay stable
when the table layout changes.
"""

from decimal import Decimal

from ledgerlink.domain import entities as domain
from ledgerlink.database.models import (
    Account as ORMAccount,
    AppliedRule as ORMAppliedRule,
    EntryLine as ORMEntryLine,
    Rule as ORMRule,
    Transaction as ORMTransaction,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        type=domain.AccountType(orm_account.type),
        unit=orm_account.unit,
        parent_id=orm_account.parent_id,
        created_at=orm_account.created_at,
        description=orm_account.description,
        is_active=orm_account.is_active,
    )


def entry_line_to_domain(orm_entry: ORMEntryLine) -> domain.EntryLine:
    """Convert SQLAlchemy EntryLine model to domain EntryLine entity."""
    return domain.EntryLine(
        id=orm_entry.id,
        account_id=orm_entry.account_id,
        amount=Decimal(orm_entry.amount),
        type=domain.EntryType(orm_entry.type),
        unit=orm_entry.unit,
        description=orm_entry.description,
        quantity=orm_entry.quantity,
    )


def applied_rule_to_domain(orm_applied: ORMAppliedRule) -> domain.AppliedRule:
    """Convert SQLAlchemy AppliedRule row to domain AppliedRule entity."""
    return domain.AppliedRule(rule_id=orm_applied.rule_id, applied_at=orm_applied.applied_at)


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model (with children) to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        date=orm_transaction.date,
        description=orm_transaction.description,
        entries=tuple(entry_line_to_domain(e) for e in orm_transaction.entries),
        reference=orm_transaction.reference,
        notes=orm_transaction.notes,
        applied_rules=tuple(applied_rule_to_domain(a) for a in orm_transaction.applied_rules),
        is_balanced=orm_transaction.is_balanced,
        version=orm_transaction.version,
        created_at=orm_transaction.created_at,
    )


def rule_to_domain(orm_rule: ORMRule) -> domain.Rule:
    """Convert SQLAlchemy Rule model to domain Rule entity."""
    return domain.Rule(
        id=orm_rule.id,
        name=orm_rule.name,
        type=domain.RuleType(orm_rule.type),
        pattern=orm_rule.pattern,
        source_accounts=tuple(s.account_id for s in orm_rule.source_accounts),
        priority=orm_rule.priority,
        auto_apply=orm_rule.auto_apply,
        entry_type=domain.RuleEntryType(orm_rule.entry_type),
        description=orm_rule.description,
        new_description=orm_rule.new_description,
        max_date_difference=orm_rule.max_date_difference,
        destination_accounts=tuple(
            domain.DestinationAccount(account_id=d.account_id, ratio=Decimal(d.ratio))
            for d in orm_rule.destination_accounts
        ),
        created_at=orm_rule.created_at,
    )
