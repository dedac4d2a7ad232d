"""Rule matching predicates.

Rule patterns are user-authored regular expressions. They are only ever
evaluated through ``PatternMatcher`` so that pattern handling stays separate
from the rule-kind logic in ``rule_application``.
"""

import re
from functools import lru_cache
from typing import Iterable, Optional

from ledgerlink.domain.entities import (
    EntryLine,
    Rule,
    RuleEntryType,
    RuleType,
    Transaction,
)
from ledgerlink.domain.errors import RuleConfigurationError, invalid_pattern


class PatternMatcher:
    """Case-insensitive regular expression test against free text."""

    def __init__(self, pattern: str):
        self.pattern = pattern
        try:
            self._regex = re.compile(pattern, re.IGNORECASE)
        except re.error as e:
            raise RuleConfigurationError(invalid_pattern(pattern, str(e))) from e

    def matches(self, text: Optional[str]) -> bool:
        if not text:
            return False
        return self._regex.search(text) is not None


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> PatternMatcher:
    """Return a (cached) matcher for a pattern.

    Raises:
        RuleConfigurationError: If the pattern is not a valid regular expression
    """
    return PatternMatcher(pattern)


def _is_source_entry(rule: Rule, entry: EntryLine) -> bool:
    if rule.source_accounts and entry.account_id not in rule.source_accounts:
        return False
    if rule.entry_type != RuleEntryType.BOTH and entry.type.value != rule.entry_type.value:
        return False
    return True


def source_entries(rule: Rule, entries: Iterable[EntryLine]) -> list[EntryLine]:
    """Return the entries that satisfy the rule's account and entry-type filters."""
    return [entry for entry in entries if _is_source_entry(rule, entry)]


def find_source_entry(rule: Rule, transaction: Transaction) -> Optional[EntryLine]:
    """Return the first positive-amount entry a complementary rule would allocate."""
    for entry in transaction.entries:
        if _is_source_entry(rule, entry) and entry.amount > 0:
            return entry
    return None


def matches_accounts(rule: Rule, transaction: Transaction) -> bool:
    """Check the source-account and entry-type filters.

    An empty source account set with entry type ``both`` matches every
    transaction, including one without entries.
    """
    if not rule.source_accounts and rule.entry_type == RuleEntryType.BOTH:
        return True
    return bool(source_entries(rule, transaction.entries))


def matches(rule: Rule, transaction: Transaction) -> bool:
    """Return True if the rule applies to the transaction.

    Raises:
        RuleConfigurationError: If the rule's pattern is malformed
    """
    if not compile_pattern(rule.pattern).matches(transaction.description):
        return False
    if not matches_accounts(rule, transaction):
        return False
    if rule.type == RuleType.COMPLEMENTARY:
        return find_source_entry(rule, transaction) is not None
    return True
