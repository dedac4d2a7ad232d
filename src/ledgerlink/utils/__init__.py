"""Utility functions for ledgerlink."""

from ledgerlink.utils.date_parser import parse_date
from ledgerlink.utils.amount_parser import parse_amount
from ledgerlink.utils.account_resolver import resolve_account

__all__ = ["parse_date", "parse_amount", "resolve_account"]
