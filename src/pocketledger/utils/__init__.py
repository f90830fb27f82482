"""Utility functions for pocketledger."""

from pocketledger.utils.date_parser import parse_datetime
from pocketledger.utils.amount_parser import parse_amount, parse_positive_amount
from pocketledger.utils.currency import format_currency

__all__ = ["parse_datetime", "parse_amount", "parse_positive_amount", "format_currency"]
