"""Currency display helpers."""

from decimal import Decimal

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CNY": "¥",
    "PHP": "₱",
    "INR": "₹",
    "RUB": "₽",
    "THB": "฿",
    "KRW": "₩",
    "AUD": "A$",
    "CAD": "C$",
}


def currency_symbol(currency_code: str) -> str:
    """Return the symbol for an ISO 4217 code, or the code itself if unknown."""
    return CURRENCY_SYMBOLS.get(currency_code, currency_code)


def format_currency(amount: Decimal, currency_code: str) -> str:
    """Format an amount with its currency symbol, e.g. ``₱ 1,234.50``."""
    return f"{currency_symbol(currency_code)} {amount:,.2f}"
