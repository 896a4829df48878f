"""Amount parsing utilities."""

import re
from decimal import Decimal, InvalidOperation

from finledger.domain.currency import DEFAULT_CURRENCY, Currency

CURRENCY_SYMBOLS = {"€": "EUR", "$": "USD", "£": "GBP", "¥": "JPY"}

_ISO_CODE = re.compile(r"^([A-Za-z]{3})\s*|\s*([A-Za-z]{3})$")


def parse_amount(amount_str: str, default_currency: str = DEFAULT_CURRENCY) -> Currency:
    """Parse an amount string into a Currency.

    Handles various formats:
    - "123.45" (default currency)
    - "€123.45", "$-5", "12.50£"
    - "123.45 EUR", "usd 10"
    - "-123.45", "1,234.56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string
        default_currency: Currency code used when the string names none

    Returns:
        Currency value

    Raises:
        ValueError: If amount string cannot be parsed or names two currencies
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    text = amount_str.strip()
    codes = set()

    match = _ISO_CODE.search(text)
    if match:
        codes.add((match.group(1) or match.group(2)).upper())
        text = _ISO_CODE.sub("", text, count=1).strip()

    for symbol, code in CURRENCY_SYMBOLS.items():
        if symbol in text:
            codes.add(code)
            text = text.replace(symbol, "")

    if len(codes) > 1:
        raise ValueError(f"Amount '{amount_str}' names more than one currency")

    text = text.strip()
    is_negative = False
    if text.startswith("(") and text.endswith(")"):
        is_negative = True
        text = text[1:-1]

    text = text.replace(",", "").replace(" ", "")

    try:
        amount = Decimal(text)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}'") from e
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")

    if is_negative:
        amount = -amount
    return Currency(amount, codes.pop() if codes else default_currency)
