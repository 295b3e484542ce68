"""Currency helpers.

Amounts are kept as :class:`~decimal.Decimal` end to end. Rounding to cents
(half-up) happens only when a value is persisted or shown.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from .conf import workshop_setting

CENT = Decimal('0.01')
ZERO = Decimal('0.00')


def to_decimal(value) -> Decimal:
    """Coerce ints, floats, strings and ``None`` into a Decimal without rounding."""
    if value is None:
        return Decimal('0')
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f'Not a monetary value: {value!r}') from exc


def money(value) -> Decimal:
    """Round to 2 decimal places using round-half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(value) -> str:
    """Render an amount for notification templates, e.g. ``GH₵ 1,234.50``."""
    return f"{workshop_setting('CURRENCY_SYMBOL')} {money(value):,.2f}"
