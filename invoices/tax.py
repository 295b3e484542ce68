"""Invoice totals under the flat-levy consumption tax model.

VAT (15%), NHIL (2.5%) and GETFund (2.5%) are each charged on the subtotal;
none is charged on another levy, so the effective rate is a flat 20%.

Amounts are carried unrounded until the end. Each levy is then rounded once
(half-up, to cents) and ``total_amount`` is the sum of the rounded parts, so
``total == subtotal + vat + nhil + getfund`` holds exactly on what is stored.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from django.utils import timezone

from core.money import format_currency, money, to_decimal

VAT_RATE = Decimal('0.15')
NHIL_RATE = Decimal('0.025')
GETFUND_RATE = Decimal('0.025')
TOTAL_TAX_RATE = VAT_RATE + NHIL_RATE + GETFUND_RATE


@dataclass(frozen=True)
class LineItem:
    description: str
    quantity: int
    unit_price: Decimal

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.unit_price

    def as_dict(self) -> dict:
        return {
            'description': self.description,
            'quantity': self.quantity,
            'unit_price': money(self.unit_price),
            'amount': money(self.amount),
        }


@dataclass(frozen=True)
class InvoiceCalculation:
    items: tuple
    subtotal: Decimal
    vat_amount: Decimal
    nhil_amount: Decimal
    getfund_amount: Decimal

    @property
    def total_tax(self) -> Decimal:
        return self.vat_amount + self.nhil_amount + self.getfund_amount

    @property
    def total_amount(self) -> Decimal:
        return self.subtotal + self.total_tax


def _line(item) -> LineItem:
    if isinstance(item, LineItem):
        return item
    get = item.get if isinstance(item, dict) else (lambda key: getattr(item, key))
    return LineItem(
        description=get('description'),
        quantity=int(get('quantity')),
        unit_price=to_decimal(get('unit_price')),
    )


def calculate_invoice(items) -> InvoiceCalculation:
    """Compute subtotal and levies for ``items``.

    Items are ``LineItem`` instances, mappings or objects with
    ``description``, ``quantity`` and ``unit_price``. Quantities and prices
    are validated by the caller. An empty list gives all zeros.
    """
    lines = tuple(_line(item) for item in items)
    subtotal = sum((line.amount for line in lines), Decimal('0'))
    return InvoiceCalculation(
        items=lines,
        subtotal=money(subtotal),
        vat_amount=money(subtotal * VAT_RATE),
        nhil_amount=money(subtotal * NHIL_RATE),
        getfund_amount=money(subtotal * GETFUND_RATE),
    )


def reverse_tax(gross) -> Decimal:
    """Net amount contained in a tax-inclusive ``gross`` figure."""
    return money(to_decimal(gross) / (1 + TOTAL_TAX_RATE))


def tax_breakdown_lines(calculation: InvoiceCalculation) -> list:
    return [
        f'Subtotal: {format_currency(calculation.subtotal)}',
        f'VAT (15%): {format_currency(calculation.vat_amount)}',
        f'NHIL (2.5%): {format_currency(calculation.nhil_amount)}',
        f'GETFUND (2.5%): {format_currency(calculation.getfund_amount)}',
        f'Total: {format_currency(calculation.total_amount)}',
    ]


def days_until_due(due_date, today=None):
    """Days left before ``due_date`` (negative when overdue), ``None`` without a date."""
    if not due_date:
        return None
    today = today or timezone.localdate()
    if not isinstance(due_date, date):
        raise TypeError('due_date must be a date')
    return (due_date - today).days


def is_overdue(due_date, today=None) -> bool:
    days = days_until_due(due_date, today)
    return days is not None and days < 0
