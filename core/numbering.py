"""Human-readable document numbers: ``<PREFIX>-<YYMM>-<NNNN>``.

Numbers are sequential per tailor and month. Callers create the document in
the same transaction; the per-tailor unique constraint turns a race into an
``IntegrityError`` which the services surface as a retryable conflict.
"""

from django.db.models.functions import Length
from django.utils import timezone

ORDER_PREFIX = 'SC'
INVOICE_PREFIX = 'INV'
PAYMENT_PREFIX = 'PAY'


def period_prefix(prefix: str, now=None) -> str:
    now = timezone.localtime(now or timezone.now())
    return f'{prefix}-{now:%y%m}'


def parse_sequence(number: str):
    """Return the trailing sequence of ``number`` or ``None`` when it does not parse."""
    _, _, tail = (number or '').rpartition('-')
    return int(tail) if tail.isdigit() else None


def next_number(model, field: str, prefix: str, *, tailor, now=None, pad: int = 4) -> str:
    period = period_prefix(prefix, now)
    latest = (
        model.objects.filter(tailor=tailor, **{f'{field}__startswith': f'{period}-'})
        .order_by(Length(field).desc(), f'-{field}')
        .values_list(field, flat=True)
        .first()
    )
    sequence = (parse_sequence(latest) or 0) + 1 if latest else 1
    return f'{period}-{sequence:0{pad}d}'
