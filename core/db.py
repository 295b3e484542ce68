"""Transaction helpers shared by the lifecycle services."""

import logging
from contextlib import contextmanager

from django.db import OperationalError, transaction

from .exceptions import ConcurrencyConflict

logger = logging.getLogger(__name__)


@contextmanager
def locked_transaction():
    """``transaction.atomic()`` that turns lock/serialization failures into a retryable error.

    Rows touched inside are expected to be loaded with ``select_for_update()``.
    """
    try:
        with transaction.atomic():
            yield
    except OperationalError as exc:
        logger.warning('Aborted write after database lock failure: %s', exc)
        raise ConcurrencyConflict() from exc


def check_version(instance, expected) -> None:
    """Optimistic check against the row's ``version`` column.

    ``expected`` is whatever the caller last read; ``None`` skips the check.
    """
    if expected is None:
        return
    if int(expected) != instance.version:
        raise ConcurrencyConflict(
            f'{instance._meta.verbose_name.capitalize()} was modified by another request '
            f'(expected version {expected}, found {instance.version}). Please retry.'
        )
