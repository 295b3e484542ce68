"""Fire domain signals after the surrounding transaction commits.

Receivers are notification and audit side effects. They run after commit and
through ``send_robust`` so a failing receiver is logged and never undoes or
fails the state change that triggered it.
"""

import logging

from django.db import transaction

logger = logging.getLogger(__name__)


def send_on_commit(signal, sender, **kwargs):
    """Schedule ``signal.send_robust(sender, **kwargs)`` for after commit."""

    def _send():
        for receiver, response in signal.send_robust(sender=sender, **kwargs):
            if isinstance(response, Exception):
                logger.error(
                    'Side effect %s failed for %s: %s',
                    getattr(receiver, '__qualname__', receiver),
                    sender.__name__,
                    response,
                    exc_info=(type(response), response, response.__traceback__),
                )

    transaction.on_commit(_send)
