"""Collection progress counters.

Every accepted order transition that can move an order into or out of a
collection's counts goes through :func:`adjust_collection_counters` exactly
once, keyed by ``(collection_id, from_status, to_status)``. Creation is the
transition from ``None`` and deletion the transition to ``None``.
"""

import logging

from django.db.models import Count, Q

from .models import OrderCollection, OrderStatus

logger = logging.getLogger(__name__)


def _membership(status):
    """``(counts towards total, counts towards completed)`` for a status."""
    if status is None or status == OrderStatus.CANCELLED:
        return 0, 0
    return 1, 1 if status == OrderStatus.COMPLETED else 0


def counter_delta(from_status, to_status):
    """Change in ``(total_orders, completed_orders)`` for one transition."""
    before = _membership(from_status)
    after = _membership(to_status)
    return after[0] - before[0], after[1] - before[1]


def adjust_collection_counters(collection_id, from_status, to_status):
    """Apply the counter delta of one transition to its collection.

    Must run inside the caller's transaction; the collection row is locked.
    Returns the updated collection, or ``None`` when nothing changed.
    """
    if not collection_id:
        return None

    total_delta, completed_delta = counter_delta(from_status, to_status)
    if not total_delta and not completed_delta:
        return None

    collection = OrderCollection.objects.select_for_update().filter(pk=collection_id).first()
    if collection is None:
        logger.warning('Order references missing collection %s; counters not adjusted', collection_id)
        return None

    total = collection.total_orders + total_delta
    completed = collection.completed_orders + completed_delta
    if total < 0 or completed < 0 or completed > total:
        logger.warning(
            'Collection %s counters out of range after %s -> %s (total=%s, completed=%s); clamping. '
            'Run reconcile_balances --fix to rebuild them.',
            collection_id, from_status, to_status, total, completed,
        )
        total = max(total, 0)
        completed = min(max(completed, 0), total)

    collection.total_orders = total
    collection.completed_orders = completed
    collection.save(update_fields=['total_orders', 'completed_orders'])
    logger.info(
        'Collection %s counters %+d total, %+d completed (%s -> %s)',
        collection_id, total_delta, completed_delta, from_status, to_status,
    )
    return collection


def scan_collection_counters(collection_id):
    """Count members from scratch: ``(total_orders, completed_orders)``."""
    counts = OrderCollection.objects.filter(pk=collection_id).aggregate(
        total=Count('orders', filter=~Q(orders__status=OrderStatus.CANCELLED)),
        completed=Count('orders', filter=Q(orders__status=OrderStatus.COMPLETED)),
    )
    return counts['total'] or 0, counts['completed'] or 0


def recompute_collection_counters(collection_id, fix=False):
    """Repair path: compare stored counters with a scan, optionally writing the scan.

    Returns ``(stored, scanned)`` pairs of ``(total, completed)``.
    """
    collection = OrderCollection.objects.select_for_update().get(pk=collection_id) if fix else OrderCollection.objects.get(pk=collection_id)
    stored = (collection.total_orders, collection.completed_orders)
    scanned = scan_collection_counters(collection_id)
    if stored != scanned:
        logger.warning('Collection %s counters drifted: stored=%s scanned=%s', collection_id, stored, scanned)
        if fix:
            collection.total_orders, collection.completed_orders = scanned
            collection.save(update_fields=['total_orders', 'completed_orders'])
    return stored, scanned
