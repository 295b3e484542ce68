"""Report (and optionally repair) drift in the running totals.

Checks:
- ``Order.paid_amount`` and ``Invoice.paid_amount`` against the sum of their
  COMPLETED payments
- ``OrderCollection`` counters against a scan of their member orders

Usage:
  python manage.py reconcile_balances
  python manage.py reconcile_balances --fix
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from finance.reconciler import drifted, repair_paid_amount
from invoices.models import Invoice
from orders.collections import recompute_collection_counters
from orders.models import Order, OrderCollection


class Command(BaseCommand):
    help = 'Compare running paid amounts and collection counters with their source rows.'

    def add_arguments(self, parser):
        parser.add_argument('--fix', action='store_true', help='Write the recomputed values back.')

    def handle(self, *args, **options):
        fix = bool(options.get('fix'))
        problems = 0

        for model in (Order, Invoice):
            for row in drifted(model):
                stored, computed = repair_paid_amount(row, fix=fix)
                if stored == computed:
                    continue
                problems += 1
                number = getattr(row, 'order_number', None) or getattr(row, 'invoice_number', row.pk)
                self.stdout.write(
                    self.style.WARNING(f'{model.__name__} {number}: paid_amount {stored} != payments {computed}')
                )

        for collection_id in OrderCollection.objects.order_by('pk').values_list('pk', flat=True):
            with transaction.atomic():
                stored, scanned = recompute_collection_counters(collection_id, fix=fix)
            if stored != scanned:
                problems += 1
                self.stdout.write(
                    self.style.WARNING(
                        f'Collection {collection_id}: counters {stored[0]}/{stored[1]} != scan {scanned[0]}/{scanned[1]}'
                    )
                )

        if not problems:
            self.stdout.write(self.style.SUCCESS('All balances and counters reconcile.'))
        elif fix:
            self.stdout.write(self.style.SUCCESS(f'Repaired {problems} record(s).'))
        else:
            self.stdout.write(self.style.NOTICE(f'{problems} record(s) drifted. Re-run with --fix to repair.'))
