"""Seed sample data for local development.

Creates one workshop account with:
- Clients (Ghanaian phone numbers, normalised to E.164)
- An order collection and orders moved through the production lifecycle
- Invoices computed from line items, some of them sent
- Cash and mobile-money payments against orders

Everything goes through the lifecycle services, so counters, totals and
running balances are built the same way the API builds them.

Usage:
  python manage.py seed_workshop
  python manage.py seed_workshop --orders 12 --seed 7
"""

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from accounts.models import Client
from accounts.phones import normalize_phone
from finance.models import PaymentMethod
from finance.reconciler import record_payment
from invoices.lifecycle import create_invoice, update_invoice
from invoices.models import InvoiceStatus
from orders.lifecycle import PRODUCTION_SEQUENCE, create_order, update_order
from orders.models import GarmentType, OrderCollection, OrderStatus

CLIENTS = [
    ('Ama Mensah', '024 123 4567', 'ama@example.com'),
    ('Kwame Boateng', '020 555 0101', ''),
    ('Efua Owusu', '+233 27 765 4321', 'efua@example.com'),
    ('Yaw Asante', '0501234567', ''),
]

GARMENTS = [
    (GarmentType.KABA_AND_SLIT, 'Kaba and slit for a wedding'),
    (GarmentType.SMOCK_BATAKARI, 'Northern smock'),
    (GarmentType.SUIT, 'Two-piece suit'),
    (GarmentType.DRESS, 'Ankara dress'),
    (GarmentType.SHIRT, 'Short-sleeve kente shirt'),
]


class Command(BaseCommand):
    help = 'Create a demo workshop with clients, orders, invoices and payments.'

    def add_arguments(self, parser):
        parser.add_argument('--username', default='workshop', help='Workshop login to create or reuse.')
        parser.add_argument('--password', default='Password123!')
        parser.add_argument('--orders', type=int, default=8, help='Number of orders to create.')
        parser.add_argument('--seed', type=int, default=None, help='Random seed for repeatable data.')

    def handle(self, *args, **options):
        if options.get('seed') is not None:
            random.seed(int(options['seed']))
        orders_target = int(options['orders'] or 0)
        if orders_target < 0:
            raise CommandError('--orders must be zero or more.')

        User = get_user_model()
        self.stdout.write(self.style.NOTICE('--- Seeding workshop ---'))

        with transaction.atomic():
            tailor, created = User.objects.get_or_create(
                username=options['username'],
                defaults={'business_name': 'Adwoa Stitches', 'email': 'hello@adwoa.example'},
            )
            if created:
                tailor.set_password(options['password'])
                tailor.save()

            clients = [
                Client.objects.get_or_create(
                    tailor=tailor, name=name, defaults={'phone': normalize_phone(phone), 'email': email},
                )[0]
                for name, phone, email in CLIENTS
            ]
            collection = OrderCollection.objects.create(tailor=tailor, name='Christmas run', description='Seasonal batch')

            for index in range(orders_target):
                self._seed_order(tailor, random.choice(clients), collection if index % 2 == 0 else None)

        self.stdout.write(self.style.NOTICE(f"Login: {options['username']} | password={options['password']}"))
        self.stdout.write(self.style.SUCCESS('Seeding completed successfully.'))

    def _seed_order(self, tailor, client, collection):
        garment_type, description = random.choice(GARMENTS)
        labor = Decimal(random.randrange(80, 400, 10))
        material = Decimal(random.randrange(20, 200, 5)) if random.random() < 0.8 else None

        order = create_order(
            tailor=tailor,
            client_id=client.pk,
            collection_id=collection.pk if collection else None,
            labor_cost=labor,
            material_cost=material,
            garment_type=garment_type,
            garment_description=description,
            quantity=random.randint(1, 3),
        )

        target = random.choice(PRODUCTION_SEQUENCE + [OrderStatus.CANCELLED])
        if target != OrderStatus.PENDING:
            order = update_order(order.pk, tailor=tailor, status=target)

        invoice = create_invoice(
            tailor=tailor,
            client_id=client.pk,
            order_id=order.pk,
            items=[{'description': description, 'quantity': 1, 'unit_price': order.total_amount}],
        )
        if random.random() < 0.6:
            update_invoice(invoice.pk, tailor=tailor, status=InvoiceStatus.SENT)

        if target != OrderStatus.CANCELLED and random.random() < 0.7:
            method = random.choice([PaymentMethod.CASH, PaymentMethod.MOBILE_MONEY_MTN])
            record_payment(
                tailor=tailor,
                client_id=client.pk,
                order_id=order.pk,
                invoice_id=invoice.pk,
                amount=(order.total_amount / 2).quantize(Decimal('0.01')),
                method=method,
                transaction_id=f'SEED-{order.order_number}' if method != PaymentMethod.CASH else None,
            )
        self.stdout.write(f'Order {order.order_number}: {order.status}, total {order.total_amount}')
