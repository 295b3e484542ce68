"""Invoices app tests."""

from datetime import date
from decimal import Decimal

from django.contrib import admin
from django.contrib.auth import get_user_model
from django.test import RequestFactory, SimpleTestCase, TestCase, override_settings
from rest_framework.exceptions import ValidationError
from rest_framework.test import APIClient

from accounts.models import Client
from core.exceptions import Conflict
from finance.reconciler import record_payment
from invoices import lifecycle
from invoices.models import Invoice, InvoiceStatus
from invoices.tax import (
	LineItem,
	calculate_invoice,
	days_until_due,
	is_overdue,
	reverse_tax,
	tax_breakdown_lines,
)
from notifications.models import AuditLog, Notification, NotificationKind
from orders.lifecycle import create_order

SHIRTS = [{'description': 'Shirt', 'quantity': 2, 'unit_price': '50.00'}]


class TaxCalculatorTests(SimpleTestCase):
	def test_shirt_scenario(self):
		calc = calculate_invoice([{'description': 'Shirt', 'quantity': 2, 'unit_price': Decimal('50')}])
		self.assertEqual(calc.subtotal, Decimal('100.00'))
		self.assertEqual(calc.vat_amount, Decimal('15.00'))
		self.assertEqual(calc.nhil_amount, Decimal('2.50'))
		self.assertEqual(calc.getfund_amount, Decimal('2.50'))
		self.assertEqual(calc.total_amount, Decimal('120.00'))

	def test_empty_items_give_zeros(self):
		calc = calculate_invoice([])
		self.assertEqual(calc.subtotal, Decimal('0'))
		self.assertEqual(calc.total_tax, Decimal('0'))
		self.assertEqual(calc.total_amount, Decimal('0'))

	def test_subtotal_is_sum_of_lines_and_total_tracks_flat_rate(self):
		items = [
			LineItem('Kaba', 1, Decimal('123.45')),
			LineItem('Slit', 3, Decimal('19.99')),
			LineItem('Buttons', 7, Decimal('0.35')),
		]
		calc = calculate_invoice(items)
		expected_subtotal = Decimal('123.45') + 3 * Decimal('19.99') + 7 * Decimal('0.35')
		self.assertEqual(calc.subtotal, expected_subtotal)
		self.assertLessEqual(abs(calc.total_amount - calc.subtotal * Decimal('1.20')), Decimal('0.02'))
		self.assertEqual(
			calc.total_amount, calc.subtotal + calc.vat_amount + calc.nhil_amount + calc.getfund_amount,
		)

	def test_stored_total_matches_parts_when_levies_round(self):
		calc = calculate_invoice([LineItem('Thread', 1, Decimal('0.30'))])
		self.assertEqual(calc.vat_amount, Decimal('0.05'))
		self.assertEqual(calc.nhil_amount, Decimal('0.01'))
		self.assertEqual(calc.getfund_amount, Decimal('0.01'))
		self.assertEqual(calc.total_amount, Decimal('0.37'))

	def test_recalculation_is_idempotent(self):
		items = [LineItem('Dress', 3, Decimal('33.33')), {'description': 'Lining', 'quantity': 1, 'unit_price': '12.10'}]
		self.assertEqual(calculate_invoice(items), calculate_invoice(items))

	def test_reverse_tax(self):
		self.assertEqual(reverse_tax('120.00'), Decimal('100.00'))

	def test_breakdown_lines_use_currency_format(self):
		lines = tax_breakdown_lines(calculate_invoice([LineItem('Suit', 1, Decimal('1000'))]))
		self.assertEqual(lines[0], 'Subtotal: GH₵ 1,000.00')
		self.assertEqual(lines[-1], 'Total: GH₵ 1,200.00')

	def test_due_dates(self):
		today = date(2026, 3, 10)
		self.assertEqual(days_until_due(date(2026, 3, 15), today), 5)
		self.assertIsNone(days_until_due(None, today))
		self.assertTrue(is_overdue(date(2026, 3, 9), today))
		self.assertFalse(is_overdue(date(2026, 3, 10), today))
		self.assertFalse(is_overdue(None, today))


class InvoiceTestData:
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.tailor = User.objects.create_user(username='adwoa', email='adwoa@example.com', password='12345678')
		cls.customer = Client.objects.create(
			tailor=cls.tailor, name='Ama Mensah', phone='+233241234567', email='ama@example.com',
		)
		cls.second_customer = Client.objects.create(tailor=cls.tailor, name='Efua Owusu')

	def setUp(self):
		self.api = APIClient()
		self.api.force_authenticate(user=self.tailor)

	def make_invoice(self, items=SHIRTS, **kwargs):
		return lifecycle.create_invoice(tailor=self.tailor, client_id=self.customer.pk, items=items, **kwargs)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class InvoiceApiTests(InvoiceTestData, TestCase):
	def test_create_invoice_computes_totals(self):
		res = self.api.post('/api/invoices/', data={'client': self.customer.pk, 'items': SHIRTS}, format='json')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(res.data['status'], InvoiceStatus.DRAFT)
		self.assertEqual(res.data['subtotal'], '100.00')
		self.assertEqual(res.data['vat_amount'], '15.00')
		self.assertEqual(res.data['nhil_amount'], '2.50')
		self.assertEqual(res.data['getfund_amount'], '2.50')
		self.assertEqual(res.data['total_amount'], '120.00')
		self.assertTrue(res.data['invoice_number'].startswith('INV-'))
		self.assertEqual([item['position'] for item in res.data['items']], [1])
		self.assertEqual(res.data['items'][0]['amount'], '100.00')

	def test_submitted_amounts_are_recomputed(self):
		items = [{'description': 'Shirt', 'quantity': 2, 'unit_price': '50.00', 'amount': '1.00'}]
		res = self.api.post('/api/invoices/', data={'client': self.customer.pk, 'items': items}, format='json')
		self.assertEqual(res.data['items'][0]['amount'], '100.00')

	def test_invoice_needs_items(self):
		res = self.api.post('/api/invoices/', data={'client': self.customer.pk, 'items': []}, format='json')
		self.assertEqual(res.status_code, 400)
		with self.assertRaises(ValidationError):
			lifecycle.create_invoice(tailor=self.tailor, client_id=self.customer.pk, items=[])

	def test_rejects_non_positive_quantity(self):
		items = [{'description': 'Shirt', 'quantity': 0, 'unit_price': '50.00'}]
		res = self.api.post('/api/invoices/', data={'client': self.customer.pk, 'items': items}, format='json')
		self.assertEqual(res.status_code, 400)

	def test_linked_order_must_belong_to_client(self):
		order = create_order(tailor=self.tailor, client_id=self.second_customer.pk, labor_cost=Decimal('10'))
		res = self.api.post(
			'/api/invoices/', data={'client': self.customer.pk, 'order': order.pk, 'items': SHIRTS}, format='json',
		)
		self.assertEqual(res.status_code, 400)
		self.assertIn('order', res.data)

	def test_replacing_items_rewrites_all_totals(self):
		invoice = self.make_invoice()
		items = [
			{'description': 'Suit', 'quantity': 1, 'unit_price': '200.00'},
			{'description': 'Tie', 'quantity': 2, 'unit_price': '25.00'},
		]
		res = self.api.patch(f'/api/invoices/{invoice.pk}/', data={'items': items}, format='json')
		self.assertEqual(res.status_code, 200, res.data)
		self.assertEqual(res.data['subtotal'], '250.00')
		self.assertEqual(res.data['vat_amount'], '37.50')
		self.assertEqual(res.data['total_amount'], '300.00')
		self.assertEqual(len(res.data['items']), 2)
		self.assertEqual(invoice.items.count(), 2)

	def test_tax_breakdown_endpoint(self):
		invoice = self.make_invoice(due_date=None)
		res = self.api.get(f'/api/invoices/{invoice.pk}/tax-breakdown/')
		self.assertEqual(res.status_code, 200)
		self.assertIn('VAT (15%): GH₵ 15.00', res.data['lines'])
		self.assertIsNone(res.data['days_until_due'])

	def test_filter_by_status(self):
		self.make_invoice()
		sent = self.make_invoice()
		lifecycle.update_invoice(sent.pk, tailor=self.tailor, status=InvoiceStatus.SENT)
		res = self.api.get('/api/invoices/', {'status': 'SENT'})
		self.assertEqual(res.status_code, 200)
		self.assertEqual([row['id'] for row in res.data['results']], [sent.pk])


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class InvoiceLifecycleTests(InvoiceTestData, TestCase):
	def test_first_send_stamps_and_notifies_once(self):
		invoice = self.make_invoice()

		with self.captureOnCommitCallbacks(execute=True):
			res = self.api.patch(f'/api/invoices/{invoice.pk}/', data={'status': 'SENT'}, format='json')
		self.assertEqual(res.status_code, 200, res.data)
		invoice.refresh_from_db()
		sent_at = invoice.sent_at
		self.assertIsNotNone(sent_at)
		notification = Notification.objects.get(kind=NotificationKind.INVOICE_SENT)
		self.assertIn('GH₵ 120.00', notification.message)
		self.assertEqual(notification.data['total'], 'GH₵ 120.00')

		with self.captureOnCommitCallbacks(execute=True) as callbacks:
			self.api.patch(f'/api/invoices/{invoice.pk}/', data={'status': 'SENT'}, format='json')
		self.assertEqual(callbacks, [])
		invoice.refresh_from_db()
		self.assertEqual(invoice.sent_at, sent_at)
		self.assertEqual(Notification.objects.filter(kind=NotificationKind.INVOICE_SENT).count(), 1)

	def test_each_timestamp_is_set_once(self):
		invoice = self.make_invoice()
		invoice = lifecycle.update_invoice(invoice.pk, tailor=self.tailor, status=InvoiceStatus.VIEWED)
		viewed_at = invoice.viewed_at
		self.assertIsNotNone(viewed_at)
		self.assertIsNone(invoice.sent_at)

		invoice = lifecycle.update_invoice(invoice.pk, tailor=self.tailor, status=InvoiceStatus.OVERDUE)
		invoice = lifecycle.update_invoice(invoice.pk, tailor=self.tailor, status=InvoiceStatus.VIEWED)
		self.assertEqual(invoice.viewed_at, viewed_at)

		invoice = lifecycle.update_invoice(invoice.pk, tailor=self.tailor, status=InvoiceStatus.PAID)
		self.assertIsNotNone(invoice.paid_at)

	def test_resend_after_first_send_does_not_notify_again(self):
		invoice = self.make_invoice()
		with override_settings(WORKSHOP={'STRICT_TRANSITIONS': False}):
			with self.captureOnCommitCallbacks(execute=True):
				lifecycle.update_invoice(invoice.pk, tailor=self.tailor, status=InvoiceStatus.SENT)
			with self.captureOnCommitCallbacks(execute=True):
				lifecycle.update_invoice(invoice.pk, tailor=self.tailor, status=InvoiceStatus.DRAFT)
			with self.captureOnCommitCallbacks(execute=True):
				lifecycle.update_invoice(invoice.pk, tailor=self.tailor, status=InvoiceStatus.SENT)
		self.assertEqual(Notification.objects.filter(kind=NotificationKind.INVOICE_SENT).count(), 1)

	def test_updates_are_audited(self):
		invoice = self.make_invoice()
		with self.captureOnCommitCallbacks(execute=True):
			lifecycle.update_invoice(invoice.pk, tailor=self.tailor, actor=self.tailor, status=InvoiceStatus.SENT)
		entry = AuditLog.objects.get(action='UPDATE_INVOICE')
		self.assertEqual(entry.details['from'], 'DRAFT')
		self.assertEqual(entry.details['to'], 'SENT')

	def test_terminal_states_reject_backward_moves(self):
		invoice = self.make_invoice()
		lifecycle.update_invoice(invoice.pk, tailor=self.tailor, status=InvoiceStatus.PAID)
		res = self.api.patch(f'/api/invoices/{invoice.pk}/', data={'status': 'DRAFT'}, format='json')
		self.assertEqual(res.status_code, 409)
		self.assertEqual(res.data['code'], 'conflict')

	@override_settings(WORKSHOP={'STRICT_TRANSITIONS': False})
	def test_backward_moves_allowed_when_not_strict(self):
		invoice = self.make_invoice()
		lifecycle.update_invoice(invoice.pk, tailor=self.tailor, status=InvoiceStatus.PAID)
		invoice = lifecycle.update_invoice(invoice.pk, tailor=self.tailor, status=InvoiceStatus.DRAFT)
		self.assertEqual(invoice.status, InvoiceStatus.DRAFT)
		self.assertIsNotNone(invoice.paid_at)

	def test_stale_version_is_rejected(self):
		invoice = self.make_invoice()
		res = self.api.patch(f'/api/invoices/{invoice.pk}/', data={'notes': 'x', 'version': 9}, format='json')
		self.assertEqual(res.status_code, 409)
		self.assertEqual(res.data['code'], 'retry')

	def test_draft_can_be_deleted(self):
		invoice = self.make_invoice()
		res = self.api.delete(f'/api/invoices/{invoice.pk}/')
		self.assertEqual(res.status_code, 204)
		self.assertFalse(Invoice.objects.filter(pk=invoice.pk).exists())

	def test_only_drafts_can_be_deleted(self):
		invoice = self.make_invoice()
		lifecycle.update_invoice(invoice.pk, tailor=self.tailor, status=InvoiceStatus.SENT)
		res = self.api.delete(f'/api/invoices/{invoice.pk}/')
		self.assertEqual(res.status_code, 409)
		self.assertEqual(res.data['error'], 'Only draft invoices can be deleted.')
		self.assertTrue(Invoice.objects.filter(pk=invoice.pk).exists())

	def test_draft_with_payments_cannot_be_deleted(self):
		invoice = self.make_invoice()
		record_payment(tailor=self.tailor, client_id=self.customer.pk, invoice_id=invoice.pk, amount=Decimal('20'))
		with self.assertRaises(Conflict):
			lifecycle.delete_invoice(invoice.pk, tailor=self.tailor)

	def test_unknown_invoice_is_not_found(self):
		res = self.api.patch('/api/invoices/999999/', data={'status': 'SENT'}, format='json')
		self.assertEqual(res.status_code, 404)


class InvoiceAdminTests(InvoiceTestData, TestCase):
	def setUp(self):
		super().setUp()
		self.superuser = get_user_model().objects.create_superuser(
			username='root', email='root@example.com', password='12345678',
		)
		self.request = RequestFactory().post('/admin/')
		self.request.user = self.superuser
		self.invoice_admin = admin.site._registry[Invoice]

	def test_only_drafts_are_deletable(self):
		draft = self.make_invoice()
		self.assertTrue(self.invoice_admin.has_delete_permission(self.request, draft))

		sent = lifecycle.update_invoice(self.make_invoice().pk, tailor=self.tailor, status=InvoiceStatus.SENT)
		self.assertFalse(self.invoice_admin.has_delete_permission(self.request, sent))

	def test_drafts_with_payments_are_not_deletable(self):
		draft = self.make_invoice()
		record_payment(tailor=self.tailor, client_id=self.customer.pk, invoice_id=draft.pk, amount=Decimal('20'))
		self.assertFalse(self.invoice_admin.has_delete_permission(self.request, draft))

	def test_bulk_delete_keeps_sent_invoices(self):
		draft = self.make_invoice()
		sent = lifecycle.update_invoice(self.make_invoice().pk, tailor=self.tailor, status=InvoiceStatus.SENT)

		self.invoice_admin.delete_queryset(self.request, Invoice.objects.filter(pk__in=[draft.pk, sent.pk]))

		self.assertFalse(Invoice.objects.filter(pk=draft.pk).exists())
		self.assertTrue(Invoice.objects.filter(pk=sent.pk).exists())

	def test_invoices_cannot_be_added_from_the_admin(self):
		self.assertFalse(self.invoice_admin.has_add_permission(self.request))
