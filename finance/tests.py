"""Finance app tests."""

from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase, override_settings
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.test import APIClient

from accounts.models import Client
from core.exceptions import Conflict
from finance import reconciler
from finance.models import Payment, PaymentMethod, PaymentStatus
from invoices.lifecycle import create_invoice, update_invoice
from invoices.models import Invoice, InvoiceStatus
from notifications.models import AuditLog, Notification, NotificationKind
from orders.lifecycle import create_order
from orders.models import Order, OrderStatus


class PaymentTestData:
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.tailor = User.objects.create_user(username='adwoa', email='adwoa@example.com', password='12345678')
		cls.staff = User.objects.create_user(username='ops', password='12345678', is_staff=True)
		cls.customer = Client.objects.create(
			tailor=cls.tailor, name='Ama Mensah', phone='+233241234567', email='ama@example.com',
		)
		cls.second_customer = Client.objects.create(tailor=cls.tailor, name='Efua Owusu')

	def setUp(self):
		self.api = APIClient()
		self.api.force_authenticate(user=self.tailor)
		self.order = create_order(
			tailor=self.tailor,
			client_id=self.customer.pk,
			labor_cost=Decimal('80.00'),
			material_cost=Decimal('20.00'),
		)

	def pay(self, amount='100.00', **kwargs):
		kwargs.setdefault('client_id', self.customer.pk)
		return reconciler.record_payment(tailor=self.tailor, amount=Decimal(amount), **kwargs)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class RecordPaymentTests(PaymentTestData, TestCase):
	def test_full_payment_settles_balance_without_changing_statuses(self):
		invoice = create_invoice(
			tailor=self.tailor,
			client_id=self.customer.pk,
			order_id=self.order.pk,
			items=[{'description': 'Shirt', 'quantity': 1, 'unit_price': '100.00'}],
		)
		update_invoice(invoice.pk, tailor=self.tailor, status=InvoiceStatus.SENT)

		res = self.api.post(
			'/api/payments/',
			data={
				'client': self.customer.pk,
				'order': self.order.pk,
				'invoice': invoice.pk,
				'amount': '100.00',
				'method': 'CASH',
			},
			format='json',
		)
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(res.data['status'], PaymentStatus.COMPLETED)
		self.assertTrue(res.data['payment_number'].startswith('PAY-'))

		self.order.refresh_from_db()
		self.assertEqual(self.order.total_amount, Decimal('100.00'))
		self.assertEqual(self.order.paid_amount, Decimal('100.00'))
		self.assertEqual(self.order.balance, Decimal('0.00'))
		self.assertEqual(self.order.status, OrderStatus.PENDING)

		invoice.refresh_from_db()
		self.assertEqual(invoice.paid_amount, Decimal('100.00'))
		self.assertEqual(invoice.status, InvoiceStatus.SENT)
		self.assertIsNone(invoice.paid_at)

	def test_payments_accumulate(self):
		self.pay('30.00', order_id=self.order.pk)
		self.pay('45.50', order_id=self.order.pk)
		self.order.refresh_from_db()
		self.assertEqual(self.order.paid_amount, Decimal('75.50'))
		self.assertEqual(self.order.balance, Decimal('24.50'))

	def test_mobile_money_requires_transaction_id(self):
		res = self.api.post(
			'/api/payments/',
			data={'client': self.customer.pk, 'order': self.order.pk, 'amount': '50.00', 'method': 'MOBILE_MONEY_MTN'},
			format='json',
		)
		self.assertEqual(res.status_code, 400)
		self.assertIn('transaction_id', res.data)
		self.assertFalse(Payment.objects.exists())
		self.order.refresh_from_db()
		self.assertEqual(self.order.paid_amount, Decimal('0.00'))

	def test_mobile_money_with_reference_is_accepted(self):
		payment = self.pay('50.00', order_id=self.order.pk, method=PaymentMethod.MOBILE_MONEY_MTN, transaction_id='MTN-778')
		self.assertEqual(payment.transaction_id, 'MTN-778')

	def test_amount_must_be_positive(self):
		res = self.api.post('/api/payments/', data={'client': self.customer.pk, 'amount': '0.00'}, format='json')
		self.assertEqual(res.status_code, 400)
		with self.assertRaises(ValidationError):
			self.pay('-5.00')
		with self.assertRaises(ValidationError):
			self.pay('0')

	def test_unknown_client_or_order_is_not_found(self):
		with self.assertRaises(NotFound):
			self.pay(client_id=999999)
		with self.assertRaises(NotFound):
			self.pay(order_id=999999)

	def test_order_must_belong_to_the_client(self):
		res = self.api.post(
			'/api/payments/',
			data={'client': self.second_customer.pk, 'order': self.order.pk, 'amount': '10.00'},
			format='json',
		)
		self.assertEqual(res.status_code, 400)
		self.assertIn('order', res.data)

	def test_duplicate_reference_is_a_conflict(self):
		self.pay('10.00', order_id=self.order.pk, method=PaymentMethod.PAYSTACK, transaction_id='ps_ref_1')
		with self.assertRaises(Conflict):
			self.pay('10.00', order_id=self.order.pk, method=PaymentMethod.PAYSTACK, transaction_id='ps_ref_1')
		self.order.refresh_from_db()
		self.assertEqual(self.order.paid_amount, Decimal('10.00'))

	def test_payment_notifies_and_is_audited(self):
		with self.captureOnCommitCallbacks(execute=True):
			payment = reconciler.record_payment(
				tailor=self.tailor, client_id=self.customer.pk, order_id=self.order.pk,
				amount=Decimal('25.00'), actor=self.tailor,
			)
		notification = Notification.objects.get(kind=NotificationKind.PAYMENT_RECEIVED)
		self.assertIn('GH₵ 25.00', notification.message)
		entry = AuditLog.objects.get(action='CREATE_PAYMENT')
		self.assertEqual(entry.resource_id, str(payment.pk))
		self.assertEqual(entry.details['amount'], '25.00')

	def test_overpayment_is_logged_not_rejected(self):
		with self.assertLogs('finance.reconciler', level='WARNING') as logs:
			self.pay('150.00', order_id=self.order.pk)
		self.assertTrue(any('Overpayment' in line for line in logs.output))
		self.order.refresh_from_db()
		self.assertEqual(self.order.paid_amount, Decimal('150.00'))

	def test_payments_are_not_editable_or_deletable(self):
		payment = self.pay('10.00', order_id=self.order.pk)
		res = self.api.delete(f'/api/payments/{payment.pk}/')
		self.assertEqual(res.status_code, 405)
		res = self.api.patch(f'/api/payments/{payment.pk}/', data={'amount': '1.00'}, format='json')
		self.assertEqual(res.status_code, 405)

	def test_list_filters_by_order(self):
		other = create_order(tailor=self.tailor, client_id=self.customer.pk, labor_cost=Decimal('10'))
		mine = self.pay('10.00', order_id=self.order.pk)
		self.pay('5.00', order_id=other.pk)
		res = self.api.get('/api/payments/', {'order': self.order.pk})
		self.assertEqual(res.status_code, 200)
		self.assertEqual([row['id'] for row in res.data['results']], [mine.pk])


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class PendingAndGatewayTests(PaymentTestData, TestCase):
	def pending(self, reference='ps_ref_9', amount='100.00'):
		return self.pay(
			amount,
			order_id=self.order.pk,
			method=PaymentMethod.PAYSTACK,
			transaction_id=reference,
			status=PaymentStatus.PENDING,
		)

	def test_pending_payment_credits_nothing(self):
		self.pending()
		self.order.refresh_from_db()
		self.assertEqual(self.order.paid_amount, Decimal('0.00'))
		self.assertEqual(reconciler.recompute_paid_amount(self.order.pk), Decimal('0.00'))

	def test_gateway_success_completes_pending_payment_once(self):
		payment = self.pending()

		completed, applied = reconciler.apply_gateway_result('ps_ref_9', succeeded=True)
		self.assertTrue(applied)
		self.assertEqual(completed.pk, payment.pk)
		self.assertEqual(completed.status, PaymentStatus.COMPLETED)

		again, applied = reconciler.apply_gateway_result('ps_ref_9', succeeded=True)
		self.assertFalse(applied)
		self.assertEqual(again.pk, payment.pk)

		self.order.refresh_from_db()
		self.assertEqual(self.order.paid_amount, Decimal('100.00'))

	def test_gateway_failure_marks_pending_payment_failed(self):
		self.pending()
		failed, applied = reconciler.apply_gateway_result('ps_ref_9', succeeded=False)
		self.assertTrue(applied)
		self.assertEqual(failed.status, PaymentStatus.FAILED)
		self.order.refresh_from_db()
		self.assertEqual(self.order.paid_amount, Decimal('0.00'))

		# A late success for a failed charge does not resurrect it.
		_, applied = reconciler.apply_gateway_result('ps_ref_9', succeeded=True)
		self.assertFalse(applied)

	def test_unmatched_gateway_success_records_a_payment(self):
		payment, applied = reconciler.apply_gateway_result(
			'ps_new', succeeded=True, amount=Decimal('60.00'), order_id=self.order.pk,
		)
		self.assertTrue(applied)
		self.assertEqual(payment.status, PaymentStatus.COMPLETED)
		self.assertEqual(payment.method, PaymentMethod.PAYSTACK)
		self.assertEqual(payment.client_id, self.customer.pk)
		self.order.refresh_from_db()
		self.assertEqual(self.order.paid_amount, Decimal('60.00'))

		_, applied = reconciler.apply_gateway_result(
			'ps_new', succeeded=True, amount=Decimal('60.00'), order_id=self.order.pk,
		)
		self.assertFalse(applied)
		self.assertEqual(Payment.objects.filter(transaction_id='ps_new').count(), 1)

	def test_unmatched_gateway_failure_is_ignored(self):
		payment, applied = reconciler.apply_gateway_result('ps_lost', succeeded=False)
		self.assertIsNone(payment)
		self.assertFalse(applied)

	def test_settled_payment_cannot_be_completed_again(self):
		payment = self.pay('10.00', order_id=self.order.pk)
		with self.assertRaises(Conflict):
			reconciler.complete_payment(payment.pk, tailor=self.tailor)
		res = self.api.post(f'/api/payments/{payment.pk}/fail/')
		self.assertEqual(res.status_code, 409)

	def test_complete_endpoint_credits_pending_payment(self):
		payment = self.pending(amount='40.00')
		res = self.api.post(f'/api/payments/{payment.pk}/complete/')
		self.assertEqual(res.status_code, 200, res.data)
		self.assertEqual(res.data['status'], PaymentStatus.COMPLETED)
		self.order.refresh_from_db()
		self.assertEqual(self.order.paid_amount, Decimal('40.00'))

	def test_gateway_endpoint_is_staff_only(self):
		self.pending()
		payload = {'reference': 'ps_ref_9', 'succeeded': True}
		res = self.api.post('/api/payments/gateway-result/', data=payload, format='json')
		self.assertEqual(res.status_code, 403)

		staff_api = APIClient()
		staff_api.force_authenticate(user=self.staff)
		res = staff_api.post('/api/payments/gateway-result/', data=payload, format='json')
		self.assertEqual(res.status_code, 200, res.data)
		self.assertTrue(res.data['applied'])
		self.assertEqual(res.data['payment']['status'], PaymentStatus.COMPLETED)


class ReconciliationTests(PaymentTestData, TestCase):
	def test_recompute_counts_only_completed_payments(self):
		self.pay('30.00', order_id=self.order.pk)
		self.pay('20.00', order_id=self.order.pk, method=PaymentMethod.PAYSTACK, transaction_id='p1', status=PaymentStatus.PENDING)
		payment = self.pay('15.00', order_id=self.order.pk, method=PaymentMethod.PAYSTACK, transaction_id='p2', status=PaymentStatus.PENDING)
		reconciler.fail_payment(payment.pk, tailor=self.tailor)
		self.assertEqual(reconciler.recompute_paid_amount(self.order.pk), Decimal('30.00'))

	def test_repair_rewrites_drifted_running_total(self):
		self.pay('30.00', order_id=self.order.pk)
		Order.objects.filter(pk=self.order.pk).update(paid_amount=Decimal('99.00'))

		stored, computed = reconciler.repair_paid_amount(self.order)
		self.assertEqual((stored, computed), (Decimal('99.00'), Decimal('30.00')))
		self.order.refresh_from_db()
		self.assertEqual(self.order.paid_amount, Decimal('99.00'))

		reconciler.repair_paid_amount(self.order, fix=True)
		self.order.refresh_from_db()
		self.assertEqual(self.order.paid_amount, Decimal('30.00'))

	def test_reconcile_balances_command(self):
		invoice = create_invoice(
			tailor=self.tailor,
			client_id=self.customer.pk,
			items=[{'description': 'Dress', 'quantity': 1, 'unit_price': '80.00'}],
		)
		self.pay('30.00', order_id=self.order.pk)
		self.pay('20.00', invoice_id=invoice.pk)
		Order.objects.filter(pk=self.order.pk).update(paid_amount=Decimal('0.00'))
		Invoice.objects.filter(pk=invoice.pk).update(paid_amount=Decimal('50.00'))

		out = StringIO()
		call_command('reconcile_balances', stdout=out)
		self.assertIn(self.order.order_number, out.getvalue())
		self.assertIn(invoice.invoice_number, out.getvalue())
		self.order.refresh_from_db()
		self.assertEqual(self.order.paid_amount, Decimal('0.00'))

		call_command('reconcile_balances', '--fix', stdout=StringIO())
		self.order.refresh_from_db()
		invoice.refresh_from_db()
		self.assertEqual(self.order.paid_amount, Decimal('30.00'))
		self.assertEqual(invoice.paid_amount, Decimal('20.00'))

		out = StringIO()
		call_command('reconcile_balances', stdout=out)
		self.assertIn('All balances and counters reconcile.', out.getvalue())
