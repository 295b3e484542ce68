"""Notifications app tests."""

from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from accounts.models import Client
from notifications.models import AuditLog, Notification, NotificationKind
from notifications.services import log_audit, notify, render
from orders.lifecycle import create_order
from orders.models import Order, OrderStatus


class NotifyTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.tailor = User.objects.create_user(username='adwoa', password='12345678', notify_sms=False)
		cls.contact = {'name': 'Ama Mensah', 'phone': '+233241234567', 'email': 'ama@example.com'}

	def test_render_fills_templates(self):
		title, message = render(
			NotificationKind.INVOICE_SENT,
			{'invoice_number': 'INV-2601-0001', 'client_name': 'Ama', 'total': 'GH₵ 120.00'},
		)
		self.assertEqual(title, 'Invoice INV-2601-0001 sent')
		self.assertIn('GH₵ 120.00', message)

	def test_channels_follow_owner_preferences(self):
		notification = notify(
			NotificationKind.PAYMENT_RECEIVED,
			self.contact,
			{'payment_number': 'PAY-2601-0001', 'client_name': 'Ama', 'amount': 'GH₵ 10.00'},
			owner=self.tailor,
		)
		self.assertFalse(notification.sms_requested)
		self.assertTrue(notification.email_requested)
		self.assertEqual(notification.recipient, self.contact)

	def test_email_channel_needs_an_address(self):
		notification = notify(
			NotificationKind.PAYMENT_RECEIVED,
			{'name': 'Ama', 'phone': None, 'email': None},
			{'payment_number': 'PAY-2601-0001', 'client_name': 'Ama', 'amount': 'GH₵ 10.00'},
			owner=self.tailor,
		)
		self.assertFalse(notification.email_requested)

	def test_without_owner_nothing_is_stored(self):
		result = notify(
			NotificationKind.ORDER_STATUS_CHANGED,
			self.contact,
			{'order_number': 'SC-1', 'client_name': 'Ama', 'status': 'CONFIRMED', 'status_display': 'Confirmed'},
		)
		self.assertIsNone(result)
		self.assertFalse(Notification.objects.exists())

	def test_log_audit(self):
		entry = log_audit(actor_id=None, action='DELETE_ORDER', resource='Order', resource_id=7, details={'status': 'PENDING'})
		self.assertEqual(entry.resource_id, '7')
		self.assertIsNone(entry.user)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class SideEffectIsolationTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.tailor = User.objects.create_user(username='adwoa', password='12345678')
		cls.customer = Client.objects.create(tailor=cls.tailor, name='Ama Mensah', phone='+233241234567')

	def setUp(self):
		self.api = APIClient()
		self.api.force_authenticate(user=self.tailor)
		self.order = create_order(tailor=self.tailor, client_id=self.customer.pk, labor_cost=Decimal('50'))

	def test_failed_notification_does_not_undo_the_update(self):
		with patch('notifications.signals.notify', side_effect=RuntimeError('SMS gateway down')):
			with self.assertLogs('core.events', level='ERROR') as logs:
				with self.captureOnCommitCallbacks(execute=True):
					res = self.api.patch(f'/api/orders/{self.order.pk}/', data={'status': 'CONFIRMED'}, format='json')

		self.assertEqual(res.status_code, 200, res.data)
		self.assertTrue(any('SMS gateway down' in line for line in logs.output))
		self.assertEqual(Order.objects.get(pk=self.order.pk).status, OrderStatus.CONFIRMED)
		# The audit receiver runs independently of the failed notification.
		self.assertTrue(AuditLog.objects.filter(action='UPDATE_ORDER', resource_id=str(self.order.pk)).exists())
		self.assertFalse(Notification.objects.exists())


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class NotificationApiTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.tailor = User.objects.create_user(username='adwoa', password='12345678')
		cls.other = User.objects.create_user(username='kofi', password='12345678')
		data = {'payment_number': 'PAY-1', 'client_name': 'Ama', 'amount': 'GH₵ 1.00'}
		cls.first = notify(NotificationKind.PAYMENT_RECEIVED, {'name': 'Ama'}, data, owner=cls.tailor)
		cls.second = notify(NotificationKind.PAYMENT_RECEIVED, {'name': 'Ama'}, data, owner=cls.tailor)
		notify(NotificationKind.PAYMENT_RECEIVED, {'name': 'Ama'}, data, owner=cls.other)
		log_audit(actor_id=cls.tailor.pk, action='CREATE_PAYMENT', resource='Payment', resource_id=1)
		log_audit(actor_id=cls.other.pk, action='CREATE_PAYMENT', resource='Payment', resource_id=2)

	def setUp(self):
		self.api = APIClient()
		self.api.force_authenticate(user=self.tailor)

	def test_list_is_scoped_to_the_user(self):
		res = self.api.get('/api/notifications/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['count'], 2)

	def test_mark_read(self):
		res = self.api.post(f'/api/notifications/{self.first.pk}/read/')
		self.assertEqual(res.status_code, 200)
		self.assertTrue(res.data['is_read'])
		self.assertEqual(self.api.get('/api/notifications/unread-count/').data['unread'], 1)

		res = self.api.post('/api/notifications/read-all/')
		self.assertEqual(res.data['updated'], 1)
		self.assertEqual(self.api.get('/api/notifications/unread-count/').data['unread'], 0)

	def test_audit_log_is_scoped_to_the_actor(self):
		res = self.api.get('/api/audit-logs/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual([row['resource_id'] for row in res.data['results']], ['1'])
