"""Orders app tests."""

from decimal import Decimal

from django.contrib import admin
from django.contrib.auth import get_user_model
from django.db import transaction
from django.test import RequestFactory, TestCase, override_settings
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.test import APIClient

from accounts.models import Client
from core.exceptions import Conflict
from finance.reconciler import record_payment
from notifications.models import AuditLog, Notification, NotificationKind
from orders import lifecycle
from orders.collections import counter_delta, recompute_collection_counters
from orders.models import Order, OrderCollection, OrderStatus


class OrderTestData:
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.tailor = User.objects.create_user(
			username='adwoa',
			email='adwoa@example.com',
			password='12345678',
			business_name='Adwoa Stitches',
		)
		cls.other_tailor = User.objects.create_user(
			username='kofi',
			email='kofi@example.com',
			password='12345678',
		)
		cls.customer = Client.objects.create(
			tailor=cls.tailor,
			name='Ama Mensah',
			phone='+233241234567',
			email='ama@example.com',
		)
		cls.other_customer = Client.objects.create(tailor=cls.other_tailor, name='Yaw Asante')

	def setUp(self):
		self.api = APIClient()
		self.api.force_authenticate(user=self.tailor)

	def make_order(self, labor='80.00', material='20.00', **kwargs):
		return lifecycle.create_order(
			tailor=self.tailor,
			client_id=self.customer.pk,
			labor_cost=Decimal(labor),
			material_cost=None if material is None else Decimal(material),
			**kwargs,
		)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class OrderCreateTests(OrderTestData, TestCase):
	def test_create_order_computes_total_and_number(self):
		res = self.api.post(
			'/api/orders/',
			data={'client': self.customer.pk, 'labor_cost': '80.00', 'material_cost': '20.00', 'garment_type': 'SHIRT'},
			format='json',
		)
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(res.data['status'], OrderStatus.PENDING)
		self.assertEqual(res.data['total_amount'], '100.00')
		self.assertEqual(res.data['balance'], '100.00')
		self.assertTrue(res.data['order_number'].startswith('SC-'))

	def test_order_numbers_are_sequential_per_tailor(self):
		first = self.make_order()
		second = self.make_order()
		self.assertEqual(first.order_number[:-4], second.order_number[:-4])
		self.assertEqual(int(second.order_number[-4:]), int(first.order_number[-4:]) + 1)

	def test_material_cost_is_optional(self):
		order = self.make_order(labor='45.50', material=None)
		self.assertIsNone(order.material_cost)
		self.assertEqual(order.total_amount, Decimal('45.50'))

	def test_cannot_create_order_for_another_workshops_client(self):
		res = self.api.post(
			'/api/orders/',
			data={'client': self.other_customer.pk, 'labor_cost': '10.00'},
			format='json',
		)
		self.assertEqual(res.status_code, 404)
		self.assertEqual(res.data['code'], 'not_found')
		self.assertFalse(res.data['success'])

	def test_creation_is_audited(self):
		with self.captureOnCommitCallbacks(execute=True):
			order = lifecycle.create_order(
				tailor=self.tailor, client_id=self.customer.pk, labor_cost=Decimal('10'), actor=self.tailor,
			)
		self.assertTrue(AuditLog.objects.filter(action='CREATE_ORDER', resource_id=str(order.pk)).exists())


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class OrderUpdateTests(OrderTestData, TestCase):
	def test_partial_cost_update_keeps_untouched_cost(self):
		order = self.make_order(labor='80.00', material='20.00')

		res = self.api.patch(f'/api/orders/{order.pk}/', data={'labor_cost': '50.00'}, format='json')
		self.assertEqual(res.status_code, 200, res.data)
		self.assertEqual(res.data['material_cost'], '20.00')
		self.assertEqual(res.data['total_amount'], '70.00')

		res = self.api.patch(f'/api/orders/{order.pk}/', data={'material_cost': '30.00'}, format='json')
		self.assertEqual(res.data['labor_cost'], '50.00')
		self.assertEqual(res.data['total_amount'], '80.00')

	def test_clearing_material_cost_drops_its_contribution(self):
		order = self.make_order(labor='80.00', material='20.00')
		order = lifecycle.update_order(order.pk, tailor=self.tailor, material_cost=None)
		self.assertEqual(order.total_amount, Decimal('80.00'))

	def test_total_amount_cannot_be_set_directly(self):
		order = self.make_order()
		res = self.api.patch(f'/api/orders/{order.pk}/', data={'total_amount': '1.00'}, format='json')
		self.assertEqual(res.status_code, 400)

	def test_labor_cost_cannot_be_cleared(self):
		order = self.make_order()
		with self.assertRaises(ValidationError):
			lifecycle.update_order(order.pk, tailor=self.tailor, labor_cost=None)

	def test_invalid_status_is_a_validation_error(self):
		order = self.make_order()
		res = self.api.patch(f'/api/orders/{order.pk}/', data={'status': 'SHIPPED'}, format='json')
		self.assertEqual(res.status_code, 400)
		with self.assertRaises(ValidationError):
			lifecycle.update_order(order.pk, tailor=self.tailor, status='SHIPPED')

	def test_in_progress_sets_started_at_and_resubmission_is_a_noop(self):
		order = self.make_order()

		with self.captureOnCommitCallbacks(execute=True):
			res = self.api.patch(f'/api/orders/{order.pk}/', data={'status': 'IN_PROGRESS'}, format='json')
		self.assertEqual(res.status_code, 200, res.data)
		order.refresh_from_db()
		started_at, version = order.started_at, order.version
		self.assertIsNotNone(started_at)
		self.assertEqual(Notification.objects.filter(kind=NotificationKind.ORDER_STATUS_CHANGED).count(), 1)
		self.assertEqual(AuditLog.objects.filter(action='UPDATE_ORDER').count(), 1)

		with self.captureOnCommitCallbacks(execute=True) as callbacks:
			res = self.api.patch(f'/api/orders/{order.pk}/', data={'status': 'IN_PROGRESS'}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(callbacks, [])
		order.refresh_from_db()
		self.assertEqual(order.started_at, started_at)
		self.assertEqual(order.version, version)
		self.assertEqual(Notification.objects.filter(kind=NotificationKind.ORDER_STATUS_CHANGED).count(), 1)
		self.assertEqual(AuditLog.objects.filter(action='UPDATE_ORDER').count(), 1)

	def test_status_change_audit_records_transition_and_changed_fields(self):
		order = self.make_order()
		with self.captureOnCommitCallbacks(execute=True):
			lifecycle.update_order(
				order.pk, tailor=self.tailor, actor=self.tailor, status=OrderStatus.CONFIRMED, labor_cost=Decimal('90'),
			)
		entry = AuditLog.objects.get(action='UPDATE_ORDER')
		self.assertEqual(entry.user, self.tailor)
		self.assertEqual(entry.details['from'], 'PENDING')
		self.assertEqual(entry.details['to'], 'CONFIRMED')
		self.assertIn('labor_cost', entry.details['changedFields'])
		self.assertIn('status', entry.details['changedFields'])

	def test_status_notification_goes_to_the_client(self):
		order = self.make_order()
		with self.captureOnCommitCallbacks(execute=True):
			lifecycle.update_order(order.pk, tailor=self.tailor, status=OrderStatus.READY_FOR_FITTING)
		notification = Notification.objects.get(kind=NotificationKind.ORDER_STATUS_CHANGED)
		self.assertEqual(notification.user, self.tailor)
		self.assertEqual(notification.recipient['phone'], '+233241234567')
		self.assertIn(order.order_number, notification.message)
		self.assertTrue(notification.sms_requested)

	def test_completing_overwrites_completed_at(self):
		order = self.make_order()
		order = lifecycle.update_order(order.pk, tailor=self.tailor, status=OrderStatus.COMPLETED)
		first = order.completed_at
		self.assertIsNotNone(first)

		with override_settings(WORKSHOP={'STRICT_TRANSITIONS': False}):
			lifecycle.update_order(order.pk, tailor=self.tailor, status=OrderStatus.FITTING_DONE)
			order = lifecycle.update_order(order.pk, tailor=self.tailor, status=OrderStatus.COMPLETED)
		self.assertGreaterEqual(order.completed_at, first)

	def test_backward_transition_is_rejected(self):
		order = self.make_order()
		lifecycle.update_order(order.pk, tailor=self.tailor, status=OrderStatus.COMPLETED)

		res = self.api.patch(f'/api/orders/{order.pk}/', data={'status': 'PENDING'}, format='json')
		self.assertEqual(res.status_code, 409)
		self.assertEqual(res.data['code'], 'conflict')
		order.refresh_from_db()
		self.assertEqual(order.status, OrderStatus.COMPLETED)

	def test_stages_can_be_skipped_forward(self):
		order = self.make_order()
		order = lifecycle.update_order(order.pk, tailor=self.tailor, status=OrderStatus.FITTING_DONE)
		self.assertEqual(order.status, OrderStatus.FITTING_DONE)

	@override_settings(WORKSHOP={'STRICT_TRANSITIONS': False})
	def test_backward_transition_allowed_when_not_strict(self):
		order = self.make_order()
		lifecycle.update_order(order.pk, tailor=self.tailor, status=OrderStatus.COMPLETED)
		order = lifecycle.update_order(order.pk, tailor=self.tailor, status=OrderStatus.PENDING)
		self.assertEqual(order.status, OrderStatus.PENDING)

	def test_stale_version_is_a_retryable_conflict(self):
		order = self.make_order()
		res = self.api.patch(
			f'/api/orders/{order.pk}/', data={'labor_cost': '1.00', 'version': order.version + 1}, format='json',
		)
		self.assertEqual(res.status_code, 409)
		self.assertEqual(res.data['code'], 'retry')
		order.refresh_from_db()
		self.assertEqual(order.labor_cost, Decimal('80.00'))

	def test_accepted_update_bumps_version(self):
		order = self.make_order()
		res = self.api.patch(
			f'/api/orders/{order.pk}/', data={'progress_notes': 'Cut fabric', 'version': order.version}, format='json',
		)
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['version'], order.version + 1)

	def test_other_workshops_order_is_not_found(self):
		foreign = lifecycle.create_order(
			tailor=self.other_tailor, client_id=self.other_customer.pk, labor_cost=Decimal('10'),
		)
		res = self.api.patch(f'/api/orders/{foreign.pk}/', data={'status': 'CONFIRMED'}, format='json')
		self.assertEqual(res.status_code, 404)
		with self.assertRaises(NotFound):
			lifecycle.update_order(foreign.pk, tailor=self.tailor, status=OrderStatus.CONFIRMED)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class OrderCollectionCounterTests(OrderTestData, TestCase):
	def setUp(self):
		super().setUp()
		# An existing batch of five orders, none completed yet.
		self.collection = OrderCollection.objects.create(
			tailor=self.tailor, name='Christmas run', total_orders=5, completed_orders=0,
		)
		self.order = Order.objects.create(
			tailor=self.tailor,
			client=self.customer,
			collection=self.collection,
			order_number='SC-0001-0001',
			status=OrderStatus.CONFIRMED,
			labor_cost=Decimal('80.00'),
			material_cost=Decimal('20.00'),
			total_amount=Decimal('100.00'),
		)

	def counters(self):
		self.collection.refresh_from_db()
		return self.collection.total_orders, self.collection.completed_orders

	def test_completing_then_deleting_a_member(self):
		res = self.api.patch(f'/api/orders/{self.order.pk}/', data={'status': 'COMPLETED'}, format='json')
		self.assertEqual(res.status_code, 200, res.data)
		self.assertEqual(self.counters(), (5, 1))

		res = self.api.delete(f'/api/orders/{self.order.pk}/')
		self.assertEqual(res.status_code, 204)
		self.assertEqual(self.counters(), (4, 0))
		self.assertFalse(Order.objects.filter(pk=self.order.pk).exists())

	def test_deleting_an_order_with_payments_is_rejected(self):
		lifecycle.update_order(self.order.pk, tailor=self.tailor, status=OrderStatus.COMPLETED)
		record_payment(tailor=self.tailor, client_id=self.customer.pk, order_id=self.order.pk, amount=Decimal('10'))

		res = self.api.delete(f'/api/orders/{self.order.pk}/')
		self.assertEqual(res.status_code, 409)
		self.assertIn('Consider cancelling instead', res.data['error'])
		self.assertEqual(self.counters(), (5, 1))
		with self.assertRaises(Conflict):
			lifecycle.delete_order(self.order.pk, tailor=self.tailor)

	def test_cancelling_a_member_shrinks_the_batch(self):
		lifecycle.update_order(self.order.pk, tailor=self.tailor, status=OrderStatus.CANCELLED)
		self.assertEqual(self.counters(), (4, 0))

	def test_deleting_a_cancelled_member_does_not_count_twice(self):
		lifecycle.update_order(self.order.pk, tailor=self.tailor, status=OrderStatus.CANCELLED)
		lifecycle.delete_order(self.order.pk, tailor=self.tailor)
		self.assertEqual(self.counters(), (4, 0))

	def test_same_status_resubmission_leaves_counters(self):
		lifecycle.update_order(self.order.pk, tailor=self.tailor, status=OrderStatus.COMPLETED)
		lifecycle.update_order(self.order.pk, tailor=self.tailor, status=OrderStatus.COMPLETED)
		self.assertEqual(self.counters(), (5, 1))

	def test_creating_into_a_collection_counts_the_order(self):
		self.make_order(collection_id=self.collection.pk)
		self.assertEqual(self.counters(), (6, 0))

	def test_deleting_a_pending_member(self):
		order = self.make_order(collection_id=self.collection.pk)
		lifecycle.delete_order(order.pk, tailor=self.tailor)
		self.assertEqual(self.counters(), (5, 0))

	def test_collection_counters_are_read_only_in_the_api(self):
		res = self.api.patch(
			f'/api/order-collections/{self.collection.pk}/', data={'total_orders': 99, 'name': 'Easter run'}, format='json',
		)
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['total_orders'], 5)
		self.assertEqual(res.data['name'], 'Easter run')

	def test_recompute_reports_and_repairs_drift(self):
		# Only the one order row actually exists.
		with transaction.atomic():
			stored, scanned = recompute_collection_counters(self.collection.pk)
		self.assertEqual(stored, (5, 0))
		self.assertEqual(scanned, (1, 0))
		self.assertEqual(self.counters(), (5, 0))

		with transaction.atomic():
			recompute_collection_counters(self.collection.pk, fix=True)
		self.assertEqual(self.counters(), (1, 0))


class CounterDeltaTests(TestCase):
	def test_deltas(self):
		self.assertEqual(counter_delta(None, OrderStatus.PENDING), (1, 0))
		self.assertEqual(counter_delta(OrderStatus.CONFIRMED, OrderStatus.COMPLETED), (0, 1))
		self.assertEqual(counter_delta(OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED), (-1, 0))
		self.assertEqual(counter_delta(OrderStatus.COMPLETED, None), (-1, -1))
		self.assertEqual(counter_delta(OrderStatus.CANCELLED, None), (0, 0))
		self.assertEqual(counter_delta(OrderStatus.PENDING, OrderStatus.PENDING), (0, 0))

	def test_terminal_states_are_closed(self):
		for terminal in lifecycle.TERMINAL_STATUSES:
			self.assertEqual(lifecycle.ALLOWED_TRANSITIONS[terminal], frozenset())
		for status in OrderStatus.values:
			if status not in lifecycle.TERMINAL_STATUSES:
				self.assertIn(OrderStatus.CANCELLED, lifecycle.ALLOWED_TRANSITIONS[status])


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class PaidAmountAuditEndpointTests(OrderTestData, TestCase):
	def test_reports_drift_against_payments(self):
		order = self.make_order()
		record_payment(tailor=self.tailor, client_id=self.customer.pk, order_id=order.pk, amount=Decimal('40'))
		Order.objects.filter(pk=order.pk).update(paid_amount=Decimal('55.00'))

		res = self.api.get(f'/api/orders/{order.pk}/paid-amount-audit/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['recomputed_paid_amount'], Decimal('40.00'))
		self.assertEqual(res.data['drift'], Decimal('15.00'))


class OrderAdminTests(OrderTestData, TestCase):
	def setUp(self):
		super().setUp()
		self.superuser = get_user_model().objects.create_superuser(
			username='root', email='root@example.com', password='12345678',
		)
		self.request = RequestFactory().get('/admin/')
		self.request.user = self.superuser
		self.order_admin = admin.site._registry[Order]
		self.collection = OrderCollection.objects.create(tailor=self.tailor, name='Christmas run')

	def counters(self):
		self.collection.refresh_from_db()
		return self.collection.total_orders, self.collection.completed_orders

	def test_costs_and_membership_are_not_editable(self):
		order = self.make_order(collection_id=self.collection.pk)
		form_class = self.order_admin.get_form(self.request, order)
		for field in ('labor_cost', 'material_cost', 'total_amount', 'collection', 'client', 'status'):
			self.assertNotIn(field, form_class.base_fields)

		form = form_class(data={'garment_type': 'KAFTAN', 'quantity': 1, 'labor_cost': '500.00'}, instance=order)
		self.assertTrue(form.is_valid(), form.errors)
		form.save()
		order.refresh_from_db()
		self.assertEqual(order.labor_cost, Decimal('80.00'))
		self.assertEqual(order.total_amount, order.labor_cost + order.material_cost)

	def test_orders_cannot_be_added_from_the_admin(self):
		self.assertFalse(self.order_admin.has_add_permission(self.request))

	def test_admin_delete_releases_the_collection_slot(self):
		order = self.make_order(collection_id=self.collection.pk)
		self.assertEqual(self.counters(), (1, 0))
		self.order_admin.delete_model(self.request, order)
		self.assertEqual(self.counters(), (0, 0))
		self.assertFalse(Order.objects.filter(pk=order.pk).exists())

	def test_admin_bulk_delete_goes_through_the_lifecycle(self):
		self.make_order(collection_id=self.collection.pk)
		self.make_order(collection_id=self.collection.pk)
		self.assertEqual(self.counters(), (2, 0))
		self.order_admin.delete_queryset(self.request, Order.objects.filter(collection=self.collection))
		self.assertEqual(self.counters(), (0, 0))

	def test_orders_with_payments_cannot_be_deleted(self):
		order = self.make_order()
		self.assertTrue(self.order_admin.has_delete_permission(self.request, order))
		record_payment(tailor=self.tailor, client_id=self.customer.pk, order_id=order.pk, amount=Decimal('10'))
		self.assertFalse(self.order_admin.has_delete_permission(self.request, order))
