"""Accounts app tests."""

from django.contrib import admin
from django.contrib.auth import get_user_model
from django.test import RequestFactory, SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from accounts.models import Client
from accounts.phones import normalize_phone


class PhoneNormalisationTests(SimpleTestCase):
	def test_local_numbers_use_default_region(self):
		self.assertEqual(normalize_phone('024 123 4567'), '+233241234567')

	def test_international_forms(self):
		self.assertEqual(normalize_phone('+233 24 123 4567'), '+233241234567')
		self.assertEqual(normalize_phone('00233241234567'), '+233241234567')

	def test_explicit_region(self):
		self.assertEqual(normalize_phone('0803 123 4567', region='NG'), '+2348031234567')

	def test_invalid_numbers_raise(self):
		for raw in ('', '12345', 'not a phone'):
			with self.assertRaises(ValueError):
				normalize_phone(raw)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class AccountApiTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.tailor = User.objects.create_user(username='adwoa', password='12345678')
		cls.other = User.objects.create_user(username='kofi', password='12345678')
		Client.objects.create(tailor=cls.other, name='Not Mine')

	def setUp(self):
		self.api = APIClient()
		self.api.force_authenticate(user=self.tailor)

	def test_register_normalises_phone(self):
		api = APIClient()
		res = api.post(
			'/api/accounts/register/',
			data={
				'username': 'efua',
				'password': 'Kente-Loom-2026',
				'email': 'Efua@Example.com ',
				'business_name': 'Efua Designs',
				'phone_number': '024 765 4321',
			},
			format='json',
		)
		self.assertEqual(res.status_code, 201, res.data)
		user = get_user_model().objects.get(username='efua')
		self.assertEqual(user.phone_number, '+233247654321')
		self.assertEqual(user.email, 'efua@example.com')
		self.assertTrue(user.check_password('Kente-Loom-2026'))

	def test_client_phone_is_stored_in_e164(self):
		res = self.api.post('/api/accounts/clients/', data={'name': 'Ama Mensah', 'phone': '024 123 4567'}, format='json')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(res.data['phone'], '+233241234567')
		self.assertEqual(Client.objects.get(pk=res.data['id']).tailor, self.tailor)

	def test_client_phone_is_required_and_validated(self):
		res = self.api.post('/api/accounts/clients/', data={'name': 'Ama'}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('phone', res.data)
		res = self.api.post('/api/accounts/clients/', data={'name': 'Ama', 'phone': ''}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertFalse(Client.objects.filter(tailor=self.tailor, name='Ama').exists())
		res = self.api.post('/api/accounts/clients/', data={'name': 'Ama', 'phone': '123'}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('phone', res.data)

	def test_clients_are_scoped_and_not_deletable(self):
		client = Client.objects.create(tailor=self.tailor, name='Ama Mensah', phone='+233241234567')
		res = self.api.get('/api/accounts/clients/')
		self.assertEqual([row['name'] for row in res.data['results']], ['Ama Mensah'])
		res = self.api.delete(f'/api/accounts/clients/{client.pk}/')
		self.assertEqual(res.status_code, 405)

	def test_profile_updates_notification_preferences(self):
		res = self.api.patch('/api/accounts/profile/', data={'notify_sms': False}, format='json')
		self.assertEqual(res.status_code, 200)
		self.tailor.refresh_from_db()
		self.assertFalse(self.tailor.notify_sms)

	def test_api_requires_authentication(self):
		res = APIClient().get('/api/orders/')
		self.assertEqual(res.status_code, 401)
		self.assertFalse(res.data['success'])


class ClientAdminTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.superuser = User.objects.create_superuser(username='root', email='root@example.com', password='12345678')
		cls.client_row = Client.objects.create(tailor=cls.superuser, name='Ama Mensah', phone='+233241234567')

	def setUp(self):
		self.request = RequestFactory().get('/admin/')
		self.request.user = self.superuser

	def test_clients_cannot_be_deleted_from_the_admin(self):
		client_admin = admin.site._registry[Client]
		self.assertFalse(client_admin.has_delete_permission(self.request))
		self.assertFalse(client_admin.has_delete_permission(self.request, self.client_row))

	def test_client_inline_on_the_workshop_page_cannot_delete(self):
		user_admin = admin.site._registry[get_user_model()]
		inline = user_admin.get_inline_instances(self.request, self.superuser)[0]
		self.assertEqual(inline.model, Client)
		self.assertFalse(inline.can_delete)
