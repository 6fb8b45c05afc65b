from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from Administration.models import StaffUser
from Plan.models import Plan


class PlanAPITestCase(TestCase):
	def setUp(self):
		self.admin = StaffUser.objects.create_user('admin@atlasfitness.in', 'Adm1nPass!', role=StaffUser.ROLE_ADMIN)
		self.staff = StaffUser.objects.create_user('desk@atlasfitness.in', 'Desk1Pass!', role=StaffUser.ROLE_STAFF)
		self.client = APIClient()
		self.client.force_authenticate(user=self.admin)

		self.annual = Plan.objects.create(name='Annual', duration=12, price=Decimal('9999.00'))
		self.monthly = Plan.objects.create(name='Monthly', duration=1, price=Decimal('1000.00'))
		self.retired = Plan.objects.create(name='Festive', duration=2, price=Decimal('1500.00'), is_active=False)

	def test_list_active_plans_by_price(self):
		self.client.force_authenticate(user=self.staff)
		response = self.client.get('/api/plans')
		self.assertEqual(response.status_code, 200)
		self.assertEqual([p['name'] for p in response.data['data']], ['Monthly', 'Annual'])

		response = self.client.get('/api/plans', {'include_inactive': 'true'})
		self.assertEqual([p['name'] for p in response.data['data']], ['Monthly', 'Festive', 'Annual'])

	def test_create_defaults_tax_rate(self):
		response = self.client.post('/api/plans', {'name': 'Quarterly', 'duration': 3, 'price': '2700.00'}, format='json')
		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['data']['tax_rate'], Decimal('18.00'))
		self.assertTrue(Plan.objects.get(name='Quarterly').is_active)

	def test_create_validates(self):
		response = self.client.post('/api/plans', {'name': 'Broken', 'duration': 0, 'price': '-1', 'tax_rate': '120'}, format='json')
		self.assertEqual(response.status_code, 400)
		for field in ('duration', 'price', 'tax_rate'):
			self.assertIn(field, response.data['errors'])

	def test_staff_cannot_write(self):
		self.client.force_authenticate(user=self.staff)
		response = self.client.post('/api/plans', {'name': 'Quarterly', 'duration': 3, 'price': '2700.00'}, format='json')
		self.assertEqual(response.status_code, 403)
		self.assertEqual(self.client.delete(f'/api/plans/{self.monthly.id}').status_code, 403)

	def test_update_is_partial(self):
		response = self.client.put(f'/api/plans/{self.monthly.id}', {'price': '1200.00'}, format='json')
		self.assertEqual(response.status_code, 200)
		self.monthly.refresh_from_db()
		self.assertEqual(self.monthly.price, Decimal('1200.00'))
		self.assertEqual(self.monthly.name, 'Monthly')

	def test_delete_deactivates(self):
		response = self.client.delete(f'/api/plans/{self.monthly.id}')
		self.assertEqual(response.status_code, 200)
		self.monthly.refresh_from_db()
		self.assertFalse(self.monthly.is_active)

		response = self.client.get(f'/api/plans/{self.monthly.id}')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(self.client.get('/api/plans/999').status_code, 404)
