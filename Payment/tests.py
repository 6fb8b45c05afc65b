from decimal import Decimal
from unittest import mock

from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from Administration.models import StaffUser, GymSettings
from Invoice import services
from Invoice.models import Invoice
from Member.models import Member
from Payment import gateway
from Plan.models import Plan

ENV_KEYS = {'RAZORPAY_KEY_ID': 'rzp_test_env', 'RAZORPAY_KEY_SECRET': 'env_secret'}
NO_ENV_KEYS = {'RAZORPAY_KEY_ID': '', 'RAZORPAY_KEY_SECRET': ''}


class SignatureTestCase(TestCase):
	def test_valid_signature_verifies(self):
		signature = gateway.compute_signature('order_A1', 'pay_B2', 'topsecret')
		self.assertTrue(gateway.verify_signature('order_A1', 'pay_B2', signature, 'topsecret'))

	def test_any_change_fails(self):
		signature = gateway.compute_signature('order_A1', 'pay_B2', 'topsecret')
		self.assertFalse(gateway.verify_signature('order_A2', 'pay_B2', signature, 'topsecret'))
		self.assertFalse(gateway.verify_signature('order_A1', 'pay_B3', signature, 'topsecret'))
		self.assertFalse(gateway.verify_signature('order_A1', 'pay_B2', signature, 'othersecret'))
		tampered = ('0' if signature[0] != '0' else '1') + signature[1:]
		self.assertFalse(gateway.verify_signature('order_A1', 'pay_B2', tampered, 'topsecret'))

	def test_bad_input_is_false_not_an_error(self):
		self.assertFalse(gateway.verify_signature('order_A1', 'pay_B2', '', 'topsecret'))
		self.assertFalse(gateway.verify_signature(None, 'pay_B2', 'abc', 'topsecret'))
		self.assertFalse(gateway.verify_signature('order_A1', 'pay_B2', 'short', ''))
		self.assertFalse(gateway.verify_signature('order_A1', 'pay_B2', 'ü-not-hex', 'topsecret'))

	def test_amount_in_paise(self):
		self.assertEqual(gateway.amount_in_paise(Decimal('1180.00')), 118000)
		self.assertEqual(gateway.amount_in_paise(Decimal('0.005')), 1)
		self.assertEqual(gateway.amount_in_paise(Decimal('99.99')), 9999)


class CredentialTestCase(TestCase):
	@override_settings(**ENV_KEYS)
	def test_environment_fallback(self):
		credentials = gateway.resolve_credentials()
		self.assertEqual(credentials.key_id, 'rzp_test_env')

	@override_settings(**ENV_KEYS)
	def test_settings_record_wins(self):
		gym = GymSettings.load()
		gym.razorpay_key_id = 'rzp_test_db'
		gym.razorpay_key_secret = 'db_secret'
		gym.save()
		credentials = gateway.resolve_credentials()
		self.assertEqual((credentials.key_id, credentials.key_secret), ('rzp_test_db', 'db_secret'))

	@override_settings(**ENV_KEYS)
	def test_half_configured_record_is_ignored(self):
		gym = GymSettings.load()
		gym.razorpay_key_id = 'rzp_test_db'
		gym.save()
		self.assertEqual(gateway.resolve_credentials().key_id, 'rzp_test_env')

	@override_settings(**NO_ENV_KEYS)
	def test_missing_keys(self):
		with self.assertRaises(gateway.GatewayConfigurationError):
			gateway.resolve_credentials()


@override_settings(**ENV_KEYS)
class PaymentAPITestCase(TestCase):
	def setUp(self):
		self.staff = StaffUser.objects.create_user('desk@atlasfitness.in', 'Desk1Pass!', role=StaffUser.ROLE_STAFF)
		self.plan = Plan.objects.create(name='Monthly', duration=1, price=Decimal('1000.00'))
		self.member = Member.objects.create(name='Rohan', email='rohan@example.com')
		self.invoice, _ = services.create_invoice({'member': self.member.id, 'plan': self.plan.id})
		self.client = APIClient()
		self.client.force_authenticate(user=self.staff)

	def mock_client(self, **create_kwargs):
		client = mock.Mock()
		client.order.create = mock.Mock(**create_kwargs)
		return mock.patch('Payment.gateway._build_client', return_value=client), client

	def test_create_order(self):
		patcher, client = self.mock_client(return_value={'id': 'order_XYZ', 'status': 'created'})
		with patcher:
			response = self.client.post('/api/payments/create', {'invoice_id': self.invoice.id}, format='json')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['data'], {
			'gateway_order_id': 'order_XYZ',
			'amount': 118000,
			'currency': 'INR',
			'key_id': 'rzp_test_env',
		})
		payload = client.order.create.call_args.kwargs['data']
		self.assertEqual(payload['receipt'], self.invoice.invoice_number)
		self.invoice.refresh_from_db()
		self.assertEqual(self.invoice.razorpay_order_id, 'order_XYZ')
		self.assertEqual(self.invoice.payment_status, Invoice.STATUS_PENDING)

	def test_create_order_gateway_failure(self):
		patcher, _ = self.mock_client(side_effect=ConnectionError('timed out'))
		with patcher:
			response = self.client.post('/api/payments/create', {'invoice_id': self.invoice.id}, format='json')
		self.assertEqual(response.status_code, 502)
		self.invoice.refresh_from_db()
		self.assertIsNone(self.invoice.razorpay_order_id)

	@override_settings(**NO_ENV_KEYS)
	def test_create_order_not_configured(self):
		response = self.client.post('/api/payments/create', {'invoice_id': self.invoice.id}, format='json')
		self.assertEqual(response.status_code, 503)

	def test_create_order_refuses_paid_or_missing_invoice(self):
		services.mark_as_paid(self.invoice.id)
		response = self.client.post('/api/payments/create', {'invoice_id': self.invoice.id}, format='json')
		self.assertEqual(response.status_code, 400)
		response = self.client.post('/api/payments/create', {'invoice_id': 999}, format='json')
		self.assertEqual(response.status_code, 404)

	def verify(self, order_id='order_XYZ', payment_id='pay_123', signature=None):
		if signature is None:
			signature = gateway.compute_signature(order_id, payment_id, 'env_secret')
		return self.client.post('/api/payments/verify', {
			'invoice_id': self.invoice.id,
			'razorpay_order_id': order_id,
			'razorpay_payment_id': payment_id,
			'razorpay_signature': signature,
		}, format='json')

	def test_verify_settles_invoice(self):
		Invoice.objects.filter(pk=self.invoice.pk).update(razorpay_order_id='order_XYZ')
		response = self.verify()
		self.assertEqual(response.status_code, 200)

		self.invoice.refresh_from_db()
		self.assertEqual(self.invoice.payment_status, Invoice.STATUS_PAID)
		self.assertEqual(self.invoice.paid_amount, Decimal('1180.00'))
		self.assertEqual(self.invoice.payment_method, Invoice.METHOD_ONLINE)
		self.assertEqual(self.invoice.razorpay_payment_id, 'pay_123')
		self.member.refresh_from_db()
		self.assertIsNotNone(self.member.plan_end_date)

	def test_verify_rejects_bad_signature(self):
		Invoice.objects.filter(pk=self.invoice.pk).update(razorpay_order_id='order_XYZ')
		with self.assertLogs('Payment.views', level='WARNING') as logs:
			response = self.verify(signature='f' * 64)
		self.assertEqual(response.status_code, 400)
		self.assertTrue(any('AUDIT' in line for line in logs.output))
		self.invoice.refresh_from_db()
		self.assertEqual(self.invoice.payment_status, Invoice.STATUS_PENDING)
		self.assertIsNone(self.invoice.razorpay_payment_id)

	def test_verify_rejects_foreign_order(self):
		Invoice.objects.filter(pk=self.invoice.pk).update(razorpay_order_id='order_XYZ')
		# correctly signed, but for an order that belongs to another invoice
		response = self.verify(order_id='order_OTHER')
		self.assertEqual(response.status_code, 400)
		self.invoice.refresh_from_db()
		self.assertEqual(self.invoice.payment_status, Invoice.STATUS_PENDING)

	@override_settings(**NO_ENV_KEYS)
	def test_verify_not_configured(self):
		response = self.verify(signature='abc')
		self.assertEqual(response.status_code, 503)

	def test_history(self):
		services.mark_as_paid(self.invoice.id)
		services.create_invoice({'member': self.member.id, 'plan': self.plan.id})

		response = self.client.get(f'/api/payments/history/{self.member.id}')
		self.assertEqual(response.status_code, 200)
		self.assertEqual([i['invoice_number'] for i in response.data['data']], [self.invoice.invoice_number])
		self.assertEqual(self.client.get('/api/payments/history/999').status_code, 404)
