from io import StringIO
from smtplib import SMTPException
from unittest import mock

from django.core import mail
from django.core.management import call_command
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from Administration.models import StaffUser, GymSettings, NotificationLog
from Administration.notifications import (
	NotificationError, send_welcome_email, send_invoice_receipt, send_expiry_reminder,
)
from Administration.views import issue_tokens
from Invoice import services
from Member.models import Member
from Plan.models import Plan

ENV_SMTP = {
	'EMAIL_BACKEND': 'django.core.mail.backends.locmem.EmailBackend',
	'EMAIL_HOST': 'smtp.example.com',
	'EMAIL_HOST_USER': 'mailer',
	'EMAIL_HOST_PASSWORD': 'secret',
}


class AuthTestCase(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.admin = StaffUser.objects.create_user('admin@atlasfitness.in', 'Adm1nPass!', name='Owner', role=StaffUser.ROLE_ADMIN)

	def test_login_returns_tokens_and_user(self):
		response = self.client.post('/api/auth/login', {'email': 'ADMIN@atlasfitness.in', 'password': 'Adm1nPass!'}, format='json')
		self.assertEqual(response.status_code, 200)
		self.assertTrue(response.data['success'])
		self.assertIn('access', response.data['data'])
		self.assertIn('refresh', response.data['data'])
		self.assertEqual(response.data['data']['user']['role'], 'ADMIN')
		self.admin.refresh_from_db()
		self.assertIsNotNone(self.admin.last_login)

	def test_login_rejects_bad_credentials(self):
		response = self.client.post('/api/auth/login', {'email': 'admin@atlasfitness.in', 'password': 'wrong'}, format='json')
		self.assertEqual(response.status_code, 401)
		self.assertFalse(response.data['success'])

		response = self.client.post('/api/auth/login', {'email': 'nobody@atlasfitness.in', 'password': 'wrong'}, format='json')
		self.assertEqual(response.status_code, 401)

		response = self.client.post('/api/auth/login', {'email': 'admin@atlasfitness.in'}, format='json')
		self.assertEqual(response.status_code, 400)

	def test_inactive_user_cannot_log_in(self):
		self.admin.is_active = False
		self.admin.save()
		response = self.client.post('/api/auth/login', {'email': 'admin@atlasfitness.in', 'password': 'Adm1nPass!'}, format='json')
		self.assertEqual(response.status_code, 401)

	def test_me_with_bearer_token(self):
		tokens = issue_tokens(self.admin)
		self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
		response = self.client.get('/api/auth/me')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['data']['email'], 'admin@atlasfitness.in')

	def test_token_rejected_after_role_change(self):
		tokens = issue_tokens(self.admin)
		self.admin.role = StaffUser.ROLE_STAFF
		self.admin.save()
		self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
		response = self.client.get('/api/auth/me')
		self.assertEqual(response.status_code, 401)
		self.assertFalse(response.data['success'])

	def test_refresh(self):
		tokens = issue_tokens(self.admin)
		response = self.client.post('/api/auth/refresh', {'refresh': tokens['refresh']}, format='json')
		self.assertEqual(response.status_code, 200)
		self.assertIn('access', response.data['data'])

		response = self.client.post('/api/auth/refresh', {'refresh': 'not-a-token'}, format='json')
		self.assertEqual(response.status_code, 401)

	def test_change_password(self):
		self.client.force_authenticate(user=self.admin)
		response = self.client.post('/api/auth/change-password', {
			'current_password': 'wrong', 'new_password': 'An0therPass!',
		}, format='json')
		self.assertEqual(response.status_code, 400)
		self.assertIn('current_password', response.data['errors'])

		response = self.client.post('/api/auth/change-password', {
			'current_password': 'Adm1nPass!', 'new_password': 'An0therPass!',
		}, format='json')
		self.assertEqual(response.status_code, 200)
		self.admin.refresh_from_db()
		self.assertTrue(self.admin.check_password('An0therPass!'))

	def test_health_is_public(self):
		response = self.client.get('/api/health')
		self.assertEqual(response.status_code, 200)


class SettingsTestCase(TestCase):
	def setUp(self):
		self.admin = StaffUser.objects.create_user('admin@atlasfitness.in', 'Adm1nPass!', role=StaffUser.ROLE_ADMIN)
		self.staff = StaffUser.objects.create_user('desk@atlasfitness.in', 'Desk1Pass!', role=StaffUser.ROLE_STAFF)
		self.client = APIClient()

	def test_get_creates_defaults_and_hides_secrets(self):
		self.client.force_authenticate(user=self.staff)
		response = self.client.get('/api/settings')
		self.assertEqual(response.status_code, 200)
		data = response.data['data']
		self.assertEqual(data['gym_name'], 'Atlas Fitness Elite')
		self.assertNotIn('smtp_password', data)
		self.assertNotIn('razorpay_key_secret', data)
		self.assertFalse(data['smtp_configured'])
		self.assertEqual(GymSettings.objects.count(), 1)

	def test_only_admin_can_update(self):
		self.client.force_authenticate(user=self.staff)
		response = self.client.put('/api/settings', {'gym_name': 'Other'}, format='json')
		self.assertEqual(response.status_code, 403)

		self.client.force_authenticate(user=self.admin)
		response = self.client.put('/api/settings', {
			'gym_name': 'Atlas Fitness Elite - Baner',
			'razorpay_key_id': 'rzp_test_1',
			'razorpay_key_secret': 'shh',
		}, format='json')
		self.assertEqual(response.status_code, 200)
		self.assertTrue(response.data['data']['gateway_configured'])
		self.assertNotIn('razorpay_key_secret', response.data['data'])
		self.assertEqual(GymSettings.load().razorpay_key_secret, 'shh')


class NotificationTestCase(TestCase):
	def setUp(self):
		self.plan = Plan.objects.create(name='Quarterly', duration=3, price=2500, tax_rate=18)
		self.member = Member.objects.create(name='Asha Rao', email='asha@example.com', phone='9800000002')

	@override_settings(EMAIL_HOST='', EMAIL_HOST_USER='', EMAIL_HOST_PASSWORD='')
	def test_skipped_without_smtp(self):
		self.assertFalse(send_welcome_email(self.member))
		self.assertEqual(len(mail.outbox), 0)
		log = NotificationLog.objects.get()
		self.assertEqual(log.status, NotificationLog.STATUS_SKIPPED)
		self.assertEqual(log.kind, NotificationLog.KIND_WELCOME)

	@override_settings(**ENV_SMTP)
	def test_skipped_without_recipient(self):
		self.member.email = None
		self.assertFalse(send_welcome_email(self.member))
		self.assertEqual(NotificationLog.objects.get().status, NotificationLog.STATUS_SKIPPED)

	@override_settings(**ENV_SMTP)
	def test_skipped_when_notifications_disabled(self):
		gym = GymSettings.load()
		gym.email_notifications = False
		gym.save()
		self.assertFalse(send_expiry_reminder(self.member, 3))
		self.assertEqual(len(mail.outbox), 0)

	@override_settings(**ENV_SMTP)
	def test_welcome_sent_with_environment_smtp(self):
		self.assertTrue(send_welcome_email(self.member))
		self.assertEqual(len(mail.outbox), 1)
		message = mail.outbox[0]
		self.assertEqual(message.to, ['asha@example.com'])
		self.assertIn('Welcome to Atlas Fitness Elite', message.subject)
		self.assertIn(self.member.member_code, message.body)
		self.assertEqual(message.alternatives[0][1], 'text/html')
		self.assertEqual(NotificationLog.objects.get().status, NotificationLog.STATUS_SENT)

	@override_settings(**ENV_SMTP)
	def test_settings_record_takes_precedence(self):
		gym = GymSettings.load()
		gym.smtp_host = 'mail.atlasfitness.in'
		gym.smtp_port = 465
		gym.smtp_user = 'billing@atlasfitness.in'
		gym.smtp_password = 'p4ss'
		gym.save()

		with mock.patch('Administration.notifications.get_connection', wraps=mail.get_connection) as connect:
			send_expiry_reminder(self.member, 2)

		kwargs = connect.call_args.kwargs
		self.assertEqual(kwargs['host'], 'mail.atlasfitness.in')
		self.assertTrue(kwargs['use_ssl'])
		self.assertFalse(kwargs['use_tls'])
		self.assertEqual(mail.outbox[0].from_email, '"Atlas Fitness Elite" <billing@atlasfitness.in>')
		self.assertIn('2 Days', mail.outbox[0].subject)

	@override_settings(**ENV_SMTP)
	def test_receipt_contents(self):
		invoice, _ = services.create_invoice({'member': self.member.id, 'plan': self.plan.id})
		mail.outbox = []
		invoice, _ = services.mark_as_paid(invoice.id, {'payment_method': 'CASH'})
		self.assertEqual(len(mail.outbox), 1)
		body = mail.outbox[0].body
		self.assertIn(invoice.invoice_number, mail.outbox[0].subject)
		self.assertIn('2950.00', body)
		log = NotificationLog.objects.get(kind=NotificationLog.KIND_RECEIPT)
		self.assertEqual(log.invoice, invoice)

	@override_settings(**ENV_SMTP)
	def test_failure_raises_and_is_logged(self):
		invoice, _ = services.create_invoice({'member': self.member.id, 'plan': self.plan.id})
		with mock.patch('Administration.notifications.EmailMultiAlternatives.send', side_effect=SMTPException('relay refused')):
			with self.assertRaises(NotificationError):
				send_invoice_receipt(invoice)
		log = NotificationLog.objects.get(kind=NotificationLog.KIND_RECEIPT)
		self.assertEqual(log.status, NotificationLog.STATUS_FAILED)
		self.assertIn('relay refused', log.error)


class CreateStaffUserCommandTestCase(TestCase):
	def test_creates_then_updates(self):
		out = StringIO()
		call_command('create_staff_user', '--email', 'Owner@AtlasFitness.in', '--role', 'ADMIN', '--password', 'F1rstPass!', stdout=out)
		user = StaffUser.objects.get()
		self.assertEqual(user.role, StaffUser.ROLE_ADMIN)
		self.assertTrue(user.check_password('F1rstPass!'))

		call_command('create_staff_user', '--email', 'owner@atlasfitness.in', '--password', 'Sec0ndPass!', stdout=out)
		user.refresh_from_db()
		self.assertEqual(StaffUser.objects.count(), 1)
		self.assertEqual(user.role, StaffUser.ROLE_STAFF)
		self.assertTrue(user.check_password('Sec0ndPass!'))
