from datetime import datetime, timedelta
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from Administration.models import StaffUser, NotificationLog
from Administration.notifications import NotificationError
from Invoice import services
from Invoice.models import Invoice
from Member.management.commands.run_scheduler import daily_job
from Member.models import Member
from Member.reminders import find_expiring_members, send_expiry_reminders
from Member.renewal import renew_membership
from Plan.models import Plan


class RenewalTestCase(TestCase):
	def setUp(self):
		self.monthly = Plan.objects.create(name='Monthly', duration=1, price=1000)
		self.quarterly = Plan.objects.create(name='Quarterly', duration=3, price=2700)
		self.now = timezone.make_aware(datetime(2026, 3, 10, 9, 0))

	def test_running_membership_is_extended(self):
		start = self.now - timedelta(days=20)
		end = self.now + timedelta(days=10)
		member = Member.objects.create(name='Vikram', plan=self.monthly, plan_start_date=start, plan_end_date=end)

		member = renew_membership(member.id, self.quarterly.id, now=self.now)
		self.assertEqual(member.plan_start_date, start)
		self.assertEqual(member.plan_end_date, timezone.make_aware(datetime(2026, 6, 20, 9, 0)))
		self.assertEqual(member.plan, self.quarterly)

	def test_lapsed_membership_restarts_today(self):
		member = Member.objects.create(
			name='Neha', plan=self.monthly, status=Member.STATUS_EXPIRED,
			plan_start_date=self.now - timedelta(days=40), plan_end_date=self.now - timedelta(days=5),
		)
		member = renew_membership(member.id, self.monthly.id, now=self.now)
		member.refresh_from_db()
		self.assertEqual(member.plan_start_date, self.now)
		self.assertEqual(member.plan_end_date, timezone.make_aware(datetime(2026, 4, 10, 9, 0)))
		self.assertEqual(member.status, Member.STATUS_ACTIVE)

	def test_month_end_is_clamped(self):
		now = timezone.make_aware(datetime(2026, 1, 31, 18, 30))
		member = Member.objects.create(name='Kabir')
		member = renew_membership(member.id, self.monthly.id, now=now)
		self.assertEqual(member.plan_end_date, timezone.make_aware(datetime(2026, 2, 28, 18, 30)))

	def test_unknown_ids_raise(self):
		member = Member.objects.create(name='Ira')
		with self.assertRaises(Member.DoesNotExist):
			renew_membership(9999, self.monthly.id)
		with self.assertRaises(Plan.DoesNotExist):
			renew_membership(member.id, 9999)


class EffectiveStatusTestCase(TestCase):
	def setUp(self):
		now = timezone.now()
		self.current = Member.objects.create(name='Current', status=Member.STATUS_ACTIVE, plan_end_date=now + timedelta(days=2, hours=12))
		self.lapsed = Member.objects.create(name='Lapsed', status=Member.STATUS_ACTIVE, plan_end_date=now - timedelta(hours=1))
		self.windowless = Member.objects.create(name='Windowless', status=Member.STATUS_ACTIVE)
		self.expired = Member.objects.create(name='Expired', status=Member.STATUS_EXPIRED)
		self.pending = Member.objects.create(name='Pending', status=Member.STATUS_PENDING)

	def test_properties(self):
		self.assertEqual(self.current.effective_status, Member.STATUS_ACTIVE)
		self.assertEqual(self.current.days_remaining, 3)
		self.assertEqual(self.lapsed.effective_status, Member.STATUS_EXPIRED)
		self.assertEqual(self.lapsed.days_remaining, 0)
		self.assertEqual(self.pending.days_remaining, 0)
		self.assertEqual(self.windowless.effective_status, Member.STATUS_PENDING)

	def test_new_members_start_pending(self):
		member = Member.objects.create(name='Fresh')
		self.assertEqual(member.status, Member.STATUS_PENDING)
		self.assertEqual(member.effective_status, Member.STATUS_PENDING)

	def test_queryset_filter(self):
		active = set(Member.objects.with_effective_status(Member.STATUS_ACTIVE))
		expired = set(Member.objects.with_effective_status(Member.STATUS_EXPIRED))
		pending = set(Member.objects.with_effective_status(Member.STATUS_PENDING))
		self.assertEqual(active, {self.current})
		self.assertEqual(expired, {self.lapsed, self.expired})
		self.assertEqual(pending, {self.pending, self.windowless})


@override_settings(EXPIRY_REMINDER_WINDOW_DAYS=5)
class ExpiryReminderTestCase(TestCase):
	def setUp(self):
		self.now = timezone.make_aware(datetime(2026, 3, 10, 9, 0))
		self.plan = Plan.objects.create(name='Monthly', duration=1, price=1000)

	def member(self, name, end, **kwargs):
		kwargs.setdefault('email', f'{name.lower()}@example.com')
		kwargs.setdefault('status', Member.STATUS_ACTIVE)
		return Member.objects.create(name=name, plan=self.plan, plan_end_date=end, **kwargs)

	def test_window(self):
		today = self.member('Today', timezone.make_aware(datetime(2026, 3, 10, 20, 0)))
		last_day = self.member('LastDay', timezone.make_aware(datetime(2026, 3, 15, 23, 0)))
		self.member('TooLate', timezone.make_aware(datetime(2026, 3, 16, 10, 0)))
		self.member('Yesterday', timezone.make_aware(datetime(2026, 3, 9, 10, 0)))
		self.member('Inactive', timezone.make_aware(datetime(2026, 3, 12, 10, 0)), status=Member.STATUS_EXPIRED)
		self.member('NoEmail', timezone.make_aware(datetime(2026, 3, 12, 10, 0)), email=None)
		self.member('BlankEmail', timezone.make_aware(datetime(2026, 3, 12, 10, 0)), email='')

		self.assertEqual(list(find_expiring_members(now=self.now)), [today, last_day])

	def test_one_failure_does_not_stop_the_batch(self):
		self.member('First', timezone.make_aware(datetime(2026, 3, 11, 10, 0)))
		self.member('Second', timezone.make_aware(datetime(2026, 3, 12, 10, 0)))
		self.member('Third', timezone.make_aware(datetime(2026, 3, 13, 10, 0)))

		outcomes = [NotificationError('mailbox full'), True, False]
		with mock.patch('Member.reminders.send_expiry_reminder', side_effect=outcomes) as send:
			summary = send_expiry_reminders(now=self.now)

		self.assertEqual(send.call_count, 3)
		self.assertEqual(summary, {'matched': 3, 'sent': 1, 'skipped': 1, 'failed': 1})
		# days left rounds up partial days
		self.assertEqual(send.call_args_list[0].args[1], 2)

	@override_settings(EMAIL_HOST='', EMAIL_HOST_USER='', EMAIL_HOST_PASSWORD='')
	def test_command_reports_summary(self):
		self.member('Soon', timezone.now() + timedelta(days=1))
		out = StringIO()
		call_command('send_expiry_reminders', stdout=out)
		self.assertIn('Matched 1, sent 0, skipped 1, failed 0', out.getvalue())
		self.assertEqual(NotificationLog.objects.get().status, NotificationLog.STATUS_SKIPPED)

	def test_daily_job_marks_overdue_even_if_reminders_fail(self):
		member = self.member('Late', None)
		services.create_invoice({'member': member.id, 'plan': self.plan.id, 'due_date': timezone.now() - timedelta(days=2)})

		with mock.patch('Member.management.commands.run_scheduler.send_expiry_reminders', side_effect=RuntimeError('boom')):
			daily_job()
		self.assertEqual(Invoice.objects.get().payment_status, Invoice.STATUS_OVERDUE)


class MemberAPITestCase(TestCase):
	def setUp(self):
		self.admin = StaffUser.objects.create_user('admin@atlasfitness.in', 'Adm1nPass!', role=StaffUser.ROLE_ADMIN)
		self.staff = StaffUser.objects.create_user('desk@atlasfitness.in', 'Desk1Pass!', role=StaffUser.ROLE_STAFF)
		self.plan = Plan.objects.create(name='Monthly', duration=1, price=1000)
		self.client = APIClient()
		self.client.force_authenticate(user=self.staff)

	def test_create_with_plan_waits_for_first_payment(self):
		response = self.client.post('/api/members', {
			'name': 'Meera Iyer',
			'email': 'meera@example.com',
			'phone': '9800000003',
			'plan_id': self.plan.id,
			'status': 'ACTIVE',
		}, format='json')
		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['data']['member_code'], 'AFE-001')
		self.assertEqual(response.data['data']['plan']['id'], self.plan.id)
		self.assertEqual(response.data['data']['effective_status'], 'PENDING')
		self.assertEqual(NotificationLog.objects.get().kind, NotificationLog.KIND_WELCOME)

		member = Member.objects.get()
		self.assertEqual(member.status, Member.STATUS_PENDING)
		self.assertIsNone(member.plan_start_date)
		self.assertIsNone(member.plan_end_date)

		# one paid month buys exactly one month
		now = timezone.make_aware(datetime(2026, 1, 31, 10, 0))
		services.create_invoice({'member': member.id, 'plan': self.plan.id, 'payment_status': 'PAID'}, now=now)
		member.refresh_from_db()
		self.assertEqual(member.status, Member.STATUS_ACTIVE)
		self.assertEqual(member.plan_start_date, now)
		self.assertEqual(member.plan_end_date, timezone.make_aware(datetime(2026, 2, 28, 10, 0)))

	def test_create_without_plan_and_blank_email(self):
		response = self.client.post('/api/members', {'name': 'Walk In', 'email': ''}, format='json')
		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['data']['effective_status'], 'PENDING')
		member = Member.objects.get()
		self.assertIsNone(member.email)
		self.assertIsNone(member.plan_end_date)
		self.assertEqual(member.status, Member.STATUS_PENDING)
		self.assertFalse(Member.objects.with_effective_status(Member.STATUS_ACTIVE).exists())

	def test_create_rejects_inactive_plan(self):
		self.plan.is_active = False
		self.plan.save()
		response = self.client.post('/api/members', {'name': 'Late Joiner', 'plan_id': self.plan.id}, format='json')
		self.assertEqual(response.status_code, 400)
		self.assertIn('plan_id', response.data['errors'])

	def test_welcome_failure_is_a_warning(self):
		with mock.patch('Member.views.send_welcome_email', side_effect=NotificationError('smtp down')):
			response = self.client.post('/api/members', {'name': 'Dev', 'email': 'dev@example.com'}, format='json')
		self.assertEqual(response.status_code, 201)
		self.assertEqual(len(response.data['warnings']), 1)
		self.assertTrue(Member.objects.filter(name='Dev').exists())

	def test_list_search_and_status(self):
		Member.objects.create(name='Anil', phone='9811111111', status=Member.STATUS_ACTIVE, plan_end_date=timezone.now() + timedelta(days=5))
		Member.objects.create(name='Sunil', phone='9822222222', status=Member.STATUS_ACTIVE, plan_end_date=timezone.now() - timedelta(days=5))

		response = self.client.get('/api/members', {'search': '98111'})
		self.assertEqual(response.data['total'], 1)
		self.assertEqual(response.data['data'][0]['name'], 'Anil')

		response = self.client.get('/api/members', {'status': 'expired'})
		self.assertEqual([m['name'] for m in response.data['data']], ['Sunil'])
		self.assertEqual(response.data['data'][0]['effective_status'], 'EXPIRED')

	def test_update_ignores_plan_dates(self):
		member = Member.objects.create(name='Old Name')
		response = self.client.patch(f'/api/members/{member.id}', {
			'name': 'New Name',
			'plan_end_date': '2030-01-01T00:00:00Z',
		}, format='json')
		self.assertEqual(response.status_code, 200)
		member.refresh_from_db()
		self.assertEqual(member.name, 'New Name')
		self.assertIsNone(member.plan_end_date)

	def test_detail_includes_invoices(self):
		member = Member.objects.create(name='Billed')
		services.create_invoice({'member': member.id, 'plan': self.plan.id})
		response = self.client.get(f'/api/members/{member.id}')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(len(response.data['data']['invoices']), 1)
		self.assertEqual(self.client.get('/api/members/999').status_code, 404)

	def test_delete_is_admin_only_and_cascades(self):
		member = Member.objects.create(name='Leaving')
		services.create_invoice({'member': member.id, 'plan': self.plan.id})

		self.assertEqual(self.client.delete(f'/api/members/{member.id}').status_code, 403)

		self.client.force_authenticate(user=self.admin)
		self.assertEqual(self.client.delete(f'/api/members/{member.id}').status_code, 200)
		self.assertFalse(Member.objects.exists())
		self.assertFalse(Invoice.objects.exists())
