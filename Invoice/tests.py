from datetime import datetime, timedelta
from decimal import Decimal
from io import StringIO
from unittest import mock

from dateutil.relativedelta import relativedelta
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from Administration.models import StaffUser
from Administration.notifications import NotificationError
from Invoice import services
from Invoice.models import Invoice
from Invoice.numbering import InvoiceNumberConflict, next_invoice_number, next_member_code
from Invoice.tax import compute_invoice_totals, compute_order_totals
from Member.models import Member
from Plan.models import Plan


def make_plan(**kwargs):
	defaults = {'name': 'Monthly', 'duration': 1, 'price': Decimal('1000.00'), 'tax_rate': Decimal('18.00')}
	defaults.update(kwargs)
	return Plan.objects.create(**defaults)


def make_member(**kwargs):
	defaults = {'name': 'Rahul Sharma', 'email': 'rahul@example.com', 'phone': '9800000001'}
	defaults.update(kwargs)
	return Member.objects.create(**defaults)


class TaxCalculatorTestCase(TestCase):
	def test_percentage_discount_example(self):
		totals = compute_invoice_totals(1000, 10, 'PERCENTAGE', 18, 0)
		self.assertEqual(totals.taxable_amount, Decimal('900'))
		self.assertEqual(totals.gst_amount, Decimal('162'))
		self.assertEqual(totals.cgst, Decimal('81'))
		self.assertEqual(totals.sgst, Decimal('81'))
		self.assertEqual(totals.total_amount, Decimal('1062'))

	def test_discount_never_makes_taxable_negative(self):
		totals = compute_invoice_totals(100, 150, 'AMOUNT', 18, 0)
		self.assertEqual(totals.taxable_amount, Decimal('0'))
		self.assertEqual(totals.gst_amount, Decimal('0'))
		self.assertEqual(totals.total_amount, Decimal('0'))
		self.assertEqual(totals.discount_amount, Decimal('100'))

	def test_totals_invariant_holds_with_late_fee(self):
		cases = [
			(Decimal('999.99'), Decimal('0'), 'AMOUNT', Decimal('18'), Decimal('50')),
			(Decimal('1234.56'), Decimal('7.5'), 'PERCENTAGE', Decimal('12'), Decimal('0')),
			(Decimal('0.05'), Decimal('0'), 'AMOUNT', Decimal('18'), Decimal('0')),
			(Decimal('2500'), Decimal('333.33'), 'AMOUNT', Decimal('5'), Decimal('99.99')),
		]
		for base, discount, discount_type, rate, late_fee in cases:
			totals = compute_invoice_totals(base, discount, discount_type, rate, late_fee)
			self.assertEqual(totals.total_amount, totals.taxable_amount + totals.gst_amount + totals.late_fee)
			self.assertEqual(totals.cgst, totals.sgst)
			self.assertEqual(totals.cgst + totals.sgst, totals.gst_amount)

	def test_odd_paise_split_exactly(self):
		# 18% of 0.05 rounds to 0.01, which halves to 0.005 each
		totals = compute_invoice_totals('0.05', 0, 'AMOUNT', 18, 0)
		self.assertEqual(totals.gst_amount, Decimal('0.01'))
		self.assertEqual(totals.cgst, Decimal('0.005'))
		self.assertEqual(totals.cgst * 2, totals.gst_amount)

	def test_previous_due_is_not_taxed(self):
		totals = compute_invoice_totals(1000, 0, 'AMOUNT', 18, 0, previous_due=500)
		self.assertEqual(totals.gst_amount, Decimal('180'))
		self.assertEqual(totals.total_amount, Decimal('1680'))

	def test_unusable_inputs_become_zero(self):
		totals = compute_invoice_totals('abc', None, 'AMOUNT', 'NaN', '')
		self.assertEqual(totals.total_amount, Decimal('0'))
		totals = compute_invoice_totals(1000, '-50', 'AMOUNT', 'Infinity', -10)
		self.assertEqual(totals.taxable_amount, Decimal('1000'))
		self.assertEqual(totals.gst_amount, Decimal('0'))
		self.assertEqual(totals.late_fee, Decimal('0'))

	def test_order_totals_spread_discount_and_tax_per_line(self):
		totals = compute_order_totals(
			[
				{'price': '100', 'quantity': 2, 'tax_rate': 5},
				{'price': '200', 'quantity': 1, 'tax_rate': 18},
			],
			discount=10,
			discount_type='PERCENTAGE',
		)
		self.assertEqual(totals.subtotal, Decimal('400'))
		self.assertEqual(totals.discount_amount, Decimal('40'))
		self.assertEqual(totals.taxable_amount, Decimal('360'))
		# 180 * 5% + 180 * 18%
		self.assertEqual(totals.gst_amount, Decimal('41.40'))
		self.assertEqual(totals.cgst + totals.sgst, totals.gst_amount)
		self.assertEqual(totals.total_amount, Decimal('401.40'))

	def test_order_totals_empty_cart(self):
		totals = compute_order_totals([], discount=50)
		self.assertEqual(totals.total_amount, Decimal('0'))
		self.assertEqual(totals.discount_amount, Decimal('0'))


class InvoiceNumberingTestCase(TestCase):
	def setUp(self):
		self.plan = make_plan()
		self.member = make_member()

	def test_sequential_numbers_within_a_year(self):
		now = timezone.make_aware(datetime(2026, 3, 1, 12, 0))
		numbers = [next_invoice_number(now) for _ in range(3)]
		self.assertEqual(numbers, ['INV-2026-0001', 'INV-2026-0002', 'INV-2026-0003'])

	def test_sequence_restarts_each_year(self):
		december = timezone.make_aware(datetime(2025, 12, 31, 23, 0))
		january = timezone.make_aware(datetime(2026, 1, 1, 0, 30))
		self.assertEqual(next_invoice_number(december), 'INV-2025-0001')
		self.assertEqual(next_invoice_number(december), 'INV-2025-0002')
		self.assertEqual(next_invoice_number(january), 'INV-2026-0001')

	def test_counter_seeded_from_existing_invoices(self):
		Invoice.objects.create(
			invoice_number='INV-2024-0041', member=self.member, plan=self.plan, due_date=timezone.now(),
		)
		now = timezone.make_aware(datetime(2024, 6, 1, 10, 0))
		self.assertEqual(next_invoice_number(now), 'INV-2024-0042')

	def test_number_grows_past_four_digits(self):
		Invoice.objects.create(
			invoice_number='INV-2023-9999', member=self.member, plan=self.plan, due_date=timezone.now(),
		)
		now = timezone.make_aware(datetime(2023, 6, 1, 10, 0))
		self.assertEqual(next_invoice_number(now), 'INV-2023-10000')

	def test_member_codes_are_sequential(self):
		second = make_member(name='Second', email='second@example.com')
		self.assertEqual(self.member.member_code, 'AFE-001')
		self.assertEqual(second.member_code, 'AFE-002')
		self.assertEqual(next_member_code(), 'AFE-003')

	def test_create_retries_after_number_clash(self):
		now = timezone.now()
		year = timezone.localtime(now).year
		data = {'member': self.member.id, 'plan': self.plan.id}

		first, _ = services.create_invoice(data, now=now)
		self.assertEqual(first.invoice_number, f'INV-{year}-0001')

		# inserted behind the counter's back
		Invoice.objects.create(invoice_number=f'INV-{year}-0002', member=self.member, plan=self.plan, due_date=now)

		second, _ = services.create_invoice(data, now=now)
		self.assertEqual(second.invoice_number, f'INV-{year}-0003')

	def test_conflict_raised_when_retries_exhausted(self):
		existing, _ = services.create_invoice({'member': self.member.id, 'plan': self.plan.id})
		with mock.patch('Invoice.services.next_invoice_number', return_value=existing.invoice_number):
			with self.assertRaises(InvoiceNumberConflict):
				services.create_invoice({'member': self.member.id, 'plan': self.plan.id})
		self.assertEqual(Invoice.objects.count(), 1)


class InvoiceLifecycleTestCase(TestCase):
	def setUp(self):
		self.plan = make_plan()
		self.member = make_member()
		self.now = timezone.now()

	def create(self, **data):
		payload = {'member': self.member.id, 'plan': self.plan.id}
		payload.update(data)
		return services.create_invoice(payload, now=self.now)

	def test_create_snapshots_plan_pricing(self):
		invoice, warnings = self.create()
		self.assertEqual(warnings, [])
		self.assertEqual(invoice.base_amount, Decimal('1000.00'))
		self.assertEqual(invoice.amount, Decimal('1000.00'))
		self.assertEqual(invoice.gst_amount, Decimal('180.00'))
		self.assertEqual(invoice.total_amount, Decimal('1180.00'))
		self.assertEqual(invoice.paid_amount, Decimal('0.00'))
		self.assertEqual(invoice.payment_status, Invoice.STATUS_PENDING)

		self.plan.price = Decimal('1500.00')
		self.plan.tax_rate = Decimal('5.00')
		self.plan.save()
		invoice.refresh_from_db()
		self.assertEqual(invoice.total_amount, Decimal('1180.00'))
		self.assertEqual(invoice.tax_rate, Decimal('18.00'))

	def test_create_rejects_unknown_member_and_inactive_plan(self):
		with self.assertRaises(ValidationError) as ctx:
			services.create_invoice({'member': 9999, 'plan': self.plan.id})
		self.assertIn('member', ctx.exception.message_dict)

		self.plan.is_active = False
		self.plan.save()
		with self.assertRaises(ValidationError) as ctx:
			self.create()
		self.assertIn('plan', ctx.exception.message_dict)
		self.assertEqual(Invoice.objects.count(), 0)

	def test_pending_invoice_does_not_renew(self):
		self.create()
		self.member.refresh_from_db()
		self.assertIsNone(self.member.plan_end_date)

	def test_create_as_paid_settles_and_renews(self):
		invoice, warnings = self.create(payment_status='PAID', paid_amount=0)
		self.assertEqual(warnings, [])
		self.assertEqual(invoice.paid_amount, invoice.total_amount)
		self.assertIsNotNone(invoice.paid_date)
		self.assertIsNotNone(invoice.membership_renewed_at)

		self.member.refresh_from_db()
		self.assertEqual(self.member.status, Member.STATUS_ACTIVE)
		self.assertEqual(self.member.plan_id, self.plan.id)
		self.assertEqual(self.member.plan_end_date, self.now + relativedelta(months=1))

	def test_update_recomputes_totals(self):
		invoice, _ = self.create()
		invoice, _ = services.update_invoice(invoice.id, {'late_fee': Decimal('100'), 'discount': Decimal('10'), 'discount_type': 'PERCENTAGE'})
		self.assertEqual(invoice.amount, Decimal('900.00'))
		self.assertEqual(invoice.gst_amount, Decimal('162.00'))
		self.assertEqual(invoice.total_amount, Decimal('1162.00'))
		self.assertEqual(invoice.total_amount, invoice.amount + invoice.gst_amount + invoice.late_fee + invoice.previous_due)

	def test_paid_side_effects_fire_only_on_entry(self):
		invoice, _ = self.create()
		with mock.patch('Invoice.services.send_invoice_receipt') as send_receipt:
			invoice, warnings = services.update_invoice(invoice.id, {'payment_status': 'PAID'}, now=self.now)
			self.assertEqual(warnings, [])
			self.assertEqual(send_receipt.call_count, 1)
			self.member.refresh_from_db()
			first_end = self.member.plan_end_date

			# edits to an invoice that is already PAID
			services.update_invoice(invoice.id, {'notes': 'front desk'}, now=self.now)
			services.update_invoice(invoice.id, {'payment_status': 'PAID'}, now=self.now)
			services.mark_as_paid(invoice.id, {'payment_method': 'CASH'}, now=self.now)
			self.assertEqual(send_receipt.call_count, 1)

		self.member.refresh_from_db()
		self.assertEqual(self.member.plan_end_date, first_end)
		invoice.refresh_from_db()
		self.assertEqual(invoice.paid_amount, invoice.total_amount)

	def test_renewal_happens_once_per_invoice_even_after_reopening(self):
		invoice, _ = self.create()
		services.mark_as_paid(invoice.id, now=self.now)
		self.member.refresh_from_db()
		end_after_payment = self.member.plan_end_date

		services.update_invoice(invoice.id, {'payment_status': 'PENDING'}, now=self.now)
		services.update_invoice(invoice.id, {'payment_status': 'PAID'}, now=self.now)
		self.member.refresh_from_db()
		self.assertEqual(self.member.plan_end_date, end_after_payment)

	def test_mark_as_paid_merges_payment_details(self):
		invoice, _ = self.create(paid_amount=Decimal('200'), payment_status='PARTIAL')
		invoice, _ = services.mark_as_paid(invoice.id, {
			'payment_method': 'ONLINE',
			'razorpay_order_id': 'order_1',
			'razorpay_payment_id': 'pay_1',
		}, now=self.now)
		self.assertEqual(invoice.payment_status, Invoice.STATUS_PAID)
		self.assertEqual(invoice.paid_amount, Decimal('1180.00'))
		self.assertEqual(invoice.paid_date, self.now)
		self.assertEqual(invoice.payment_method, 'ONLINE')
		self.assertEqual(invoice.razorpay_payment_id, 'pay_1')

	def test_receipt_failure_is_reported_not_raised(self):
		with mock.patch('Invoice.services.send_invoice_receipt', side_effect=NotificationError('smtp down')):
			invoice, warnings = self.create(payment_status='PAID')
		self.assertEqual(len(warnings), 1)
		self.assertIn('smtp down', warnings[0])
		invoice.refresh_from_db()
		self.assertEqual(invoice.payment_status, Invoice.STATUS_PAID)
		self.assertEqual(invoice.total_amount, invoice.amount + invoice.gst_amount + invoice.late_fee + invoice.previous_due)
		self.assertEqual(invoice.total_amount, Decimal('1180.00'))
		self.assertEqual(invoice.paid_amount, invoice.total_amount)
		self.member.refresh_from_db()
		self.assertIsNotNone(self.member.plan_end_date)

	def test_renewal_failure_leaves_claim_unset(self):
		with mock.patch('Invoice.services.renew_membership', side_effect=RuntimeError('db hiccup')):
			invoice, warnings = self.create(payment_status='PAID')
		self.assertTrue(any('renewal' in w for w in warnings))
		invoice.refresh_from_db()
		self.assertEqual(invoice.payment_status, Invoice.STATUS_PAID)
		self.assertIsNone(invoice.membership_renewed_at)

	def test_carry_previous_due(self):
		first, _ = self.create()
		second, _ = self.create(payment_status='PARTIAL', paid_amount=Decimal('500'))
		self.assertEqual(services.outstanding_balance(self.member), Decimal('1860.00'))

		third, _ = self.create(carry_previous_due=True)
		self.assertEqual(third.previous_due, Decimal('1860.00'))
		self.assertEqual(third.gst_amount, Decimal('180.00'))
		self.assertEqual(third.total_amount, Decimal('3040.00'))

		first.refresh_from_db()
		second.refresh_from_db()
		self.assertEqual(first.carried_into, third)
		self.assertEqual(second.carried_into, third)
		self.assertEqual(services.outstanding_balance(self.member), Decimal('3040.00'))

		# recomputing the carrying invoice keeps the carried balance
		third, _ = services.update_invoice(third.id, {'late_fee': Decimal('60')})
		self.assertEqual(third.total_amount, Decimal('3100.00'))

		services.delete_invoice(third.id)
		first.refresh_from_db()
		self.assertIsNone(first.carried_into)
		self.assertEqual(services.outstanding_balance(self.member), Decimal('1860.00'))

	def test_delete_keeps_other_numbers(self):
		first, _ = self.create()
		second, _ = self.create()
		services.delete_invoice(first.id)
		third, _ = self.create()
		second.refresh_from_db()
		self.assertTrue(third.invoice_number > second.invoice_number)
		self.assertFalse(Invoice.objects.filter(invoice_number=first.invoice_number).exists())
		self.assertTrue(Member.objects.filter(pk=self.member.pk).exists())

	def test_delete_missing_invoice(self):
		with self.assertRaises(Invoice.DoesNotExist):
			services.delete_invoice(12345)

	def test_overdue_listing_and_marking(self):
		yesterday = self.now - timedelta(days=1)
		late, _ = self.create(due_date=yesterday)
		self.create(due_date=self.now + timedelta(days=3))
		self.create(due_date=yesterday, payment_status='PAID')

		overdue = list(services.list_overdue(now=self.now))
		self.assertEqual(overdue, [late])

		self.assertEqual(services.mark_overdue(now=self.now), 1)
		late.refresh_from_db()
		self.assertEqual(late.payment_status, Invoice.STATUS_OVERDUE)
		self.assertEqual(list(services.list_overdue(now=self.now)), [late])

	def test_revenue_and_today_collections(self):
		self.assertEqual(services.total_revenue(), Decimal('0.00'))
		self.create(payment_status='PAID')
		self.create(payment_status='PARTIAL', paid_amount=Decimal('300'))
		self.create()
		self.assertEqual(services.total_revenue(), Decimal('1480.00'))
		self.assertEqual(services.today_collections(), Decimal('1480.00'))
		self.assertEqual(services.today_collections(now=timezone.now() + timedelta(days=2)), Decimal('0.00'))


class ReconcilePaidAmountsTestCase(TestCase):
	def setUp(self):
		plan = make_plan()
		member = make_member()
		self.invoice, _ = services.create_invoice({'member': member.id, 'plan': plan.id})
		# drift as left behind by older code paths
		Invoice.objects.filter(pk=self.invoice.pk).update(payment_status='PAID', paid_amount=Decimal('0'))

	def test_dry_run_changes_nothing(self):
		out = StringIO()
		call_command('reconcile_paid_amounts', '--dry-run', stdout=out)
		self.assertIn(self.invoice.invoice_number, out.getvalue())
		self.invoice.refresh_from_db()
		self.assertEqual(self.invoice.paid_amount, Decimal('0.00'))

	def test_reconcile_fixes_drift(self):
		out = StringIO()
		call_command('reconcile_paid_amounts', stdout=out)
		self.invoice.refresh_from_db()
		self.assertEqual(self.invoice.paid_amount, self.invoice.total_amount)
		self.assertIsNotNone(self.invoice.paid_date)
		self.assertEqual(services.drifted_paid_invoices().count(), 0)


class InvoiceAPITestCase(TestCase):
	def setUp(self):
		self.admin = StaffUser.objects.create_user('admin@atlasfitness.in', 'secret123', role=StaffUser.ROLE_ADMIN)
		self.staff = StaffUser.objects.create_user('desk@atlasfitness.in', 'secret123', role=StaffUser.ROLE_STAFF)
		self.plan = make_plan()
		self.member = make_member()
		self.client = APIClient()
		self.client.force_authenticate(user=self.staff)

	def test_requires_authentication(self):
		response = APIClient().get('/api/invoices')
		self.assertEqual(response.status_code, 401)
		self.assertFalse(response.data['success'])

	def test_create_and_list(self):
		response = self.client.post('/api/invoices', {
			'member_id': self.member.id,
			'plan_id': self.plan.id,
			'discount': '10',
			'discount_type': 'PERCENTAGE',
		}, format='json')
		self.assertEqual(response.status_code, 201)
		self.assertTrue(response.data['success'])
		data = response.data['data']
		self.assertEqual(data['total_amount'], Decimal('1062.00'))
		self.assertEqual(data['member']['member_code'], self.member.member_code)
		self.assertEqual(response.data['warnings'], [])
		self.assertEqual(Invoice.objects.get().created_by, self.staff)

		response = self.client.get('/api/invoices', {'member_id': self.member.id, 'status': 'pending'})
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['total'], 1)
		self.assertEqual(len(response.data['data']), 1)

	def test_create_validation_errors(self):
		response = self.client.post('/api/invoices', {'member_id': self.member.id}, format='json')
		self.assertEqual(response.status_code, 400)
		self.assertIn('plan_id', response.data['errors'])

		response = self.client.post('/api/invoices', {'member_id': 999, 'plan_id': self.plan.id}, format='json')
		self.assertEqual(response.status_code, 400)
		self.assertIn('member', response.data['errors'])

	def test_update_and_mark_paid(self):
		invoice, _ = services.create_invoice({'member': self.member.id, 'plan': self.plan.id})
		response = self.client.put(f'/api/invoices/{invoice.id}', {'late_fee': '50'}, format='json')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['data']['total_amount'], Decimal('1230.00'))

		response = self.client.post(f'/api/invoices/{invoice.id}/mark-paid', {'payment_method': 'UPI'}, format='json')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['data']['payment_status'], 'PAID')
		self.assertEqual(response.data['data']['paid_amount'], Decimal('1230.00'))
		self.assertEqual(response.data['data']['payment_method'], 'UPI')

	def test_not_found(self):
		self.assertEqual(self.client.get('/api/invoices/999').status_code, 404)
		self.assertEqual(self.client.put('/api/invoices/999', {'notes': 'x'}, format='json').status_code, 404)
		self.assertEqual(self.client.post('/api/invoices/999/mark-paid', {}, format='json').status_code, 404)

	def test_delete_requires_admin(self):
		invoice, _ = services.create_invoice({'member': self.member.id, 'plan': self.plan.id})
		response = self.client.delete(f'/api/invoices/{invoice.id}')
		self.assertEqual(response.status_code, 403)
		self.assertTrue(Invoice.objects.filter(pk=invoice.pk).exists())

		self.client.force_authenticate(user=self.admin)
		response = self.client.delete(f'/api/invoices/{invoice.id}')
		self.assertEqual(response.status_code, 200)
		self.assertFalse(Invoice.objects.filter(pk=invoice.pk).exists())

	def test_overdue_and_previous_due_endpoints(self):
		yesterday = timezone.now() - timedelta(days=1)
		services.create_invoice({'member': self.member.id, 'plan': self.plan.id, 'due_date': yesterday})

		response = self.client.get('/api/invoices/overdue')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(len(response.data['data']), 1)

		response = self.client.get('/api/invoices/previous-due', {'member_id': self.member.id})
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['data']['previous_due'], Decimal('1180.00'))

		self.assertEqual(self.client.get('/api/invoices/previous-due').status_code, 400)
		self.assertEqual(self.client.get('/api/invoices/previous-due', {'member_id': 999}).status_code, 404)

	def test_number_conflict_surfaces_as_server_error(self):
		with mock.patch('Invoice.views.services.create_invoice', side_effect=InvoiceNumberConflict('exhausted')):
			response = self.client.post('/api/invoices', {'member_id': self.member.id, 'plan_id': self.plan.id}, format='json')
		self.assertEqual(response.status_code, 500)
		self.assertFalse(response.data['success'])
