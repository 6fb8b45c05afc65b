import csv
import io
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from openpyxl import load_workbook
from rest_framework.test import APIClient

from Administration.models import StaffUser
from Analytics.views import EXPORT_COLUMNS
from Invoice import services
from Member.models import Member
from Plan.models import Plan


class AnalyticsTestCase(TestCase):
	def setUp(self):
		self.staff = StaffUser.objects.create_user('desk@atlasfitness.in', 'Desk1Pass!', role=StaffUser.ROLE_STAFF)
		self.client = APIClient()
		self.client.force_authenticate(user=self.staff)

		self.plan = Plan.objects.create(name='Monthly', duration=1, price=Decimal('1000.00'))
		self.paying = Member.objects.create(name='Paying Member', email='paying@example.com')
		self.lapsed = Member.objects.create(name='Lapsed Member', status=Member.STATUS_ACTIVE, plan_end_date=timezone.now() - timedelta(days=3))

		self.paid, _ = services.create_invoice({'member': self.paying.id, 'plan': self.plan.id, 'payment_status': 'PAID'})
		self.partial, _ = services.create_invoice({
			'member': self.paying.id, 'plan': self.plan.id, 'payment_status': 'PARTIAL', 'paid_amount': '400',
		})
		self.late, _ = services.create_invoice({
			'member': self.lapsed.id, 'plan': self.plan.id, 'due_date': timezone.now() - timedelta(days=1),
		})

	def test_requires_authentication(self):
		self.assertEqual(APIClient().get('/api/analytics/dashboard').status_code, 401)

	def test_dashboard(self):
		response = self.client.get('/api/analytics/dashboard')
		self.assertEqual(response.status_code, 200)
		stats = response.data['data']
		self.assertEqual(stats['total_revenue'], Decimal('1580.00'))
		self.assertEqual(stats['today_collections'], Decimal('1580.00'))
		self.assertEqual(stats['active_members'], 1)
		self.assertEqual(stats['overdue_payments'], 1)
		self.assertEqual([t['invoice_number'] for t in stats['recent_transactions']], [self.paid.invoice_number])

	def test_members_without_a_window_are_not_active(self):
		Member.objects.create(name='Walk In')
		Member.objects.create(name='Legacy Row', status=Member.STATUS_ACTIVE)
		response = self.client.get('/api/analytics/dashboard')
		self.assertEqual(response.data['data']['active_members'], 1)

	def test_revenue_by_month(self):
		response = self.client.get('/api/analytics/revenue')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(len(response.data['data']), 1)
		self.assertEqual(response.data['data'][0]['total'], Decimal('1180.00'))
		self.assertEqual(response.data['data'][0]['count'], 1)

	def test_members_by_month(self):
		response = self.client.get('/api/analytics/members')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(sum(row['count'] for row in response.data['data']), 2)

	def test_csv_export(self):
		response = self.client.get('/api/analytics/export/csv', {'status': 'paid'})
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response['Content-Type'], 'text/csv')
		self.assertIn('attachment;', response['Content-Disposition'])

		rows = list(csv.reader(io.StringIO(response.content.decode('utf-8'))))
		self.assertEqual(rows[0], EXPORT_COLUMNS)
		self.assertEqual(len(rows), 2)
		self.assertEqual(rows[1][0], self.paid.invoice_number)
		self.assertEqual(rows[1][1], self.paying.member_code)

	def test_csv_export_rejects_bad_dates(self):
		response = self.client.get('/api/analytics/export/csv', {'from': '31-01-2026'})
		self.assertEqual(response.status_code, 400)

	def test_csv_export_date_range(self):
		today = timezone.localdate()
		response = self.client.get('/api/analytics/export/csv', {
			'from': (today + timedelta(days=1)).isoformat(),
		})
		rows = list(csv.reader(io.StringIO(response.content.decode('utf-8'))))
		self.assertEqual(len(rows), 1)

		response = self.client.get('/api/analytics/export/csv', {'from': today.isoformat(), 'to': today.isoformat()})
		rows = list(csv.reader(io.StringIO(response.content.decode('utf-8'))))
		self.assertEqual(len(rows), 4)

	def test_excel_export(self):
		response = self.client.get('/api/analytics/export/excel')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response['Content-Type'], 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')

		ws = load_workbook(io.BytesIO(response.content)).active
		header = [cell.value for cell in ws[1]]
		self.assertEqual(header, EXPORT_COLUMNS)
		self.assertTrue(ws['A1'].font.bold)
		self.assertEqual(ws.max_row, 4)
		totals = sorted(ws.cell(row=r, column=EXPORT_COLUMNS.index('Total') + 1).value for r in range(2, 5))
		self.assertEqual(totals, [1180.0, 1180.0, 1180.0])
