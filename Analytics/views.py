import csv
import logging
from datetime import datetime, time

from django.db.models import Count, Sum
from django.db.models.functions import TruncMonth
from django.http import HttpResponse
from django.utils import timezone
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from openpyxl import Workbook
from openpyxl.styles import Font
from rest_framework.decorators import api_view

from AtlasFitness.responses import success_response, error_response, server_error_response
from Invoice import services as invoice_services
from Invoice.models import Invoice
from Invoice.serializers import InvoiceSerializer
from Member.models import Member

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "Invoice Number", "Member Code", "Member Name", "Plan", "Taxable Amount", "GST", "CGST", "SGST",
    "Late Fee", "Previous Due", "Total", "Paid", "Status", "Due Date", "Paid Date", "Payment Method", "Created At",
]

EXPORT_PARAMS = [
    openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING, required=False,
                      enum=[c for c, _ in Invoice.STATUS_CHOICES]),
    openapi.Parameter('from', openapi.IN_QUERY, type=openapi.TYPE_STRING, format=openapi.FORMAT_DATE, required=False,
                      description="Created on or after (YYYY-MM-DD)"),
    openapi.Parameter('to', openapi.IN_QUERY, type=openapi.TYPE_STRING, format=openapi.FORMAT_DATE, required=False,
                      description="Created on or before (YYYY-MM-DD)"),
]


def _local_date(value):
    return timezone.localtime(value).strftime("%Y-%m-%d") if value else ""


def _parse_day(value, end_of_day=False):
    day = datetime.strptime(value, "%Y-%m-%d").date()
    return timezone.make_aware(datetime.combine(day, time.max if end_of_day else time.min))


def export_queryset(query_params):
    """Invoices for export, filtered by ``status``, ``from`` and ``to``. Raises ValueError on bad dates."""
    invoices = Invoice.objects.select_related('member', 'plan').order_by('created_at')
    status_filter = query_params.get('status', '').strip().upper()
    if status_filter:
        invoices = invoices.filter(payment_status=status_filter)
    if query_params.get('from'):
        invoices = invoices.filter(created_at__gte=_parse_day(query_params['from']))
    if query_params.get('to'):
        invoices = invoices.filter(created_at__lte=_parse_day(query_params['to'], end_of_day=True))
    return invoices


def export_row(invoice):
    return [
        invoice.invoice_number,
        invoice.member.member_code,
        invoice.member.name,
        invoice.plan.name,
        float(invoice.amount),
        float(invoice.gst_amount),
        float(invoice.cgst),
        float(invoice.sgst),
        float(invoice.late_fee),
        float(invoice.previous_due),
        float(invoice.total_amount),
        float(invoice.paid_amount),
        invoice.payment_status,
        _local_date(invoice.due_date),
        _local_date(invoice.paid_date),
        invoice.payment_method,
        _local_date(invoice.created_at),
    ]


@swagger_auto_schema(
    method="get",
    operation_summary="Dashboard Statistics",
    operation_description="Total revenue, active members, today's collections, overdue count and the last 10 payments.",
    responses={200: openapi.Response(description="Dashboard statistics")},
    tags=['Analytics'],
    security=[{'Bearer': []}]
)
@api_view(["GET"])
def dashboard_view(request):
    try:
        recent = Invoice.objects.filter(
            payment_status=Invoice.STATUS_PAID,
        ).select_related('member', 'plan', 'carried_into').order_by('-paid_date')[:10]

        stats = {
            'total_revenue': invoice_services.total_revenue(),
            'active_members': Member.objects.with_effective_status(Member.STATUS_ACTIVE).count(),
            'today_collections': invoice_services.today_collections(),
            'overdue_payments': invoice_services.list_overdue().count(),
            'recent_transactions': InvoiceSerializer(recent, many=True).data,
        }
        return success_response("Dashboard statistics", stats)
    except Exception as e:
        logger.error("Error building dashboard: %s", e, exc_info=True)
        return server_error_response()


@swagger_auto_schema(
    method="get",
    operation_summary="Revenue by Month",
    operation_description="Invoice totals of PAID invoices grouped by the month they were paid.",
    responses={200: openapi.Response(description="Monthly revenue series")},
    tags=['Analytics'],
    security=[{'Bearer': []}]
)
@api_view(["GET"])
def revenue_view(request):
    try:
        rows = (
            Invoice.objects.filter(payment_status=Invoice.STATUS_PAID, paid_date__isnull=False)
            .annotate(month=TruncMonth('paid_date'))
            .values('month')
            .annotate(total=Sum('total_amount'), count=Count('id'))
            .order_by('month')
        )
        revenue = [
            {'year': row['month'].year, 'month': row['month'].month, 'total': row['total'], 'count': row['count']}
            for row in rows
        ]
        return success_response("Revenue by month", revenue)
    except Exception as e:
        logger.error("Error building revenue series: %s", e, exc_info=True)
        return server_error_response()


@swagger_auto_schema(
    method="get",
    operation_summary="Member Growth by Month",
    responses={200: openapi.Response(description="Monthly new-member counts")},
    tags=['Analytics'],
    security=[{'Bearer': []}]
)
@api_view(["GET"])
def members_view(request):
    try:
        rows = (
            Member.objects.annotate(month=TruncMonth('created_at'))
            .values('month')
            .annotate(count=Count('id'))
            .order_by('month')
        )
        members = [{'year': row['month'].year, 'month': row['month'].month, 'count': row['count']} for row in rows]
        return success_response("Members by month", members)
    except Exception as e:
        logger.error("Error building member growth series: %s", e, exc_info=True)
        return server_error_response()


@swagger_auto_schema(
    method="get",
    operation_summary="Export Invoices (CSV)",
    manual_parameters=EXPORT_PARAMS,
    responses={200: openapi.Response(description="CSV file")},
    tags=['Analytics'],
    security=[{'Bearer': []}]
)
@api_view(["GET"])
def export_csv_view(request):
    try:
        invoices = export_queryset(request.query_params)
    except ValueError:
        return error_response("Dates must be in YYYY-MM-DD format")

    try:
        response = HttpResponse(content_type="text/csv")
        response["Content-Disposition"] = f'attachment; filename="invoices_{timezone.localdate():%Y%m%d}.csv"'
        writer = csv.writer(response)
        writer.writerow(EXPORT_COLUMNS)
        for invoice in invoices:
            writer.writerow(export_row(invoice))
        return response
    except Exception as e:
        logger.error("Error exporting invoices to CSV: %s", e, exc_info=True)
        return server_error_response()


@swagger_auto_schema(
    method="get",
    operation_summary="Export Invoices (Excel)",
    manual_parameters=EXPORT_PARAMS,
    responses={200: openapi.Response(description="Excel workbook")},
    tags=['Analytics'],
    security=[{'Bearer': []}]
)
@api_view(["GET"])
def export_excel_view(request):
    try:
        invoices = export_queryset(request.query_params)
    except ValueError:
        return error_response("Dates must be in YYYY-MM-DD format")

    try:
        wb = Workbook()
        ws = wb.active
        ws.title = "Invoices"

        ws.append(EXPORT_COLUMNS)
        for cell in ws[1]:
            cell.font = Font(bold=True)

        for invoice in invoices:
            ws.append(export_row(invoice))

        ws.freeze_panes = "A2"

        response = HttpResponse(
            content_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        response["Content-Disposition"] = f'attachment; filename="invoices_{timezone.localdate():%Y%m%d}.xlsx"'
        wb.save(response)
        return response
    except Exception as e:
        logger.error("Error exporting invoices to Excel: %s", e, exc_info=True)
        return server_error_response()
