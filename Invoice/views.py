import logging

from django.core.exceptions import ValidationError
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from AtlasFitness.core_utils import page_params, paginate
from AtlasFitness.permissions import IsStaffOrAdmin, ReadAnyWriteStaff
from AtlasFitness.responses import (
    success_response, error_response, not_found_response,
    server_error_response, validation_error_response,
)
from Invoice import services
from Invoice.models import Invoice
from Invoice.numbering import InvoiceNumberConflict
from Invoice.serializers import InvoiceSerializer, InvoiceCreateSerializer, InvoiceUpdateSerializer, MarkPaidSerializer
from Member.models import Member

logger = logging.getLogger(__name__)

INVOICE_ID_PARAM = openapi.Parameter('pk', openapi.IN_PATH, description="Invoice ID", type=openapi.TYPE_INTEGER)


def invoice_queryset():
    return Invoice.objects.select_related('member', 'plan', 'carried_into')


class InvoiceListCreateView(APIView):
    permission_classes = [ReadAnyWriteStaff]

    @swagger_auto_schema(
        operation_summary="List Invoices",
        manual_parameters=[
            openapi.Parameter('page', openapi.IN_QUERY, type=openapi.TYPE_INTEGER, required=False),
            openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER, required=False),
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING, required=False,
                              enum=[c for c, _ in Invoice.STATUS_CHOICES]),
            openapi.Parameter('member_id', openapi.IN_QUERY, type=openapi.TYPE_INTEGER, required=False),
        ],
        responses={200: InvoiceSerializer(many=True)},
        tags=['Invoices'],
        security=[{'Bearer': []}]
    )
    def get(self, request):
        try:
            invoices = invoice_queryset().order_by('-created_at')
            status_filter = request.query_params.get('status', '').strip().upper()
            if status_filter:
                invoices = invoices.filter(payment_status=status_filter)
            member_id = request.query_params.get('member_id', '').strip()
            if member_id:
                if not member_id.isdigit():
                    return error_response("member_id must be an integer")
                invoices = invoices.filter(member_id=int(member_id))

            page, limit = page_params(request.query_params)
            items, total, total_pages = paginate(invoices, page, limit)
            return success_response(
                "Invoices fetched successfully",
                InvoiceSerializer(items, many=True).data,
                total=total, page=page, total_pages=total_pages,
            )
        except Exception as e:
            logger.error("Error fetching invoices: %s", e, exc_info=True)
            return server_error_response()

    @swagger_auto_schema(
        operation_summary="Create Invoice",
        operation_description="""
        Create an invoice for a member and plan. The plan price and tax rate are snapshotted unless overridden.
        Set `carry_previous_due` to roll the member's unpaid balances into this invoice.
        Creating an invoice as PAID renews the membership and emails a receipt.
        """,
        request_body=InvoiceCreateSerializer,
        responses={201: InvoiceSerializer(), 400: "Validation error"},
        tags=['Invoices'],
        security=[{'Bearer': []}]
    )
    def post(self, request):
        logger.info("START InvoiceListCreateView.post | request data: %s", request.data)
        serializer = InvoiceCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response("Invalid data", errors=serializer.errors)

        try:
            invoice, warnings = services.create_invoice(serializer.validated_data, created_by=request.user)
        except ValidationError as e:
            return validation_error_response(e)
        except InvoiceNumberConflict as e:
            logger.error("Invoice number allocation failed: %s", e)
            return server_error_response("Could not allocate an invoice number, please retry")
        except Exception as e:
            logger.error("Error creating invoice: %s", e, exc_info=True)
            return server_error_response()

        logger.info("END InvoiceListCreateView.post | invoice %s", invoice.invoice_number)
        return success_response(
            "Invoice created successfully",
            InvoiceSerializer(invoice_queryset().get(pk=invoice.pk)).data,
            status_code=status.HTTP_201_CREATED,
            warnings=warnings,
        )


class InvoiceDetailView(APIView):
    permission_classes = [ReadAnyWriteStaff]

    @swagger_auto_schema(
        operation_summary="Retrieve Invoice",
        manual_parameters=[INVOICE_ID_PARAM],
        responses={200: InvoiceSerializer(), 404: "Invoice not found"},
        tags=['Invoices'],
        security=[{'Bearer': []}]
    )
    def get(self, request, pk):
        invoice = invoice_queryset().filter(pk=pk).first()
        if invoice is None:
            return not_found_response("Invoice not found")
        return success_response("Invoice fetched successfully", InvoiceSerializer(invoice).data)

    @swagger_auto_schema(
        operation_summary="Update Invoice",
        operation_description="Partial update. Totals are recomputed when pricing fields change; moving the invoice into PAID renews the membership once.",
        manual_parameters=[INVOICE_ID_PARAM],
        request_body=InvoiceUpdateSerializer,
        responses={200: InvoiceSerializer(), 400: "Validation error", 404: "Invoice not found"},
        tags=['Invoices'],
        security=[{'Bearer': []}]
    )
    def put(self, request, pk):
        logger.info("START InvoiceDetailView.put | invoice %s | data: %s", pk, request.data)
        serializer = InvoiceUpdateSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return error_response("Invalid data", errors=serializer.errors)

        try:
            invoice, warnings = services.update_invoice(pk, serializer.validated_data)
        except Invoice.DoesNotExist:
            return not_found_response("Invoice not found")
        except ValidationError as e:
            return validation_error_response(e)
        except Exception as e:
            logger.error("Error updating invoice %s: %s", pk, e, exc_info=True)
            return server_error_response()

        return success_response(
            "Invoice updated successfully",
            InvoiceSerializer(invoice_queryset().get(pk=invoice.pk)).data,
            warnings=warnings,
        )

    def patch(self, request, pk):
        return self.put(request, pk)

    @swagger_auto_schema(
        operation_summary="Delete Invoice",
        operation_description="Admin only. Other invoice numbers are not reused or renumbered.",
        manual_parameters=[INVOICE_ID_PARAM],
        responses={200: "Invoice deleted", 404: "Invoice not found"},
        tags=['Invoices'],
        security=[{'Bearer': []}]
    )
    def delete(self, request, pk):
        try:
            number = services.delete_invoice(pk)
        except Invoice.DoesNotExist:
            return not_found_response("Invoice not found")
        except Exception as e:
            logger.error("Error deleting invoice %s: %s", pk, e, exc_info=True)
            return server_error_response()
        logger.info("Invoice %s deleted by %s", number, request.user.email)
        return success_response("Invoice deleted successfully")


class MarkPaidView(APIView):
    permission_classes = [IsStaffOrAdmin]

    @swagger_auto_schema(
        operation_summary="Mark Invoice Paid",
        operation_description="Record a full manual (cash, card, UPI, bank transfer) settlement.",
        manual_parameters=[INVOICE_ID_PARAM],
        request_body=MarkPaidSerializer,
        responses={200: InvoiceSerializer(), 404: "Invoice not found"},
        tags=['Invoices'],
        security=[{'Bearer': []}]
    )
    def post(self, request, pk):
        serializer = MarkPaidSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response("Invalid data", errors=serializer.errors)

        try:
            invoice, warnings = services.mark_as_paid(pk, serializer.validated_data)
        except Invoice.DoesNotExist:
            return not_found_response("Invoice not found")
        except Exception as e:
            logger.error("Error marking invoice %s as paid: %s", pk, e, exc_info=True)
            return server_error_response()

        return success_response(
            "Invoice marked as paid",
            InvoiceSerializer(invoice_queryset().get(pk=invoice.pk)).data,
            warnings=warnings,
        )


class OverdueInvoicesView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Overdue Invoices",
        responses={200: InvoiceSerializer(many=True)},
        tags=['Invoices'],
        security=[{'Bearer': []}]
    )
    def get(self, request):
        try:
            invoices = services.list_overdue()
            return success_response("Overdue invoices fetched successfully", InvoiceSerializer(invoices, many=True).data)
        except Exception as e:
            logger.error("Error fetching overdue invoices: %s", e, exc_info=True)
            return server_error_response()


class PreviousDueView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Previous Due Preview",
        operation_description="Outstanding balance that a new invoice for the member would carry forward.",
        manual_parameters=[
            openapi.Parameter('member_id', openapi.IN_QUERY, type=openapi.TYPE_INTEGER, required=True),
        ],
        responses={200: "Outstanding balance", 404: "Member not found"},
        tags=['Invoices'],
        security=[{'Bearer': []}]
    )
    def get(self, request):
        member_id = request.query_params.get('member_id', '').strip()
        if not member_id.isdigit():
            return error_response("member_id is required")
        member = Member.objects.filter(pk=int(member_id)).first()
        if member is None:
            return not_found_response("Member not found")

        open_invoices = services.open_invoices_for(member).order_by('created_at')
        return success_response("Previous due calculated", {
            'member_id': member.id,
            'previous_due': services.outstanding_balance(member),
            'invoices': [
                {'id': inv.id, 'invoice_number': inv.invoice_number, 'balance_due': inv.balance_due}
                for inv in open_invoices
            ],
        })
