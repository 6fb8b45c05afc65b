import logging

from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from AtlasFitness.permissions import IsStaffOrAdmin
from AtlasFitness.responses import success_response, error_response, not_found_response, server_error_response
from Invoice.models import Invoice
from Invoice.serializers import InvoiceSerializer
from Invoice.services import mark_as_paid
from Member.models import Member
from Payment import gateway
from Payment.serializers import CreateOrderSerializer, VerifyPaymentSerializer

logger = logging.getLogger(__name__)


class CreatePaymentOrderView(APIView):
    """Create a Razorpay order for an unpaid invoice."""
    permission_classes = [IsStaffOrAdmin]

    @swagger_auto_schema(
        operation_summary="Create Payment Order",
        operation_description="""
        Reserve a Razorpay order for the full invoice total.

        Use the returned `gateway_order_id` and `key_id` to open Razorpay checkout, then send the
        checkout result to `/api/payments/verify`.
        """,
        request_body=CreateOrderSerializer,
        responses={
            200: openapi.Response(
                description="Order created",
                examples={
                    "application/json": {
                        "success": True,
                        "status": "success",
                        "code": 200,
                        "message": "Payment order created",
                        "data": {
                            "gateway_order_id": "order_xyz123",
                            "amount": 118000,
                            "currency": "INR",
                            "key_id": "rzp_test_xxx"
                        }
                    }
                }
            ),
            400: "Invoice already paid",
            404: "Invoice not found",
            502: "Gateway error",
            503: "Gateway not configured",
        },
        tags=['Payments'],
        security=[{'Bearer': []}]
    )
    def post(self, request):
        logger.info("START CreatePaymentOrderView.post | request data: %s", request.data)
        serializer = CreateOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response("Invalid data", errors=serializer.errors)

        invoice = Invoice.objects.filter(pk=serializer.validated_data['invoice_id']).first()
        if invoice is None:
            return not_found_response("Invoice not found")
        if invoice.payment_status == Invoice.STATUS_PAID:
            return error_response("Invoice is already paid")

        try:
            order = gateway.create_order(invoice)
        except gateway.GatewayConfigurationError as e:
            logger.error("Payment order refused: %s", e)
            return error_response(str(e), status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
        except gateway.GatewayError as e:
            return error_response(str(e), status_code=status.HTTP_502_BAD_GATEWAY)
        except Exception as e:
            logger.error("Error creating payment order: %s", e, exc_info=True)
            return server_error_response()

        logger.info("END CreatePaymentOrderView.post | order %s", order['gateway_order_id'])
        return success_response("Payment order created", order)


class VerifyPaymentView(APIView):
    """Confirm a checkout result. The invoice is marked paid only after the signature checks out."""
    permission_classes = [IsStaffOrAdmin]

    @swagger_auto_schema(
        operation_summary="Verify Payment",
        operation_description="""
        Verify the Razorpay checkout signature (HMAC-SHA256 of `order_id|payment_id` with the key secret).
        On success the invoice is settled in full, the membership is renewed and a receipt is emailed.
        """,
        request_body=VerifyPaymentSerializer,
        responses={
            200: InvoiceSerializer(),
            400: "Signature verification failed",
            404: "Invoice not found",
            503: "Gateway not configured",
        },
        tags=['Payments'],
        security=[{'Bearer': []}]
    )
    def post(self, request):
        serializer = VerifyPaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response("Invalid data", errors=serializer.errors)
        data = serializer.validated_data

        invoice = Invoice.objects.filter(pk=data['invoice_id']).first()
        if invoice is None:
            return not_found_response("Invoice not found")

        try:
            credentials = gateway.resolve_credentials()
        except gateway.GatewayConfigurationError as e:
            logger.error("Payment verification refused: %s", e)
            return error_response(str(e), status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

        if invoice.razorpay_order_id != data['razorpay_order_id']:
            logger.warning(
                "AUDIT payment verification rejected for %s: order %s does not match stored order %s (user %s)",
                invoice.invoice_number, data['razorpay_order_id'], invoice.razorpay_order_id, request.user.email,
            )
            return error_response("Payment verification failed")

        if not gateway.verify_signature(
            data['razorpay_order_id'], data['razorpay_payment_id'], data['razorpay_signature'], credentials.key_secret,
        ):
            logger.warning(
                "AUDIT payment signature mismatch for %s (order %s, payment %s, user %s)",
                invoice.invoice_number, data['razorpay_order_id'], data['razorpay_payment_id'], request.user.email,
            )
            return error_response("Payment verification failed")

        try:
            invoice, warnings = mark_as_paid(invoice.pk, {
                'payment_method': Invoice.METHOD_ONLINE,
                'razorpay_order_id': data['razorpay_order_id'],
                'razorpay_payment_id': data['razorpay_payment_id'],
                'razorpay_signature': data['razorpay_signature'],
            })
        except Exception as e:
            logger.error("Error settling invoice %s after verification: %s", invoice.invoice_number, e, exc_info=True)
            return server_error_response()

        logger.info("Payment %s verified for %s", data['razorpay_payment_id'], invoice.invoice_number)
        invoice = Invoice.objects.select_related('member', 'plan', 'carried_into').get(pk=invoice.pk)
        return success_response("Payment verified successfully", InvoiceSerializer(invoice).data, warnings=warnings)


class PaymentHistoryView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Payment History",
        operation_description="Paid invoices of a member, most recent payment first.",
        manual_parameters=[
            openapi.Parameter('member_id', openapi.IN_PATH, description="Member ID", type=openapi.TYPE_INTEGER),
        ],
        responses={200: InvoiceSerializer(many=True), 404: "Member not found"},
        tags=['Payments'],
        security=[{'Bearer': []}]
    )
    def get(self, request, member_id):
        if not Member.objects.filter(pk=member_id).exists():
            return not_found_response("Member not found")
        try:
            invoices = Invoice.objects.filter(
                member_id=member_id, payment_status=Invoice.STATUS_PAID,
            ).select_related('member', 'plan', 'carried_into').order_by('-paid_date')
            return success_response("Payment history fetched successfully", InvoiceSerializer(invoices, many=True).data)
        except Exception as e:
            logger.error("Error fetching payment history for member %s: %s", member_id, e, exc_info=True)
            return server_error_response()
