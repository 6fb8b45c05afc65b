import logging

from django.db.models import Q
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.views import APIView

from AtlasFitness.core_utils import page_params, paginate
from AtlasFitness.permissions import ReadAnyWriteStaff
from AtlasFitness.responses import success_response, error_response, not_found_response, server_error_response
from Administration.notifications import send_welcome_email
from Invoice.serializers import InvoiceSerializer
from Member.models import Member
from Member.serializers import MemberSerializer, MemberCreateSerializer

logger = logging.getLogger(__name__)

MEMBER_ID_PARAM = openapi.Parameter('pk', openapi.IN_PATH, description="Member ID", type=openapi.TYPE_INTEGER)


class MemberListCreateView(APIView):
    permission_classes = [ReadAnyWriteStaff]

    @swagger_auto_schema(
        operation_summary="List Members",
        manual_parameters=[
            openapi.Parameter('page', openapi.IN_QUERY, type=openapi.TYPE_INTEGER, required=False),
            openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER, required=False),
            openapi.Parameter('search', openapi.IN_QUERY, type=openapi.TYPE_STRING, required=False,
                              description="Matches name, email, phone or member code"),
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING, required=False,
                              enum=[c for c, _ in Member.STATUS_CHOICES]),
        ],
        responses={200: MemberSerializer(many=True)},
        tags=['Members'],
        security=[{'Bearer': []}]
    )
    def get(self, request):
        try:
            members = Member.objects.select_related('plan').order_by('-created_at')

            search = request.query_params.get('search', '').strip()
            if search:
                members = members.filter(
                    Q(name__icontains=search) | Q(email__icontains=search)
                    | Q(phone__icontains=search) | Q(member_code__icontains=search)
                )
            status_filter = request.query_params.get('status', '').strip().upper()
            if status_filter:
                members = members.with_effective_status(status_filter)

            page, limit = page_params(request.query_params)
            items, total, total_pages = paginate(members, page, limit)
            return success_response(
                "Members fetched successfully",
                MemberSerializer(items, many=True).data,
                total=total, page=page, total_pages=total_pages,
            )
        except Exception as e:
            logger.error("Error fetching members: %s", e, exc_info=True)
            return server_error_response()

    @swagger_auto_schema(
        operation_summary="Create Member",
        operation_description="Creates the member with the next member code. The member starts PENDING; a plan given here only opens its validity window once the first invoice is paid.",
        request_body=MemberCreateSerializer,
        responses={201: MemberSerializer(), 400: "Validation error"},
        tags=['Members'],
        security=[{'Bearer': []}]
    )
    def post(self, request):
        logger.info("START MemberListCreateView.post | request data: %s", request.data)
        serializer = MemberCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response("Invalid data", errors=serializer.errors)

        try:
            member = serializer.save()
        except Exception as e:
            logger.error("Error creating member: %s", e, exc_info=True)
            return server_error_response()

        warnings = []
        try:
            send_welcome_email(member)
        except Exception as e:
            logger.error("Welcome email failed for %s: %s", member.member_code, e)
            warnings.append(f"Welcome email could not be sent: {e}")

        logger.info("END MemberListCreateView.post | member %s created", member.member_code)
        return success_response(
            "Member created successfully",
            MemberSerializer(member).data,
            status_code=status.HTTP_201_CREATED,
            warnings=warnings,
        )


class MemberDetailView(APIView):
    permission_classes = [ReadAnyWriteStaff]

    def get_object(self, pk):
        return Member.objects.select_related('plan').filter(pk=pk).first()

    @swagger_auto_schema(
        operation_summary="Retrieve Member",
        operation_description="Member details together with the member's invoices, newest first.",
        manual_parameters=[MEMBER_ID_PARAM],
        responses={200: MemberSerializer(), 404: "Member not found"},
        tags=['Members'],
        security=[{'Bearer': []}]
    )
    def get(self, request, pk):
        member = self.get_object(pk)
        if member is None:
            return not_found_response("Member not found")
        data = MemberSerializer(member).data
        invoices = member.invoices.select_related('member', 'plan', 'carried_into').order_by('-created_at')
        data['invoices'] = InvoiceSerializer(invoices, many=True).data
        return success_response("Member fetched successfully", data)

    @swagger_auto_schema(
        operation_summary="Update Member",
        operation_description="Partial update of contact and status fields. Plan dates change only through renewal.",
        manual_parameters=[MEMBER_ID_PARAM],
        request_body=MemberSerializer,
        responses={200: MemberSerializer(), 400: "Validation error", 404: "Member not found"},
        tags=['Members'],
        security=[{'Bearer': []}]
    )
    def put(self, request, pk):
        member = self.get_object(pk)
        if member is None:
            return not_found_response("Member not found")

        serializer = MemberSerializer(member, data=request.data, partial=True)
        if not serializer.is_valid():
            return error_response("Invalid data", errors=serializer.errors)
        try:
            serializer.save()
            logger.info("Member %s updated", member.member_code)
            return success_response("Member updated successfully", serializer.data)
        except Exception as e:
            logger.error("Error updating member %s: %s", pk, e, exc_info=True)
            return server_error_response()

    def patch(self, request, pk):
        return self.put(request, pk)

    @swagger_auto_schema(
        operation_summary="Delete Member",
        operation_description="Admin only. Removes the member and their invoices.",
        manual_parameters=[MEMBER_ID_PARAM],
        responses={200: "Member deleted", 404: "Member not found"},
        tags=['Members'],
        security=[{'Bearer': []}]
    )
    def delete(self, request, pk):
        member = self.get_object(pk)
        if member is None:
            return not_found_response("Member not found")
        try:
            code = member.member_code
            member.delete()
            logger.info("Member %s deleted by %s", code, request.user.email)
            return success_response("Member deleted successfully")
        except Exception as e:
            logger.error("Error deleting member %s: %s", pk, e, exc_info=True)
            return server_error_response()
