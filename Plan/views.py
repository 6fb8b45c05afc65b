import logging

from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status, viewsets

from AtlasFitness.core_utils import parse_bool
from AtlasFitness.permissions import ReadAnyWriteAdmin
from AtlasFitness.responses import success_response, error_response, not_found_response, server_error_response
from Plan.models import Plan
from Plan.serializers import PlanSerializer

logger = logging.getLogger(__name__)

PLAN_ID_PARAM = openapi.Parameter('pk', openapi.IN_PATH, description="Plan ID", type=openapi.TYPE_INTEGER)


class PlanViewSet(viewsets.ViewSet):
    """Membership plans. Deleting a plan only deactivates it so past invoices keep their reference."""
    permission_classes = [ReadAnyWriteAdmin]
    serializer_class = PlanSerializer

    def get_object(self, pk):
        try:
            return Plan.objects.get(pk=pk)
        except Plan.DoesNotExist:
            return None

    @swagger_auto_schema(
        operation_summary="List Plans",
        operation_description="Active plans ordered by price. Pass `include_inactive=true` to list deactivated plans too.",
        manual_parameters=[
            openapi.Parameter('include_inactive', openapi.IN_QUERY, type=openapi.TYPE_BOOLEAN, required=False),
        ],
        responses={200: PlanSerializer(many=True)},
        tags=['Plans'],
        security=[{'Bearer': []}]
    )
    def list(self, request):
        try:
            plans = Plan.objects.all().order_by('price', 'id')
            if not parse_bool(request.query_params.get('include_inactive')):
                plans = plans.filter(is_active=True)
            serializer = self.serializer_class(plans, many=True)
            return success_response("Plans fetched successfully", serializer.data)
        except Exception as e:
            logger.error("Error fetching plans: %s", e, exc_info=True)
            return server_error_response()

    @swagger_auto_schema(
        operation_summary="Retrieve Plan",
        responses={200: PlanSerializer()},
        manual_parameters=[PLAN_ID_PARAM],
        tags=['Plans'],
        security=[{'Bearer': []}]
    )
    def retrieve(self, request, pk=None):
        plan = self.get_object(pk)
        if not plan:
            return not_found_response("Plan not found")
        return success_response("Plan retrieved successfully", self.serializer_class(plan).data)

    @swagger_auto_schema(
        operation_summary="Create Plan",
        request_body=PlanSerializer,
        responses={201: PlanSerializer()},
        tags=['Plans'],
        security=[{'Bearer': []}]
    )
    def create(self, request):
        logger.info("START PlanViewSet.create | request data: %s", request.data)
        serializer = self.serializer_class(data=request.data)
        if not serializer.is_valid():
            return error_response("Invalid data", errors=serializer.errors)
        try:
            plan = serializer.save()
            logger.info("END PlanViewSet.create | plan %s created", plan.id)
            return success_response("Plan created successfully", serializer.data, status_code=status.HTTP_201_CREATED)
        except Exception as e:
            logger.error("Error creating plan: %s", e, exc_info=True)
            return server_error_response()

    def _update(self, request, pk, partial):
        plan = self.get_object(pk)
        if not plan:
            return not_found_response("Plan not found")
        serializer = self.serializer_class(plan, data=request.data, partial=partial)
        if not serializer.is_valid():
            return error_response("Invalid data", errors=serializer.errors)
        try:
            serializer.save()
            logger.info("Plan %s updated", plan.id)
            return success_response("Plan updated successfully", serializer.data)
        except Exception as e:
            logger.error("Error updating plan %s: %s", pk, e, exc_info=True)
            return server_error_response()

    @swagger_auto_schema(
        operation_summary="Update Plan",
        operation_description="Price and tax changes apply to future invoices only.",
        request_body=PlanSerializer,
        responses={200: PlanSerializer()},
        manual_parameters=[PLAN_ID_PARAM],
        tags=['Plans'],
        security=[{'Bearer': []}]
    )
    def update(self, request, pk=None):
        return self._update(request, pk, partial=True)

    @swagger_auto_schema(
        operation_summary="Partially Update Plan",
        request_body=PlanSerializer,
        responses={200: PlanSerializer()},
        manual_parameters=[PLAN_ID_PARAM],
        tags=['Plans'],
        security=[{'Bearer': []}]
    )
    def partial_update(self, request, pk=None):
        return self._update(request, pk, partial=True)

    @swagger_auto_schema(
        operation_summary="Deactivate Plan",
        responses={200: "Plan deactivated", 404: "Plan not found"},
        manual_parameters=[PLAN_ID_PARAM],
        tags=['Plans'],
        security=[{'Bearer': []}]
    )
    def destroy(self, request, pk=None):
        plan = self.get_object(pk)
        if not plan:
            return not_found_response("Plan not found")
        plan.is_active = False
        plan.save(update_fields=['is_active', 'updated_at'])
        logger.info("Plan %s deactivated by %s", plan.id, request.user.email)
        return success_response("Plan deactivated successfully")
