"""
URL configuration for the Atlas Fitness billing API.

Every API route lives under ``/api/``; Swagger UI is served at ``/api/docs``.
"""

from django.contrib import admin
from django.db import connection
from django.urls import path, include
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions
from rest_framework.decorators import api_view, authentication_classes, permission_classes

from AtlasFitness.responses import success_response, error_response

schema_view = get_schema_view(
    openapi.Info(
        title="Atlas Fitness Elite API",
        default_version="v1",
        description="""
        Membership, invoicing and payment API for Atlas Fitness Elite.

        ## Authentication
        Use `/api/auth/login` with a staff email and password to get JWT tokens, then send
        ```
        Authorization: Bearer <access_token>
        ```
        Reads are open to any signed-in staff user; deletes and plan/settings changes need the ADMIN role.
        """,
        contact=openapi.Contact(email="support@atlasfitness.in"),
    ),
    public=True,
    permission_classes=[permissions.AllowAny],
)


@api_view(["GET"])
@authentication_classes([])
@permission_classes([permissions.AllowAny])
def health_view(request):
    try:
        connection.ensure_connection()
    except Exception:
        return error_response("Database unavailable", status_code=503)
    return success_response("OK", {"database": "ok"})


urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/health", health_view, name="health"),
    path("api/", include("Administration.urls")),
    path("api/", include("Plan.urls")),
    path("api/", include("Member.urls")),
    path("api/", include("Invoice.urls")),
    path("api/", include("Payment.urls")),
    path("api/", include("Analytics.urls")),
    # Swagger UI
    path(
        "api/docs",
        schema_view.with_ui("swagger", cache_timeout=0),
        name="schema-swagger-ui",
    ),
]
