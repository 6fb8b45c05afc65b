import logging

from django.contrib.auth.models import update_last_login
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from AtlasFitness.permissions import ReadAnyWriteAdmin
from AtlasFitness.responses import success_response, error_response, server_error_response
from Administration.models import StaffUser, GymSettings
from Administration.serializers import (
    StaffUserSerializer, LoginSerializer, RefreshSerializer,
    ChangePasswordSerializer, GymSettingsSerializer,
)

logger = logging.getLogger(__name__)


def issue_tokens(user):
    """Return a refresh/access pair carrying the user's current role."""
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role
    return {
        'access': str(refresh.access_token),
        'refresh': str(refresh),
    }


class LoginAPI(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]

    @swagger_auto_schema(
        operation_summary="Staff Login",
        operation_description="""
        Authenticate a staff user with email and password and return JWT access and refresh tokens.

        The returned access token should be included in the Authorization header as:
        `Authorization: Bearer <access_token>`
        """,
        request_body=LoginSerializer,
        responses={
            200: openapi.Response(
                description="Login successful",
                examples={
                    "application/json": {
                        "success": True,
                        "status": "success",
                        "code": 200,
                        "message": "Login successful",
                        "data": {
                            "access": "eyJ0eXAiOiJKV1QiLCJhbGciOiJIUzI1NiJ9...",
                            "refresh": "eyJ0eXAiOiJKV1QiLCJhbGciOiJIUzI1NiJ9...",
                            "user": {"id": 1, "email": "admin@atlasfitness.in", "role": "ADMIN"}
                        }
                    }
                }
            ),
            401: "Invalid credentials",
            400: "Bad request",
        },
        tags=['Authentication']
    )
    def post(self, request):
        logger.info("START LoginAPI.post | email: %s", request.data.get('email'))
        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response("Email and password are required", errors=serializer.errors)

        email = serializer.validated_data['email']
        password = serializer.validated_data['password']

        try:
            user = StaffUser.objects.filter(email__iexact=email).first()
            if user is None or not user.check_password(password):
                logger.warning("Failed login attempt for %s", email)
                return error_response("Invalid credentials", status_code=status.HTTP_401_UNAUTHORIZED)
            if not user.is_active:
                logger.warning("Login attempt for inactive user %s", email)
                return error_response("Account is disabled", status_code=status.HTTP_401_UNAUTHORIZED)

            tokens = issue_tokens(user)
            update_last_login(None, user)

            logger.info("END LoginAPI.post | user %s logged in", user.email)
            return success_response("Login successful", {
                **tokens,
                'user': StaffUserSerializer(user).data,
            })
        except Exception as e:
            logger.error("Error during login: %s", e, exc_info=True)
            return server_error_response()


class RefreshView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]

    @swagger_auto_schema(
        operation_summary="Refresh Access Token",
        request_body=RefreshSerializer,
        responses={200: "New access token", 401: "Invalid or expired refresh token"},
        tags=['Authentication']
    )
    def post(self, request):
        serializer = RefreshSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response("Refresh token is required", errors=serializer.errors)

        try:
            refresh = RefreshToken(serializer.validated_data['refresh'])
        except TokenError as e:
            logger.info("Rejected refresh token: %s", e)
            return error_response("Invalid or expired refresh token", status_code=status.HTTP_401_UNAUTHORIZED)

        return success_response("Token refreshed", {'access': str(refresh.access_token)})


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Current User",
        responses={200: StaffUserSerializer()},
        tags=['Authentication'],
        security=[{'Bearer': []}]
    )
    def get(self, request):
        return success_response("Current user", StaffUserSerializer(request.user).data)


class ChangePasswordView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Change Password",
        request_body=ChangePasswordSerializer,
        responses={200: "Password changed", 400: "Validation error"},
        tags=['Authentication'],
        security=[{'Bearer': []}]
    )
    def post(self, request):
        logger.info("START ChangePasswordView.post | user: %s", request.user.email)
        serializer = ChangePasswordSerializer(data=request.data, context={'request': request})
        if not serializer.is_valid():
            return error_response("Invalid data", errors=serializer.errors)

        try:
            user = request.user
            user.set_password(serializer.validated_data['new_password'])
            user.save(update_fields=['password', 'updated_at'])
            logger.info("END ChangePasswordView.post | password changed for %s", user.email)
            return success_response("Password changed successfully")
        except Exception as e:
            logger.error("Error changing password: %s", e, exc_info=True)
            return server_error_response()


class LogoutView(APIView):
    """Tokens are stateless; the client discards them. Kept so clients have a uniform logout call."""
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Logout",
        responses={200: "Logged out"},
        tags=['Authentication'],
        security=[{'Bearer': []}]
    )
    def post(self, request):
        logger.info("User %s logged out", request.user.email)
        return success_response("Logged out successfully")


class SettingsView(APIView):
    permission_classes = [ReadAnyWriteAdmin]

    @swagger_auto_schema(
        operation_summary="Get Gym Settings",
        operation_description="Returns the gym settings record, creating it with defaults on first access. Secrets are never returned.",
        responses={200: GymSettingsSerializer()},
        tags=['Settings'],
        security=[{'Bearer': []}]
    )
    def get(self, request):
        try:
            gym = GymSettings.load()
            return success_response("Settings fetched successfully", GymSettingsSerializer(gym).data)
        except Exception as e:
            logger.error("Error fetching settings: %s", e, exc_info=True)
            return server_error_response()

    @swagger_auto_schema(
        operation_summary="Update Gym Settings",
        operation_description="Partial update of the gym settings record. Admin only.",
        request_body=GymSettingsSerializer,
        responses={200: GymSettingsSerializer(), 400: "Validation error"},
        tags=['Settings'],
        security=[{'Bearer': []}]
    )
    def put(self, request):
        logger.info("START SettingsView.put | user: %s", request.user.email)
        try:
            gym = GymSettings.load()
            serializer = GymSettingsSerializer(gym, data=request.data, partial=True)
            if not serializer.is_valid():
                return error_response("Invalid data", errors=serializer.errors)
            serializer.save()
            logger.info("END SettingsView.put | settings updated")
            return success_response("Settings updated successfully", serializer.data)
        except Exception as e:
            logger.error("Error updating settings: %s", e, exc_info=True)
            return server_error_response()
