from django.contrib.auth import password_validation
from rest_framework import serializers

from Administration.models import StaffUser, GymSettings


class StaffUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = StaffUser
        fields = ['id', 'email', 'name', 'role', 'is_active', 'last_login', 'created_at']
        read_only_fields = fields


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class RefreshSerializer(serializers.Serializer):
    refresh = serializers.CharField()


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True, min_length=6)

    def validate_current_password(self, value):
        user = self.context['request'].user
        if not user.check_password(value):
            raise serializers.ValidationError("Current password is incorrect")
        return value

    def validate_new_password(self, value):
        password_validation.validate_password(value, self.context['request'].user)
        return value


class GymSettingsSerializer(serializers.ModelSerializer):
    """Secrets are write-only; reads only say whether they are configured."""
    smtp_password = serializers.CharField(write_only=True, required=False, allow_blank=True)
    razorpay_key_secret = serializers.CharField(write_only=True, required=False, allow_blank=True)
    smtp_configured = serializers.BooleanField(source='has_smtp', read_only=True)
    gateway_configured = serializers.BooleanField(source='has_gateway_keys', read_only=True)

    class Meta:
        model = GymSettings
        fields = [
            'id', 'gym_name', 'gst_number', 'address', 'phone', 'email', 'email_notifications',
            'smtp_host', 'smtp_port', 'smtp_user', 'smtp_password', 'smtp_use_tls', 'from_email',
            'razorpay_key_id', 'razorpay_key_secret',
            'smtp_configured', 'gateway_configured', 'updated_at',
        ]
        read_only_fields = ['id', 'updated_at']
