from rest_framework import serializers

from Member.models import Member
from Plan.models import Plan


class MemberPlanSerializer(serializers.ModelSerializer):
    class Meta:
        model = Plan
        fields = ['id', 'name', 'duration', 'price', 'tax_rate', 'is_active']


class MemberSerializer(serializers.ModelSerializer):
    """Read shape and update payload. Plan dates only move through renewal."""
    plan = MemberPlanSerializer(read_only=True)
    effective_status = serializers.CharField(read_only=True)
    days_remaining = serializers.IntegerField(read_only=True)

    class Meta:
        model = Member
        fields = [
            'id', 'member_code', 'name', 'email', 'phone', 'gender', 'dob', 'address', 'gst_number',
            'plan', 'plan_start_date', 'plan_end_date', 'status', 'effective_status', 'days_remaining',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'member_code', 'plan_start_date', 'plan_end_date', 'created_at', 'updated_at']
        extra_kwargs = {
            'email': {'required': False, 'allow_null': True, 'allow_blank': True},
        }

    def validate_email(self, value):
        return value or None


class MemberCreateSerializer(MemberSerializer):
    """
    New members start PENDING with the chosen plan and no validity window.

    The window opens when the first invoice for that plan is paid.
    """
    plan_id = serializers.PrimaryKeyRelatedField(
        queryset=Plan.objects.filter(is_active=True), source='plan',
        required=False, allow_null=True, write_only=True,
    )

    class Meta(MemberSerializer.Meta):
        fields = MemberSerializer.Meta.fields + ['plan_id']
        read_only_fields = MemberSerializer.Meta.read_only_fields + ['status']

    def create(self, validated_data):
        return Member.objects.create(status=Member.STATUS_PENDING, **validated_data)
