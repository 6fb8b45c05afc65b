from decimal import Decimal

from rest_framework import serializers

from Invoice.models import Invoice


class InvoiceMemberSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    member_code = serializers.CharField()
    name = serializers.CharField()
    email = serializers.EmailField(allow_null=True)
    phone = serializers.CharField()


class InvoicePlanSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    duration = serializers.IntegerField()


class InvoiceSerializer(serializers.ModelSerializer):
    member = InvoiceMemberSerializer(read_only=True)
    plan = InvoicePlanSerializer(read_only=True)
    balance_due = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    carried_into = serializers.SlugRelatedField(slug_field='invoice_number', read_only=True)

    class Meta:
        model = Invoice
        fields = [
            'id', 'invoice_number', 'member', 'plan',
            'base_amount', 'discount', 'discount_type', 'tax_rate',
            'amount', 'gst_amount', 'cgst', 'sgst', 'late_fee', 'previous_due',
            'total_amount', 'paid_amount', 'balance_due',
            'payment_status', 'due_date', 'paid_date', 'payment_method',
            'razorpay_order_id', 'razorpay_payment_id',
            'membership_renewed_at', 'carried_into', 'notes', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class InvoiceCreateSerializer(serializers.Serializer):
    member_id = serializers.IntegerField()
    plan_id = serializers.IntegerField()
    base_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False, allow_null=True,
                                           help_text="Defaults to the plan price")
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False, default=Decimal('0'))
    discount_type = serializers.ChoiceField(choices=Invoice.DISCOUNT_TYPE_CHOICES, required=False, default=Invoice.DISCOUNT_AMOUNT)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal('0'), max_value=Decimal('100'),
                                        required=False, allow_null=True, help_text="Defaults to the plan tax rate")
    late_fee = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False, default=Decimal('0'))
    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False, default=Decimal('0'))
    payment_status = serializers.ChoiceField(choices=Invoice.STATUS_CHOICES, required=False, default=Invoice.STATUS_PENDING)
    due_date = serializers.DateTimeField(required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=Invoice.PAYMENT_METHOD_CHOICES, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    carry_previous_due = serializers.BooleanField(required=False, default=False)


class InvoiceUpdateSerializer(serializers.Serializer):
    base_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    discount_type = serializers.ChoiceField(choices=Invoice.DISCOUNT_TYPE_CHOICES, required=False)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal('0'), max_value=Decimal('100'), required=False)
    late_fee = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    payment_status = serializers.ChoiceField(choices=Invoice.STATUS_CHOICES, required=False)
    due_date = serializers.DateTimeField(required=False)
    paid_date = serializers.DateTimeField(required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=Invoice.PAYMENT_METHOD_CHOICES, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class MarkPaidSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=Invoice.PAYMENT_METHOD_CHOICES, required=False, default=Invoice.METHOD_CASH)
