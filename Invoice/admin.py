from django.contrib import admin
from .models import Invoice, NumberSequence


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'member', 'plan', 'total_amount', 'paid_amount', 'payment_status', 'due_date']
    list_filter = ['payment_status', 'payment_method']
    search_fields = ['invoice_number', 'member__name', 'member__member_code']
    readonly_fields = [
        'invoice_number', 'amount', 'gst_amount', 'cgst', 'sgst', 'total_amount',
        'membership_renewed_at', 'created_at', 'updated_at',
    ]
    ordering = ['-created_at']


@admin.register(NumberSequence)
class NumberSequenceAdmin(admin.ModelAdmin):
    list_display = ['prefix', 'last_value']
