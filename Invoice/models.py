from decimal import Decimal

from django.conf import settings
from django.db import models


class NumberSequence(models.Model):
    """Counter row backing one identifier series (``INV-2026``, ``AFE``, ...)."""
    prefix = models.CharField(max_length=20, unique=True)
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'number_sequences'

    def __str__(self):
        return f"{self.prefix}: {self.last_value}"


class Invoice(models.Model):
    STATUS_PENDING = 'PENDING'
    STATUS_PARTIAL = 'PARTIAL'
    STATUS_PAID = 'PAID'
    STATUS_OVERDUE = 'OVERDUE'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_PARTIAL, 'Partial'),
        (STATUS_PAID, 'Paid'),
        (STATUS_OVERDUE, 'Overdue'),
    ]
    OPEN_STATUSES = (STATUS_PENDING, STATUS_PARTIAL, STATUS_OVERDUE)

    DISCOUNT_AMOUNT = 'AMOUNT'
    DISCOUNT_PERCENTAGE = 'PERCENTAGE'
    DISCOUNT_TYPE_CHOICES = [
        (DISCOUNT_AMOUNT, 'Amount'),
        (DISCOUNT_PERCENTAGE, 'Percentage'),
    ]

    METHOD_CASH = 'CASH'
    METHOD_CARD = 'CARD'
    METHOD_UPI = 'UPI'
    METHOD_ONLINE = 'ONLINE'
    METHOD_BANK_TRANSFER = 'BANK_TRANSFER'
    PAYMENT_METHOD_CHOICES = [
        (METHOD_CASH, 'Cash'),
        (METHOD_CARD, 'Card'),
        (METHOD_UPI, 'UPI'),
        (METHOD_ONLINE, 'Online'),
        (METHOD_BANK_TRANSFER, 'Bank transfer'),
    ]

    invoice_number = models.CharField(max_length=30, unique=True)
    member = models.ForeignKey('Member.Member', on_delete=models.CASCADE, related_name='invoices')
    plan = models.ForeignKey('Plan.Plan', on_delete=models.PROTECT, related_name='invoices')

    # pricing snapshot; later plan edits never touch these
    base_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount_type = models.CharField(max_length=10, choices=DISCOUNT_TYPE_CHOICES, default=DISCOUNT_AMOUNT)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('18.00'))

    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'), help_text="Taxable value after discount")
    gst_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    cgst = models.DecimalField(max_digits=13, decimal_places=3, default=Decimal('0.000'))
    sgst = models.DecimalField(max_digits=13, decimal_places=3, default=Decimal('0.000'))
    late_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    previous_due = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    payment_status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    due_date = models.DateTimeField(db_index=True)
    paid_date = models.DateTimeField(null=True, blank=True)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, blank=True, default='')

    razorpay_order_id = models.CharField(max_length=100, null=True, blank=True, db_index=True)
    razorpay_payment_id = models.CharField(max_length=100, null=True, blank=True)
    razorpay_signature = models.CharField(max_length=255, null=True, blank=True)

    membership_renewed_at = models.DateTimeField(null=True, blank=True)
    carried_into = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='carried_invoices')
    notes = models.TextField(blank=True, default='')
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices_created')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        db_table = 'invoices'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.invoice_number} - {self.payment_status}"

    @property
    def balance_due(self):
        return max(Decimal('0.00'), self.total_amount - self.paid_amount)

    def apply_totals(self, totals):
        self.amount = totals.taxable_amount
        self.gst_amount = totals.gst_amount
        self.cgst = totals.cgst
        self.sgst = totals.sgst
        self.late_fee = totals.late_fee
        self.previous_due = totals.previous_due
        self.total_amount = totals.total_amount

    def settle(self, paid_date=None):
        """The only way an invoice becomes PAID: status, amount and date move together."""
        self.payment_status = self.STATUS_PAID
        self.paid_amount = self.total_amount
        self.paid_date = paid_date or self.paid_date
