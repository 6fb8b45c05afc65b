"""
Invoice lifecycle: creation, updates, settlement and deletion.

Every mutating function persists first and only then runs the side effects of
an invoice becoming PAID (membership renewal and the receipt email). Those
side effects fire on the transition into PAID, never on later saves of an
invoice that was already PAID. A failing side effect is logged and reported
back as a warning; it never undoes the invoice change.

Functions return ``(invoice, warnings)``.
"""

import logging
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import F, Q, Sum
from django.utils import timezone

from Administration.notifications import send_invoice_receipt
from Invoice.models import Invoice
from Invoice.numbering import InvoiceNumberConflict, next_invoice_number
from Invoice.tax import compute_invoice_totals, money, to_decimal
from Member.models import Member
from Member.renewal import renew_membership
from Plan.models import Plan

logger = logging.getLogger(__name__)

PRICING_FIELDS = ('base_amount', 'discount', 'discount_type', 'tax_rate', 'late_fee')
MONEY_FIELDS = ('base_amount', 'discount', 'tax_rate', 'late_fee', 'paid_amount')
PATCHABLE_FIELDS = PRICING_FIELDS + (
    'paid_amount', 'payment_status', 'due_date', 'paid_date', 'payment_method', 'notes',
    'razorpay_order_id', 'razorpay_payment_id', 'razorpay_signature',
)
PAYMENT_DETAIL_FIELDS = ('payment_method', 'razorpay_order_id', 'razorpay_payment_id', 'razorpay_signature')

STATUS_VALUES = {choice for choice, _ in Invoice.STATUS_CHOICES}
DISCOUNT_TYPE_VALUES = {choice for choice, _ in Invoice.DISCOUNT_TYPE_CHOICES}


def _pk(value):
    return getattr(value, 'pk', value)


def _resolve_member_and_plan(data):
    errors = {}
    member = plan = None

    member_id = _pk(data.get('member', data.get('member_id')))
    plan_id = _pk(data.get('plan', data.get('plan_id')))

    if member_id in (None, ''):
        errors['member'] = 'This field is required.'
    else:
        member = Member.objects.filter(pk=member_id).first()
        if member is None:
            errors['member'] = 'Member not found.'

    if plan_id in (None, ''):
        errors['plan'] = 'This field is required.'
    else:
        plan = Plan.objects.filter(pk=plan_id).first()
        if plan is None:
            errors['plan'] = 'Plan not found.'
        elif not plan.is_active:
            errors['plan'] = 'Plan is inactive.'

    if errors:
        raise ValidationError(errors)
    return member, plan


def _check_choices(status, discount_type):
    errors = {}
    if status not in STATUS_VALUES:
        errors['payment_status'] = f'"{status}" is not a valid payment status.'
    if discount_type not in DISCOUNT_TYPE_VALUES:
        errors['discount_type'] = f'"{discount_type}" is not a valid discount type.'
    if errors:
        raise ValidationError(errors)


def open_invoices_for(member):
    """Unsettled invoices whose balance has not already been carried into a newer invoice."""
    return Invoice.objects.filter(
        member=member,
        payment_status__in=Invoice.OPEN_STATUSES,
        carried_into__isnull=True,
    )


def outstanding_balance(member):
    total = Decimal('0')
    for invoice in open_invoices_for(member):
        total += invoice.balance_due
    return money(total)


def _insert_invoice(member, plan, data, created_by, now, resync):
    carried = []
    previous_due = Decimal('0')
    if data.get('carry_previous_due'):
        carried = list(open_invoices_for(member).select_for_update())
        previous_due = sum((invoice.balance_due for invoice in carried), Decimal('0'))

    base_amount = data.get('base_amount')
    if base_amount in (None, ''):
        base_amount = plan.price
    tax_rate = data.get('tax_rate')
    if tax_rate in (None, ''):
        tax_rate = plan.tax_rate if plan.tax_rate is not None else settings.DEFAULT_TAX_RATE
    discount_type = data.get('discount_type') or Invoice.DISCOUNT_AMOUNT
    status = data.get('payment_status') or Invoice.STATUS_PENDING
    _check_choices(status, discount_type)

    totals = compute_invoice_totals(
        base_amount, data.get('discount'), discount_type, tax_rate, data.get('late_fee'), previous_due,
    )

    invoice = Invoice(
        member=member,
        plan=plan,
        base_amount=money(to_decimal(base_amount)),
        discount=money(to_decimal(data.get('discount'))),
        discount_type=discount_type,
        tax_rate=money(to_decimal(tax_rate)),
        paid_amount=money(to_decimal(data.get('paid_amount'))),
        payment_status=status,
        due_date=data.get('due_date') or now,
        paid_date=data.get('paid_date'),
        payment_method=data.get('payment_method') or '',
        notes=data.get('notes') or '',
        created_by=created_by,
    )
    invoice.apply_totals(totals)
    if status == Invoice.STATUS_PAID:
        invoice.settle(paid_date=invoice.paid_date or now)

    invoice.invoice_number = next_invoice_number(now, resync=resync)
    invoice.save()

    if carried:
        Invoice.objects.filter(pk__in=[c.pk for c in carried]).update(carried_into=invoice)
        logger.info("Carried %s open invoice(s) (%s) into %s", len(carried), previous_due, invoice.invoice_number)
    return invoice


def create_invoice(data, created_by=None, now=None):
    """
    Create an invoice from ``data`` (``member``, ``plan``, optional ``base_amount``,
    ``discount``, ``discount_type``, ``tax_rate``, ``late_fee``, ``paid_amount``,
    ``payment_status``, ``due_date``, ``payment_method``, ``notes`` and
    ``carry_previous_due``).

    Number allocation and insert share one transaction; a clash on the unique
    invoice number is retried with the counter resynchronised from stored data.
    """
    now = now or timezone.now()
    member, plan = _resolve_member_and_plan(data)

    retries = max(1, settings.INVOICE_NUMBER_MAX_RETRIES)
    invoice = None
    for attempt in range(1, retries + 1):
        try:
            with transaction.atomic():
                invoice = _insert_invoice(member, plan, data, created_by, now, resync=attempt > 1)
            break
        except IntegrityError as e:
            logger.warning("Invoice number conflict on attempt %s/%s: %s", attempt, retries, e)
            if attempt == retries:
                raise InvoiceNumberConflict(f"Could not allocate a unique invoice number after {retries} attempts") from e

    logger.info("Invoice %s created for member %s (total %s, %s)",
                invoice.invoice_number, member.member_code, invoice.total_amount, invoice.payment_status)

    warnings = []
    if invoice.payment_status == Invoice.STATUS_PAID:
        warnings = _on_paid_entry(invoice, now)
    return invoice, warnings


def update_invoice(invoice_id, patch, now=None):
    """Apply ``patch`` to an invoice, recomputing totals when a pricing field changed."""
    now = now or timezone.now()
    with transaction.atomic():
        invoice = Invoice.objects.select_for_update().get(pk=invoice_id)
        previous_status = invoice.payment_status

        for field in PATCHABLE_FIELDS:
            if field not in patch:
                continue
            value = patch[field]
            if field in MONEY_FIELDS:
                value = money(to_decimal(value))
            elif field == 'payment_method' or field == 'notes':
                value = value or ''
            setattr(invoice, field, value)
        _check_choices(invoice.payment_status, invoice.discount_type)

        if any(field in patch for field in PRICING_FIELDS):
            invoice.apply_totals(compute_invoice_totals(
                invoice.base_amount, invoice.discount, invoice.discount_type,
                invoice.tax_rate, invoice.late_fee, invoice.previous_due,
            ))

        if invoice.payment_status == Invoice.STATUS_PAID:
            invoice.settle(paid_date=invoice.paid_date or now)
        invoice.save()

    logger.info("Invoice %s updated (%s -> %s)", invoice.invoice_number, previous_status, invoice.payment_status)

    warnings = []
    if previous_status != Invoice.STATUS_PAID and invoice.payment_status == Invoice.STATUS_PAID:
        warnings = _on_paid_entry(invoice, now)
    return invoice, warnings


def mark_as_paid(invoice_id, payment_details=None, now=None):
    """Settle an invoice in full, merging the payment method and gateway ids from ``payment_details``."""
    now = now or timezone.now()
    details = payment_details or {}
    with transaction.atomic():
        invoice = Invoice.objects.select_for_update().get(pk=invoice_id)
        previous_status = invoice.payment_status

        for field in PAYMENT_DETAIL_FIELDS:
            if details.get(field):
                setattr(invoice, field, details[field])
        invoice.settle(paid_date=now)
        invoice.save()

    logger.info("Invoice %s marked as paid (%s, method %s)",
                invoice.invoice_number, invoice.paid_amount, invoice.payment_method or '-')

    warnings = []
    if previous_status != Invoice.STATUS_PAID:
        warnings = _on_paid_entry(invoice, now)
    return invoice, warnings


def delete_invoice(invoice_id):
    """Hard delete. Other invoice numbers and the member are left untouched."""
    with transaction.atomic():
        invoice = Invoice.objects.get(pk=invoice_id)
        released = invoice.carried_invoices.update(carried_into=None)
        number = invoice.invoice_number
        invoice.delete()
    logger.info("Invoice %s deleted (%s carried invoice(s) released)", number, released)
    return number


def _renew_for_invoice(invoice, now):
    """Renew the member once per invoice; the claim on ``membership_renewed_at`` makes repeats no-ops."""
    with transaction.atomic():
        claimed = Invoice.objects.filter(
            pk=invoice.pk, membership_renewed_at__isnull=True,
        ).update(membership_renewed_at=now)
        if not claimed:
            logger.info("Membership for invoice %s was already renewed", invoice.invoice_number)
            return None
        member = renew_membership(invoice.member_id, invoice.plan_id, now=now)
    invoice.membership_renewed_at = now
    return member


def _on_paid_entry(invoice, now):
    warnings = []

    try:
        member = _renew_for_invoice(invoice, now)
        if member is not None:
            invoice.member = member
    except Exception as e:
        logger.error("Membership renewal failed for invoice %s: %s", invoice.invoice_number, e, exc_info=True)
        warnings.append(f"Membership renewal failed: {e}")

    try:
        send_invoice_receipt(invoice)
    except Exception as e:
        logger.error("Receipt email failed for invoice %s: %s", invoice.invoice_number, e, exc_info=True)
        warnings.append(f"Receipt email could not be sent: {e}")

    return warnings


def list_overdue(now=None):
    now = now or timezone.now()
    return Invoice.objects.filter(
        payment_status__in=[Invoice.STATUS_PENDING, Invoice.STATUS_OVERDUE],
        due_date__lt=now,
        carried_into__isnull=True,
    ).select_related('member', 'plan').order_by('due_date')


def mark_overdue(now=None):
    """Flip PENDING invoices past their due date to OVERDUE. Returns the number changed."""
    now = now or timezone.now()
    count = Invoice.objects.filter(
        payment_status=Invoice.STATUS_PENDING,
        due_date__lt=now,
        carried_into__isnull=True,
    ).update(payment_status=Invoice.STATUS_OVERDUE)
    if count:
        logger.info("Marked %s invoice(s) as overdue", count)
    return count


def total_revenue():
    return Invoice.objects.aggregate(total=Sum('paid_amount'))['total'] or Decimal('0.00')


def local_day_bounds(now=None):
    start = timezone.localtime(now or timezone.now()).replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


def today_collections(now=None):
    """Paid amounts on invoices touched today; the update time stands in for the payment time."""
    start, end = local_day_bounds(now)
    result = Invoice.objects.filter(updated_at__gte=start, updated_at__lt=end).aggregate(total=Sum('paid_amount'))
    return result['total'] or Decimal('0.00')


def drifted_paid_invoices():
    return Invoice.objects.filter(payment_status=Invoice.STATUS_PAID).filter(
        ~Q(paid_amount=F('total_amount')) | Q(paid_date__isnull=True)
    )


def reconcile_paid_amounts(dry_run=False):
    """
    Repair PAID invoices whose paid amount or paid date were never set.

    Returns a list of ``(invoice_number, old_paid_amount, total_amount)``.
    """
    fixed = []
    with transaction.atomic():
        for invoice in drifted_paid_invoices().select_for_update():
            fixed.append((invoice.invoice_number, invoice.paid_amount, invoice.total_amount))
            if dry_run:
                continue
            invoice.settle(paid_date=invoice.paid_date or invoice.updated_at)
            invoice.save(update_fields=['payment_status', 'paid_amount', 'paid_date'])
    return fixed
