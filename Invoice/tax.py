"""
GST arithmetic shared by membership invoices and multi-line orders.

All money values are ``Decimal`` rounded half-up to the paisa. The GST amount
is rounded first and then split into two equal halves (CGST and SGST), kept at
three decimal places so that ``cgst + sgst == gst_amount`` exactly.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal('0')
HUNDRED = Decimal('100')
ROUND = Decimal('0.01')
HALF_ROUND = Decimal('0.001')

DISCOUNT_AMOUNT = 'AMOUNT'
DISCOUNT_PERCENTAGE = 'PERCENTAGE'


def to_decimal(value):
    """Coerce user input to a finite, non-negative ``Decimal``; anything unusable becomes 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value).strip())
        except (InvalidOperation, ValueError, TypeError):
            return ZERO
    if not value.is_finite() or value < 0:
        return ZERO
    return value


def money(value):
    return value.quantize(ROUND, rounding=ROUND_HALF_UP)


def split_gst(gst_amount):
    """Return ``(cgst, sgst)``, each exactly half of ``gst_amount``."""
    half = (gst_amount / 2).quantize(HALF_ROUND, rounding=ROUND_HALF_UP)
    return half, half


def discount_amount_for(amount, discount, discount_type):
    discount = to_decimal(discount)
    if discount_type == DISCOUNT_PERCENTAGE:
        return amount * discount / HUNDRED
    return discount


@dataclass(frozen=True)
class InvoiceTotals:
    discount_amount: Decimal
    taxable_amount: Decimal
    gst_amount: Decimal
    cgst: Decimal
    sgst: Decimal
    late_fee: Decimal
    previous_due: Decimal
    total_amount: Decimal


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    gst_amount: Decimal
    cgst: Decimal
    sgst: Decimal
    total_amount: Decimal


def compute_invoice_totals(base_amount, discount=0, discount_type=DISCOUNT_AMOUNT, tax_rate=0, late_fee=0, previous_due=0):
    """
    Compute the totals of a single-line invoice.

    The discount is taken off ``base_amount`` (never below zero), GST is charged
    on what is left, and the late fee and any carried-over previous due are
    added on top untaxed.
    """
    base_amount = to_decimal(base_amount)
    tax_rate = to_decimal(tax_rate)
    late_fee = money(to_decimal(late_fee))
    previous_due = money(to_decimal(previous_due))

    discount = discount_amount_for(base_amount, discount, discount_type)
    taxable = money(max(ZERO, base_amount - discount))
    gst = money(taxable * tax_rate / HUNDRED)
    cgst, sgst = split_gst(gst)

    return InvoiceTotals(
        discount_amount=money(min(discount, base_amount)),
        taxable_amount=taxable,
        gst_amount=gst,
        cgst=cgst,
        sgst=sgst,
        late_fee=late_fee,
        previous_due=previous_due,
        total_amount=taxable + gst + late_fee + previous_due,
    )


def compute_order_totals(lines, discount=0, discount_type=DISCOUNT_AMOUNT):
    """
    Compute the totals of a multi-line order.

    ``lines`` is an iterable of mappings with ``price``, ``quantity`` (default 1)
    and ``tax_rate`` keys. The order-level discount is spread across lines in
    proportion to their value and each line is taxed at its own rate.
    """
    priced = []
    subtotal = ZERO
    for line in lines:
        quantity = to_decimal(line.get('quantity', 1))
        line_amount = to_decimal(line.get('price')) * quantity
        priced.append((line_amount, to_decimal(line.get('tax_rate'))))
        subtotal += line_amount

    discount = min(discount_amount_for(subtotal, discount, discount_type), subtotal)

    taxable = ZERO
    gst = ZERO
    for line_amount, rate in priced:
        share = discount * line_amount / subtotal if subtotal else ZERO
        line_taxable = line_amount - share
        taxable += line_taxable
        gst += line_taxable * rate / HUNDRED

    taxable = money(taxable)
    gst = money(gst)
    cgst, sgst = split_gst(gst)

    return OrderTotals(
        subtotal=money(subtotal),
        discount_amount=money(discount),
        taxable_amount=taxable,
        gst_amount=gst,
        cgst=cgst,
        sgst=sgst,
        total_amount=taxable + gst,
    )
