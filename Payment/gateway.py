"""
Razorpay order creation and callback signature verification.

Keys come from the gym settings record when both are set there, otherwise
from ``RAZORPAY_KEY_ID`` / ``RAZORPAY_KEY_SECRET``. A payment is only ever
confirmed after ``verify_signature`` succeeds; the checkout's own "success"
callback is not trusted on its own.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

from Administration.models import GymSettings
from Invoice.tax import to_decimal

logger = logging.getLogger(__name__)


class GatewayConfigurationError(Exception):
    """No usable gateway credentials are configured."""


class GatewayError(Exception):
    """The gateway could not be reached or rejected the request."""


@dataclass(frozen=True)
class GatewayCredentials:
    key_id: str
    key_secret: str


def resolve_credentials():
    gym = GymSettings.load()
    if gym.has_gateway_keys:
        return GatewayCredentials(gym.razorpay_key_id, gym.razorpay_key_secret)
    if settings.RAZORPAY_KEY_ID and settings.RAZORPAY_KEY_SECRET:
        return GatewayCredentials(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)
    raise GatewayConfigurationError("Razorpay keys are not configured")


def _build_client(credentials):
    import razorpay
    return razorpay.Client(auth=(credentials.key_id, credentials.key_secret))


def amount_in_paise(amount):
    return int((to_decimal(amount) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def create_order(invoice):
    """
    Reserve a gateway order for the invoice total and remember its id on the invoice.

    Returns ``{"gateway_order_id", "amount", "currency", "key_id"}``; amount is in paise.
    """
    credentials = resolve_credentials()
    payload = {
        'amount': amount_in_paise(invoice.total_amount),
        'currency': settings.PAYMENT_CURRENCY,
        'receipt': invoice.invoice_number,
        'notes': {
            'invoice_id': str(invoice.pk),
            'invoice_number': invoice.invoice_number,
        },
    }

    try:
        client = _build_client(credentials)
        order = client.order.create(data=payload, timeout=settings.PAYMENT_GATEWAY_TIMEOUT)
    except Exception as e:
        logger.error("Razorpay order creation failed for %s: %s", invoice.invoice_number, e, exc_info=True)
        raise GatewayError(f"Payment gateway error: {e}") from e

    order_id = order.get('id') if isinstance(order, dict) else None
    if not order_id:
        logger.error("Razorpay returned no order id for %s: %r", invoice.invoice_number, order)
        raise GatewayError("Payment gateway returned an invalid order")

    invoice.razorpay_order_id = order_id
    invoice.save(update_fields=['razorpay_order_id'])
    logger.info("Razorpay order %s created for %s (%s paise)", order_id, invoice.invoice_number, payload['amount'])

    return {
        'gateway_order_id': order_id,
        'amount': payload['amount'],
        'currency': payload['currency'],
        'key_id': credentials.key_id,
    }


def compute_signature(order_id, payment_id, secret):
    message = f"{order_id}|{payment_id}".encode('utf-8')
    return hmac.new(secret.encode('utf-8'), message, hashlib.sha256).hexdigest()


def verify_signature(order_id, payment_id, signature, secret):
    """
    HMAC-SHA256 check of ``order_id|payment_id``. Never raises; bad input is simply False.

    Kept apart from ``razorpay.Utility.verify_payment_signature``, which needs a
    configured client and raises on mismatch, so the check works from the
    secret alone and reads as a boolean at the call site.
    """
    values = (order_id, payment_id, signature, secret)
    if not all(isinstance(v, str) and v for v in values):
        return False
    expected = compute_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected.encode('utf-8'), signature.encode('utf-8'))
