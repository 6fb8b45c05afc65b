"""
Email dispatch for member-facing notifications.

SMTP credentials are resolved from the gym settings record first and from the
Django ``EMAIL_*`` settings (environment) second. Every attempt is written to
``NotificationLog``. Delivery failures raise ``NotificationError`` so callers
can decide whether to continue; nothing in billing treats them as fatal.
"""

import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives, get_connection
from django.template.loader import render_to_string
from django.utils import timezone

from Administration.models import GymSettings, NotificationLog

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when an email could not be delivered."""


def _build_connection(gym):
    """Return ``(connection, from_email)`` or ``(None, None)`` when SMTP is not configured."""
    timeout = getattr(settings, 'EMAIL_TIMEOUT', 10)

    if gym.has_smtp:
        logger.debug("Using SMTP settings from the settings record")
        port = gym.smtp_port or 587
        connection = get_connection(
            host=gym.smtp_host,
            port=port,
            username=gym.smtp_user,
            password=gym.smtp_password,
            use_tls=gym.smtp_use_tls and port != 465,
            use_ssl=port == 465,
            timeout=timeout,
        )
        from_email = gym.from_email or f'"{gym.gym_name}" <{gym.smtp_user}>'
        return connection, from_email

    if settings.EMAIL_HOST and settings.EMAIL_HOST_USER and settings.EMAIL_HOST_PASSWORD:
        logger.debug("Using SMTP settings from the environment")
        return get_connection(timeout=timeout), settings.DEFAULT_FROM_EMAIL

    return None, None


def _dispatch(kind, recipient, subject, template, context, member=None, invoice=None):
    log = NotificationLog(kind=kind, recipient=recipient or '', subject=subject, member=member, invoice=invoice)

    if not recipient:
        log.status = NotificationLog.STATUS_SKIPPED
        log.error = 'Recipient has no email address'
        log.save()
        return False

    gym = GymSettings.load()
    if not gym.email_notifications:
        log.status = NotificationLog.STATUS_SKIPPED
        log.error = 'Email notifications are disabled'
        log.save()
        return False

    connection, from_email = _build_connection(gym)
    if connection is None:
        logger.warning("No SMTP settings found in settings record or environment; %s to %s skipped", kind, recipient)
        log.status = NotificationLog.STATUS_SKIPPED
        log.error = 'SMTP is not configured'
        log.save()
        return False

    context = dict(context, gym_name=gym.gym_name, gym=gym)
    text_body = render_to_string(f'emails/{template}.txt', context)
    html_body = render_to_string(f'emails/{template}.html', context)

    message = EmailMultiAlternatives(subject, text_body, from_email, [recipient], connection=connection)
    message.attach_alternative(html_body, 'text/html')

    try:
        message.send()
    except Exception as e:
        log.status = NotificationLog.STATUS_FAILED
        log.error = str(e)
        log.save()
        logger.error("Error sending %s email to %s: %s", kind, recipient, e)
        raise NotificationError(f"Could not send {kind.lower()} email to {recipient}: {e}") from e

    log.status = NotificationLog.STATUS_SENT
    log.save()
    logger.info("%s email sent to %s", kind, recipient)
    return True


def send_welcome_email(member):
    gym_name = GymSettings.load().gym_name
    return _dispatch(
        NotificationLog.KIND_WELCOME,
        member.email,
        f"Welcome to {gym_name}, {member.name}!",
        'welcome',
        {'member': member},
        member=member,
    )


def send_invoice_receipt(invoice):
    gym_name = GymSettings.load().gym_name
    member = invoice.member
    return _dispatch(
        NotificationLog.KIND_RECEIPT,
        member.email,
        f"Payment Receipt - {invoice.invoice_number} | {gym_name}",
        'receipt',
        {'invoice': invoice, 'member': member, 'paid_on': invoice.paid_date or timezone.now()},
        member=member,
        invoice=invoice,
    )


def send_expiry_reminder(member, days_left):
    gym_name = GymSettings.load().gym_name
    return _dispatch(
        NotificationLog.KIND_EXPIRY_REMINDER,
        member.email,
        f"Membership Expiring in {days_left} Days | {gym_name}",
        'expiry_reminder',
        {'member': member, 'days_left': days_left},
        member=member,
    )
