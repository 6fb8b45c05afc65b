"""
Daily membership-expiry reminders.

Members whose ACTIVE plan ends between the start of today and the end of the
day ``EXPIRY_REMINDER_WINDOW_DAYS`` days from now (local time) get one email
per run. A failure for one member never stops the rest of the batch.
"""

import logging
import math
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from Administration.notifications import send_expiry_reminder
from Member.models import Member

logger = logging.getLogger(__name__)


def days_left(end, now):
    return max(0, math.ceil((end - now).total_seconds() / 86400))


def find_expiring_members(now=None, window_days=None):
    now = now or timezone.now()
    if window_days is None:
        window_days = settings.EXPIRY_REMINDER_WINDOW_DAYS
    start_of_today = timezone.localtime(now).replace(hour=0, minute=0, second=0, microsecond=0)
    window_end = start_of_today + timedelta(days=window_days + 1)

    return Member.objects.filter(
        status=Member.STATUS_ACTIVE,
        email__isnull=False,
        plan_end_date__gte=start_of_today,
        plan_end_date__lt=window_end,
    ).exclude(email='').select_related('plan').order_by('plan_end_date')


def send_expiry_reminders(now=None):
    """Send one reminder per expiring member. Returns counts of matched, sent, skipped and failed."""
    now = now or timezone.now()
    members = list(find_expiring_members(now))
    summary = {'matched': len(members), 'sent': 0, 'skipped': 0, 'failed': 0}
    logger.info("Expiry reminder run: %s member(s) expiring soon", len(members))

    for member in members:
        remaining = days_left(member.plan_end_date, now)
        try:
            if send_expiry_reminder(member, remaining):
                summary['sent'] += 1
            else:
                summary['skipped'] += 1
        except Exception as e:
            summary['failed'] += 1
            logger.error("Expiry reminder failed for %s: %s", member.member_code, e, exc_info=True)

    logger.info("Expiry reminder run finished: %s", summary)
    return summary
