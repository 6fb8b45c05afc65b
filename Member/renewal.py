import logging

from dateutil.relativedelta import relativedelta
from django.db import transaction
from django.utils import timezone

from Member.models import Member
from Plan.models import Plan

logger = logging.getLogger(__name__)


def membership_window(member, plan, now):
    """
    Return the ``(start, end)`` validity window after paying for ``plan``.

    A membership that is still running is extended from its current end date;
    a lapsed (or never started) one restarts today.
    """
    months = relativedelta(months=plan.duration)
    if member.plan_end_date and member.plan_end_date > now:
        return member.plan_start_date or now, member.plan_end_date + months
    return now, now + months


def renew_membership(member_id, plan_id, now=None):
    """Extend or restart a member's plan. Raises ``DoesNotExist`` for unknown ids."""
    now = now or timezone.now()
    with transaction.atomic():
        member = Member.objects.select_for_update().get(pk=member_id)
        plan = Plan.objects.get(pk=plan_id)

        previous_end = member.plan_end_date
        member.plan_start_date, member.plan_end_date = membership_window(member, plan, now)
        member.plan = plan
        member.status = Member.STATUS_ACTIVE
        member.save(update_fields=['plan', 'plan_start_date', 'plan_end_date', 'status', 'updated_at'])

    logger.info(
        "Membership renewed for %s on plan %s: end %s -> %s",
        member.member_code, plan.id, previous_end, member.plan_end_date,
    )
    return member
