"""
Sequential identifiers for invoices (``INV-2026-0001``) and members (``AFE-001``).

Each series has a counter row in ``NumberSequence`` that is locked with
``SELECT ... FOR UPDATE`` while a value is taken, so concurrent requests are
serialised on that row and the increment commits or rolls back together with
the insert that uses it. The first time a series is used its counter is seeded
from the highest identifier already stored, which keeps imported or
pre-existing data in sequence.
"""

import logging
import re

from django.apps import apps
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from Invoice.models import Invoice, NumberSequence

logger = logging.getLogger(__name__)


class InvoiceNumberConflict(Exception):
    """An invoice number could not be allocated after the configured number of retries."""


def _highest_suffix(values, prefix):
    pattern = re.compile(r'^' + re.escape(prefix) + r'-(\d+)$')
    highest = 0
    for value in values:
        match = pattern.match(value or '')
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


def _invoice_seed(prefix):
    numbers = Invoice.objects.filter(invoice_number__startswith=f'{prefix}-').values_list('invoice_number', flat=True)
    return _highest_suffix(numbers, prefix)


def _member_seed(prefix):
    Member = apps.get_model('Member', 'Member')
    codes = Member.objects.filter(member_code__startswith=f'{prefix}-').values_list('member_code', flat=True)
    return _highest_suffix(codes, prefix)


def allocate(prefix, seed, resync=False):
    """
    Take the next value of the ``prefix`` series.

    ``seed(prefix)`` returns the highest value already in use and is consulted
    when the counter row is created, or on every call when ``resync`` is set.
    """
    with transaction.atomic():
        sequence = NumberSequence.objects.select_for_update().filter(prefix=prefix).first()
        if sequence is None:
            try:
                with transaction.atomic():
                    NumberSequence.objects.create(prefix=prefix, last_value=seed(prefix))
            except IntegrityError:
                # created by a concurrent request; lock that row instead
                logger.debug("Counter row for %s created concurrently", prefix)
            sequence = NumberSequence.objects.select_for_update().get(prefix=prefix)
        elif resync:
            sequence.last_value = max(sequence.last_value, seed(prefix))

        sequence.last_value += 1
        sequence.save(update_fields=['last_value'])
        return sequence.last_value


def next_invoice_number(now=None, resync=False):
    """Return the next ``INV-<year>-<NNNN>`` number; the sequence restarts every calendar year."""
    year = timezone.localtime(now or timezone.now()).year
    prefix = f'INV-{year}'
    value = allocate(prefix, _invoice_seed, resync=resync)
    return f'{prefix}-{value:04d}'


def next_member_code():
    prefix = settings.MEMBER_CODE_PREFIX
    value = allocate(prefix, _member_seed)
    return f'{prefix}-{value:03d}'
