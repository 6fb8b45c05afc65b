import math

from django.db import models, transaction
from django.utils import timezone

from Invoice.numbering import next_member_code


class MemberQuerySet(models.QuerySet):
    def with_effective_status(self, status, now=None):
        """Filter on the effective status: lapsed ACTIVE rows count as EXPIRED, windowless ones as PENDING."""
        now = now or timezone.now()
        if status == Member.STATUS_EXPIRED:
            return self.filter(models.Q(status=Member.STATUS_EXPIRED) | models.Q(status=Member.STATUS_ACTIVE, plan_end_date__lt=now))
        if status == Member.STATUS_ACTIVE:
            return self.filter(status=Member.STATUS_ACTIVE, plan_end_date__gte=now)
        if status == Member.STATUS_PENDING:
            return self.filter(models.Q(status=Member.STATUS_PENDING) | models.Q(status=Member.STATUS_ACTIVE, plan_end_date__isnull=True))
        return self.filter(status=status)


class Member(models.Model):
    STATUS_ACTIVE = 'ACTIVE'
    STATUS_EXPIRED = 'EXPIRED'
    STATUS_PENDING = 'PENDING'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_EXPIRED, 'Expired'),
        (STATUS_PENDING, 'Pending'),
    ]

    GENDER_CHOICES = [
        ('MALE', 'Male'),
        ('FEMALE', 'Female'),
        ('OTHER', 'Other'),
    ]

    member_code = models.CharField(max_length=20, unique=True, editable=False)
    name = models.CharField(max_length=150)
    email = models.EmailField(max_length=255, null=True, blank=True, db_index=True)
    phone = models.CharField(max_length=20, blank=True, default='', db_index=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True, default='')
    dob = models.DateField(null=True, blank=True)
    address = models.TextField(blank=True, default='')
    gst_number = models.CharField(max_length=20, blank=True, default='')
    plan = models.ForeignKey('Plan.Plan', on_delete=models.PROTECT, null=True, blank=True, related_name='members')
    plan_start_date = models.DateTimeField(null=True, blank=True)
    plan_end_date = models.DateTimeField(null=True, blank=True, db_index=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = MemberQuerySet.as_manager()

    class Meta:
        db_table = 'members'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.member_code} - {self.name}"

    def save(self, *args, **kwargs):
        if self.member_code:
            return super().save(*args, **kwargs)
        with transaction.atomic():
            self.member_code = next_member_code()
            return super().save(*args, **kwargs)

    @property
    def effective_status(self):
        """
        Stored status, corrected for ACTIVE rows whose window says otherwise.

        An ACTIVE membership past its end date reads as EXPIRED, and one that
        was never given a window reads as PENDING.
        """
        if self.status != self.STATUS_ACTIVE:
            return self.status
        if self.plan_end_date is None:
            return self.STATUS_PENDING
        if self.plan_end_date < timezone.now():
            return self.STATUS_EXPIRED
        return self.status

    @property
    def days_remaining(self):
        if not self.plan_end_date:
            return 0
        seconds = (self.plan_end_date - timezone.now()).total_seconds()
        return max(0, math.ceil(seconds / 86400))
