from django.contrib.auth.base_user import AbstractBaseUser, BaseUserManager
from django.db import models


class StaffUserManager(BaseUserManager):
    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('The Email field must be set')

        user = self.model(email=self.normalize_email(email), **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('role', StaffUser.ROLE_ADMIN)

        if extra_fields.get('role') != StaffUser.ROLE_ADMIN:
            raise ValueError('Superuser must have role=ADMIN.')

        return self.create_user(email, password, **extra_fields)


class StaffUser(AbstractBaseUser):
    ROLE_ADMIN = 'ADMIN'
    ROLE_STAFF = 'STAFF'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_STAFF, 'Staff'),
    ]

    email = models.EmailField(max_length=255, unique=True)
    name = models.CharField(max_length=100, blank=True, default='')
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_STAFF, db_index=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StaffUserManager()

    USERNAME_FIELD = 'email'
    EMAIL_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'users'

    def __str__(self):
        return self.email

    # Django admin integration: admins get everything, staff get nothing
    @property
    def is_staff(self):
        return self.role == self.ROLE_ADMIN

    @property
    def is_superuser(self):
        return self.role == self.ROLE_ADMIN

    def has_perm(self, perm, obj=None):
        return self.is_active and self.role == self.ROLE_ADMIN

    def has_module_perms(self, app_label):
        return self.is_active and self.role == self.ROLE_ADMIN


class GymSettings(models.Model):
    """
    Single-row table holding gym profile and integration credentials.
    SMTP and Razorpay values stored here take precedence over the environment.
    """
    gym_name = models.CharField(max_length=150, default='Atlas Fitness Elite')
    gst_number = models.CharField(max_length=20, blank=True, default='')
    address = models.TextField(blank=True, default='')
    phone = models.CharField(max_length=30, blank=True, default='')
    email = models.EmailField(max_length=255, blank=True, default='')
    email_notifications = models.BooleanField(default=True)

    smtp_host = models.CharField(max_length=255, blank=True, default='')
    smtp_port = models.PositiveIntegerField(null=True, blank=True)
    smtp_user = models.CharField(max_length=255, blank=True, default='')
    smtp_password = models.CharField(max_length=255, blank=True, default='')
    smtp_use_tls = models.BooleanField(default=True)
    from_email = models.CharField(max_length=255, blank=True, default='')

    razorpay_key_id = models.CharField(max_length=100, blank=True, default='')
    razorpay_key_secret = models.CharField(max_length=255, blank=True, default='')

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'settings'
        verbose_name = 'Gym Settings'
        verbose_name_plural = 'Gym Settings'

    def __str__(self):
        return self.gym_name

    @classmethod
    def load(cls):
        settings_obj = cls.objects.order_by('id').first()
        if settings_obj is None:
            settings_obj = cls.objects.create()
        return settings_obj

    @property
    def has_smtp(self):
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    @property
    def has_gateway_keys(self):
        return bool(self.razorpay_key_id and self.razorpay_key_secret)


class NotificationLog(models.Model):
    KIND_WELCOME = 'WELCOME'
    KIND_RECEIPT = 'RECEIPT'
    KIND_EXPIRY_REMINDER = 'EXPIRY_REMINDER'
    KIND_CHOICES = [
        (KIND_WELCOME, 'Welcome'),
        (KIND_RECEIPT, 'Payment receipt'),
        (KIND_EXPIRY_REMINDER, 'Expiry reminder'),
    ]

    STATUS_SENT = 'SENT'
    STATUS_FAILED = 'FAILED'
    STATUS_SKIPPED = 'SKIPPED'
    STATUS_CHOICES = [
        (STATUS_SENT, 'Sent'),
        (STATUS_FAILED, 'Failed'),
        (STATUS_SKIPPED, 'Skipped'),
    ]

    kind = models.CharField(max_length=20, choices=KIND_CHOICES, db_index=True)
    recipient = models.CharField(max_length=255, blank=True, default='')
    subject = models.CharField(max_length=255, blank=True, default='')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, db_index=True)
    error = models.TextField(blank=True, default='')
    member = models.ForeignKey('Member.Member', on_delete=models.SET_NULL, null=True, blank=True, related_name='notifications')
    invoice = models.ForeignKey('Invoice.Invoice', on_delete=models.SET_NULL, null=True, blank=True, related_name='notifications')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'notification_logs'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.kind} to {self.recipient} - {self.status}"
