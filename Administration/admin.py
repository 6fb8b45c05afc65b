from django.contrib import admin
from .models import StaffUser, GymSettings, NotificationLog


@admin.register(StaffUser)
class StaffUserAdmin(admin.ModelAdmin):
    list_display = ['email', 'name', 'role', 'is_active', 'last_login']
    search_fields = ['email', 'name']
    list_filter = ['role', 'is_active']
    exclude = ['password']
    readonly_fields = ['last_login', 'created_at', 'updated_at']


@admin.register(GymSettings)
class GymSettingsAdmin(admin.ModelAdmin):
    list_display = ['gym_name', 'gst_number', 'email', 'email_notifications', 'updated_at']


@admin.register(NotificationLog)
class NotificationLogAdmin(admin.ModelAdmin):
    list_display = ('kind', 'recipient', 'status', 'created_at')
    list_filter = ('kind', 'status', 'created_at')
    search_fields = ('recipient', 'subject')
    readonly_fields = ('created_at',)
