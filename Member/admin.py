from django.contrib import admin
from .models import Member


@admin.register(Member)
class MemberAdmin(admin.ModelAdmin):
    list_display = ['member_code', 'name', 'email', 'phone', 'plan', 'plan_end_date', 'status']
    list_filter = ['status', 'plan']
    search_fields = ['member_code', 'name', 'email', 'phone']
    readonly_fields = ['member_code', 'plan_start_date', 'plan_end_date', 'created_at', 'updated_at']
    ordering = ['-created_at']
