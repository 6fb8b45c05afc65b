from django.contrib import admin
from .models import Plan


@admin.register(Plan)
class PlanAdmin(admin.ModelAdmin):
    list_display = ['name', 'duration', 'price', 'tax_rate', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name']
