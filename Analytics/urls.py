from django.urls import path

from Analytics.views import dashboard_view, revenue_view, members_view, export_csv_view, export_excel_view

urlpatterns = [
    path('analytics/dashboard', dashboard_view, name='analytics-dashboard'),
    path('analytics/revenue', revenue_view, name='analytics-revenue'),
    path('analytics/members', members_view, name='analytics-members'),
    path('analytics/export/csv', export_csv_view, name='analytics-export-csv'),
    path('analytics/export/excel', export_excel_view, name='analytics-export-excel'),
]
