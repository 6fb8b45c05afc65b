from django.urls import path

from Invoice.views import (
    InvoiceListCreateView, InvoiceDetailView, MarkPaidView,
    OverdueInvoicesView, PreviousDueView,
)

urlpatterns = [
    path('invoices', InvoiceListCreateView.as_view(), name='invoice-list'),
    path('invoices/overdue', OverdueInvoicesView.as_view(), name='invoice-overdue'),
    path('invoices/previous-due', PreviousDueView.as_view(), name='invoice-previous-due'),
    path('invoices/<int:pk>', InvoiceDetailView.as_view(), name='invoice-detail'),
    path('invoices/<int:pk>/mark-paid', MarkPaidView.as_view(), name='invoice-mark-paid'),
]
