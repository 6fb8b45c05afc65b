from django.urls import path

from Payment.views import CreatePaymentOrderView, VerifyPaymentView, PaymentHistoryView

urlpatterns = [
    path('payments/create', CreatePaymentOrderView.as_view(), name='payment-create'),
    path('payments/verify', VerifyPaymentView.as_view(), name='payment-verify'),
    path('payments/history/<int:member_id>', PaymentHistoryView.as_view(), name='payment-history'),
]
