from django.urls import path

from Administration.views import LoginAPI, RefreshView, MeView, ChangePasswordView, LogoutView, SettingsView

urlpatterns = [
    path('auth/login', LoginAPI.as_view(), name='auth-login'),
    path('auth/refresh', RefreshView.as_view(), name='auth-refresh'),
    path('auth/me', MeView.as_view(), name='auth-me'),
    path('auth/change-password', ChangePasswordView.as_view(), name='auth-change-password'),
    path('auth/logout', LogoutView.as_view(), name='auth-logout'),

    path('settings', SettingsView.as_view(), name='settings'),
]
