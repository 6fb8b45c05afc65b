from django.urls import path

from Member.views import MemberListCreateView, MemberDetailView

urlpatterns = [
    path('members', MemberListCreateView.as_view(), name='member-list'),
    path('members/<int:pk>', MemberDetailView.as_view(), name='member-detail'),
]
