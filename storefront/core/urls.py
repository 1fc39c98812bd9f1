from django.urls import path

from .views import (
    login, request_otp, verify_otp, CustomTokenRefreshView, user_me,
    user_list_create, user_detail, audit_log_list,
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', login, name='login'),
    path('auth/request-otp/', request_otp, name='request-otp'),
    path('auth/verify-otp/', verify_otp, name='verify-otp'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token-refresh'),
    path('auth/me/', user_me, name='user-me'),

    # Admin user management
    path('admin/users/', user_list_create, name='admin-user-list-create'),
    path('admin/users/<int:pk>/', user_detail, name='admin-user-detail'),
    path('admin/audit-logs/', audit_log_list, name='admin-audit-log-list'),
]
