from django.urls import path
from .views import (
    login, logout, refresh_session, check_token,
    profile, update_full_name, access,
    user_list_create, user_detail, generate_password,
    audit_log_list, audit_log_detail,
)

urlpatterns = [
    # Auth endpoints
    path('auth/login', login, name='login'),
    path('auth/logout', logout, name='logout'),
    path('auth/refresh', refresh_session, name='token-refresh'),
    path('auth/check-token', check_token, name='check-token'),

    # Profile endpoints
    path('profile', profile, name='profile'),
    path('profile/full-name', update_full_name, name='profile-full-name'),
    path('access', access, name='access'),

    # Personnel endpoints
    path('users', user_list_create, name='user-list-create'),
    path('users/generate-password', generate_password, name='user-generate-password'),
    path('users/<int:pk>', user_detail, name='user-detail'),

    # AuditLog endpoints
    path('logs', audit_log_list, name='audit-log-list'),
    path('logs/<int:pk>', audit_log_detail, name='audit-log-detail'),
]
