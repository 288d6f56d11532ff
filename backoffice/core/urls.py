from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, user_me,
    organization_current, operations_settings,
    team_member_list_create, team_member_detail,
    role_list, role_assign,
    activity_feed, activity_acknowledge,
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),

    # Organization endpoints
    path('organizations/current/', organization_current, name='organization-current'),
    path('operations-settings/', operations_settings, name='operations-settings'),

    # Team endpoints
    path('team-members/', team_member_list_create, name='team-member-list-create'),
    path('team-members/<int:pk>/', team_member_detail, name='team-member-detail'),
    path('roles/', role_list, name='role-list'),
    path('roles/assign/', role_assign, name='role-assign'),

    # Activity feed endpoints
    path('activity-logs/', activity_feed, name='activity-feed'),
    path('activity-logs/<int:pk>/acknowledge/', activity_acknowledge, name='activity-acknowledge'),
]
