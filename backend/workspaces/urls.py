from django.urls import path
from .views import (
    workspace_list_create, workspace_detail,
    member_list, member_detail,
    invitation_list_create, invitation_revoke, invitation_lookup, invitation_accept,
    admin_workspace_list, admin_stats, admin_approve_lifetime, admin_reject_payment, admin_set_status
)

urlpatterns = [
    path('workspaces/', workspace_list_create, name='workspace-list-create'),
    path('workspaces/<int:pk>/', workspace_detail, name='workspace-detail'),
    path('workspaces/<int:pk>/members/', member_list, name='workspace-member-list'),
    path('workspaces/<int:pk>/members/<int:member_id>/', member_detail, name='workspace-member-detail'),
    path('workspaces/<int:pk>/invitations/', invitation_list_create, name='workspace-invitation-list-create'),
    path('workspaces/<int:pk>/invitations/<int:invitation_id>/', invitation_revoke, name='workspace-invitation-revoke'),
    path('invitations/<str:token>/', invitation_lookup, name='invitation-lookup'),
    path('invitations/<str:token>/accept/', invitation_accept, name='invitation-accept'),

    # Super admin endpoints
    path('admin/workspaces/', admin_workspace_list, name='admin-workspace-list'),
    path('admin/stats/', admin_stats, name='admin-stats'),
    path('admin/workspaces/<int:pk>/approve-lifetime/', admin_approve_lifetime, name='admin-approve-lifetime'),
    path('admin/workspaces/<int:pk>/reject-payment/', admin_reject_payment, name='admin-reject-payment'),
    path('admin/workspaces/<int:pk>/status/', admin_set_status, name='admin-workspace-status'),
]
