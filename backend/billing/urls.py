from django.urls import path
from .views import billing_detail, usage_status, plan_list, admin_billing_action

urlpatterns = [
    path('billing/', billing_detail, name='billing-detail'),
    path('billing/usage/', usage_status, name='billing-usage'),
    path('billing/plans/', plan_list, name='billing-plans'),
    path('admin/workspaces/<int:pk>/billing/<str:action>/', admin_billing_action, name='admin-billing-action'),
]
