from django.urls import path
from .views import (
    campaign_list_create, campaign_detail, campaign_allocation,
    allocate_pending, campaign_cost_logs, advertising_stats_view,
)

urlpatterns = [
    path('ad-campaigns/', campaign_list_create, name='campaign-list-create'),
    path('ad-campaigns/stats/', advertising_stats_view, name='advertising-stats'),
    path('ad-campaigns/allocate-pending/', allocate_pending, name='campaign-allocate-pending'),
    path('ad-campaigns/<int:pk>/', campaign_detail, name='campaign-detail'),
    path('ad-campaigns/<int:pk>/cost-logs/', campaign_cost_logs, name='campaign-cost-logs'),
    path('ad-campaigns/<int:pk>/<str:action>/', campaign_allocation, name='campaign-allocation'),
]
