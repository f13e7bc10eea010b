from django.urls import path
from .views import (
    status_list_create, status_detail, status_reorder,
    order_list_create, order_detail, order_update_status,
    order_bulk_status, order_bulk_tracking, order_bulk_delivery,
    order_lock, order_unlock, order_statistics, order_audit_logs,
    order_export, order_import, order_import_template,
)

urlpatterns = [
    path('statuses/', status_list_create, name='status-list-create'),
    path('statuses/reorder/', status_reorder, name='status-reorder'),
    path('statuses/<int:pk>/', status_detail, name='status-detail'),
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/statistics/', order_statistics, name='order-statistics'),
    path('orders/bulk-status/', order_bulk_status, name='order-bulk-status'),
    path('orders/bulk-tracking/', order_bulk_tracking, name='order-bulk-tracking'),
    path('orders/bulk-delivery/', order_bulk_delivery, name='order-bulk-delivery'),
    path('orders/export/', order_export, name='order-export'),
    path('orders/import/', order_import, name='order-import'),
    path('orders/import/template/', order_import_template, name='order-import-template'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/status/', order_update_status, name='order-update-status'),
    path('orders/<int:pk>/lock/', order_lock, name='order-lock'),
    path('orders/<int:pk>/unlock/', order_unlock, name='order-unlock'),
    path('orders/<int:pk>/audit-logs/', order_audit_logs, name='order-audit-logs'),
]
