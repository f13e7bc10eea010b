from django.urls import path
from .views import (
    customer_list_create, customer_search, customer_detail, customer_recalculate,
    employee_list_create, employee_detail, employee_toggle_active,
    employee_export, employee_performance_view,
)

urlpatterns = [
    path('customers/', customer_list_create, name='customer-list-create'),
    path('customers/search/', customer_search, name='customer-search'),
    path('customers/<int:pk>/', customer_detail, name='customer-detail'),
    path('customers/<int:pk>/recalculate/', customer_recalculate, name='customer-recalculate'),
    path('employees/', employee_list_create, name='employee-list-create'),
    path('employees/export/', employee_export, name='employee-export'),
    path('employees/performance/', employee_performance_view, name='employee-performance'),
    path('employees/<int:pk>/', employee_detail, name='employee-detail'),
    path('employees/<int:pk>/toggle-active/', employee_toggle_active, name='employee-toggle-active'),
]
