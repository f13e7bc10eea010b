from django.contrib import admin
from .models import Customer, Employee


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone', 'business', 'city', 'total_orders', 'total_revenue', 'is_active', 'created_at']
    list_filter = ['is_active', 'business']
    search_fields = ['name', 'phone', 'email']
    readonly_fields = ['total_orders', 'total_revenue', 'created_at', 'updated_at']


@admin.register(Employee)
class EmployeeAdmin(admin.ModelAdmin):
    list_display = ['name_ar', 'name_en', 'business', 'role', 'phone', 'is_active']
    list_filter = ['role', 'is_active', 'business']
    search_fields = ['name_ar', 'name_en', 'phone', 'email']
