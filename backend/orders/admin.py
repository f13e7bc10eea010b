from django.contrib import admin
from .models import Status, Order, OrderItem, OrderLock


@admin.register(Status)
class StatusAdmin(admin.ModelAdmin):
    list_display = ['key', 'name_ar', 'name_en', 'business', 'sort_order', 'status_type', 'is_final', 'is_system_default']
    list_filter = ['status_type', 'is_final', 'is_system_default', 'business']
    search_fields = ['key', 'name_ar', 'name_en']
    ordering = ['business', 'sort_order']


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'business', 'order_date', 'customer_name', 'customer_phone', 'status',
                    'revenue', 'profit', 'collection_status', 'processing_status']
    list_filter = ['status__status_type', 'collection_status', 'processing_status', 'business']
    search_fields = ['order_number', 'customer_name', 'customer_phone', 'tracking_number']
    readonly_fields = ['profit', 'created_at', 'updated_at', 'locked_by', 'locked_at']
    inlines = [OrderItemInline]
    date_hierarchy = 'order_date'


@admin.register(OrderLock)
class OrderLockAdmin(admin.ModelAdmin):
    list_display = ['order', 'user', 'employee', 'locked_at', 'expires_at']
