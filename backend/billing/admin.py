from django.contrib import admin
from .models import BusinessBilling


@admin.register(BusinessBilling)
class BusinessBillingAdmin(admin.ModelAdmin):
    list_display = ['business', 'plan', 'status', 'monthly_order_limit', 'is_trial', 'trial_ends_at', 'activated_at']
    list_filter = ['plan', 'status', 'is_trial']
    search_fields = ['business__name', 'business__slug']
    ordering = ['-created_at']
