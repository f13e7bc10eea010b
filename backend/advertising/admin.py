from django.contrib import admin
from .models import AdCampaign, AdCampaignProduct, AdCostLog


class AdCampaignProductInline(admin.TabularInline):
    model = AdCampaignProduct
    extra = 0
    readonly_fields = ['cost_amount']


@admin.register(AdCampaign)
class AdCampaignAdmin(admin.ModelAdmin):
    list_display = ['__str__', 'business', 'campaign_date', 'platform', 'total_cost', 'is_allocated']
    list_filter = ['platform', 'is_allocated', 'business']
    search_fields = ['campaign_name', 'notes']
    inlines = [AdCampaignProductInline]


@admin.register(AdCostLog)
class AdCostLogAdmin(admin.ModelAdmin):
    list_display = ['campaign', 'order', 'product', 'allocated_cost', 'allocation_method', 'created_at']
    list_filter = ['allocation_method']
