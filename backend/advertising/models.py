from decimal import Decimal

from django.conf import settings
from django.db import models


class AdCampaign(models.Model):
    """A day's ad spend on one platform, split across targeted products"""
    PLATFORM_CHOICES = [
        ('facebook', 'Facebook'),
        ('instagram', 'Instagram'),
        ('tiktok', 'TikTok'),
        ('google', 'Google'),
        ('snapchat', 'Snapchat'),
        ('twitter', 'Twitter'),
        ('linkedin', 'LinkedIn'),
        ('other', 'Other'),
    ]

    business = models.ForeignKey('workspaces.Business', on_delete=models.CASCADE, related_name='ad_campaigns')
    campaign_date = models.DateField()
    platform = models.CharField(max_length=20, choices=PLATFORM_CHOICES, default='facebook')
    campaign_name = models.CharField(max_length=255, blank=True)
    total_cost = models.DecimalField(max_digits=12, decimal_places=2)
    notes = models.TextField(blank=True)
    is_allocated = models.BooleanField(default=False)
    allocated_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.campaign_name or f"{self.get_platform_display()} {self.campaign_date}"

    class Meta:
        db_table = 'ad_campaigns'
        ordering = ['-campaign_date', '-created_at']


class AdCampaignProduct(models.Model):
    """Share of a campaign's cost attributed to one product"""
    campaign = models.ForeignKey(AdCampaign, on_delete=models.CASCADE, related_name='products')
    product = models.ForeignKey('catalog.Product', on_delete=models.CASCADE, related_name='ad_campaign_links')
    allocation_percentage = models.DecimalField(max_digits=5, decimal_places=2)
    cost_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.campaign} -> {self.product} ({self.allocation_percentage}%)"

    def save(self, *args, **kwargs):
        self.cost_amount = (self.campaign.total_cost * self.allocation_percentage / Decimal('100')).quantize(Decimal('0.01'))
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'ad_campaign_products'
        unique_together = [['campaign', 'product']]


class AdCostLog(models.Model):
    """Ad cost charged to an order by an allocation run"""
    METHOD_CHOICES = [
        ('daily', 'Daily'),
        ('per_order', 'Per Order'),
        ('product_based', 'Product Based'),
    ]

    campaign = models.ForeignKey(AdCampaign, on_delete=models.CASCADE, related_name='cost_logs')
    order = models.ForeignKey('orders.Order', on_delete=models.CASCADE, related_name='ad_cost_logs')
    product = models.ForeignKey('catalog.Product', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    allocated_cost = models.DecimalField(max_digits=12, decimal_places=2)
    allocation_method = models.CharField(max_length=20, choices=METHOD_CHOICES, default='product_based')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.campaign} -> {self.order}: {self.allocated_cost}"

    class Meta:
        db_table = 'ad_cost_logs'
