from decimal import Decimal

from django.db import models


class ProductCategory(models.Model):
    """Product categories, ordered by display_order"""
    business = models.ForeignKey('workspaces.Business', on_delete=models.CASCADE, related_name='product_categories')
    name_ar = models.CharField(max_length=200)
    name_en = models.CharField(max_length=200, blank=True)
    color = models.CharField(max_length=7, default='#3B82F6')
    display_order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name_en or self.name_ar

    class Meta:
        db_table = 'product_categories'
        ordering = ['display_order', 'id']
        verbose_name_plural = 'product categories'


class Product(models.Model):
    """Sellable product with price, cost and warehouse stock counters"""
    business = models.ForeignKey('workspaces.Business', on_delete=models.CASCADE, related_name='products')
    name_ar = models.CharField(max_length=255)
    name_en = models.CharField(max_length=255, blank=True)
    sku = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    category = models.ForeignKey(ProductCategory, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    image_url = models.URLField(max_length=500, blank=True)
    is_active = models.BooleanField(default=True)
    physical_stock = models.IntegerField(default=0)
    reserved_stock = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name_en or self.name_ar} ({self.sku})"

    @property
    def available_stock(self):
        return self.physical_stock - self.reserved_stock

    class Meta:
        db_table = 'products'
        ordering = ['name_ar']
        unique_together = [['business', 'sku']]
        indexes = [
            models.Index(fields=['business', 'sku'], name='product_business_sku_idx'),
            models.Index(fields=['business', 'is_active'], name='product_business_active_idx'),
        ]
