from decimal import Decimal

from django.db import models


class Country(models.Model):
    """Country a workspace ships to, with its currency and default shipping cost"""
    business = models.ForeignKey('workspaces.Business', on_delete=models.CASCADE, related_name='countries')
    name_ar = models.CharField(max_length=200)
    name_en = models.CharField(max_length=200, blank=True)
    code = models.CharField(max_length=10)
    currency = models.CharField(max_length=10, blank=True)
    currency_symbol = models.CharField(max_length=10, blank=True)
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name_en or self.name_ar

    class Meta:
        db_table = 'countries'
        ordering = ['name_ar']
        unique_together = [['business', 'code']]


class City(models.Model):
    """City inside a country; its shipping cost overrides the country default"""
    country = models.ForeignKey(Country, on_delete=models.CASCADE, related_name='cities')
    name_ar = models.CharField(max_length=200)
    name_en = models.CharField(max_length=200, blank=True)
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name_en or self.name_ar

    class Meta:
        db_table = 'cities'
        ordering = ['name_ar']
        verbose_name_plural = 'cities'
