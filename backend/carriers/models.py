from decimal import Decimal

from django.db import models


class Carrier(models.Model):
    """Shipping company delivering COD orders"""
    business = models.ForeignKey('workspaces.Business', on_delete=models.CASCADE, related_name='carriers')
    name_ar = models.CharField(max_length=200)
    name_en = models.CharField(max_length=200, blank=True)
    tracking_url = models.URLField(max_length=500, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name_en or self.name_ar

    def save(self, *args, **kwargs):
        if not self.name_en:
            self.name_en = self.name_ar
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'carriers'
        ordering = ['name_ar']


class CarrierCityPrice(models.Model):
    """Carrier-specific shipping price for a city"""
    carrier = models.ForeignKey(Carrier, on_delete=models.CASCADE, related_name='city_prices')
    city = models.ForeignKey('locations.City', on_delete=models.CASCADE, related_name='carrier_prices')
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.carrier} / {self.city}: {self.shipping_cost}"

    class Meta:
        db_table = 'carrier_city_prices'
        unique_together = [['carrier', 'city']]


class CarrierSettings(models.Model):
    """Delivery-rate thresholds used to color a carrier's performance"""
    carrier = models.OneToOneField(Carrier, on_delete=models.CASCADE, related_name='settings')
    good_threshold = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('70.00'))
    warning_threshold = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('50.00'))
    good_color = models.CharField(max_length=7, default='#10B981')
    warning_color = models.CharField(max_length=7, default='#F59E0B')
    poor_color = models.CharField(max_length=7, default='#EF4444')
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Settings for {self.carrier}"

    class Meta:
        db_table = 'carrier_settings'
        verbose_name_plural = 'carrier settings'
