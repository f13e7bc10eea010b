from django.contrib import admin
from .models import Carrier, CarrierCityPrice, CarrierSettings


@admin.register(Carrier)
class CarrierAdmin(admin.ModelAdmin):
    list_display = ['name_ar', 'name_en', 'business', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name_ar', 'name_en']
    ordering = ['name_ar']


@admin.register(CarrierCityPrice)
class CarrierCityPriceAdmin(admin.ModelAdmin):
    list_display = ['carrier', 'city', 'shipping_cost', 'updated_at']
    search_fields = ['carrier__name_ar', 'city__name_ar']


@admin.register(CarrierSettings)
class CarrierSettingsAdmin(admin.ModelAdmin):
    list_display = ['carrier', 'good_threshold', 'warning_threshold']
