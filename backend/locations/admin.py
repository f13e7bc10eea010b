from django.contrib import admin
from .models import Country, City


@admin.register(Country)
class CountryAdmin(admin.ModelAdmin):
    list_display = ['name_ar', 'name_en', 'code', 'business', 'currency', 'shipping_cost', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name_ar', 'name_en', 'code']
    ordering = ['name_ar']


@admin.register(City)
class CityAdmin(admin.ModelAdmin):
    list_display = ['name_ar', 'name_en', 'country', 'shipping_cost', 'is_active', 'created_at']
    list_filter = ['is_active', 'country']
    search_fields = ['name_ar', 'name_en']
    ordering = ['name_ar']
