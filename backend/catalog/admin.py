from django.contrib import admin
from .models import ProductCategory, Product


@admin.register(ProductCategory)
class ProductCategoryAdmin(admin.ModelAdmin):
    list_display = ['name_ar', 'name_en', 'business', 'display_order', 'is_active']
    list_filter = ['is_active', 'business']
    search_fields = ['name_ar', 'name_en']
    ordering = ['business', 'display_order']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['sku', 'name_ar', 'business', 'category', 'price', 'cost', 'physical_stock', 'reserved_stock', 'is_active']
    list_filter = ['is_active', 'business', 'category']
    search_fields = ['sku', 'name_ar', 'name_en']
    readonly_fields = ['created_at', 'updated_at']
