from django.urls import path
from .views import (
    category_list_create, category_detail, category_reorder,
    product_list_create, product_detail, product_toggle_active,
    product_by_sku, product_export, product_import,
)

urlpatterns = [
    path('product-categories/', category_list_create, name='category-list-create'),
    path('product-categories/reorder/', category_reorder, name='category-reorder'),
    path('product-categories/<int:pk>/', category_detail, name='category-detail'),
    path('products/', product_list_create, name='product-list-create'),
    path('products/export/', product_export, name='product-export'),
    path('products/import/', product_import, name='product-import'),
    path('products/by-sku/<str:sku>/', product_by_sku, name='product-by-sku'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/toggle-active/', product_toggle_active, name='product-toggle-active'),
]
