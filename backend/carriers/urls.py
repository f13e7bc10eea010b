from django.urls import path
from .views import (
    carrier_list_create, carrier_detail, carrier_toggle_active,
    carrier_city_prices, carrier_city_price_delete,
    carrier_settings, carrier_analytics_view, shipping_cost_quote
)

urlpatterns = [
    path('carriers/', carrier_list_create, name='carrier-list-create'),
    path('carriers/shipping-quote/', shipping_cost_quote, name='carrier-shipping-quote'),
    path('carriers/<int:pk>/', carrier_detail, name='carrier-detail'),
    path('carriers/<int:pk>/toggle-active/', carrier_toggle_active, name='carrier-toggle-active'),
    path('carriers/<int:pk>/city-prices/', carrier_city_prices, name='carrier-city-prices'),
    path('carriers/<int:pk>/city-prices/<int:city_id>/', carrier_city_price_delete, name='carrier-city-price-delete'),
    path('carriers/<int:pk>/settings/', carrier_settings, name='carrier-settings'),
    path('carriers/<int:pk>/analytics/', carrier_analytics_view, name='carrier-analytics'),
]
