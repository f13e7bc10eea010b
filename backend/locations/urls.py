from django.urls import path
from .views import (
    country_list_create, country_detail, country_toggle_active,
    city_list_create, city_bulk_create, city_detail, city_toggle_active
)

urlpatterns = [
    path('countries/', country_list_create, name='country-list-create'),
    path('countries/<int:pk>/', country_detail, name='country-detail'),
    path('countries/<int:pk>/toggle-active/', country_toggle_active, name='country-toggle-active'),
    path('countries/<int:country_id>/cities/', city_list_create, name='city-list-create'),
    path('countries/<int:country_id>/cities/bulk/', city_bulk_create, name='city-bulk-create'),
    path('cities/<int:pk>/', city_detail, name='city-detail'),
    path('cities/<int:pk>/toggle-active/', city_toggle_active, name='city-toggle-active'),
]
