from rest_framework import serializers
from .models import Carrier, CarrierCityPrice, CarrierSettings


class CarrierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Carrier
        fields = ['id', 'business', 'name_ar', 'name_en', 'tracking_url', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['business', 'created_at', 'updated_at']


class CarrierCityPriceSerializer(serializers.ModelSerializer):
    city_name_ar = serializers.CharField(source='city.name_ar', read_only=True)
    city_name_en = serializers.CharField(source='city.name_en', read_only=True)

    class Meta:
        model = CarrierCityPrice
        fields = ['id', 'carrier', 'city', 'city_name_ar', 'city_name_en', 'shipping_cost', 'updated_at']
        read_only_fields = ['carrier', 'updated_at']


class CarrierSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = CarrierSettings
        fields = ['carrier', 'good_threshold', 'warning_threshold', 'good_color', 'warning_color', 'poor_color', 'updated_at']
        read_only_fields = ['carrier', 'updated_at']
