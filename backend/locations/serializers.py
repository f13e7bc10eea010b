from rest_framework import serializers
from .models import Country, City


class CountrySerializer(serializers.ModelSerializer):
    cities_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Country
        fields = ['id', 'business', 'name_ar', 'name_en', 'code', 'currency', 'currency_symbol',
                  'shipping_cost', 'is_active', 'cities_count', 'created_at', 'updated_at']
        read_only_fields = ['business', 'created_at', 'updated_at']

    def validate_code(self, value):
        return value.strip().upper()


class CitySerializer(serializers.ModelSerializer):
    class Meta:
        model = City
        fields = ['id', 'country', 'name_ar', 'name_en', 'shipping_cost', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['country', 'created_at', 'updated_at']


class CityBulkRowSerializer(serializers.Serializer):
    name_ar = serializers.CharField(max_length=200)
    name_en = serializers.CharField(max_length=200, required=False, allow_blank=True)
    shipping_cost = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
