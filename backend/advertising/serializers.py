from rest_framework import serializers

from backend.catalog.models import Product
from .models import AdCampaign, AdCampaignProduct, AdCostLog


class AdCampaignProductSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name_ar', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)

    class Meta:
        model = AdCampaignProduct
        fields = ['id', 'product', 'product_name', 'product_sku', 'allocation_percentage', 'cost_amount']
        read_only_fields = ['cost_amount']


class AllocationInputSerializer(serializers.Serializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all())
    allocation_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100)


class AdCampaignSerializer(serializers.ModelSerializer):
    products = AdCampaignProductSerializer(many=True, read_only=True)
    platform_display = serializers.CharField(source='get_platform_display', read_only=True)

    class Meta:
        model = AdCampaign
        fields = ['id', 'business', 'campaign_date', 'platform', 'platform_display', 'campaign_name', 'total_cost',
                  'notes', 'is_allocated', 'allocated_at', 'created_by', 'products', 'created_at', 'updated_at']
        read_only_fields = ['business', 'is_allocated', 'allocated_at', 'created_by', 'created_at', 'updated_at']

    def validate_total_cost(self, value):
        if value < 0:
            raise serializers.ValidationError('Total cost must not be negative')
        return value


class AdCostLogSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source='order.order_number', read_only=True)

    class Meta:
        model = AdCostLog
        fields = ['id', 'order', 'order_number', 'product', 'allocated_cost', 'allocation_method', 'created_at']
