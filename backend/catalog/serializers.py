from rest_framework import serializers
from .models import ProductCategory, Product


class ProductCategorySerializer(serializers.ModelSerializer):
    products_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = ProductCategory
        fields = ['id', 'business', 'name_ar', 'name_en', 'color', 'display_order', 'is_active',
                  'products_count', 'created_at', 'updated_at']
        read_only_fields = ['business', 'display_order', 'created_at', 'updated_at']


class ProductSerializer(serializers.ModelSerializer):
    category_name = serializers.SerializerMethodField()
    available_stock = serializers.IntegerField(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'business', 'name_ar', 'name_en', 'sku', 'price', 'cost', 'category', 'category_name',
                  'image_url', 'is_active', 'physical_stock', 'reserved_stock', 'available_stock',
                  'created_at', 'updated_at']
        read_only_fields = ['business', 'created_at', 'updated_at']

    def get_category_name(self, obj):
        if obj.category:
            return obj.category.name_ar
        return None

    def validate_sku(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('SKU is required')
        return value

    def validate(self, attrs):
        business = self.context.get('business')
        category = attrs.get('category')
        if business is not None and category is not None and category.business_id != business.pk:
            raise serializers.ValidationError({'category': 'Category does not belong to this workspace'})
        for field in ('price', 'cost'):
            if field in attrs and attrs[field] < 0:
                raise serializers.ValidationError({field: 'Must not be negative'})
        return attrs


class ReorderSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
