from rest_framework import serializers

from backend.carriers.models import Carrier
from backend.catalog.models import Product
from backend.locations.models import Country, City
from backend.parties.models import Employee
from .models import Status, Order, OrderItem, OrderLock


class StatusSerializer(serializers.ModelSerializer):
    orders_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Status
        fields = ['id', 'business', 'key', 'name_ar', 'name_en', 'color', 'sort_order', 'is_final',
                  'counts_as_delivered', 'counts_as_return', 'counts_as_active', 'is_system_default',
                  'status_type', 'orders_count', 'created_at', 'updated_at']
        read_only_fields = ['business', 'sort_order', 'is_system_default', 'created_at', 'updated_at']

    def validate_key(self, value):
        value = value.strip().lower().replace(' ', '_')
        if not value:
            raise serializers.ValidationError('Key is required')
        return value


class OrderItemSerializer(serializers.ModelSerializer):
    line_total = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'product_name', 'sku', 'quantity', 'unit_price', 'unit_cost', 'line_total']


class OrderItemWriteSerializer(serializers.Serializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all(), required=False, allow_null=True)
    product_name = serializers.CharField(required=False, allow_blank=True)
    sku = serializers.CharField(required=False, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1, default=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    unit_cost = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)


class OrderLockSerializer(serializers.ModelSerializer):
    user_email = serializers.CharField(source='user.email', read_only=True)

    class Meta:
        model = OrderLock
        fields = ['user', 'user_email', 'employee', 'locked_at', 'expires_at']


class OrderListSerializer(serializers.ModelSerializer):
    status_key = serializers.CharField(source='status.key', read_only=True)
    status_name = serializers.CharField(source='status.label', read_only=True)
    status_color = serializers.CharField(source='status.color', read_only=True)
    country_name = serializers.SerializerMethodField()
    city_name = serializers.SerializerMethodField()
    carrier_name = serializers.SerializerMethodField()
    employee_name = serializers.SerializerMethodField()
    locked_by_email = serializers.CharField(source='locked_by.email', read_only=True, default=None)
    items_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = ['id', 'order_number', 'order_date', 'customer', 'customer_name', 'customer_phone',
                  'country', 'country_name', 'city', 'city_name', 'carrier', 'carrier_name',
                  'employee', 'employee_name', 'status', 'status_key', 'status_name', 'status_color',
                  'revenue', 'cost', 'shipping_cost', 'cod_fees', 'ad_cost', 'profit', 'collected_amount',
                  'collection_status', 'processing_status', 'tracking_number', 'order_source',
                  'locked_by', 'locked_by_email', 'locked_at', 'items_count', 'created_at', 'updated_at']

    def _name_ar(self, obj):
        return obj.name_ar if obj else None

    def get_country_name(self, obj):
        return self._name_ar(obj.country)

    def get_city_name(self, obj):
        return self._name_ar(obj.city)

    def get_carrier_name(self, obj):
        return self._name_ar(obj.carrier)

    def get_employee_name(self, obj):
        return self._name_ar(obj.employee)

    def get_items_count(self, obj):
        return len(obj.items.all())


class OrderDetailSerializer(OrderListSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    lock = serializers.SerializerMethodField()

    class Meta(OrderListSerializer.Meta):
        fields = OrderListSerializer.Meta.fields + [
            'customer_address', 'customer_email', 'notes', 'callback_date', 'cancellation_reason',
            'return_reason', 'confirmed_at', 'shipped_at', 'delivered_at', 'created_by', 'items', 'lock',
        ]

    def get_lock(self, obj):
        lock = OrderLock.objects.filter(order=obj).select_related('user').first()
        if lock is None or lock.is_expired:
            return None
        return OrderLockSerializer(lock).data


class OrderWriteSerializer(serializers.Serializer):
    """
    Order create/edit payload. Related ids are checked against the workspace
    passed in context['business'].
    """
    order_date = serializers.DateField(required=False)
    customer_name = serializers.CharField(max_length=200, required=False)
    customer_phone = serializers.CharField(max_length=30, required=False)
    customer_address = serializers.CharField(required=False, allow_blank=True)
    customer_email = serializers.EmailField(required=False, allow_blank=True)
    country = serializers.PrimaryKeyRelatedField(queryset=Country.objects.all(), required=False, allow_null=True)
    city = serializers.PrimaryKeyRelatedField(queryset=City.objects.all(), required=False, allow_null=True)
    carrier = serializers.PrimaryKeyRelatedField(queryset=Carrier.objects.all(), required=False, allow_null=True)
    employee = serializers.PrimaryKeyRelatedField(queryset=Employee.objects.all(), required=False, allow_null=True)
    status = serializers.PrimaryKeyRelatedField(queryset=Status.objects.all(), required=False)
    status_key = serializers.CharField(required=False)
    revenue = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    cost = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    shipping_cost = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    cod_fees = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    collected_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    collection_status = serializers.ChoiceField(choices=Order.COLLECTION_STATUS_CHOICES, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    tracking_number = serializers.CharField(max_length=100, required=False, allow_blank=True)
    order_source = serializers.CharField(max_length=50, required=False, allow_blank=True)
    callback_date = serializers.DateTimeField(required=False, allow_null=True)
    cancellation_reason = serializers.CharField(required=False, allow_blank=True)
    return_reason = serializers.CharField(required=False, allow_blank=True)
    items = OrderItemWriteSerializer(many=True, required=False)

    def validate(self, attrs):
        business = self.context['business']
        owned = {
            'country': lambda obj: obj.business_id,
            'city': lambda obj: obj.country.business_id,
            'carrier': lambda obj: obj.business_id,
            'employee': lambda obj: obj.business_id,
            'status': lambda obj: obj.business_id,
        }
        errors = {}
        for field, owner in owned.items():
            obj = attrs.get(field)
            if obj is not None and owner(obj) != business.pk:
                errors[field] = 'Does not belong to this workspace'
        for item in attrs.get('items', []):
            product = item.get('product')
            if product is not None and product.business_id != business.pk:
                errors['items'] = 'Products must belong to this workspace'

        if self.instance is None:
            for field in ('customer_name', 'customer_phone'):
                if not (attrs.get(field) or '').strip():
                    errors[field] = 'This field is required.'
        if errors:
            raise serializers.ValidationError(errors)
        return attrs


class StatusChangeSerializer(serializers.Serializer):
    status = serializers.PrimaryKeyRelatedField(queryset=Status.objects.all(), required=False)
    status_key = serializers.CharField(required=False)
    note = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs.get('status') and not attrs.get('status_key'):
            raise serializers.ValidationError('status or status_key is required')
        return attrs


class BulkStatusSerializer(StatusChangeSerializer):
    order_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)


class TrackingRowSerializer(serializers.Serializer):
    order_number = serializers.CharField(allow_blank=True)
    tracking_number = serializers.CharField(allow_blank=True)


class DeliveryRowSerializer(serializers.Serializer):
    tracking_number = serializers.CharField(allow_blank=True)
    status_key = serializers.CharField(required=False, allow_blank=True)
    collected_amount = serializers.CharField(required=False, allow_blank=True)
