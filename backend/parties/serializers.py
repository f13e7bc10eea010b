from rest_framework import serializers
from .models import Customer, Employee


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ['id', 'business', 'name', 'phone', 'email', 'city', 'address', 'notes',
                  'total_orders', 'total_revenue', 'is_active', 'created_by', 'created_at', 'updated_at']
        read_only_fields = ['business', 'total_orders', 'total_revenue', 'created_by', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return value

    def validate_phone(self, value):
        digits = ''.join(ch for ch in value if ch.isdigit() or ch == '+')
        if len([ch for ch in digits if ch.isdigit()]) < 8:
            raise serializers.ValidationError('Phone must contain at least 8 digits')
        return digits


class EmployeeSerializer(serializers.ModelSerializer):
    role_display = serializers.CharField(source='get_role_display', read_only=True)

    class Meta:
        model = Employee
        fields = ['id', 'business', 'user', 'name_ar', 'name_en', 'role', 'role_display', 'phone', 'email',
                  'is_active', 'created_at', 'updated_at']
        read_only_fields = ['business', 'created_at', 'updated_at']

    def validate_name_ar(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name is required')
        return value
