from rest_framework import serializers

from .models import SavedReport


class SavedReportSerializer(serializers.ModelSerializer):
    created_by_email = serializers.CharField(source='created_by.email', read_only=True, default=None)

    class Meta:
        model = SavedReport
        fields = ['id', 'business', 'name', 'group_by', 'filters_json', 'created_by', 'created_by_email',
                  'created_at', 'updated_at']
        read_only_fields = ['business', 'created_by', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name is required')
        return value

    def validate_filters_json(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError('Filters must be an object')
        return value
