from rest_framework import serializers
from .models import BusinessBilling
from .plans import PLAN_CONFIG
from . import services


class BusinessBillingSerializer(serializers.ModelSerializer):
    trial_active = serializers.SerializerMethodField()
    trial_expired = serializers.SerializerMethodField()
    trial_time_remaining = serializers.SerializerMethodField()

    class Meta:
        model = BusinessBilling
        fields = ['id', 'business', 'plan', 'status', 'activated_at', 'lifetime_price_usd',
                  'monthly_order_limit', 'is_trial', 'trial_ends_at', 'trial_active',
                  'trial_expired', 'trial_time_remaining', 'updated_at']
        read_only_fields = fields

    def get_trial_active(self, obj):
        return services.is_trial_active(obj)

    def get_trial_expired(self, obj):
        return services.is_trial_expired(obj)

    def get_trial_time_remaining(self, obj):
        return services.get_trial_time_remaining(obj)


class PlanChangeSerializer(serializers.Serializer):
    plan = serializers.ChoiceField(choices=list(PLAN_CONFIG.keys()))
