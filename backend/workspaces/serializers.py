from rest_framework import serializers
from .models import Business, BusinessMember, Invitation


class BusinessSerializer(serializers.ModelSerializer):
    class Meta:
        model = Business
        fields = ['id', 'name', 'slug', 'status', 'plan_type', 'is_lifetime_deal',
                  'manual_payment_status', 'max_orders_limit', 'settings', 'created_by',
                  'created_at', 'updated_at']
        read_only_fields = ['slug', 'status', 'plan_type', 'is_lifetime_deal', 'manual_payment_status',
                            'max_orders_limit', 'created_by', 'created_at', 'updated_at']


class BusinessCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    slug = serializers.CharField(max_length=200, required=False, allow_blank=True)


class MemberUserField(serializers.Field):
    def to_representation(self, user):
        return {'id': user.id, 'email': user.email, 'full_name': user.full_name}


class BusinessMemberSerializer(serializers.ModelSerializer):
    user = MemberUserField(read_only=True)

    class Meta:
        model = BusinessMember
        fields = ['id', 'business', 'user', 'role', 'status', 'invited_by', 'created_at', 'updated_at']
        read_only_fields = ['business', 'invited_by', 'created_at', 'updated_at']


class InvitationSerializer(serializers.ModelSerializer):
    business_name = serializers.CharField(source='business.name', read_only=True)
    is_expired = serializers.BooleanField(read_only=True)

    class Meta:
        model = Invitation
        fields = ['id', 'business', 'business_name', 'email', 'role', 'token', 'invited_by',
                  'expires_at', 'accepted_at', 'is_expired', 'created_at']
        read_only_fields = ['business', 'token', 'invited_by', 'expires_at', 'accepted_at', 'created_at']


class AdminWorkspaceSerializer(serializers.ModelSerializer):
    owner_email = serializers.EmailField(source='created_by.email', read_only=True)
    billing_plan = serializers.SerializerMethodField()
    billing_status = serializers.SerializerMethodField()
    orders_count = serializers.IntegerField(read_only=True)
    members_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Business
        fields = ['id', 'name', 'slug', 'status', 'owner_email', 'plan_type', 'is_lifetime_deal',
                  'manual_payment_status', 'billing_plan', 'billing_status', 'orders_count',
                  'members_count', 'created_at']

    def _billing(self, obj):
        return getattr(obj, 'billing', None)

    def get_billing_plan(self, obj):
        billing = self._billing(obj)
        return billing.plan if billing else None

    def get_billing_status(self, obj):
        billing = self._billing(obj)
        return billing.status if billing else None
