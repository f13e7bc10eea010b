from rest_framework import serializers
from .models import User, PlatformSetting, AuditLog
from .validators import validate_signup


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'full_name', 'phone', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['username', 'email', 'is_active', 'created_at', 'updated_at']


class UserCreateSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=200, allow_blank=True)
    email = serializers.CharField(max_length=254, allow_blank=True)
    password = serializers.CharField(write_only=True, allow_blank=True)
    password_confirm = serializers.CharField(write_only=True, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)

    def validate(self, attrs):
        errors = validate_signup(attrs)
        if errors:
            raise serializers.ValidationError(errors)
        email = attrs['email'].strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            raise serializers.ValidationError({'email': 'An account with this email already exists'})
        attrs['email'] = email
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        email = validated_data['email']
        user = User(
            username=email,
            email=email,
            full_name=validated_data['full_name'].strip(),
            phone=validated_data.get('phone') or None,
            is_active=True,
        )
        user.set_password(password)
        user.save()
        return user


class PlatformSettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = PlatformSetting
        fields = ['whatsapp_number', 'cta_text', 'message_template', 'updated_at']
        read_only_fields = ['updated_at']


class AuditLogSerializer(serializers.ModelSerializer):
    user_email = serializers.EmailField(source='user.email', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ['id', 'business', 'user', 'user_email', 'entity_type', 'entity_id', 'action',
                  'before', 'after', 'ip_address', 'created_at']
