import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import RefreshToken
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.core.paginator import Paginator

from .exceptions import ServiceError
from .models import AuditLog
from .platform import get_platform_settings, build_contact_link
from .serializers import (
    UserSerializer, UserCreateSerializer,
    PlatformSettingSerializer, AuditLogSerializer
)
from .utils import parse_date
from .validators import validate_login

User = get_user_model()
logger = logging.getLogger('backend.core')


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        errors = validate_login({'email': attrs.get(self.username_field, ''), 'password': attrs.get('password', '')})
        if errors:
            raise AuthenticationFailed(next(iter(errors.values())))
        attrs[self.username_field] = attrs[self.username_field].strip().lower()
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['email'] = user.email
        token['full_name'] = user.full_name
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that answers 401 instead of 500 when the user was deleted"""
    def validate(self, attrs):
        try:
            refresh = RefreshToken(attrs['refresh'])
        except TokenError:
            raise InvalidToken('Token is invalid or expired.')
        user_id = refresh.payload.get(api_settings.USER_ID_CLAIM)
        if user_id is not None and not User.objects.filter(**{api_settings.USER_ID_FIELD: user_id}).exists():
            raise InvalidToken('Token is invalid. User no longer exists.')
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint"""
    serializer = UserCreateSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        token = CustomTokenObtainPairSerializer.get_token(user)
        logger.info(f"New account registered: {user.email}")
        return Response({
            'user': UserSerializer(user).data,
            'access': str(token.access_token),
            'refresh': str(token),
        }, status=status.HTTP_201_CREATED)
    logger.warning(f"Registration validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with super admin flag and workspace memberships"""
    from backend.workspaces.models import BusinessMember, is_super_admin

    user = request.user
    if request.method == 'PATCH':
        serializer = UserSerializer(user, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()

    user_data = UserSerializer(user).data
    user_data['is_super_admin'] = is_super_admin(user)
    memberships = BusinessMember.objects.filter(user=user).select_related('business').order_by('created_at')
    user_data['workspaces'] = [
        {
            'id': m.business.id,
            'name': m.business.name,
            'slug': m.business.slug,
            'business_status': m.business.status,
            'role': m.role,
            'status': m.status,
        }
        for m in memberships
    ]
    return Response(user_data)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def platform_settings(request):
    """Read platform contact settings; super admins may update them"""
    from backend.workspaces.tenancy import require_super_admin

    settings_obj = get_platform_settings()
    if request.method == 'GET':
        data = PlatformSettingSerializer(settings_obj).data
        data['contact'] = build_contact_link({
            'plan': request.query_params.get('plan', ''),
            'workspace': request.query_params.get('workspace', ''),
        })
        return Response(data)

    try:
        require_super_admin(request.user)
    except ServiceError as e:
        logger.warning(f"User {request.user} attempted to update platform settings")
        return e.to_response()

    serializer = PlatformSettingSerializer(settings_obj, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save()
        logger.info(f"Platform settings updated by {request.user}")
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """Paginated audit logs of the active workspace with filtering"""
    from backend.workspaces.tenancy import get_request_business, require_role, MANAGER_ROLES

    try:
        business, membership = get_request_business(request)
        require_role(membership, MANAGER_ROLES)
    except ServiceError as e:
        return e.to_response()

    queryset = AuditLog.objects.filter(business=business).select_related('user')

    entity_type = request.query_params.get('entity_type')
    if entity_type:
        queryset = queryset.filter(entity_type=entity_type)
    entity_id = request.query_params.get('entity_id')
    if entity_id:
        queryset = queryset.filter(entity_id=str(entity_id))
    action = request.query_params.get('action')
    if action:
        queryset = queryset.filter(action=action)

    try:
        date_from = parse_date(request.query_params.get('date_from'))
        date_to = parse_date(request.query_params.get('date_to'))
    except ValueError:
        return Response({'error': 'Dates must use the YYYY-MM-DD format'}, status=status.HTTP_400_BAD_REQUEST)
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    queryset = queryset.order_by('-created_at')
    try:
        page_size = int(request.query_params.get('page_size', 50))
    except ValueError:
        return Response({'error': 'page_size must be an integer'}, status=status.HTTP_400_BAD_REQUEST)
    paginator = Paginator(queryset, max(1, min(page_size, 200)))
    page = paginator.get_page(request.query_params.get('page', 1))
    return Response({
        'results': AuditLogSerializer(page.object_list, many=True).data,
        'total_count': paginator.count,
        'page': page.number,
        'page_count': paginator.num_pages,
    })
