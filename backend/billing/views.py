import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404

from backend.core.exceptions import ServiceError
from backend.workspaces.models import Business
from backend.workspaces.tenancy import get_request_business, require_super_admin
from .plans import PLAN_CONFIG
from .serializers import BusinessBillingSerializer, PlanChangeSerializer
from . import services

logger = logging.getLogger('backend.billing')


def serialize_plans():
    return [
        {
            'key': key,
            'name': plan['name'],
            'monthly_order_limit': plan['monthly_order_limit'],
            'lifetime_price_usd': float(plan['lifetime_price_usd']),
        }
        for key, plan in PLAN_CONFIG.items()
    ]


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def billing_detail(request):
    """Billing state, usage and plan table of the active workspace"""
    try:
        business, membership = get_request_business(request)
        billing = services.get_billing(business)
        return Response({
            'billing': BusinessBillingSerializer(billing).data,
            'usage': services.get_usage_status(business),
            'plans': serialize_plans(),
        })
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def usage_status(request):
    """Monthly order usage of the active workspace"""
    try:
        business, membership = get_request_business(request)
        return Response(services.get_usage_status(business))
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def plan_list(request):
    return Response(serialize_plans())


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def admin_billing_action(request, pk, action):
    """Super admin: set plan, activate or deactivate a workspace's billing"""
    try:
        require_super_admin(request.user)
        business = get_object_or_404(Business, pk=pk)

        if action == 'plan':
            serializer = PlanChangeSerializer(data=request.data)
            if not serializer.is_valid():
                return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
            billing = services.set_plan(business, serializer.validated_data['plan'], request.user)
        elif action == 'activate':
            billing = services.activate_billing(business, request.user, plan=request.data.get('plan'))
        elif action == 'deactivate':
            billing = services.deactivate_billing(business, request.user)
        else:
            return Response({'error': f'Unknown billing action: {action}'}, status=status.HTTP_400_BAD_REQUEST)

        logger.info(f"Billing action '{action}' on business {pk} by {request.user}")
        return Response(BusinessBillingSerializer(billing).data)
    except ServiceError as e:
        return e.to_response()
    except Exception as e:
        logger.error(f"Unexpected error in admin_billing_action for business {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
