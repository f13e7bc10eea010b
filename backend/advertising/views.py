import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404

from backend.core.exceptions import ServiceError
from backend.core.utils import parse_bool, parse_date, parse_date_range
from backend.workspaces.tenancy import get_request_business, require_role, MANAGER_ROLES
from .models import AdCampaign, AdCostLog
from .serializers import AdCampaignSerializer, AllocationInputSerializer, AdCostLogSerializer
from . import services

logger = logging.getLogger('backend.advertising')


def read_allocations(request):
    """Returns (allocations or None, errors)"""
    if 'products' not in request.data:
        return None, None
    serializer = AllocationInputSerializer(data=request.data.get('products') or [], many=True)
    if not serializer.is_valid():
        return None, serializer.errors
    return serializer.validated_data, None


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def campaign_list_create(request):
    """List campaigns (date range, platform, is_allocated) or create one with its product split"""
    try:
        business, membership = get_request_business(request)

        if request.method == 'GET':
            params = request.query_params
            try:
                campaigns = services.filter_campaigns(
                    AdCampaign.objects.filter(business=business).prefetch_related('products__product'),
                    date_from=parse_date(params.get('date_from')),
                    date_to=parse_date(params.get('date_to')),
                    platform=params.get('platform'),
                    is_allocated=parse_bool(params.get('is_allocated')),
                )
            except ValueError:
                return Response({'error': 'Dates must use the YYYY-MM-DD format'}, status=status.HTTP_400_BAD_REQUEST)
            return Response(AdCampaignSerializer(campaigns, many=True).data)

        require_role(membership, MANAGER_ROLES)
        serializer = AdCampaignSerializer(data=request.data)
        allocations, allocation_errors = read_allocations(request)
        if not serializer.is_valid() or allocation_errors:
            errors = dict(serializer.errors)
            if allocation_errors:
                errors['products'] = allocation_errors
            return Response(errors, status=status.HTTP_400_BAD_REQUEST)
        campaign = services.create_campaign(business, request.user, serializer.validated_data, allocations or [])
        return Response(AdCampaignSerializer(campaign).data, status=status.HTTP_201_CREATED)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def campaign_detail(request, pk):
    try:
        business, membership = get_request_business(request)
        campaign = get_object_or_404(AdCampaign, pk=pk, business=business)

        if request.method == 'GET':
            data = AdCampaignSerializer(campaign).data
            data['details'] = services.campaign_details(campaign)
            return Response(data)

        require_role(membership, MANAGER_ROLES)
        if request.method in ('PUT', 'PATCH'):
            serializer = AdCampaignSerializer(campaign, data=request.data, partial=request.method == 'PATCH')
            allocations, allocation_errors = read_allocations(request)
            if not serializer.is_valid() or allocation_errors:
                errors = dict(serializer.errors)
                if allocation_errors:
                    errors['products'] = allocation_errors
                return Response(errors, status=status.HTTP_400_BAD_REQUEST)
            campaign = services.update_campaign(campaign, request.user, serializer.validated_data, allocations)
            return Response(AdCampaignSerializer(campaign).data)
        else:  # DELETE
            services.delete_campaign(campaign, request.user)
            logger.info(f"User {request.user} deleted campaign {pk}")
            return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def campaign_allocation(request, pk, action):
    """action: allocate, deallocate or reallocate"""
    try:
        business, membership = get_request_business(request)
        require_role(membership, MANAGER_ROLES)
        campaign = get_object_or_404(AdCampaign, pk=pk, business=business)
        handlers = {
            'allocate': services.allocate_campaign,
            'deallocate': services.deallocate_campaign,
            'reallocate': services.reallocate_campaign,
        }
        if action not in handlers:
            return Response({'error': f'Unknown action: {action}'}, status=status.HTTP_400_BAD_REQUEST)
        return Response(handlers[action](campaign, request.user))
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def allocate_pending(request):
    try:
        business, membership = get_request_business(request)
        require_role(membership, MANAGER_ROLES)
        results = services.allocate_all_pending(business, request.user)
        return Response({'results': results, 'campaigns_allocated': len(results)})
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def campaign_cost_logs(request, pk):
    try:
        business, membership = get_request_business(request)
        campaign = get_object_or_404(AdCampaign, pk=pk, business=business)
        logs = AdCostLog.objects.filter(campaign=campaign).select_related('order')
        return Response(AdCostLogSerializer(logs, many=True).data)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def advertising_stats_view(request):
    try:
        business, membership = get_request_business(request)
        try:
            date_from, date_to = parse_date_range(request.query_params)
        except ValueError:
            return Response({'error': 'Dates must use the YYYY-MM-DD format'}, status=status.HTTP_400_BAD_REQUEST)
        return Response(services.advertising_stats(business, date_from, date_to))
    except ServiceError as e:
        return e.to_response()
