import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db.models import Q

from backend.core.exceptions import ServiceError
from backend.core.utils import parse_bool, parse_date_range
from backend.locations.models import City, Country
from backend.workspaces.tenancy import get_request_business, require_role, MANAGER_ROLES
from .models import Carrier, CarrierCityPrice
from .serializers import CarrierSerializer, CarrierCityPriceSerializer, CarrierSettingsSerializer
from . import services

logger = logging.getLogger('backend.carriers')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def carrier_list_create(request):
    """List the workspace's carriers or create one (create requires manager)"""
    try:
        business, membership = get_request_business(request)

        if request.method == 'GET':
            carriers = Carrier.objects.filter(business=business)
            search = request.query_params.get('search', '').strip()
            if search:
                carriers = carriers.filter(Q(name_ar__icontains=search) | Q(name_en__icontains=search))
            is_active = parse_bool(request.query_params.get('is_active'))
            if is_active is not None:
                carriers = carriers.filter(is_active=is_active)
            return Response(CarrierSerializer(carriers, many=True).data)

        require_role(membership, MANAGER_ROLES)
        serializer = CarrierSerializer(data=request.data)
        if serializer.is_valid():
            carrier = services.create_carrier(business, **serializer.validated_data)
            return Response(CarrierSerializer(carrier).data, status=status.HTTP_201_CREATED)
        logger.warning(f"Carrier creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def carrier_detail(request, pk):
    """Retrieve, update or delete a carrier"""
    try:
        business, membership = get_request_business(request)
        carrier = get_object_or_404(Carrier, pk=pk, business=business)

        if request.method == 'GET':
            return Response(CarrierSerializer(carrier).data)

        require_role(membership, MANAGER_ROLES)
        if request.method in ('PUT', 'PATCH'):
            serializer = CarrierSerializer(carrier, data=request.data, partial=request.method == 'PATCH')
            if serializer.is_valid():
                serializer.save()
                logger.info(f"Carrier {pk} updated by {request.user}")
                return Response(serializer.data)
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        else:  # DELETE
            logger.info(f"User {request.user} deleting carrier {pk} ({carrier})")
            carrier.delete()
            return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def carrier_toggle_active(request, pk):
    try:
        business, membership = get_request_business(request)
        require_role(membership, MANAGER_ROLES)
        carrier = get_object_or_404(Carrier, pk=pk, business=business)
        carrier.is_active = not carrier.is_active
        carrier.save(update_fields=['is_active', 'updated_at'])
        return Response(CarrierSerializer(carrier).data)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def carrier_city_prices(request, pk):
    """List a carrier's city prices or upsert one"""
    try:
        business, membership = get_request_business(request)
        carrier = get_object_or_404(Carrier, pk=pk, business=business)

        if request.method == 'GET':
            prices = CarrierCityPrice.objects.filter(carrier=carrier).select_related('city')
            return Response(CarrierCityPriceSerializer(prices, many=True).data)

        require_role(membership, MANAGER_ROLES)
        serializer = CarrierCityPriceSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        price = services.set_city_price(carrier, serializer.validated_data['city'], serializer.validated_data['shipping_cost'])
        return Response(CarrierCityPriceSerializer(price).data)
    except ServiceError as e:
        return e.to_response()


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def carrier_city_price_delete(request, pk, city_id):
    try:
        business, membership = get_request_business(request)
        require_role(membership, MANAGER_ROLES)
        carrier = get_object_or_404(Carrier, pk=pk, business=business)
        price = get_object_or_404(CarrierCityPrice, carrier=carrier, city_id=city_id)
        price.delete()
        logger.info(f"Removed price of carrier {pk} for city {city_id}")
        return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def carrier_settings(request, pk):
    """Performance thresholds and colors of a carrier"""
    try:
        business, membership = get_request_business(request)
        carrier = get_object_or_404(Carrier, pk=pk, business=business)

        if request.method == 'GET':
            return Response(CarrierSettingsSerializer(services.get_carrier_settings(carrier)).data)

        require_role(membership, MANAGER_ROLES)
        serializer = CarrierSettingsSerializer(services.get_carrier_settings(carrier), data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        settings_obj = services.update_carrier_settings(carrier, **serializer.validated_data)
        return Response(CarrierSettingsSerializer(settings_obj).data)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def carrier_analytics_view(request, pk):
    """Delivery performance of a carrier over a date range (default last 30 days)"""
    try:
        business, membership = get_request_business(request)
        carrier = get_object_or_404(Carrier, pk=pk, business=business)
        try:
            date_from, date_to = parse_date_range(request.query_params)
        except ValueError:
            return Response({'error': 'Dates must use the YYYY-MM-DD format'}, status=status.HTTP_400_BAD_REQUEST)
        data = services.carrier_analytics(carrier, date_from, date_to)
        data['period'] = {'from': date_from.isoformat(), 'to': date_to.isoformat()}
        return Response(data)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def shipping_cost_quote(request):
    """Shipping cost an order would get for the given carrier/city/country"""
    try:
        business, membership = get_request_business(request)
        params = request.query_params
        carrier = Carrier.objects.filter(pk=params.get('carrier'), business=business).first() if params.get('carrier') else None
        city = City.objects.filter(pk=params.get('city'), country__business=business).first() if params.get('city') else None
        country = Country.objects.filter(pk=params.get('country'), business=business).first() if params.get('country') else None
        cost = services.resolve_shipping_cost(carrier, city, country)
        return Response({'shipping_cost': float(cost)})
    except ServiceError as e:
        return e.to_response()
