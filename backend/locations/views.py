import logging
from decimal import Decimal
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db import IntegrityError, transaction
from django.db.models import Q, Count

from backend.core.exceptions import ServiceError
from backend.core.utils import parse_bool
from backend.workspaces.tenancy import get_request_business, require_role, MANAGER_ROLES
from .models import Country, City
from .serializers import CountrySerializer, CitySerializer, CityBulkRowSerializer

logger = logging.getLogger('backend.locations')


def filter_by_search_and_active(queryset, params):
    search = params.get('search', '').strip()
    if search:
        queryset = queryset.filter(Q(name_ar__icontains=search) | Q(name_en__icontains=search))
    is_active = parse_bool(params.get('is_active'))
    if is_active is not None:
        queryset = queryset.filter(is_active=is_active)
    return queryset


# Country views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def country_list_create(request):
    """List the workspace's countries or create a new one (create requires manager)"""
    try:
        business, membership = get_request_business(request)

        if request.method == 'GET':
            countries = Country.objects.filter(business=business).annotate(cities_count=Count('cities'))
            countries = filter_by_search_and_active(countries, request.query_params)
            serializer = CountrySerializer(countries, many=True)
            return Response(serializer.data)

        require_role(membership, MANAGER_ROLES)
        logger.info(f"User {request.user} creating country with data: {request.data}")
        serializer = CountrySerializer(data=request.data)
        if serializer.is_valid():
            try:
                with transaction.atomic():
                    country = serializer.save(business=business)
                logger.info(f"Country '{country}' created in business {business.pk}")
                return Response(serializer.data, status=status.HTTP_201_CREATED)
            except IntegrityError as e:
                logger.error(f"IntegrityError creating country: {str(e)}", exc_info=True)
                return Response({'error': 'A country with this code already exists'}, status=status.HTTP_400_BAD_REQUEST)
        logger.warning(f"Country creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def country_detail(request, pk):
    """Retrieve, update or delete a country"""
    try:
        business, membership = get_request_business(request)
        country = get_object_or_404(Country, pk=pk, business=business)

        if request.method == 'GET':
            data = CountrySerializer(country).data
            data['cities'] = CitySerializer(country.cities.all(), many=True).data
            return Response(data)

        require_role(membership, MANAGER_ROLES)
        if request.method in ('PUT', 'PATCH'):
            serializer = CountrySerializer(country, data=request.data, partial=request.method == 'PATCH')
            if serializer.is_valid():
                try:
                    with transaction.atomic():
                        serializer.save()
                except IntegrityError:
                    return Response({'error': 'A country with this code already exists'}, status=status.HTTP_400_BAD_REQUEST)
                logger.info(f"Country {pk} updated by {request.user}")
                return Response(serializer.data)
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        else:  # DELETE
            logger.info(f"User {request.user} deleting country {pk} ({country})")
            country.delete()
            return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def country_toggle_active(request, pk):
    try:
        business, membership = get_request_business(request)
        require_role(membership, MANAGER_ROLES)
        country = get_object_or_404(Country, pk=pk, business=business)
        country.is_active = not country.is_active
        country.save(update_fields=['is_active', 'updated_at'])
        return Response(CountrySerializer(country).data)
    except ServiceError as e:
        return e.to_response()


# City views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def city_list_create(request, country_id):
    """List or create cities of a country"""
    try:
        business, membership = get_request_business(request)
        country = get_object_or_404(Country, pk=country_id, business=business)

        if request.method == 'GET':
            cities = filter_by_search_and_active(country.cities.all(), request.query_params)
            return Response(CitySerializer(cities, many=True).data)

        require_role(membership, MANAGER_ROLES)
        serializer = CitySerializer(data=request.data)
        if serializer.is_valid():
            serializer.save(country=country)
            logger.info(f"City '{serializer.instance}' created in country {country_id}")
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except ServiceError as e:
        return e.to_response()


def bulk_create_cities(country, rows):
    """Create several cities of a country at once"""
    with transaction.atomic():
        cities = [
            City.objects.create(
                country=country,
                name_ar=row['name_ar'],
                name_en=row.get('name_en', ''),
                shipping_cost=row.get('shipping_cost', country.shipping_cost) or Decimal('0.00'),
            )
            for row in rows
        ]
    return cities


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def city_bulk_create(request, country_id):
    try:
        business, membership = get_request_business(request)
        require_role(membership, MANAGER_ROLES)
        country = get_object_or_404(Country, pk=country_id, business=business)
        serializer = CityBulkRowSerializer(data=request.data.get('cities', []), many=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        cities = bulk_create_cities(country, serializer.validated_data)
        logger.info(f"Bulk created {len(cities)} cities in country {country_id}")
        return Response(CitySerializer(cities, many=True).data, status=status.HTTP_201_CREATED)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def city_detail(request, pk):
    """Retrieve, update or delete a city"""
    try:
        business, membership = get_request_business(request)
        city = get_object_or_404(City, pk=pk, country__business=business)

        if request.method == 'GET':
            return Response(CitySerializer(city).data)

        require_role(membership, MANAGER_ROLES)
        if request.method in ('PUT', 'PATCH'):
            serializer = CitySerializer(city, data=request.data, partial=request.method == 'PATCH')
            if serializer.is_valid():
                serializer.save()
                return Response(serializer.data)
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        else:  # DELETE
            logger.info(f"User {request.user} deleting city {pk} ({city})")
            city.delete()
            return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def city_toggle_active(request, pk):
    try:
        business, membership = get_request_business(request)
        require_role(membership, MANAGER_ROLES)
        city = get_object_or_404(City, pk=pk, country__business=business)
        city.is_active = not city.is_active
        city.save(update_fields=['is_active', 'updated_at'])
        return Response(CitySerializer(city).data)
    except ServiceError as e:
        return e.to_response()
