import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.db import IntegrityError, transaction
from django.db.models import Count

from backend.core.exceptions import ServiceError, ValidationFailed
from backend.core.serializers import AuditLogSerializer
from backend.core.utils import parse_bool
from backend.parties.models import Employee
from backend.workspaces.tenancy import get_request_business, require_role, ADMIN_ROLES, MANAGER_ROLES, EDITOR_ROLES
from .filters import OrderFilter
from .models import Status, Order
from .serializers import (
    StatusSerializer, OrderListSerializer, OrderDetailSerializer, OrderWriteSerializer,
    StatusChangeSerializer, BulkStatusSerializer, TrackingRowSerializer, DeliveryRowSerializer,
)
from . import services, statuses, importers, exporters

logger = logging.getLogger('backend.orders')


def resolve_status(business, validated):
    status_obj = validated.get('status')
    if status_obj is None:
        status_obj = statuses.get_status_by_key(business, validated.get('status_key'))
    if status_obj is None or status_obj.business_id != business.pk:
        raise ValidationFailed('Unknown status')
    return status_obj


# Status views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def status_list_create(request):
    """List the workspace's order statuses or add a custom one"""
    try:
        business, membership = get_request_business(request)

        if request.method == 'GET':
            queryset = Status.objects.filter(business=business).annotate(orders_count=Count('orders'))
            return Response(StatusSerializer(queryset, many=True).data)

        require_role(membership, MANAGER_ROLES)
        serializer = StatusSerializer(data=request.data)
        if serializer.is_valid():
            try:
                with transaction.atomic():
                    status_obj = serializer.save(business=business, sort_order=statuses.next_sort_order(business),
                                                 is_system_default=False)
            except IntegrityError:
                return Response({'error': 'A status with this key already exists'}, status=status.HTTP_400_BAD_REQUEST)
            logger.info(f"Custom status {status_obj.key} created in business {business.pk}")
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def status_detail(request, pk):
    """
    Retrieve, edit or delete a status.
    System statuses only accept name and color edits and cannot be deleted.
    """
    try:
        business, membership = get_request_business(request)
        status_obj = get_object_or_404(Status, pk=pk, business=business)

        if request.method == 'GET':
            allowed, reason = statuses.can_delete_status(status_obj)
            data = StatusSerializer(status_obj).data
            data['can_delete'] = allowed
            data['delete_blocked_reason'] = reason
            return Response(data)

        require_role(membership, MANAGER_ROLES)
        if request.method == 'PATCH':
            serializer = StatusSerializer(status_obj, data=request.data, partial=True)
            if not serializer.is_valid():
                return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
            statuses.check_status_update(status_obj, serializer.validated_data)
            try:
                with transaction.atomic():
                    serializer.save()
            except IntegrityError:
                return Response({'error': 'A status with this key already exists'}, status=status.HTTP_400_BAD_REQUEST)
            return Response(serializer.data)
        else:  # DELETE
            statuses.delete_status(status_obj)
            return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def status_reorder(request):
    try:
        business, membership = get_request_business(request)
        require_role(membership, MANAGER_ROLES)
        ids = request.data.get('ids')
        if not isinstance(ids, list) or not ids:
            return Response({'error': 'ids must be a non-empty list'}, status=status.HTTP_400_BAD_REQUEST)
        try:
            ids = [int(i) for i in ids]
        except (TypeError, ValueError):
            return Response({'error': 'ids must be integers'}, status=status.HTTP_400_BAD_REQUEST)
        ordered = statuses.reorder_statuses(business, ids)
        return Response(StatusSerializer(ordered, many=True).data)
    except ServiceError as e:
        return e.to_response()


# Order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list_create(request):
    """List orders (filters, sort, pagination) or create an order"""
    try:
        business, membership = get_request_business(request)

        if request.method == 'GET':
            params = request.query_params
            try:
                page = int(params.get('page', 1))
                page_size = int(params.get('page_size', services.DEFAULT_PAGE_SIZE))
            except ValueError:
                return Response({'error': 'page and page_size must be integers'}, status=status.HTTP_400_BAD_REQUEST)
            result = services.list_orders(
                business, params, page=page, page_size=page_size,
                sort_by=params.get('sort_by', 'created_at'), sort_dir=params.get('sort_dir', 'desc'),
            )
            result['results'] = OrderListSerializer(result['results'], many=True).data
            return Response(result)

        require_role(membership, EDITOR_ROLES)
        serializer = OrderWriteSerializer(data=request.data, context={'business': business})
        if not serializer.is_valid():
            logger.warning(f"Order creation validation failed: {serializer.errors}")
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        order = services.create_order(business, request.user, serializer.validated_data)
        return Response(OrderDetailSerializer(services.get_order(business, order.pk)).data, status=status.HTTP_201_CREATED)
    except ServiceError as e:
        return e.to_response()
    except Exception as e:
        logger.error(f"Unexpected error in order_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    """
    GET the order with items, PATCH editable fields, DELETE (soft by default,
    ?hard=true for admins).
    """
    try:
        business, membership = get_request_business(request)
        order = services.get_order(business, pk)

        if request.method == 'GET':
            return Response(OrderDetailSerializer(order).data)

        if request.method == 'PATCH':
            require_role(membership, EDITOR_ROLES)
            serializer = OrderWriteSerializer(order, data=request.data, partial=True, context={'business': business})
            if not serializer.is_valid():
                return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
            changes = dict(serializer.validated_data)
            changes.pop('items', None)
            new_status = None
            if 'status' in changes or 'status_key' in changes:
                new_status = resolve_status(business, changes)
                changes.pop('status', None)
                changes.pop('status_key', None)
            services.update_order_fields(order, request.user, changes)
            if new_status is not None:
                services.update_order_status(order, request.user, new_status)
            return Response(OrderDetailSerializer(services.get_order(business, pk)).data)

        hard = parse_bool(request.query_params.get('hard')) or False
        require_role(membership, ADMIN_ROLES if hard else MANAGER_ROLES)
        services.delete_order(order, request.user, hard=hard)
        return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_update_status(request, pk):
    try:
        business, membership = get_request_business(request)
        require_role(membership, EDITOR_ROLES)
        order = services.get_order(business, pk)
        serializer = StatusChangeSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        status_obj = resolve_status(business, serializer.validated_data)
        services.update_order_status(order, request.user, status_obj, note=serializer.validated_data.get('note'))
        return Response(OrderDetailSerializer(services.get_order(business, pk)).data)
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_bulk_status(request):
    try:
        business, membership = get_request_business(request)
        require_role(membership, EDITOR_ROLES)
        serializer = BulkStatusSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        status_obj = resolve_status(business, serializer.validated_data)
        updated = services.bulk_update_status(business, request.user, serializer.validated_data['order_ids'], status_obj)
        return Response({'updated': updated})
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_bulk_tracking(request):
    """Body: {"rows": [{"order_number", "tracking_number"}, ...]}"""
    try:
        business, membership = get_request_business(request)
        require_role(membership, EDITOR_ROLES)
        serializer = TrackingRowSerializer(data=request.data.get('rows', []), many=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        return Response(services.bulk_update_tracking(business, request.user, serializer.validated_data))
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_bulk_delivery(request):
    """Body: {"rows": [{"tracking_number", "status_key", "collected_amount"}, ...]}"""
    try:
        business, membership = get_request_business(request)
        require_role(membership, EDITOR_ROLES)
        serializer = DeliveryRowSerializer(data=request.data.get('rows', []), many=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        return Response(services.bulk_update_delivery(business, request.user, serializer.validated_data))
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_lock(request, pk):
    """Take the processing lock; 409 when someone else holds it"""
    try:
        business, membership = get_request_business(request)
        require_role(membership, EDITOR_ROLES)
        order = services.get_order(business, pk)
        employee = None
        if request.data.get('employee'):
            employee = get_object_or_404(Employee, pk=request.data['employee'], business=business)
        result = services.lock_order(order, request.user, employee=employee)
        if not result['success']:
            return Response(result, status=status.HTTP_409_CONFLICT)
        return Response(result)
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_unlock(request, pk):
    try:
        business, membership = get_request_business(request)
        order = services.get_order(business, pk)
        force = bool(parse_bool(request.data.get('force')))
        if force:
            require_role(membership, ADMIN_ROLES)
        return Response(services.unlock_order(order, request.user, force=force))
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_statistics(request):
    try:
        business, membership = get_request_business(request)
        return Response(services.get_order_statistics(business))
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_audit_logs(request, pk):
    """History of a single order"""
    try:
        business, membership = get_request_business(request)
        order = services.get_order(business, pk)
        return Response(AuditLogSerializer(services.get_order_audit_logs(order), many=True).data)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_export(request):
    """Download the filtered orders as CSV (default) or Excel (?format=xlsx)"""
    try:
        business, membership = get_request_business(request)
        queryset = OrderFilter(request.query_params, queryset=Order.objects.filter(business=business)).qs
        queryset = queryset.order_by('-created_at')
        stamp = business.slug
        if request.query_params.get('file_format') == 'xlsx':
            return exporters.export_orders_excel(queryset, f"orders-{stamp}.xlsx")
        return exporters.export_orders_csv(queryset, f"orders-{stamp}.csv")
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def order_import(request):
    """Upload a CSV/Excel file; previews unless commit=true"""
    try:
        business, membership = get_request_business(request)
        require_role(membership, EDITOR_ROLES)
        upload = request.FILES.get('file')
        if upload is None:
            return Response({'error': 'No file uploaded'}, status=status.HTTP_400_BAD_REQUEST)
        commit = bool(parse_bool(request.data.get('commit') or request.query_params.get('commit')))
        result = importers.import_orders(business, request.user, upload.name, upload.read(), commit=commit)
        result['committed'] = commit
        return Response(result)
    except ServiceError as e:
        return e.to_response()
    except Exception as e:
        logger.error(f"Unexpected error importing orders: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_import_template(request):
    lang = 'ar' if request.query_params.get('lang') == 'ar' else 'en'
    response = HttpResponse(importers.import_template(lang), content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="orders-template-{lang}.csv"'
    return response
