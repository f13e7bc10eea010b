import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.paginator import Paginator
from django.shortcuts import get_object_or_404
from django.db import IntegrityError, transaction
from django.db.models import Count

from backend.core.exceptions import ServiceError
from backend.core.tabular import workbook_response
from backend.core.utils import parse_bool, create_audit_log, model_snapshot
from backend.workspaces.tenancy import get_request_business, require_role, MANAGER_ROLES
from .filters import ProductFilter
from .models import ProductCategory, Product
from .serializers import ProductCategorySerializer, ProductSerializer, ReorderSerializer
from . import services

logger = logging.getLogger('backend.catalog')

PRODUCT_AUDIT_FIELDS = ['name_ar', 'name_en', 'sku', 'price', 'cost', 'category', 'is_active', 'physical_stock']


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def category_list_create(request):
    """List the workspace's product categories or create a new one"""
    try:
        business, membership = get_request_business(request)

        if request.method == 'GET':
            categories = ProductCategory.objects.filter(business=business).annotate(products_count=Count('products'))
            is_active = parse_bool(request.query_params.get('is_active'))
            if is_active is not None:
                categories = categories.filter(is_active=is_active)
            return Response(ProductCategorySerializer(categories, many=True).data)

        require_role(membership, MANAGER_ROLES)
        serializer = ProductCategorySerializer(data=request.data)
        if serializer.is_valid():
            category = services.create_category(business, **serializer.validated_data)
            return Response(ProductCategorySerializer(category).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    try:
        business, membership = get_request_business(request)
        category = get_object_or_404(ProductCategory, pk=pk, business=business)

        if request.method == 'GET':
            return Response(ProductCategorySerializer(category).data)

        require_role(membership, MANAGER_ROLES)
        if request.method in ('PUT', 'PATCH'):
            serializer = ProductCategorySerializer(category, data=request.data, partial=request.method == 'PATCH')
            if serializer.is_valid():
                serializer.save()
                return Response(serializer.data)
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        else:  # DELETE
            logger.info(f"User {request.user} deleting category {pk} ({category})")
            category.delete()
            return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def category_reorder(request):
    """Set display_order from the position of each id in the posted list"""
    try:
        business, membership = get_request_business(request)
        require_role(membership, MANAGER_ROLES)
        serializer = ReorderSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        categories = services.reorder_categories(business, serializer.validated_data['ids'])
        return Response(ProductCategorySerializer(categories, many=True).data)
    except ServiceError as e:
        return e.to_response()


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List products (filtered, sorted, paginated) or create a product"""
    try:
        business, membership = get_request_business(request)

        if request.method == 'GET':
            queryset = Product.objects.filter(business=business).select_related('category')
            queryset = ProductFilter(request.query_params, queryset=queryset).qs

            try:
                page = int(request.query_params.get('page', 1))
                limit = int(request.query_params.get('limit', 50))
            except ValueError:
                return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)

            paginator = Paginator(queryset, max(limit, 1))
            page_obj = paginator.get_page(page)
            return Response({
                'results': ProductSerializer(page_obj, many=True).data,
                'total_count': paginator.count,
                'page': page_obj.number,
                'page_count': paginator.num_pages,
            })

        require_role(membership, MANAGER_ROLES)
        serializer = ProductSerializer(data=request.data, context={'business': business})
        if serializer.is_valid():
            try:
                with transaction.atomic():
                    product = serializer.save(business=business)
            except IntegrityError:
                return Response({'error': 'A product with this SKU already exists'}, status=status.HTTP_400_BAD_REQUEST)
            create_audit_log(business, request.user, 'product', product.pk, 'create',
                             after=model_snapshot(product, PRODUCT_AUDIT_FIELDS), request=request)
            logger.info(f"Product {product.sku} created in business {business.pk}")
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        logger.warning(f"Product creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    try:
        business, membership = get_request_business(request)
        product = get_object_or_404(Product.objects.select_related('category'), pk=pk, business=business)

        if request.method == 'GET':
            return Response(ProductSerializer(product).data)

        require_role(membership, MANAGER_ROLES)
        if request.method in ('PUT', 'PATCH'):
            before = model_snapshot(product, PRODUCT_AUDIT_FIELDS)
            serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH',
                                           context={'business': business})
            if serializer.is_valid():
                try:
                    with transaction.atomic():
                        serializer.save()
                except IntegrityError:
                    return Response({'error': 'A product with this SKU already exists'}, status=status.HTTP_400_BAD_REQUEST)
                create_audit_log(business, request.user, 'product', product.pk, 'update', before=before,
                                 after=model_snapshot(product, PRODUCT_AUDIT_FIELDS), request=request)
                return Response(serializer.data)
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        else:  # DELETE
            before = model_snapshot(product, PRODUCT_AUDIT_FIELDS)
            product_id = product.pk
            product.delete()
            create_audit_log(business, request.user, 'product', product_id, 'delete', before=before, request=request)
            logger.info(f"User {request.user} deleted product {product_id}")
            return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def product_toggle_active(request, pk):
    try:
        business, membership = get_request_business(request)
        require_role(membership, MANAGER_ROLES)
        product = get_object_or_404(Product, pk=pk, business=business)
        product.is_active = not product.is_active
        product.save(update_fields=['is_active', 'updated_at'])
        return Response(ProductSerializer(product).data)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_by_sku(request, sku):
    """Exact SKU lookup inside the workspace"""
    try:
        business, membership = get_request_business(request)
        product = Product.objects.filter(business=business, sku=sku.strip()).select_related('category').first()
        if product is None:
            return Response({'error': f'No product with SKU {sku}'}, status=status.HTTP_404_NOT_FOUND)
        return Response(ProductSerializer(product).data)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_export(request):
    """Download the (filtered) product list as an Excel workbook"""
    try:
        business, membership = get_request_business(request)
        queryset = ProductFilter(request.query_params, queryset=Product.objects.filter(business=business)).qs
        workbook = services.export_products_excel(queryset)
        return workbook_response(workbook, f"products-{business.slug}.xlsx")
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def product_import(request):
    """Upsert products by SKU from an uploaded CSV/Excel file (?dry_run=true to preview)"""
    try:
        business, membership = get_request_business(request)
        require_role(membership, MANAGER_ROLES)
        upload = request.FILES.get('file')
        if upload is None:
            return Response({'error': 'No file uploaded'}, status=status.HTTP_400_BAD_REQUEST)
        commit = not parse_bool(request.query_params.get('dry_run') or request.data.get('dry_run'))
        result = services.import_products(business, request.user, upload.name, upload.read(), commit=commit)
        result['committed'] = commit
        return Response(result)
    except ServiceError as e:
        return e.to_response()
    except Exception as e:
        logger.error(f"Unexpected error importing products: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
