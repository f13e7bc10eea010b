import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.paginator import Paginator
from django.shortcuts import get_object_or_404
from django.db import IntegrityError, transaction
from django.db.models import Q

from backend.core.exceptions import ServiceError
from backend.core.tabular import csv_response
from backend.core.utils import parse_bool, parse_date
from backend.workspaces.tenancy import get_request_business, require_role, MANAGER_ROLES, EDITOR_ROLES
from .models import Customer, Employee
from .serializers import CustomerSerializer, EmployeeSerializer
from . import services

logger = logging.getLogger('backend.parties')


# Customer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_list_create(request):
    """List customers (paginated) or create a new customer"""
    try:
        business, membership = get_request_business(request)

        if request.method == 'GET':
            queryset = Customer.objects.filter(business=business)
            search = request.query_params.get('search', '').strip()
            if search:
                queryset = queryset.filter(Q(name__icontains=search) | Q(phone__icontains=search) | Q(email__icontains=search))
            is_active = parse_bool(request.query_params.get('is_active'))
            if is_active is not None:
                queryset = queryset.filter(is_active=is_active)

            page = int(request.query_params.get('page', 1))
            limit = int(request.query_params.get('limit', 50))
            paginator = Paginator(queryset, max(limit, 1))
            page_obj = paginator.get_page(page)
            return Response({
                'results': CustomerSerializer(page_obj, many=True).data,
                'total_count': paginator.count,
                'page': page_obj.number,
                'page_count': paginator.num_pages,
            })

        require_role(membership, EDITOR_ROLES)
        serializer = CustomerSerializer(data=request.data)
        if serializer.is_valid():
            try:
                with transaction.atomic():
                    serializer.save(business=business, created_by=request.user)
            except IntegrityError:
                return Response({'error': 'A customer with this phone already exists'}, status=status.HTTP_400_BAD_REQUEST)
            logger.info(f"Customer {serializer.instance.pk} created in business {business.pk}")
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except ValueError:
        return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_search(request):
    """Quick lookup by name, phone or email (at least 2 characters)"""
    try:
        business, membership = get_request_business(request)
        customers = services.search_customers(business, request.query_params.get('q', ''))
        return Response(CustomerSerializer(customers, many=True).data)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_detail(request, pk):
    """
    Retrieve, update or remove a customer.
    DELETE deactivates customers that still have orders and deletes the others.
    """
    try:
        business, membership = get_request_business(request)
        customer = get_object_or_404(Customer, pk=pk, business=business)

        if request.method == 'GET':
            data = CustomerSerializer(customer).data
            data['recent_orders'] = list(
                customer.orders.order_by('-created_at').values(
                    'id', 'order_number', 'order_date', 'revenue', 'status__key', 'status__name_ar'
                )[:10]
            )
            return Response(data)

        require_role(membership, EDITOR_ROLES)
        if request.method in ('PUT', 'PATCH'):
            serializer = CustomerSerializer(customer, data=request.data, partial=request.method == 'PATCH')
            if serializer.is_valid():
                try:
                    with transaction.atomic():
                        serializer.save()
                except IntegrityError:
                    return Response({'error': 'A customer with this phone already exists'}, status=status.HTTP_400_BAD_REQUEST)
                return Response(serializer.data)
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        else:  # DELETE
            require_role(membership, MANAGER_ROLES)
            if customer.orders.exists():
                customer.is_active = False
                customer.save(update_fields=['is_active', 'updated_at'])
                logger.info(f"Customer {pk} has orders; deactivated instead of deleted")
                return Response(CustomerSerializer(customer).data)
            customer.delete()
            logger.info(f"User {request.user} deleted customer {pk}")
            return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def customer_recalculate(request, pk):
    try:
        business, membership = get_request_business(request)
        customer = get_object_or_404(Customer, pk=pk, business=business)
        services.recalculate_customer_stats(customer)
        return Response(CustomerSerializer(customer).data)
    except ServiceError as e:
        return e.to_response()


# Employee views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def employee_list_create(request):
    """List employees (search, role, is_active, sort) or create one"""
    try:
        business, membership = get_request_business(request)

        if request.method == 'GET':
            employees = services.filter_employees(Employee.objects.filter(business=business), request.query_params)
            return Response(EmployeeSerializer(employees, many=True).data)

        require_role(membership, MANAGER_ROLES)
        serializer = EmployeeSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save(business=business)
            logger.info(f"Employee '{serializer.instance}' created in business {business.pk}")
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def employee_detail(request, pk):
    try:
        business, membership = get_request_business(request)
        employee = get_object_or_404(Employee, pk=pk, business=business)

        if request.method == 'GET':
            return Response(EmployeeSerializer(employee).data)

        require_role(membership, MANAGER_ROLES)
        if request.method in ('PUT', 'PATCH'):
            serializer = EmployeeSerializer(employee, data=request.data, partial=request.method == 'PATCH')
            if serializer.is_valid():
                serializer.save()
                return Response(serializer.data)
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        else:  # DELETE
            logger.info(f"User {request.user} deleting employee {pk} ({employee})")
            employee.delete()
            return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def employee_toggle_active(request, pk):
    try:
        business, membership = get_request_business(request)
        require_role(membership, MANAGER_ROLES)
        employee = get_object_or_404(Employee, pk=pk, business=business)
        employee.is_active = not employee.is_active
        employee.save(update_fields=['is_active', 'updated_at'])
        return Response(EmployeeSerializer(employee).data)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def employee_export(request):
    """Download the (filtered) employee list as CSV"""
    try:
        business, membership = get_request_business(request)
        employees = services.filter_employees(Employee.objects.filter(business=business), request.query_params)
        return csv_response(services.EMPLOYEE_EXPORT_HEADERS, services.employee_export_rows(employees),
                            f"employees-{business.slug}.csv")
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def employee_performance_view(request):
    try:
        business, membership = get_request_business(request)
        try:
            date_from = parse_date(request.query_params.get('date_from'))
            date_to = parse_date(request.query_params.get('date_to'))
        except ValueError:
            return Response({'error': 'Dates must use the YYYY-MM-DD format'}, status=status.HTTP_400_BAD_REQUEST)
        return Response(services.employee_performance(business, date_from, date_to))
    except ServiceError as e:
        return e.to_response()
