"""
Customer lookup / stats and employee reporting.
"""
import logging
from decimal import Decimal

from django.db.models import Count, Q, Sum, DecimalField
from django.utils.translation import gettext as _

from backend.core.exceptions import ValidationFailed
from backend.reports.metrics import delivery_rate
from .models import Customer, Employee

logger = logging.getLogger('backend.parties')

MIN_SEARCH_LENGTH = 2
EMPLOYEE_SORT_FIELDS = ['name_ar', 'name_en', 'role', 'created_at']
EMPLOYEE_EXPORT_HEADERS = ['ID', 'Name (AR)', 'Name (EN)', 'Role', 'Phone', 'Email', 'Active', 'Created']


def normalize_phone(phone):
    return ''.join(ch for ch in str(phone or '') if ch.isdigit() or ch == '+')


def search_customers(business, query, limit=20):
    """Customers whose name, phone or email contains query; most active customers first"""
    query = (query or '').strip()
    if len(query) < MIN_SEARCH_LENGTH:
        raise ValidationFailed(_('Search needs at least %(count)d characters') % {'count': MIN_SEARCH_LENGTH},
                               code='search_too_short')
    return list(
        Customer.objects.filter(business=business)
        .filter(Q(name__icontains=query) | Q(phone__icontains=query) | Q(email__icontains=query))
        .order_by('-total_orders', 'name')[:limit]
    )


def find_or_create_customer(business, name, phone, user=None, **details):
    """
    Return the workspace customer with this phone, creating it when missing.
    Blank contact details on an existing customer are filled from `details`.
    """
    phone = normalize_phone(phone)
    if not phone:
        raise ValidationFailed(_('Customer phone is required'))
    customer, created = Customer.objects.get_or_create(
        business=business, phone=phone,
        defaults={'name': name, 'created_by': user, **details},
    )
    if not created:
        changed = []
        for field, value in details.items():
            if value and not getattr(customer, field):
                setattr(customer, field, value)
                changed.append(field)
        if changed:
            customer.save(update_fields=changed + ['updated_at'])
    else:
        logger.info(f"Customer {customer.pk} created for phone {phone} in business {business.pk}")
    return customer


def recalculate_customer_stats(customer, commit=True):
    """Recount total_orders and delivered revenue from the customer's orders"""
    from backend.orders.models import Order

    stats = Order.objects.filter(customer=customer).exclude(status__key='deleted').aggregate(
        total=Count('id'),
        revenue=Sum('revenue', filter=Q(status__counts_as_delivered=True), output_field=DecimalField()),
    )
    customer.total_orders = stats['total'] or 0
    customer.total_revenue = stats['revenue'] or Decimal('0.00')
    if commit:
        customer.save(update_fields=['total_orders', 'total_revenue', 'updated_at'])
    return customer


def filter_employees(queryset, params):
    search = params.get('search', '').strip()
    if search:
        queryset = queryset.filter(
            Q(name_ar__icontains=search) | Q(name_en__icontains=search)
            | Q(phone__icontains=search) | Q(email__icontains=search)
        )
    role = params.get('role')
    if role:
        queryset = queryset.filter(role=role)
    is_active = params.get('is_active')
    if is_active not in (None, ''):
        queryset = queryset.filter(is_active=str(is_active).lower() in ('1', 'true', 'yes'))
    sort = params.get('sort', 'name_ar')
    if sort.lstrip('-') in EMPLOYEE_SORT_FIELDS:
        queryset = queryset.order_by(sort, 'id')
    return queryset


def employee_export_rows(queryset):
    for employee in queryset:
        yield [
            employee.pk,
            employee.name_ar,
            employee.name_en,
            employee.get_role_display(),
            employee.phone,
            employee.email,
            'Yes' if employee.is_active else 'No',
            employee.created_at.strftime('%Y-%m-%d'),
        ]


def employee_performance(business, date_from=None, date_to=None):
    """Per employee: orders, delivered, returned, delivered revenue and delivery rate"""
    employees = Employee.objects.filter(business=business)
    order_filter = Q(orders__business=business) & ~Q(orders__status__key='deleted')
    if date_from:
        order_filter &= Q(orders__order_date__gte=date_from)
    if date_to:
        order_filter &= Q(orders__order_date__lte=date_to)

    rows = employees.annotate(
        orders_count=Count('orders', filter=order_filter),
        delivered=Count('orders', filter=order_filter & Q(orders__status__counts_as_delivered=True)),
        returned=Count('orders', filter=order_filter & Q(orders__status__counts_as_return=True)),
        revenue=Sum('orders__revenue', filter=order_filter & Q(orders__status__counts_as_delivered=True),
                    output_field=DecimalField()),
    ).order_by('-orders_count', 'name_ar')

    return [
        {
            'employee_id': employee.pk,
            'name_ar': employee.name_ar,
            'name_en': employee.name_en,
            'role': employee.role,
            'is_active': employee.is_active,
            'orders': employee.orders_count,
            'delivered': employee.delivered,
            'returned': employee.returned,
            'revenue': float(employee.revenue or 0),
            'delivery_rate': delivery_rate(employee.delivered, employee.orders_count),
        }
        for employee in rows
    ]
