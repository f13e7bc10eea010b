from datetime import timedelta

import django_filters
from django.db.models import Q
from django.utils import timezone

from .models import Order

LATE_ORDER_DAYS = 5


def late_orders_q(now=None):
    """Orders older than LATE_ORDER_DAYS whose status is neither final nor delivered"""
    cutoff = (now or timezone.now()) - timedelta(days=LATE_ORDER_DAYS)
    return Q(created_at__lt=cutoff, status__is_final=False, status__counts_as_delivered=False)


class OrderFilter(django_filters.FilterSet):
    """Order list filters used by the orders table, exports and reports"""

    date_from = django_filters.DateFilter(field_name='order_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='order_date', lookup_expr='lte')
    country = django_filters.NumberFilter(field_name='country_id')
    city = django_filters.NumberFilter(field_name='city_id')
    carrier = django_filters.NumberFilter(field_name='carrier_id')
    employee = django_filters.NumberFilter(field_name='employee_id')
    status = django_filters.NumberFilter(field_name='status_id')
    status_key = django_filters.CharFilter(field_name='status__key')
    product = django_filters.NumberFilter(method='filter_product', label='Product')
    search = django_filters.CharFilter(method='filter_search', label='Search')
    collection_status = django_filters.CharFilter(field_name='collection_status')
    processing_status = django_filters.CharFilter(field_name='processing_status')
    order_source = django_filters.CharFilter(field_name='order_source', lookup_expr='iexact')
    has_tracking = django_filters.CharFilter(method='filter_has_tracking', label='Has tracking')
    is_late = django_filters.CharFilter(method='filter_is_late', label='Late')

    class Meta:
        model = Order
        fields = ['date_from', 'date_to', 'country', 'city', 'carrier', 'employee', 'status', 'status_key',
                  'product', 'search', 'collection_status', 'processing_status', 'order_source',
                  'has_tracking', 'is_late']

    @staticmethod
    def _truthy(value):
        return str(value).lower() in ('1', 'true', 'yes')

    def filter_product(self, queryset, name, value):
        return queryset.filter(items__product_id=value).distinct()

    def filter_search(self, queryset, name, value):
        """order number, customer name / phone or tracking number"""
        search = (value or '').strip()
        if not search:
            return queryset
        return queryset.filter(
            Q(order_number__icontains=search)
            | Q(customer_name__icontains=search)
            | Q(customer_phone__icontains=search)
            | Q(tracking_number__icontains=search)
        )

    def filter_has_tracking(self, queryset, name, value):
        if value in (None, ''):
            return queryset
        if self._truthy(value):
            return queryset.exclude(tracking_number='')
        return queryset.filter(tracking_number='')

    def filter_is_late(self, queryset, name, value):
        if value in (None, ''):
            return queryset
        if self._truthy(value):
            return queryset.filter(late_orders_q())
        return queryset.exclude(late_orders_q())
