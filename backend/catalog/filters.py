import django_filters
from django.db.models import Q, F

from .models import Product

SORT_FIELDS = {
    'name': 'name_ar',
    'price': 'price',
    'created_at': 'created_at',
    'stock': 'available',
}


class ProductFilter(django_filters.FilterSet):
    """Product list filters: search (name or SKU), active flag, category and sort"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    is_active = django_filters.CharFilter(method='filter_active', label='Active')
    sort = django_filters.CharFilter(method='filter_sort', label='Sort')

    class Meta:
        model = Product
        fields = ['search', 'category', 'is_active', 'sort']

    def filter_search(self, queryset, name, value):
        search = (value or '').strip()
        if not search:
            return queryset
        return queryset.filter(
            Q(name_ar__icontains=search) | Q(name_en__icontains=search) | Q(sku__icontains=search)
        )

    def filter_active(self, queryset, name, value):
        """Handles string 'true'/'false'"""
        if value is None or value == '':
            return queryset
        return queryset.filter(is_active=value.lower() in ('true', '1', 'yes'))

    def filter_sort(self, queryset, name, value):
        """sort=<field> or sort=-<field>; field is one of name, price, created_at, stock"""
        descending = value.startswith('-')
        field = SORT_FIELDS.get(value.lstrip('-'))
        if field is None:
            return queryset
        if field == 'available':
            queryset = queryset.annotate(available=F('physical_stock') - F('reserved_stock'))
        return queryset.order_by(f"-{field}" if descending else field, 'id')
