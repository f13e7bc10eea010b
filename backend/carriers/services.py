"""
Carrier pricing, performance thresholds and delivery analytics.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Q, Sum, DecimalField
from django.utils.translation import gettext as _

from backend.core.exceptions import ValidationFailed
from backend.reports.metrics import delivery_rate, return_rate
from .models import Carrier, CarrierCityPrice, CarrierSettings

logger = logging.getLogger('backend.carriers')


@transaction.atomic
def create_carrier(business, **fields):
    carrier = Carrier.objects.create(business=business, **fields)
    CarrierSettings.objects.create(carrier=carrier)
    logger.info(f"Carrier '{carrier}' created in business {business.pk}")
    return carrier


def get_carrier_settings(carrier):
    settings_obj, _created = CarrierSettings.objects.get_or_create(carrier=carrier)
    return settings_obj


def update_carrier_settings(carrier, **changes):
    settings_obj = get_carrier_settings(carrier)
    good = Decimal(str(changes.get('good_threshold', settings_obj.good_threshold)))
    warning = Decimal(str(changes.get('warning_threshold', settings_obj.warning_threshold)))
    if not (0 <= warning <= 100 and 0 <= good <= 100):
        raise ValidationFailed(_('Thresholds must be between 0 and 100'))
    if warning >= good:
        raise ValidationFailed(_('Warning threshold must be lower than the good threshold'))
    for field, value in changes.items():
        setattr(settings_obj, field, value)
    settings_obj.good_threshold = good
    settings_obj.warning_threshold = warning
    settings_obj.save()
    return settings_obj


def performance_level(rate, settings_obj=None):
    """Classify a delivery rate as good / warning / poor with its display color"""
    good = settings_obj.good_threshold if settings_obj else Decimal('70')
    warning = settings_obj.warning_threshold if settings_obj else Decimal('50')
    rate = Decimal(str(rate))
    if rate >= good:
        return {'level': 'good', 'color': settings_obj.good_color if settings_obj else '#10B981'}
    if rate >= warning:
        return {'level': 'warning', 'color': settings_obj.warning_color if settings_obj else '#F59E0B'}
    return {'level': 'poor', 'color': settings_obj.poor_color if settings_obj else '#EF4444'}


def set_city_price(carrier, city, shipping_cost):
    """Insert or update the carrier's price for a city"""
    if city.country.business_id != carrier.business_id:
        raise ValidationFailed(_('City does not belong to this workspace'))
    price, created = CarrierCityPrice.objects.update_or_create(
        carrier=carrier, city=city,
        defaults={'shipping_cost': Decimal(str(shipping_cost))},
    )
    logger.info(f"{'Created' if created else 'Updated'} price of carrier {carrier.pk} for city {city.pk}: {shipping_cost}")
    return price


def resolve_shipping_cost(carrier=None, city=None, country=None):
    """Carrier city price, else city shipping cost, else country shipping cost, else 0"""
    if carrier is not None and city is not None:
        price = CarrierCityPrice.objects.filter(carrier=carrier, city=city).first()
        if price is not None:
            return price.shipping_cost
    if city is not None and city.shipping_cost:
        return city.shipping_cost
    if country is None and city is not None:
        country = city.country
    if country is not None and country.shipping_cost:
        return country.shipping_cost
    return Decimal('0.00')


def _order_counts(queryset):
    return queryset.aggregate(
        total=Count('id'),
        delivered=Count('id', filter=Q(status__counts_as_delivered=True)),
        returned=Count('id', filter=Q(status__counts_as_return=True)),
        in_transit=Count('id', filter=Q(status__counts_as_active=True)),
        revenue=Sum('revenue', filter=Q(status__counts_as_delivered=True), output_field=DecimalField()),
    )


def carrier_analytics(carrier, date_from=None, date_to=None):
    """Delivery/return performance of a carrier overall and per city"""
    from backend.orders.models import Order

    orders = Order.objects.filter(carrier=carrier).exclude(status__key='deleted')
    if date_from:
        orders = orders.filter(order_date__gte=date_from)
    if date_to:
        orders = orders.filter(order_date__lte=date_to)

    totals = _order_counts(orders)
    settings_obj = get_carrier_settings(carrier)
    rate = delivery_rate(totals['delivered'], totals['total'])

    cities = orders.filter(city__isnull=False).values('city_id', 'city__name_ar', 'city__name_en').annotate(
        total=Count('id'),
        delivered=Count('id', filter=Q(status__counts_as_delivered=True)),
        returned=Count('id', filter=Q(status__counts_as_return=True)),
    ).order_by('-total')

    city_performance = []
    for row in cities:
        city_rate = delivery_rate(row['delivered'], row['total'])
        city_performance.append({
            'city_id': row['city_id'],
            'city_name_ar': row['city__name_ar'],
            'city_name_en': row['city__name_en'],
            'total': row['total'],
            'delivered': row['delivered'],
            'returned': row['returned'],
            'delivery_rate': city_rate,
            'return_rate': return_rate(row['returned'], row['total']),
            'performance': performance_level(city_rate, settings_obj),
        })

    return {
        'carrier_id': carrier.pk,
        'carrier_name': str(carrier),
        'total_orders': totals['total'],
        'delivered': totals['delivered'],
        'returned': totals['returned'],
        'in_transit': totals['in_transit'],
        'delivery_rate': rate,
        'return_rate': return_rate(totals['returned'], totals['total']),
        'revenue': float(totals['revenue'] or Decimal('0.00')),
        'performance': performance_level(rate, settings_obj),
        'cities': city_performance,
    }
