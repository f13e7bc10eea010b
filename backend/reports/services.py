"""
Dashboard KPIs, time series, breakdowns and the grouped report table.

Orders are read once as flat rows and aggregated with the pure functions in
`reports.metrics`, so every screen counts delivered/returned/active orders
the same way: through the flags of their status.
"""
import logging
from collections import OrderedDict
from datetime import timedelta
from decimal import Decimal

from django.db.models import F, DecimalField, ExpressionWrapper

from backend.core.cache_utils import cached_business_query, DASHBOARD_KPI_CACHE_TTL, REPORTS_CACHE_TTL
from backend.core.tabular import build_workbook
from backend.core.utils import parse_bool, parse_date_range
from backend.orders.models import Order, OrderItem
from .metrics import (
    aggregate_order_metrics, average_order_value, delivery_rate, percentage, return_rate, to_float_dict,
)

logger = logging.getLogger('backend.reports')

FILTER_KEYS = ['country', 'carrier', 'employee', 'status', 'product']
BREAKDOWN_DIMENSIONS = {
    'country': ('country_id', 'country__name_ar'),
    'city': ('city_id', 'city__name_ar'),
    'carrier': ('carrier_id', 'carrier__name_ar'),
    'employee': ('employee_id', 'employee__name_ar'),
    'customer': ('customer_id', 'customer__name'),
    'status': ('status_id', 'status__name_ar'),
}
# orders without a city / customer are left out of these breakdowns
SKIP_EMPTY_DIMENSIONS = ['city', 'customer']
COLLECTION_STATUSES = ['pending', 'collected', 'partial', 'failed']
GROUP_BY_CHOICES = ['day', 'week', 'month']
REPORT_EXPORT_HEADERS = ['Period', 'From', 'To', 'Orders', 'Delivered', 'Returns', 'Active', 'Delivery Rate %',
                         'Return Rate %', 'Gross Sales', 'COGS', 'Shipping', 'Ad Cost', 'Net Profit']

ROW_FIELDS = ['id', 'order_date', 'revenue', 'cost', 'shipping_cost', 'ad_cost', 'cod_fees',
              'collected_amount', 'collection_status',
              'status_id', 'status__name_ar', 'status__color',
              'status__counts_as_delivered', 'status__counts_as_return', 'status__counts_as_active',
              'country_id', 'country__name_ar', 'city_id', 'city__name_ar', 'carrier_id', 'carrier__name_ar',
              'employee_id', 'employee__name_ar', 'customer_id', 'customer__name', 'customer__phone',
              'customer__total_orders']


def parse_report_filters(params):
    """
    Query params -> plain filters dict (hashable values only, used as cache key).
    Raises ValueError on malformed dates or ids.
    """
    date_from, date_to = parse_date_range(params)
    filters = {
        'date_from': date_from.isoformat(),
        'date_to': date_to.isoformat(),
        'include_ad_cost': parse_bool(params.get('include_ad_cost')) is not False,
        'aov_basis': 'total' if params.get('aov_basis') == 'total' else 'delivered',
    }
    for key in FILTER_KEYS:
        value = params.get(key)
        if value not in (None, ''):
            filters[key] = int(value)
    return filters


def filtered_orders(business, filters):
    queryset = Order.objects.filter(business=business).exclude(status__key='deleted')
    if filters.get('date_from'):
        queryset = queryset.filter(order_date__gte=filters['date_from'])
    if filters.get('date_to'):
        queryset = queryset.filter(order_date__lte=filters['date_to'])
    for key in ('country', 'carrier', 'employee', 'status'):
        if filters.get(key):
            queryset = queryset.filter(**{f"{key}_id": filters[key]})
    if filters.get('product'):
        queryset = queryset.filter(items__product_id=filters['product']).distinct()
    return queryset


def _metric_row(values):
    return {
        'revenue': values['revenue'],
        'cogs': values['cost'],
        'shipping': values['shipping_cost'],
        'ad_cost': values['ad_cost'],
        'is_delivered': values['status__counts_as_delivered'],
        'is_return': values['status__counts_as_return'],
        'is_active': values['status__counts_as_active'],
    }


def fetch_order_rows(business, filters):
    return list(filtered_orders(business, filters).values(*ROW_FIELDS))


def summarize(rows, include_ad_cost=True):
    """aggregate_order_metrics plus delivery and return rates"""
    totals = aggregate_order_metrics([_metric_row(r) for r in rows], include_ad_cost)
    totals['delivery_rate'] = delivery_rate(totals['delivered'], totals['total_orders'])
    totals['return_rate'] = return_rate(totals['returns'], totals['total_orders'])
    return totals


@cached_business_query(cache_ttl=DASHBOARD_KPI_CACHE_TTL, key_prefix='dashboard_kpis')
def get_kpis(business, filters):
    rows = fetch_order_rows(business, filters)
    totals = summarize(rows, filters.get('include_ad_cost', True))
    basis = totals['delivered'] if filters.get('aov_basis', 'delivered') == 'delivered' else totals['total_orders']
    totals['aov'] = average_order_value(totals['gross_sales'], basis)
    totals['aov_basis'] = filters.get('aov_basis', 'delivered')
    return to_float_dict(totals)


def get_time_series(business, filters):
    """Per-day totals sorted by date"""
    include_ad_cost = filters.get('include_ad_cost', True)
    by_day = OrderedDict()
    for row in sorted(fetch_order_rows(business, filters), key=lambda r: r['order_date']):
        by_day.setdefault(row['order_date'], []).append(row)

    series = []
    for day, rows in by_day.items():
        totals = summarize(rows, include_ad_cost)
        series.append({
            'date': day.isoformat(),
            'total_orders': totals['total_orders'],
            'delivered': totals['delivered'],
            'returns': totals['returns'],
            'revenue': float(totals['gross_sales']),
            'net_profit': float(totals['net_profit']),
        })
    return series


def _product_breakdown(business, filters):
    include_ad_cost = filters.get('include_ad_cost', True)
    orders = filtered_orders(business, filters)
    items = OrderItem.objects.filter(order__in=orders, product__isnull=False).annotate(
        revenue=ExpressionWrapper(F('unit_price') * F('quantity'), output_field=DecimalField()),
        cogs=ExpressionWrapper(F('unit_cost') * F('quantity'), output_field=DecimalField()),
    ).values('product_id', 'product__name_ar', 'quantity', 'revenue', 'cogs',
             'order__status__counts_as_delivered', 'order__status__counts_as_return',
             'order__status__counts_as_active')

    grouped = OrderedDict()
    for item in items:
        entry = grouped.setdefault(item['product_id'], {'name': item['product__name_ar'], 'quantity': 0, 'rows': []})
        entry['quantity'] += item['quantity']
        entry['rows'].append({
            'revenue': item['revenue'],
            'cogs': item['cogs'],
            'shipping': Decimal('0'),
            'ad_cost': Decimal('0'),
            'is_delivered': item['order__status__counts_as_delivered'],
            'is_return': item['order__status__counts_as_return'],
            'is_active': item['order__status__counts_as_active'],
        })

    result = []
    for product_id, entry in grouped.items():
        totals = aggregate_order_metrics(entry['rows'], include_ad_cost)
        result.append({
            'id': product_id,
            'name_ar': entry['name'],
            'quantity': entry['quantity'],
            'total': totals['total_orders'],
            'delivered': totals['delivered'],
            'returns': totals['returns'],
            'delivery_rate': delivery_rate(totals['delivered'], totals['total_orders']),
            'revenue': float(totals['gross_sales']),
            'net_profit': float(totals['net_profit']),
        })
    return sorted(result, key=lambda r: r['total'], reverse=True)


def _dimension_extras(dimension, entry, all_count):
    first = entry['rows'][0]
    if dimension == 'status':
        return {
            'color': first['status__color'],
            'percentage': percentage(len(entry['rows']), all_count),
        }
    if dimension == 'customer':
        dates = [r['order_date'] for r in entry['rows']]
        return {
            'phone': first['customer__phone'],
            'first_order_date': min(dates).isoformat(),
            'last_order_date': max(dates).isoformat(),
            'is_repeat': (first['customer__total_orders'] or 0) > 1,
        }
    return {}


def get_breakdown(business, filters, dimension):
    """Metrics per country / city / carrier / employee / customer / status / product, biggest first"""
    if dimension == 'product':
        return _product_breakdown(business, filters)
    if dimension not in BREAKDOWN_DIMENSIONS:
        raise ValueError(f"Unknown breakdown dimension: {dimension}")

    id_field, name_field = BREAKDOWN_DIMENSIONS[dimension]
    rows = fetch_order_rows(business, filters)
    grouped = OrderedDict()
    for row in rows:
        if row[id_field] is None and dimension in SKIP_EMPTY_DIMENSIONS:
            continue
        grouped.setdefault(row[id_field], {'name': row[name_field], 'rows': []})['rows'].append(row)

    result = []
    for key, entry in grouped.items():
        totals = summarize(entry['rows'], filters.get('include_ad_cost', True))
        result.append({
            'id': key,
            'name_ar': entry['name'],
            'total': totals['total_orders'],
            'delivered': totals['delivered'],
            'returns': totals['returns'],
            'delivery_rate': totals['delivery_rate'],
            'revenue': float(totals['gross_sales']),
            'net_profit': float(totals['net_profit']),
            'aov': float(average_order_value(totals['gross_sales'], totals['total_orders'])),
            **_dimension_extras(dimension, entry, len(rows)),
        })
    if dimension == 'customer':
        return sorted(result, key=lambda r: r['revenue'], reverse=True)
    return sorted(result, key=lambda r: r['total'], reverse=True)


@cached_business_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix='cod_report')
def get_cod_report(business, filters):
    """Cash collection: orders and values per collection status"""
    counts = dict.fromkeys(COLLECTION_STATUSES, 0)
    pending_value = collected_value = cod_fees = Decimal('0')
    for row in fetch_order_rows(business, filters):
        revenue = row['revenue'] or Decimal('0')
        collected = row['collected_amount'] or Decimal('0')
        cod_fees += row['cod_fees'] or Decimal('0')
        state = row['collection_status']
        if state not in counts:
            continue
        counts[state] += 1
        if state == 'pending':
            pending_value += revenue
        elif state == 'collected':
            collected_value += collected or revenue
        elif state == 'partial':
            collected_value += collected
            pending_value += revenue - collected

    return {
        **{f'total_{state}': count for state, count in counts.items()},
        'collection_rate': percentage(counts['collected'], sum(counts.values())),
        'pending_value': float(pending_value),
        'collected_value': float(collected_value),
        'cod_fees': float(cod_fees),
    }


@cached_business_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix='financial_breakdown')
def get_financial_breakdown(business, filters):
    """
    Revenue down to net profit for the period. Unlike the KPI net profit,
    COD fees are deducted here, matching the per-order profit.
    """
    from backend.advertising.services import roas

    sums = dict.fromkeys(['revenue', 'cost', 'shipping_cost', 'ad_cost', 'cod_fees'], Decimal('0'))
    for row in fetch_order_rows(business, filters):
        for field in sums:
            sums[field] += row[field] or Decimal('0')
    if not filters.get('include_ad_cost', True):
        sums['ad_cost'] = Decimal('0')

    gross_profit = sums['revenue'] - sums['cost']
    net = gross_profit - sums['shipping_cost'] - sums['cod_fees'] - sums['ad_cost']
    return {
        'revenue': float(sums['revenue']),
        'cogs': float(sums['cost']),
        'shipping_cost': float(sums['shipping_cost']),
        'ad_cost': float(sums['ad_cost']),
        'cod_fees': float(sums['cod_fees']),
        'gross_profit': float(gross_profit),
        'net_profit': float(net),
        'profit_margin': percentage(net, sums['revenue']),
        'roas': roas(sums['revenue'], sums['ad_cost']),
    }


def period_bounds(day, group_by):
    """(period key, label, first day, last day) of the period containing `day`"""
    if group_by == 'week':
        start = day - timedelta(days=day.weekday())
        end = start + timedelta(days=6)
        iso_year, iso_week, _weekday = day.isocalendar()
        return f"{iso_year}-W{iso_week:02d}", f"{start.strftime('%d %b')} - {end.strftime('%d %b %Y')}", start, end
    if group_by == 'month':
        start = day.replace(day=1)
        next_month = (start + timedelta(days=32)).replace(day=1)
        return start.strftime('%Y-%m'), start.strftime('%B %Y'), start, next_month - timedelta(days=1)
    return day.isoformat(), day.strftime('%d %b %Y'), day, day


def _table_metrics(totals):
    return to_float_dict({key: totals[key] for key in (
        'total_orders', 'delivered', 'returns', 'active', 'delivery_rate', 'return_rate',
        'gross_sales', 'total_cogs', 'total_shipping', 'total_ad_cost', 'net_profit',
    )})


@cached_business_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix='report_table')
def get_report_table(business, filters, group_by='day'):
    if group_by not in GROUP_BY_CHOICES:
        group_by = 'day'
    include_ad_cost = filters.get('include_ad_cost', True)
    rows = fetch_order_rows(business, filters)

    periods = OrderedDict()
    for row in sorted(rows, key=lambda r: r['order_date']):
        key, label, start, end = period_bounds(row['order_date'], group_by)
        periods.setdefault(key, {'label': label, 'date_from': start, 'date_to': end, 'rows': []})['rows'].append(row)

    table = [
        {
            'period': key,
            'label': entry['label'],
            'date_from': entry['date_from'].isoformat(),
            'date_to': entry['date_to'].isoformat(),
            'metrics': _table_metrics(summarize(entry['rows'], include_ad_cost)),
        }
        for key, entry in periods.items()
    ]
    return {
        'group_by': group_by,
        'rows': table,
        'totals': _table_metrics(summarize(rows, include_ad_cost)),
    }


def export_report_excel(business, filters, group_by='day'):
    report = get_report_table(business, filters, group_by)

    def line(label, date_from, date_to, m):
        return [label, date_from, date_to, m['total_orders'], m['delivered'], m['returns'], m['active'],
                m['delivery_rate'], m['return_rate'], m['gross_sales'], m['total_cogs'],
                m['total_shipping'], m['total_ad_cost'], m['net_profit']]

    lines = [line(r['label'], r['date_from'], r['date_to'], r['metrics']) for r in report['rows']]
    lines.append(line('Total', filters.get('date_from', ''), filters.get('date_to', ''), report['totals']))
    return build_workbook('Report', REPORT_EXPORT_HEADERS, lines)


def get_dashboard(business, filters):
    """KPIs, today's order statistics and plan usage in one payload"""
    from backend.billing.services import get_usage_status
    from backend.orders.services import get_order_statistics

    return {
        'kpis': get_kpis(business, filters),
        'order_statistics': get_order_statistics(business),
        'usage': get_usage_status(business),
        'time_series': get_time_series(business, filters),
    }
