"""
Order metric math shared by dashboards, reports and carrier analytics.

Pure functions over numbers / row dicts, no database access. Rates are
percentages rounded to 2 decimals; money values are Decimal.
"""
from decimal import Decimal

ZERO = Decimal('0')


def _dec(value):
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _rate(part, total):
    if not total:
        return 0.0
    return round(float(part) / float(total) * 100, 2)


def delivery_rate(delivered, total):
    return _rate(delivered, total)


def return_rate(returns, total):
    return _rate(returns, total)


def percentage(part, total):
    return _rate(part, total)


def net_profit(revenue, cogs, shipping, ad_cost=0, include_ad_cost=True):
    profit = _dec(revenue) - _dec(cogs) - _dec(shipping)
    if include_ad_cost:
        profit -= _dec(ad_cost)
    return profit


def average_order_value(gross_sales, count):
    if not count:
        return ZERO
    return (_dec(gross_sales) / Decimal(count)).quantize(Decimal('0.01'))


def aggregate_order_metrics(rows, include_ad_cost=True):
    """
    Sum a list of order rows.

    Each row is a dict with revenue, cogs, shipping, ad_cost and the three
    status flags is_delivered, is_return and is_active.
    """
    totals = {
        'total_orders': 0,
        'delivered': 0,
        'returns': 0,
        'active': 0,
        'gross_sales': ZERO,
        'total_cogs': ZERO,
        'total_shipping': ZERO,
        'total_ad_cost': ZERO,
    }
    for row in rows:
        totals['total_orders'] += 1
        if row.get('is_delivered'):
            totals['delivered'] += 1
        if row.get('is_return'):
            totals['returns'] += 1
        if row.get('is_active'):
            totals['active'] += 1
        totals['gross_sales'] += _dec(row.get('revenue'))
        totals['total_cogs'] += _dec(row.get('cogs'))
        totals['total_shipping'] += _dec(row.get('shipping'))
        if include_ad_cost:
            totals['total_ad_cost'] += _dec(row.get('ad_cost'))

    totals['net_profit'] = net_profit(
        totals['gross_sales'], totals['total_cogs'], totals['total_shipping'],
        totals['total_ad_cost'], include_ad_cost,
    )
    return totals


def to_float_dict(metrics):
    """Decimal values to float for JSON responses"""
    return {key: float(value) if isinstance(value, Decimal) else value for key, value in metrics.items()}
