"""
Order import from CSV/Excel files exported by stores or call centers.

Column headers are matched through English and Arabic aliases; rows sharing
an order number become one multi-item order.
"""
import csv
import io
import logging
import re
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal, InvalidOperation

from django.db import IntegrityError
from django.utils import timezone
from django.utils.translation import gettext as _

from backend.billing.services import ensure_can_add_orders
from backend.catalog.models import Product
from backend.core.exceptions import ServiceError
from backend.core.tabular import parse_tabular_file, normalize_header
from backend.core.utils import create_audit_log
from backend.locations.models import City
from .models import Status
from .services import create_order

logger = logging.getLogger('backend.orders')

# column -> (required, english header, arabic header, aliases)
IMPORT_SCHEMA = OrderedDict([
    ('order_number', (False, 'Order Number', 'رقم الطلب', ['order_number', 'order_no', 'order_id', 'رقم_الطلب'])),
    ('date', (False, 'Date', 'التاريخ', ['date', 'order_date', 'التاريخ', 'تاريخ_الطلب'])),
    ('customer_name', (True, 'Customer Name', 'اسم العميل', ['customer_name', 'customer', 'name', 'client', 'اسم_العميل', 'العميل', 'الاسم'])),
    ('phone', (True, 'Phone', 'رقم الهاتف', ['phone', 'phone_number', 'mobile', 'tel', 'رقم_الهاتف', 'الهاتف', 'الجوال'])),
    ('city', (False, 'City', 'المدينة', ['city', 'المدينة'])),
    ('address', (False, 'Address', 'العنوان', ['address', 'customer_address', 'العنوان'])),
    ('sku', (True, 'SKU', 'رمز المنتج', ['sku', 'product_sku', 'product_code', 'رمز_المنتج', 'كود_المنتج'])),
    ('product', (False, 'Product', 'المنتج', ['product', 'product_name', 'item', 'المنتج', 'اسم_المنتج'])),
    ('quantity', (True, 'Quantity', 'الكمية', ['quantity', 'qty', 'الكمية'])),
    ('price', (True, 'Price', 'السعر', ['price', 'unit_price', 'amount', 'السعر'])),
    ('status', (False, 'Status', 'الحالة', ['status', 'order_status', 'الحالة'])),
    ('notes', (False, 'Notes', 'ملاحظات', ['notes', 'note', 'comments', 'ملاحظات', 'ملاحظة'])),
])

# label (lowercase) -> status key
STATUS_LABELS = {
    'new': 'new', 'جديد': 'new', 'طلبات جديدة': 'new',
    'confirmed': 'confirmed', 'مؤكد': 'confirmed', 'مؤكدة': 'confirmed',
    'pending': 'pending_discussion', 'pending discussion': 'pending_discussion', 'معلقة للمناقشة': 'pending_discussion',
    'delayed': 'delayed', 'مؤجل': 'delayed', 'مؤجلة': 'delayed',
    'preparing': 'preparing', 'processing': 'preparing', 'تحت التحضير': 'preparing', 'قيد التجهيز': 'preparing',
    'prepared': 'prepared', 'تم التحضير': 'prepared',
    'shipping': 'shipping', 'shipped': 'shipping', 'في الشحن': 'shipping', 'تم الشحن': 'shipping',
    'delivered': 'delivered', 'تم التوصيل': 'delivered', 'تم التسليم': 'delivered',
    'returned': 'returned', 'مرتجع': 'returned',
    'refused': 'refused_at_delivery', 'رفض عند الاستلام': 'refused_at_delivery',
    'canceled': 'canceled', 'cancelled': 'canceled', 'ملغي': 'canceled', 'ملغية': 'canceled',
}

DATE_PATTERNS = [
    (re.compile(r'^(\d{4})-(\d{1,2})-(\d{1,2})$'), ('y', 'm', 'd')),
    (re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})$'), ('d', 'm', 'y')),
    (re.compile(r'^(\d{1,2})-(\d{1,2})-(\d{4})$'), ('d', 'm', 'y')),
    (re.compile(r'^(\d{1,2})\.(\d{1,2})\.(\d{4})$'), ('d', 'm', 'y')),
]
MIN_PHONE_DIGITS = 8


def _alias_lookup():
    lookup = {}
    for column, (_required, english, arabic, aliases) in IMPORT_SCHEMA.items():
        for alias in aliases + [english, arabic, column]:
            lookup.setdefault(normalize_header(alias), column)
    return lookup


ALIAS_LOOKUP = _alias_lookup()


def validate_headers(headers):
    """
    Map file headers onto IMPORT_SCHEMA columns.

    Returns missing_required, missing_optional, found_columns,
    column_mapping ({column: header index}) and is_valid.
    """
    mapping = {}
    for index, header in enumerate(headers):
        column = ALIAS_LOOKUP.get(normalize_header(header))
        if column and column not in mapping:
            mapping[column] = index

    missing_required = [c for c, entry in IMPORT_SCHEMA.items() if entry[0] and c not in mapping]
    missing_optional = [c for c, entry in IMPORT_SCHEMA.items() if not entry[0] and c not in mapping]
    return {
        'missing_required': missing_required,
        'missing_optional': missing_optional,
        'found_columns': [c for c in IMPORT_SCHEMA if c in mapping],
        'column_mapping': mapping,
        'is_valid': not missing_required,
    }


def parse_import_date(value):
    """Returns a date, or None when the format is not recognised"""
    value = (value or '').strip()
    for pattern, order in DATE_PATTERNS:
        match = pattern.match(value)
        if not match:
            continue
        parts = dict(zip(order, (int(g) for g in match.groups())))
        try:
            return datetime(parts['y'], parts['m'], parts['d']).date()
        except ValueError:
            return None
    return None


def validate_row(row, mapping, row_number):
    """
    Validate one data row (row_number counts the header as row 1).

    Returns {'row_number', 'errors', 'warnings', 'data'} where data holds
    the cleaned values.
    """
    def cell(column):
        index = mapping.get(column)
        if index is None or index >= len(row):
            return ''
        return str(row[index]).strip()

    errors, warnings, data = [], [], {}

    name = cell('customer_name')
    if len(name) < 2:
        errors.append(_('Customer name must be at least 2 characters'))
    data['customer_name'] = name

    phone = re.sub(r'[\s\-()]', '', cell('phone'))
    if len(re.sub(r'\D', '', phone)) < MIN_PHONE_DIGITS:
        errors.append(_('Phone must contain at least %(count)d digits') % {'count': MIN_PHONE_DIGITS})
    data['phone'] = phone

    sku = cell('sku')
    if not sku:
        errors.append(_('SKU is required'))
    data['sku'] = sku

    raw_quantity = cell('quantity')
    try:
        quantity = int(raw_quantity)
        if quantity < 1:
            raise ValueError
        data['quantity'] = quantity
    except ValueError:
        errors.append(_('Quantity must be a whole number of at least 1'))

    raw_price = cell('price').replace(',', '').replace('،', '')
    try:
        price = Decimal(raw_price)
        if price <= 0:
            raise InvalidOperation
        data['price'] = price
    except InvalidOperation:
        errors.append(_('Price must be a number greater than 0'))

    raw_status = cell('status')
    if raw_status:
        status_key = STATUS_LABELS.get(raw_status.lower())
        if status_key is None:
            errors.append(_('Unknown status: %(status)s') % {'status': raw_status})
        data['status_key'] = status_key
    else:
        data['status_key'] = 'new'

    raw_date = cell('date')
    order_date = parse_import_date(raw_date) if raw_date else None
    if raw_date and order_date is None:
        warnings.append(_('Unrecognised date %(date)s, using today') % {'date': raw_date})
    data['order_date'] = order_date or timezone.localdate()

    data['order_number'] = cell('order_number')
    data['city'] = cell('city')
    data['address'] = cell('address')
    data['product'] = cell('product')
    data['notes'] = cell('notes')

    return {'row_number': row_number, 'errors': errors, 'warnings': warnings, 'data': data}


def group_rows(validated_rows):
    """Rows sharing an order_number become one order; rows without one stand alone"""
    groups = OrderedDict()
    for result in validated_rows:
        order_number = result['data'].get('order_number')
        key = order_number or f"__row_{result['row_number']}"
        groups.setdefault(key, []).append(result)
    return list(groups.values())


def import_orders(business, user, name, content, commit=False):
    """
    Preview (commit=False) or create (commit=True) orders from a file.

    Returns created, failed, errors ([{'row', 'errors'}]), plus header
    info and, in preview mode, the per-row report.
    """
    parsed = parse_tabular_file(name, content)
    header_info = validate_headers(parsed['headers'])
    if not header_info['is_valid']:
        return {
            'created': 0,
            'failed': len(parsed['rows']),
            'errors': [{'row': 1, 'errors': [_('Missing required columns: %(cols)s') % {'cols': ', '.join(header_info['missing_required'])}]}],
            'headers': header_info,
        }

    mapping = header_info['column_mapping']
    validated = [validate_row(row, mapping, index) for index, row in enumerate(parsed['rows'], start=2)]
    groups = group_rows(validated)

    if not commit:
        return {
            'created': 0,
            'failed': sum(1 for group in groups if any(r['errors'] for r in group)),
            'orders_count': len(groups),
            'errors': [{'row': r['row_number'], 'errors': r['errors']} for r in validated if r['errors']],
            'rows': validated,
            'headers': header_info,
        }

    valid_groups = [group for group in groups if not any(r['errors'] for r in group)]
    result = {
        'created': 0,
        'failed': len(groups) - len(valid_groups),
        'errors': [{'row': r['row_number'], 'errors': r['errors']} for r in validated if r['errors']],
        'headers': header_info,
    }
    if not valid_groups:
        return result

    ensure_can_add_orders(business, len(valid_groups))

    products = {p.sku: p for p in Product.objects.filter(business=business)}
    statuses = {s.key: s for s in Status.objects.filter(business=business)}
    cities = {}
    for city in City.objects.filter(country__business=business).select_related('country'):
        for city_name in (city.name_ar, city.name_en):
            if city_name:
                cities.setdefault(city_name.strip().lower(), city)

    for group in valid_groups:
        first = group[0]['data']
        unknown = [r for r in group if r['data']['sku'] not in products]
        if unknown:
            result['failed'] += 1
            for r in unknown:
                result['errors'].append({'row': r['row_number'], 'errors': [_('Unknown SKU: %(sku)s') % {'sku': r['data']['sku']}]})
            continue

        city = cities.get(first['city'].lower()) if first['city'] else None
        items = [
            {
                'product': products[r['data']['sku']],
                'product_name': r['data']['product'] or products[r['data']['sku']].name_ar,
                'quantity': r['data']['quantity'],
                'unit_price': r['data']['price'],
            }
            for r in group
        ]
        data = {
            'order_date': first['order_date'],
            'customer_name': first['customer_name'],
            'customer_phone': first['phone'],
            'customer_address': first['address'],
            'city': city,
            'country': city.country if city else None,
            'notes': first['notes'],
            'order_source': 'import',
            'status': statuses.get(first['status_key']),
            'items': items,
        }
        if first['order_number']:
            data['order_number'] = first['order_number']
        try:
            create_order(business, user, data)
            result['created'] += 1
        except ServiceError as e:
            result['failed'] += 1
            result['errors'].append({'row': group[0]['row_number'], 'errors': [e.message]})
        except IntegrityError:
            result['failed'] += 1
            result['errors'].append({'row': group[0]['row_number'],
                                     'errors': [_('Order number %(number)s already exists') % {'number': first['order_number']}]})

    create_audit_log(business, user, 'order', name or 'upload', 'import',
                     after={'created': result['created'], 'failed': result['failed']})
    logger.info(f"Order import into business {business.pk}: {result['created']} created, {result['failed']} failed")
    return result


def import_template(lang='en'):
    """CSV template text with English or Arabic headers and one example row"""
    index = 2 if lang == 'ar' else 1
    headers = [entry[index] for entry in IMPORT_SCHEMA.values()]
    example = ['ORD-1001', timezone.localdate().isoformat(), 'Ahmed Ali', '0501234567', 'Riyadh',
               'King Fahd Road', 'SKU-001', 'Sample product', '1', '150', 'new', '']
    if lang == 'ar':
        example[4], example[10] = 'الرياض', 'جديد'
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL)
    writer.writerow(headers)
    writer.writerow(example)
    return '\ufeff' + buffer.getvalue()
