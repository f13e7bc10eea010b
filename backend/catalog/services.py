"""
Category ordering and product spreadsheet import/export.
"""
import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.db.models import Max
from django.utils.translation import gettext as _

from backend.core.exceptions import ValidationFailed
from backend.core.tabular import parse_tabular_file, normalize_header, build_workbook
from backend.core.utils import create_audit_log
from .models import ProductCategory, Product

logger = logging.getLogger('backend.catalog')

PRODUCT_EXPORT_HEADERS = ['SKU', 'Name (AR)', 'Name (EN)', 'Category', 'Price', 'Cost',
                          'Physical Stock', 'Reserved Stock', 'Available Stock', 'Active']

# field -> accepted normalized headers
PRODUCT_IMPORT_COLUMNS = {
    'sku': ['sku', 'رمز_المنتج', 'الكود'],
    'name_ar': ['name_ar', 'name', 'product', 'product_name', 'اسم_المنتج', 'المنتج'],
    'name_en': ['name_en', 'english_name'],
    'price': ['price', 'السعر'],
    'cost': ['cost', 'التكلفة'],
    'category': ['category', 'الفئة', 'التصنيف'],
    'physical_stock': ['stock', 'physical_stock', 'quantity', 'المخزون', 'الكمية'],
}
PRODUCT_REQUIRED_COLUMNS = ['sku', 'name_ar']


def create_category(business, **fields):
    current = ProductCategory.objects.filter(business=business).aggregate(m=Max('display_order'))['m']
    category = ProductCategory.objects.create(business=business, display_order=(current or 0) + 1, **fields)
    logger.info(f"Category '{category}' created in business {business.pk}")
    return category


@transaction.atomic
def reorder_categories(business, ids):
    categories = {c.pk: c for c in ProductCategory.objects.filter(business=business, pk__in=ids)}
    if len(categories) != len(set(ids)):
        raise ValidationFailed(_('Some categories do not belong to this workspace'))
    for index, category_id in enumerate(ids, start=1):
        category = categories[category_id]
        category.display_order = index
        category.save(update_fields=['display_order', 'updated_at'])
    return [categories[category_id] for category_id in ids]


def product_export_rows(queryset):
    for product in queryset.select_related('category'):
        yield [
            product.sku,
            product.name_ar,
            product.name_en,
            product.category.name_ar if product.category else '',
            product.price,
            product.cost,
            product.physical_stock,
            product.reserved_stock,
            product.available_stock,
            'Yes' if product.is_active else 'No',
        ]


def export_products_excel(queryset):
    return build_workbook('Products', PRODUCT_EXPORT_HEADERS, list(product_export_rows(queryset)))


def _map_columns(headers):
    mapping = {}
    for index, header in enumerate(headers):
        normalized = normalize_header(header)
        for field, aliases in PRODUCT_IMPORT_COLUMNS.items():
            if normalized in aliases and field not in mapping:
                mapping[field] = index
    return mapping


def _parse_decimal(raw, label, errors):
    if raw in (None, ''):
        return None
    try:
        value = Decimal(str(raw).replace(',', '').replace('،', ''))
    except InvalidOperation:
        errors.append(_('%(field)s must be a number') % {'field': label})
        return None
    if value < 0:
        errors.append(_('%(field)s must not be negative') % {'field': label})
        return None
    return value


def import_products(business, user, name, content, commit=True):
    """
    Upsert products by SKU from a CSV/Excel file.

    Returns {'created', 'updated', 'failed', 'errors': [{'row', 'errors'}]}.
    With commit=False nothing is written and the counts describe what would happen.
    """
    parsed = parse_tabular_file(name, content)
    mapping = _map_columns(parsed['headers'])
    missing = [field for field in PRODUCT_REQUIRED_COLUMNS if field not in mapping]
    if missing:
        raise ValidationFailed(_('Missing required columns'), code='missing_columns', extra={'missing': missing})

    categories = {c.name_ar.strip().lower(): c for c in ProductCategory.objects.filter(business=business)}
    existing = {p.sku: p for p in Product.objects.filter(business=business)}
    result = {'created': 0, 'updated': 0, 'failed': 0, 'errors': []}

    with transaction.atomic():
        for row_number, row in enumerate(parsed['rows'], start=2):
            values = {field: row[index] for field, index in mapping.items()}
            errors = []
            sku = values.get('sku', '').strip()
            name_ar = values.get('name_ar', '').strip()
            if not sku:
                errors.append(_('SKU is required'))
            if not name_ar:
                errors.append(_('Product name is required'))
            price = _parse_decimal(values.get('price'), 'price', errors)
            cost = _parse_decimal(values.get('cost'), 'cost', errors)
            stock = None
            if values.get('physical_stock'):
                try:
                    stock = int(float(values['physical_stock']))
                except ValueError:
                    errors.append(_('Stock must be a whole number'))

            if errors:
                result['failed'] += 1
                result['errors'].append({'row': row_number, 'errors': errors})
                continue

            fields = {'name_ar': name_ar}
            if values.get('name_en'):
                fields['name_en'] = values['name_en'].strip()
            if price is not None:
                fields['price'] = price
            if cost is not None:
                fields['cost'] = cost
            if stock is not None:
                fields['physical_stock'] = stock
            category_name = values.get('category', '').strip().lower()
            if category_name and category_name in categories:
                fields['category'] = categories[category_name]

            product = existing.get(sku)
            if product is None:
                result['created'] += 1
                if commit:
                    existing[sku] = Product.objects.create(business=business, sku=sku, **fields)
            else:
                result['updated'] += 1
                if commit:
                    for field, value in fields.items():
                        setattr(product, field, value)
                    product.save()

    if commit and (result['created'] or result['updated']):
        create_audit_log(business, user, 'product', name or 'upload', 'import',
                         after={'created': result['created'], 'updated': result['updated'], 'failed': result['failed']})
        logger.info(f"Product import into business {business.pk}: {result['created']} created, {result['updated']} updated, {result['failed']} failed")
    return result
