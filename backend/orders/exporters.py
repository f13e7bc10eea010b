"""Order list downloads (CSV and Excel)"""
from backend.core.tabular import build_workbook, csv_response, workbook_response

ORDER_EXPORT_HEADERS = [
    'Order Number', 'Order Date', 'Status', 'Customer Name', 'Phone', 'Address', 'Country', 'City',
    'Carrier', 'Employee', 'Products', 'Revenue', 'Cost', 'Shipping Cost', 'COD Fees', 'Ad Cost',
    'Profit', 'Collected Amount', 'Collection Status', 'Tracking Number', 'Source', 'Notes', 'Created At',
]


def _name(obj):
    if obj is None:
        return ''
    return getattr(obj, 'name_en', '') or getattr(obj, 'name_ar', '')


def order_export_rows(queryset):
    queryset = queryset.select_related('status', 'country', 'city', 'carrier', 'employee').prefetch_related('items')
    for order in queryset:
        products = ', '.join(f"{item.product_name or item.sku} x{item.quantity}" for item in order.items.all())
        yield [
            order.order_number,
            order.order_date.isoformat(),
            order.status.name_en or order.status.name_ar,
            order.customer_name,
            order.customer_phone,
            order.customer_address,
            _name(order.country),
            _name(order.city),
            _name(order.carrier),
            _name(order.employee),
            products,
            order.revenue,
            order.cost,
            order.shipping_cost,
            order.cod_fees,
            order.ad_cost,
            order.profit,
            order.collected_amount,
            order.get_collection_status_display(),
            order.tracking_number,
            order.order_source,
            order.notes,
            order.created_at.strftime('%Y-%m-%d %H:%M'),
        ]


def export_orders_csv(queryset, filename='orders.csv'):
    return csv_response(ORDER_EXPORT_HEADERS, order_export_rows(queryset), filename)


def export_orders_excel(queryset, filename='orders.xlsx'):
    workbook = build_workbook('Orders', ORDER_EXPORT_HEADERS, list(order_export_rows(queryset)))
    return workbook_response(workbook, filename)
