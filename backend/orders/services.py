"""
Order lifecycle: listing, creation, edits, status changes, bulk updates,
deletion, processing locks and the orders-page statistics.
"""
import logging
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Count, Q, Sum, DecimalField
from django.utils import timezone
from django.utils.translation import gettext as _

from backend.billing.services import ensure_can_add_orders
from backend.carriers.services import resolve_shipping_cost
from backend.core.exceptions import ValidationFailed, PermissionDeniedError, ConflictError, NotFoundError
from backend.core.models import AuditLog
from backend.core.utils import create_audit_log, model_snapshot
from backend.parties.services import find_or_create_customer, recalculate_customer_stats
from .filters import OrderFilter, late_orders_q
from .models import Order, OrderItem, OrderLock, Status
from .statuses import get_status_by_key

logger = logging.getLogger('backend.orders')

LOCK_TIMEOUT_MINUTES = 10
DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 200
CONFIRMED_STATUS_KEYS = ['confirmed', 'shipping', 'delivered']

SORT_FIELDS = ['created_at', 'order_date', 'order_number', 'customer_name', 'revenue', 'profit', 'updated_at']

ORDER_AUDIT_FIELDS = [
    'order_number', 'order_date', 'customer_name', 'customer_phone', 'customer_address', 'customer_email',
    'country', 'city', 'carrier', 'employee', 'status', 'revenue', 'cost', 'shipping_cost', 'cod_fees',
    'ad_cost', 'collected_amount', 'collection_status', 'notes', 'tracking_number', 'order_source',
    'callback_date', 'cancellation_reason', 'return_reason',
]
EDITABLE_FIELDS = [field for field in ORDER_AUDIT_FIELDS if field not in ('order_number', 'status')]


def order_queryset(business):
    return Order.objects.filter(business=business).select_related(
        'status', 'country', 'city', 'carrier', 'employee', 'customer', 'locked_by'
    )


def list_orders(business, filters=None, page=1, page_size=DEFAULT_PAGE_SIZE, sort_by='created_at', sort_dir='desc'):
    """
    Filtered, sorted page of orders.

    Returns {'results': [Order, ...], 'total_count', 'page', 'page_count'}.
    """
    queryset = OrderFilter(filters or {}, queryset=order_queryset(business)).qs
    if sort_by not in SORT_FIELDS:
        sort_by = 'created_at'
    ordering = sort_by if sort_dir == 'asc' else f"-{sort_by}"
    queryset = queryset.order_by(ordering, '-id').prefetch_related('items')

    page_size = max(1, min(int(page_size or DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE))
    paginator = Paginator(queryset, page_size)
    page_obj = paginator.get_page(page)
    return {
        'results': list(page_obj.object_list),
        'total_count': paginator.count,
        'page': page_obj.number,
        'page_count': paginator.num_pages,
    }


def get_order(business, pk):
    order = order_queryset(business).prefetch_related('items__product').filter(pk=pk).first()
    if order is None:
        raise NotFoundError(_('Order not found'))
    return order


def _dec(value, default=Decimal('0.00')):
    if value in (None, ''):
        return default
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValidationFailed(_('Invalid amount: %(value)s') % {'value': value})


def _build_items(order, items):
    created = []
    for item in items or []:
        product = item.get('product')
        quantity = int(item.get('quantity') or 1)
        if quantity < 1:
            raise ValidationFailed(_('Quantity must be at least 1'))
        unit_price = item.get('unit_price')
        unit_cost = item.get('unit_cost')
        created.append(OrderItem.objects.create(
            order=order,
            product=product,
            product_name=item.get('product_name') or (product.name_ar if product else ''),
            sku=item.get('sku') or (product.sku if product else ''),
            quantity=quantity,
            unit_price=_dec(unit_price, product.price if product else Decimal('0.00')),
            unit_cost=_dec(unit_cost, product.cost if product else Decimal('0.00')),
        ))
    return created


def _stamp_status_times(order, status_obj, now):
    if status_obj.key == 'confirmed' and order.confirmed_at is None:
        order.confirmed_at = now
    if status_obj.key == 'shipping' and order.shipped_at is None:
        order.shipped_at = now
    if status_obj.counts_as_delivered and order.delivered_at is None:
        order.delivered_at = now


def create_order(business, user, data):
    """
    Create an order with its items in one transaction.

    `data` holds Order field values (related objects, not ids) plus an
    optional `items` list of {product, product_name, sku, quantity,
    unit_price, unit_cost}. Revenue/cost default to the item totals and the
    shipping cost defaults to the carrier/city/country price.
    """
    data = dict(data)
    items = data.pop('items', None) or []
    status_key = data.pop('status_key', None)

    with transaction.atomic():
        ensure_can_add_orders(business, 1)

        status_obj = data.pop('status', None)
        if status_obj is None:
            status_obj = get_status_by_key(business, status_key or 'new')
        if status_obj is None:
            raise ValidationFailed(_('Unknown status: %(key)s') % {'key': status_key or 'new'})

        customer_name = (data.get('customer_name') or '').strip()
        customer_phone = (data.get('customer_phone') or '').strip()
        if not customer_name or not customer_phone:
            raise ValidationFailed(_('Customer name and phone are required'))

        if data.get('customer') is None:
            city = data.get('city')
            data['customer'] = find_or_create_customer(
                business, customer_name, customer_phone, user=user,
                email=data.get('customer_email') or '',
                address=data.get('customer_address') or '',
                city=(city.name_ar if city else ''),
            )

        revenue_given = data.get('revenue') not in (None, '')
        cost_given = data.get('cost') not in (None, '')
        if data.get('shipping_cost') in (None, ''):
            data['shipping_cost'] = resolve_shipping_cost(data.get('carrier'), data.get('city'), data.get('country'))

        order = Order(business=business, status=status_obj, created_by=user, **data)
        _stamp_status_times(order, status_obj, timezone.now())
        order.save()

        created_items = _build_items(order, items)
        if created_items and not (revenue_given and cost_given):
            if not revenue_given:
                order.revenue = sum((item.line_total for item in created_items), Decimal('0.00'))
            if not cost_given:
                order.cost = sum((item.line_cost for item in created_items), Decimal('0.00'))
            order.save(update_fields=['revenue', 'cost', 'updated_at'])

        recalculate_customer_stats(order.customer)

    create_audit_log(business, user, 'order', order.pk, 'create', after=model_snapshot(order, ORDER_AUDIT_FIELDS))
    logger.info(f"Order {order.order_number} created in business {business.pk} by {user}")
    return order


def _ensure_not_locked_by_other(order, user):
    lock = OrderLock.objects.filter(order=order).select_related('user').first()
    if lock is not None and not lock.is_expired and lock.user_id != user.pk:
        raise ConflictError(
            _('Order is being processed by %(user)s') % {'user': lock.user.display_name},
            code='order_already_locked',
            extra={'locked_by': lock.user.email, 'expires_at': lock.expires_at.isoformat()},
        )


def update_order_fields(order, user, changes):
    """Apply field edits (not status) and audit the before/after values of what changed"""
    unknown = [field for field in changes if field not in EDITABLE_FIELDS]
    if unknown:
        raise ValidationFailed(_('These fields cannot be edited: %(fields)s') % {'fields': ', '.join(unknown)})
    _ensure_not_locked_by_other(order, user)

    changed = [field for field, value in changes.items() if getattr(order, field) != value]
    if not changed:
        return order

    before = model_snapshot(order, changed)
    for field in changed:
        setattr(order, field, changes[field])
    order.save(update_fields=changed + ['updated_at'])

    if {'revenue', 'customer'} & set(changed) and order.customer_id:
        recalculate_customer_stats(order.customer)

    create_audit_log(order.business, user, 'order', order.pk, 'update', before=before, after=model_snapshot(order, changed))
    logger.info(f"Order {order.order_number} updated by {user}: {', '.join(changed)}")
    return order


def _apply_status(order, status_obj, now):
    order.status = status_obj
    _stamp_status_times(order, status_obj, now)
    order.save(update_fields=['status', 'confirmed_at', 'shipped_at', 'delivered_at', 'updated_at'])


def update_order_status(order, user, status_obj, note=None):
    if status_obj.business_id != order.business_id:
        raise ValidationFailed(_('Status does not belong to this workspace'))
    _ensure_not_locked_by_other(order, user)
    if order.status_id == status_obj.pk:
        return order

    old_status = order.status
    with transaction.atomic():
        _apply_status(order, status_obj, timezone.now())
        if order.customer_id:
            recalculate_customer_stats(order.customer)

    after = {'status': status_obj.label, 'status_key': status_obj.key}
    if note:
        after['note'] = note
    create_audit_log(order.business, user, 'order', order.pk, 'status_change',
                     before={'status': old_status.label, 'status_key': old_status.key}, after=after)
    logger.info(f"Order {order.order_number} status {old_status.key} -> {status_obj.key} by {user}")
    return order


def bulk_update_status(business, user, order_ids, status_obj):
    """Move several orders to one status; returns the number of orders changed"""
    if status_obj.business_id != business.pk:
        raise ValidationFailed(_('Status does not belong to this workspace'))
    now = timezone.now()
    updated = 0
    customers = set()
    with transaction.atomic():
        for order in Order.objects.filter(business=business, pk__in=order_ids).select_related('status'):
            if order.status_id == status_obj.pk:
                continue
            old_status = order.status
            _apply_status(order, status_obj, now)
            if order.customer_id:
                customers.add(order.customer)
            updated += 1
            create_audit_log(business, user, 'order', order.pk, 'bulk_status_change',
                             before={'status': old_status.label}, after={'status': status_obj.label})
        for customer in customers:
            recalculate_customer_stats(customer)
    logger.info(f"Bulk status change to {status_obj.key}: {updated} orders in business {business.pk}")
    return updated


def bulk_update_tracking(business, user, rows):
    """
    rows: [{'order_number', 'tracking_number'}, ...]
    Returns {'updated', 'not_found': [order_number, ...], 'errors': [...]}.
    """
    result = {'updated': 0, 'not_found': [], 'errors': []}
    for index, row in enumerate(rows, start=1):
        order_number = str(row.get('order_number') or '').strip()
        tracking_number = str(row.get('tracking_number') or '').strip()
        if not order_number or not tracking_number:
            result['errors'].append({'row': index, 'error': _('order_number and tracking_number are required')})
            continue
        order = Order.objects.filter(business=business, order_number=order_number).first()
        if order is None:
            result['not_found'].append(order_number)
            continue
        before = {'tracking_number': order.tracking_number}
        order.tracking_number = tracking_number
        order.save(update_fields=['tracking_number', 'updated_at'])
        create_audit_log(business, user, 'order', order.pk, 'tracking_update',
                         before=before, after={'tracking_number': tracking_number})
        result['updated'] += 1
    logger.info(f"Bulk tracking update in business {business.pk}: {result['updated']} updated, {len(result['not_found'])} not found")
    return result


def collection_status_for(order, collected_amount):
    if order.status.counts_as_return:
        return 'failed'
    if collected_amount <= 0:
        return 'pending'
    if collected_amount >= order.revenue:
        return 'collected'
    return 'partial'


def bulk_update_delivery(business, user, rows):
    """
    Carrier delivery report: rows of {'tracking_number', 'status_key', 'collected_amount'}.
    Returns {'updated', 'not_found': [tracking_number, ...], 'errors': [...]}.
    """
    statuses = {s.key: s for s in Status.objects.filter(business=business)}
    result = {'updated': 0, 'not_found': [], 'errors': []}
    now = timezone.now()
    for index, row in enumerate(rows, start=1):
        tracking_number = str(row.get('tracking_number') or '').strip()
        if not tracking_number:
            result['errors'].append({'row': index, 'error': _('tracking_number is required')})
            continue
        order = Order.objects.filter(business=business, tracking_number=tracking_number).select_related('status').first()
        if order is None:
            result['not_found'].append(tracking_number)
            continue

        status_key = str(row.get('status_key') or '').strip()
        if status_key and status_key not in statuses:
            result['errors'].append({'row': index, 'tracking_number': tracking_number,
                                     'error': _('Unknown status: %(key)s') % {'key': status_key}})
            continue
        try:
            collected = _dec(row.get('collected_amount'), order.collected_amount)
        except ValidationFailed as e:
            result['errors'].append({'row': index, 'tracking_number': tracking_number, 'error': e.message})
            continue

        before = model_snapshot(order, ['status', 'collected_amount', 'collection_status'])
        with transaction.atomic():
            if status_key and statuses[status_key].pk != order.status_id:
                _apply_status(order, statuses[status_key], now)
            order.collected_amount = collected
            order.collection_status = collection_status_for(order, collected)
            order.save(update_fields=['collected_amount', 'collection_status', 'updated_at'])
            if order.customer_id:
                recalculate_customer_stats(order.customer)
        create_audit_log(business, user, 'order', order.pk, 'delivery_update', before=before,
                         after=model_snapshot(order, ['status', 'collected_amount', 'collection_status']))
        result['updated'] += 1
    logger.info(f"Bulk delivery update in business {business.pk}: {result['updated']} updated")
    return result


def delete_order(order, user, hard=False):
    """Soft delete moves the order to the 'deleted' status; hard delete removes the row"""
    business = order.business
    before = model_snapshot(order, ORDER_AUDIT_FIELDS)
    order_id = order.pk
    customer = order.customer

    if hard:
        order.delete()
    else:
        deleted_status = get_status_by_key(business, 'deleted')
        if deleted_status is None:
            raise ValidationFailed(_("The workspace has no 'deleted' status"))
        _apply_status(order, deleted_status, timezone.now())

    if customer is not None:
        recalculate_customer_stats(customer)
    create_audit_log(business, user, 'order', order_id, 'delete', before=before, after={'hard': hard})
    logger.info(f"Order {order_id} {'hard' if hard else 'soft'} deleted by {user}")


# Locking
def release_expired_locks(now=None):
    """Drop expired locks and reset their orders to pending; returns how many were released"""
    now = now or timezone.now()
    with transaction.atomic():
        expired = OrderLock.objects.filter(expires_at__lte=now)
        order_ids = list(expired.values_list('order_id', flat=True))
        if not order_ids:
            return 0
        Order.objects.filter(pk__in=order_ids).update(
            locked_by=None, locked_at=None, processing_status='pending', updated_at=now,
        )
        expired.delete()
    logger.info(f"Released {len(order_ids)} expired order locks")
    return len(order_ids)


def lock_order(order, user, employee=None, minutes=LOCK_TIMEOUT_MINUTES):
    """
    Take (or refresh) the processing lock of an order.

    Returns {'success': True, 'expires_at'} or, when another user holds a
    live lock, {'success': False, 'error': 'order_already_locked',
    'locked_by', 'expires_at'}.
    """
    now = timezone.now()
    release_expired_locks(now)
    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order.pk)
        lock = OrderLock.objects.filter(order=order).select_related('user').first()
        if lock is not None and lock.user_id != user.pk:
            return {
                'success': False,
                'error': 'order_already_locked',
                'locked_by': lock.user.email,
                'locked_by_name': lock.user.display_name,
                'expires_at': lock.expires_at.isoformat(),
            }

        expires_at = now + timedelta(minutes=minutes)
        if lock is None:
            lock = OrderLock.objects.create(order=order, user=user, employee=employee, locked_at=now, expires_at=expires_at)
        else:
            lock.expires_at = expires_at
            lock.employee = employee or lock.employee
            lock.save(update_fields=['expires_at', 'employee'])

        order.processing_status = 'processing'
        order.locked_by = user
        order.locked_at = now
        order.save(update_fields=['processing_status', 'locked_by', 'locked_at', 'updated_at'])

    create_audit_log(order.business, user, 'order', order.pk, 'lock', after={'expires_at': expires_at.isoformat()})
    return {'success': True, 'order_id': order.pk, 'expires_at': expires_at.isoformat()}


def unlock_order(order, user, force=False):
    """Release the processing lock. Only the lock owner may unlock unless force=True."""
    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order.pk)
        lock = OrderLock.objects.filter(order=order).first()
        if lock is not None and lock.user_id != user.pk and not force:
            raise PermissionDeniedError(_('Only the user holding the lock can unlock this order'), code='not_lock_owner')
        if lock is not None:
            lock.delete()
        order.processing_status = 'pending'
        order.locked_by = None
        order.locked_at = None
        order.save(update_fields=['processing_status', 'locked_by', 'locked_at', 'updated_at'])

    create_audit_log(order.business, user, 'order', order.pk, 'unlock', after={'forced': force})
    return {'success': True, 'order_id': order.pk}


def get_order_statistics(business, now=None):
    now = now or timezone.now()
    today = timezone.localdate(now)
    orders = Order.objects.filter(business=business).exclude(status__key='deleted')

    today_stats = orders.filter(created_at__date=today).aggregate(
        total=Count('id'),
        confirmed=Count('id', filter=Q(status__counts_as_delivered=True) | Q(status__key__in=CONFIRMED_STATUS_KEYS)),
    )
    pending_value = orders.filter(status__is_final=False).aggregate(
        value=Sum('revenue', output_field=DecimalField())
    )['value'] or Decimal('0.00')

    today_count = today_stats['total'] or 0
    confirmation_rate = round(today_stats['confirmed'] / today_count * 100, 1) if today_count else 0.0
    return {
        'today_count': today_count,
        'pending_value': float(pending_value),
        'confirmation_rate': confirmation_rate,
        'late_orders_count': orders.filter(late_orders_q(now)).count(),
    }


def get_order_audit_logs(order):
    return AuditLog.objects.filter(
        business=order.business, entity_type='order', entity_id=str(order.pk)
    ).select_related('user').order_by('-created_at')
