"""
Order status catalogue of a workspace: seeding, editing rules and ordering.
"""
import logging

from django.db import transaction
from django.db.models import Max
from django.utils.translation import gettext as _

from backend.core.exceptions import ValidationFailed
from .models import Status, Order

logger = logging.getLogger('backend.orders')

# (key, name_ar, name_en, sort_order, is_final, counts_as_delivered, counts_as_return,
#  counts_as_active, status_type, color)
DEFAULT_STATUSES = [
    ('new', 'طلبات جديدة', 'New', 1, False, False, False, True, 'active', '#3b82f6'),
    ('confirmed', 'مؤكدة', 'Confirmed', 2, False, False, False, True, 'active', '#10b981'),
    ('pending_discussion', 'معلقة للمناقشة', 'Pending Discussion', 3, False, False, False, True, 'active', '#f59e0b'),
    ('delayed', 'مؤجلة', 'Delayed', 4, False, False, False, True, 'active', '#ef4444'),
    ('preparing', 'تحت التحضير', 'Preparing', 5, False, False, False, True, 'active', '#8b5cf6'),
    ('prepared', 'تم التحضير', 'Prepared', 6, False, False, False, True, 'active', '#06b6d4'),
    ('shipping', 'في الشحن', 'Shipping', 7, False, False, False, True, 'active', '#14b8a6'),
    ('delivered', 'تم التوصيل', 'Delivered', 8, True, True, False, False, 'delivered', '#22c55e'),
    ('returned', 'مرتجع', 'Returned', 9, True, False, True, False, 'returned', '#f97316'),
    ('refused_at_delivery', 'رفض عند الاستلام', 'Refused at Delivery', 10, True, False, True, False, 'returned', '#dc2626'),
    ('warehouse_received', 'استلام أمين المخزن', 'Warehouse Received', 11, False, False, True, False, 'returned', '#ea580c'),
    ('restocked', 'إرجاع للرف', 'Restocked', 12, False, False, True, False, 'returned', '#c2410c'),
    ('canceled', 'ملغية', 'Canceled', 13, True, False, False, False, 'canceled', '#64748b'),
    ('deleted', 'محذوفة', 'Deleted', 14, True, False, False, False, 'canceled', '#475569'),
]

LOGIC_FIELDS = ['key', 'is_final', 'counts_as_delivered', 'counts_as_return',
                'counts_as_active', 'status_type', 'is_system_default']
SYSTEM_EDITABLE_FIELDS = ['name_ar', 'name_en', 'color']


def ensure_default_statuses(business):
    """Create any missing default status of the workspace; returns the number created"""
    existing = set(Status.objects.filter(business=business).values_list('key', flat=True))
    to_create = []
    for (key, name_ar, name_en, sort_order, is_final, delivered, returned,
         active, status_type, color) in DEFAULT_STATUSES:
        if key in existing:
            continue
        to_create.append(Status(
            business=business,
            key=key,
            name_ar=name_ar,
            name_en=name_en,
            sort_order=sort_order,
            is_final=is_final,
            counts_as_delivered=delivered,
            counts_as_return=returned,
            counts_as_active=active,
            status_type=status_type,
            color=color,
            is_system_default=True,
        ))
    if to_create:
        Status.objects.bulk_create(to_create)
        logger.info(f"Seeded {len(to_create)} default statuses for business {business.pk}")
    return len(to_create)


def get_status_by_key(business, key):
    return Status.objects.filter(business=business, key=key).first()


def next_sort_order(business):
    current = Status.objects.filter(business=business).aggregate(m=Max('sort_order'))['m']
    return (current or 0) + 1


def check_status_update(status_obj, changes):
    """Raise ValidationFailed when a system status would get a logical field changed"""
    if not status_obj.is_system_default:
        if 'key' in changes and changes['key'] != status_obj.key:
            if Status.objects.filter(business=status_obj.business, key=changes['key']).exclude(pk=status_obj.pk).exists():
                raise ValidationFailed(_('A status with this key already exists'))
        return
    for field in changes:
        if field in SYSTEM_EDITABLE_FIELDS or field == 'sort_order':
            continue
        if field in LOGIC_FIELDS and changes[field] != getattr(status_obj, field):
            raise ValidationFailed(
                _('System statuses only allow changing the name and color (tried to change %(field)s)') % {'field': field},
                code='system_status_locked',
            )


def can_delete_status(status_obj):
    """Returns (allowed, reason)"""
    if status_obj.is_system_default:
        return False, _('System statuses cannot be deleted')

    siblings = Status.objects.filter(business=status_obj.business).exclude(pk=status_obj.pk)
    if status_obj.counts_as_delivered and not siblings.filter(counts_as_delivered=True).exists():
        return False, _('Cannot delete the last delivered status')
    if status_obj.counts_as_return and not siblings.filter(counts_as_return=True).exists():
        return False, _('Cannot delete the last return status')
    if status_obj.counts_as_active and not siblings.filter(counts_as_active=True).exists():
        return False, _('Cannot delete the last active status')

    if Order.objects.filter(status=status_obj).exists():
        return False, _('Status is used by existing orders')
    return True, ''


def delete_status(status_obj):
    allowed, reason = can_delete_status(status_obj)
    if not allowed:
        raise ValidationFailed(reason, code='status_not_deletable')
    logger.info(f"Deleting status {status_obj.key} of business {status_obj.business_id}")
    status_obj.delete()


@transaction.atomic
def reorder_statuses(business, status_ids):
    """Set sort_order = position + 1 following the given id list"""
    statuses = {s.pk: s for s in Status.objects.filter(business=business, pk__in=status_ids)}
    missing = [sid for sid in status_ids if int(sid) not in statuses]
    if missing:
        raise ValidationFailed(_('Unknown status ids: %(ids)s') % {'ids': ', '.join(str(m) for m in missing)})
    for index, status_id in enumerate(status_ids):
        status_obj = statuses[int(status_id)]
        status_obj.sort_order = index + 1
        status_obj.save(update_fields=['sort_order', 'updated_at'])
    return Status.objects.filter(business=business).order_by('sort_order', 'id')
