"""Utility functions for audit logging and request parsing"""
import logging
from datetime import datetime, timedelta

from django.utils import timezone

from .models import AuditLog

logger = logging.getLogger('backend.core')


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(business=None, user=None, entity_type=None, entity_id=None,
                     action=None, before=None, after=None, request=None):
    """
    Create an audit log entry

    Args:
        business: Workspace the change belongs to (None for platform-level changes)
        user: Acting user (defaults to request.user if request provided)
        entity_type: Kind of record, e.g. 'order', 'billing', 'status'
        entity_id: Primary key of the record
        action: One of AuditLog.ACTION_CHOICES
        before: Snapshot of the changed fields before the operation
        after: Snapshot of the changed fields after the operation
        request: Optional request, used for the user and client IP

    Never raises: a failed audit write must not undo the main operation.
    """
    try:
        audit_user = user
        if audit_user is None and request is not None and hasattr(request, 'user'):
            audit_user = request.user

        if not action or not entity_type or entity_id is None:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, entity_type={entity_type}, entity_id={entity_id})")
            return None

        return AuditLog.objects.create(
            business=business,
            user=audit_user if audit_user is not None and audit_user.is_authenticated else None,
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action,
            before=before,
            after=after,
            ip_address=get_client_ip(request),
        )
    except Exception as e:
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def parse_date(value, default=None):
    """Parse a YYYY-MM-DD query value, falling back to default"""
    if not value:
        return default
    if hasattr(value, 'year'):
        return value
    return datetime.strptime(value, '%Y-%m-%d').date()


def parse_date_range(params, default_days=30):
    """
    Read date_from/date_to from query params.
    Defaults to the last `default_days` days ending today.
    """
    today = timezone.localdate()
    date_from = parse_date(params.get('date_from'), today - timedelta(days=default_days))
    date_to = parse_date(params.get('date_to'), today)
    return date_from, date_to


def parse_bool(value):
    """Interpret a query string flag; returns None when absent"""
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        return value
    return str(value).lower() in ('1', 'true', 'yes', 'on')


def model_snapshot(instance, fields):
    """Return a JSON-safe dict of the given fields for audit before/after payloads"""
    snapshot = {}
    for field in fields:
        value = getattr(instance, field, None)
        if hasattr(value, 'pk'):
            value = value.pk
        elif hasattr(value, 'isoformat'):
            value = value.isoformat()
        elif value is not None and not isinstance(value, (str, int, float, bool, list, dict)):
            value = str(value)
        snapshot[field] = value
    return snapshot
