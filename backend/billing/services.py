"""
Billing and usage-limit logic.

The monthly order count is measured on `Order.order_date` within the
calendar month. Workspaces owned by a super admin are never limited.
"""
import logging
from datetime import date, timedelta

from django.utils import timezone
from django.utils.translation import gettext as _

from backend.core.exceptions import ValidationFailed, LimitExceededError
from backend.core.utils import create_audit_log, model_snapshot
from backend.workspaces.models import is_super_admin
from .models import BusinessBilling
from .plans import PLAN_CONFIG, TRIAL_HOURS, DEFAULT_PLAN, get_plan

logger = logging.getLogger('backend.billing')

BILLING_AUDIT_FIELDS = ['plan', 'status', 'activated_at', 'lifetime_price_usd',
                        'monthly_order_limit', 'is_trial', 'trial_ends_at']


def start_trial(business, plan=DEFAULT_PLAN, hours=TRIAL_HOURS):
    """Create the billing row of a new workspace in trial mode"""
    config = get_plan(plan)
    return BusinessBilling.objects.create(
        business=business,
        plan=plan,
        status='trial',
        is_trial=True,
        trial_ends_at=timezone.now() + timedelta(hours=hours),
        monthly_order_limit=config['monthly_order_limit'],
        lifetime_price_usd=config['lifetime_price_usd'],
    )


def get_billing(business):
    billing = BusinessBilling.objects.filter(business=business).first()
    if billing is None:
        config = PLAN_CONFIG[DEFAULT_PLAN]
        billing = BusinessBilling.objects.create(
            business=business,
            plan=DEFAULT_PLAN,
            status='inactive',
            monthly_order_limit=config['monthly_order_limit'],
        )
    return billing


def is_trial_active(billing, now=None):
    now = now or timezone.now()
    return bool(billing.is_trial and billing.trial_ends_at and billing.trial_ends_at > now)


def is_trial_expired(billing, now=None):
    now = now or timezone.now()
    return bool(billing.is_trial and billing.trial_ends_at and billing.trial_ends_at <= now)


def get_trial_time_remaining(billing, now=None):
    """Hours/minutes left in the trial; all zero once it has expired"""
    now = now or timezone.now()
    if not billing.is_trial or not billing.trial_ends_at or billing.trial_ends_at <= now:
        return {'hours': 0, 'minutes': 0, 'total_ms': 0}
    remaining = billing.trial_ends_at - now
    total_seconds = int(remaining.total_seconds())
    return {
        'hours': total_seconds // 3600,
        'minutes': (total_seconds % 3600) // 60,
        'total_ms': int(remaining.total_seconds() * 1000),
    }


def _audit_billing(billing, user, before):
    create_audit_log(
        business=billing.business,
        user=user,
        entity_type='billing',
        entity_id=billing.pk,
        action='billing_change',
        before=before,
        after=model_snapshot(billing, BILLING_AUDIT_FIELDS),
    )


def set_plan(business, plan, user=None):
    config = get_plan(plan)
    if config is None:
        raise ValidationFailed(_('Unknown plan: %(plan)s') % {'plan': plan})
    billing = get_billing(business)
    before = model_snapshot(billing, BILLING_AUDIT_FIELDS)
    billing.plan = plan
    billing.monthly_order_limit = config['monthly_order_limit']
    billing.lifetime_price_usd = config['lifetime_price_usd']
    billing.save()
    business.plan_type = plan
    business.save(update_fields=['plan_type', 'updated_at'])
    _audit_billing(billing, user, before)
    logger.info(f"Business {business.pk} plan set to {plan}")
    return billing


def activate_billing(business, user=None, plan=None):
    """Activate the workspace's plan and end any trial"""
    if plan:
        set_plan(business, plan, user)
    billing = get_billing(business)
    before = model_snapshot(billing, BILLING_AUDIT_FIELDS)
    billing.status = 'active'
    billing.activated_at = timezone.now()
    billing.is_trial = False
    billing.trial_ends_at = None
    billing.save()
    _audit_billing(billing, user, before)
    logger.info(f"Billing activated for business {business.pk} on plan {billing.plan}")
    return billing


def deactivate_billing(business, user=None):
    billing = get_billing(business)
    before = model_snapshot(billing, BILLING_AUDIT_FIELDS)
    billing.status = 'inactive'
    billing.save()
    _audit_billing(billing, user, before)
    logger.info(f"Billing deactivated for business {business.pk}")
    return billing


def month_bounds(month=None):
    """First day of the month and first day of the following month"""
    month = month or timezone.localdate()
    start = date(month.year, month.month, 1)
    if month.month == 12:
        end = date(month.year + 1, 1, 1)
    else:
        end = date(month.year, month.month + 1, 1)
    return start, end


def get_monthly_orders_count(business, month=None):
    from backend.orders.models import Order
    start, end = month_bounds(month)
    return Order.objects.filter(business=business, order_date__gte=start, order_date__lt=end).count()


def get_order_limit(business):
    """Monthly order limit for the workspace, None when unlimited"""
    if is_super_admin(business.created_by):
        return None
    billing = get_billing(business)
    return billing.monthly_order_limit


def get_usage_status(business, month=None):
    month = month or timezone.localdate()
    count = get_monthly_orders_count(business, month)
    limit = get_order_limit(business)
    status = {
        'current_month_count': count,
        'limit': limit,
        'remaining': None,
        'percent_used': None,
        'is_exceeded': False,
        'month_label': month.strftime('%B %Y'),
    }
    if limit is None:
        return status
    status['remaining'] = max(0, limit - count)
    status['percent_used'] = min(100.0, round(count / limit * 100, 2)) if limit > 0 else 100.0
    status['is_exceeded'] = count >= limit
    return status


def check_can_add_orders(business, count_to_add=1):
    current = get_monthly_orders_count(business)
    limit = get_order_limit(business)
    if limit is None:
        return {'allowed': True, 'current': current, 'limit': None, 'message': ''}
    if current + count_to_add > limit:
        message = _(
            'Monthly order limit reached: %(current)d of %(limit)d orders used, cannot add %(count)d more'
        ) % {'current': current, 'limit': limit, 'count': count_to_add}
        return {'allowed': False, 'current': current, 'limit': limit, 'message': message}
    return {'allowed': True, 'current': current, 'limit': limit, 'message': ''}


def ensure_can_add_orders(business, count_to_add=1):
    """Raise LimitExceededError when the trial expired or the monthly limit would be exceeded"""
    billing = get_billing(business)
    if is_trial_expired(billing) and not is_super_admin(business.created_by):
        logger.warning(f"Business {business.pk} blocked from adding orders: trial expired")
        raise LimitExceededError(_('Your trial has expired. Please activate a plan to keep adding orders.'), code='trial_expired')

    result = check_can_add_orders(business, count_to_add)
    if not result['allowed']:
        logger.warning(f"Business {business.pk} blocked from adding {count_to_add} orders: {result['message']}")
        raise LimitExceededError(result['message'], code='order_limit_exceeded',
                                 extra={'current': result['current'], 'limit': result['limit']})
    return result
