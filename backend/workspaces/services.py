"""
Workspace provisioning, membership and invitation logic.
"""
import logging

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone
from django.utils.text import slugify
from django.utils.translation import gettext as _

from backend.core.exceptions import ValidationFailed, NotFoundError, ConflictError, PermissionDeniedError
from backend.core.utils import create_audit_log
from .models import Business, BusinessMember, Invitation

logger = logging.getLogger('backend.workspaces')


def unique_slug(name, exclude_pk=None):
    base = slugify(name, allow_unicode=True)[:200] or 'workspace'
    slug = base
    counter = 2
    qs = Business.objects.all()
    if exclude_pk:
        qs = qs.exclude(pk=exclude_pk)
    while qs.filter(slug=slug).exists():
        slug = f"{base}-{counter}"
        counter += 1
    return slug


@transaction.atomic
def create_workspace(user, name, slug=None):
    """
    Create a workspace owned by `user`.

    Also creates the admin membership, the trial billing row and the default
    order statuses, so a new workspace is usable straight away.
    """
    from backend.billing.services import start_trial
    from backend.orders.statuses import ensure_default_statuses

    name = (name or '').strip()
    if len(name) < 2:
        raise ValidationFailed(_('Workspace name must be at least 2 characters'))

    slug = unique_slug(slug or name)
    business = Business.objects.create(name=name, slug=slug, created_by=user)
    BusinessMember.objects.create(business=business, user=user, role='admin', status='active')
    start_trial(business)
    ensure_default_statuses(business)
    logger.info(f"Workspace '{business.name}' ({business.pk}) created by {user}")
    return business


def get_user_workspaces(user):
    return Business.objects.filter(
        members__user=user, members__status='active'
    ).select_related('billing').distinct()


def _active_admin_count(business):
    return BusinessMember.objects.filter(business=business, role='admin', status='active').count()


def update_member(membership, acting_user, role=None, status=None):
    """Change role/status of a member; the last active admin is protected"""
    before = {'role': membership.role, 'status': membership.status}
    if role is not None and role not in dict(BusinessMember.ROLE_CHOICES):
        raise ValidationFailed(_('Invalid role'))
    if status is not None and status not in dict(BusinessMember.STATUS_CHOICES):
        raise ValidationFailed(_('Invalid member status'))

    demoting = membership.role == 'admin' and membership.status == 'active' and (
        (role is not None and role != 'admin') or (status is not None and status != 'active')
    )
    if demoting and _active_admin_count(membership.business) <= 1:
        raise ValidationFailed(_('A workspace needs at least one active admin'))

    if role is not None:
        membership.role = role
    if status is not None:
        membership.status = status
    membership.save()
    create_audit_log(
        business=membership.business, user=acting_user, entity_type='member',
        entity_id=membership.pk, action='member_change',
        before=before, after={'role': membership.role, 'status': membership.status},
    )
    return membership


def remove_member(membership, acting_user):
    if membership.role == 'admin' and membership.status == 'active' and _active_admin_count(membership.business) <= 1:
        raise ValidationFailed(_('Cannot remove the last admin of the workspace'))
    create_audit_log(
        business=membership.business, user=acting_user, entity_type='member',
        entity_id=membership.pk, action='delete',
        before={'user': membership.user_id, 'role': membership.role}, after=None,
    )
    membership.delete()


def create_invitation(business, invited_by, email, role='agent'):
    email = (email or '').strip().lower()
    if not email:
        raise ValidationFailed(_('Email is required'))
    if role not in dict(BusinessMember.ROLE_CHOICES):
        raise ValidationFailed(_('Invalid role'))
    if BusinessMember.objects.filter(business=business, user__email__iexact=email).exists():
        raise ConflictError(_('This user is already a member of the workspace'), code='already_member')
    invitation = Invitation.objects.create(business=business, email=email, role=role, invited_by=invited_by)
    logger.info(f"Invitation for {email} to business {business.pk} created by {invited_by}")
    return invitation


def get_invitation_by_token(token):
    invitation = Invitation.objects.select_related('business').filter(token=token).first()
    if invitation is None:
        raise NotFoundError(_('Invitation not found'), code='invitation_not_found')
    return invitation


@transaction.atomic
def accept_invitation(token, user):
    invitation = get_invitation_by_token(token)
    if invitation.is_accepted:
        raise ConflictError(_('Invitation has already been accepted'), code='invitation_already_accepted')
    if invitation.is_expired:
        raise ValidationFailed(_('Invitation has expired'), code='invitation_expired')
    if BusinessMember.objects.filter(business=invitation.business, user=user).exists():
        raise ConflictError(_('You are already a member of this workspace'), code='already_member')

    membership = BusinessMember.objects.create(
        business=invitation.business,
        user=user,
        role=invitation.role,
        status='active',
        invited_by=invitation.invited_by,
    )
    invitation.accepted_at = timezone.now()
    invitation.save(update_fields=['accepted_at'])
    logger.info(f"User {user} joined business {invitation.business_id} as {invitation.role}")
    return membership


def delete_workspace(business, user):
    if business.created_by_id != user.pk:
        raise PermissionDeniedError(_('Only the workspace owner can delete it'))
    logger.info(f"Workspace {business.pk} deleted by {user}")
    business.delete()


# Super admin operations

def list_all_workspaces(search=None, status=None):
    qs = Business.objects.select_related('created_by', 'billing').annotate(
        orders_count=Count('orders', distinct=True),
        members_count=Count('members', distinct=True),
    )
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(slug__icontains=search) | Q(created_by__email__icontains=search))
    if status:
        qs = qs.filter(status=status)
    return qs.order_by('-created_at')


def admin_stats():
    from backend.orders.models import Order
    return {
        'total_workspaces': Business.objects.count(),
        'pending_payments': Business.objects.filter(manual_payment_status='pending').count(),
        'active_lifetime_deals': Business.objects.filter(is_lifetime_deal=True, status='active').count(),
        'total_orders': Order.objects.count(),
    }


@transaction.atomic
def approve_lifetime_deal(business, user, plan='starter'):
    from backend.billing.services import activate_billing
    business.manual_payment_status = 'verified'
    business.is_lifetime_deal = True
    business.save(update_fields=['manual_payment_status', 'is_lifetime_deal', 'updated_at'])
    activate_billing(business, user, plan=plan)
    logger.info(f"Lifetime deal approved for business {business.pk} on plan {plan} by {user}")
    return business


def reject_manual_payment(business, user):
    business.manual_payment_status = 'rejected'
    business.save(update_fields=['manual_payment_status', 'updated_at'])
    logger.info(f"Manual payment rejected for business {business.pk} by {user}")
    return business


def set_workspace_status(business, user, status):
    if status not in dict(Business.STATUS_CHOICES):
        raise ValidationFailed(_('Invalid workspace status'))
    before = {'status': business.status}
    business.status = status
    business.save(update_fields=['status', 'updated_at'])
    create_audit_log(business=business, user=user, entity_type='business', entity_id=business.pk,
                     action='update', before=before, after={'status': status})
    logger.info(f"Business {business.pk} status set to {status} by {user}")
    return business
