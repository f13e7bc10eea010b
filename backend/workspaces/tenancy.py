"""
Resolve the active workspace of a request and check the caller's role in it.

Clients select the workspace with the `X-Business-ID` header (or the
`business` query parameter). Every workspace-scoped view starts with
`get_request_business(request)`.
"""
import logging

from django.utils.translation import gettext as _

from backend.core.exceptions import ValidationFailed, NotFoundError, PermissionDeniedError
from .models import Business, BusinessMember, is_super_admin

logger = logging.getLogger('backend.workspaces')

ADMIN_ROLES = ['admin']
MANAGER_ROLES = ['admin', 'manager']
EDITOR_ROLES = ['admin', 'manager', 'agent']
ALL_ROLES = ['admin', 'manager', 'agent', 'viewer']


class SuperAdminMembership:
    """Stand-in membership for super admins looking at a workspace they do not belong to"""
    role = 'admin'
    status = 'active'
    is_super_admin = True

    def __init__(self, business, user):
        self.business = business
        self.user = user


def get_business_id_from_request(request):
    business_id = request.META.get('HTTP_X_BUSINESS_ID') or request.query_params.get('business')
    if not business_id:
        return None
    return str(business_id).strip()


def resolve_business(user, business_id):
    """
    Returns (business, membership) of `user` in the given workspace.

    Raises NotFoundError when the workspace does not exist, and
    PermissionDeniedError when the user is not an active member or the
    workspace is suspended. Super admins bypass both checks.
    """
    business_id = str(business_id)
    if not business_id.isdigit():
        raise NotFoundError(_('Workspace not found'))

    business = Business.objects.filter(pk=int(business_id)).first()
    if business is None:
        raise NotFoundError(_('Workspace not found'))

    membership = BusinessMember.objects.filter(business=business, user=user).first()
    if is_super_admin(user):
        return business, membership or SuperAdminMembership(business, user)

    if membership is None or membership.status != 'active':
        logger.warning(f"User {user} denied access to business {business.pk}")
        raise PermissionDeniedError(_('You are not a member of this workspace'))

    if business.is_suspended:
        logger.warning(f"User {user} tried to access suspended business {business.pk}")
        raise PermissionDeniedError(_('This workspace is suspended'), code='business_suspended')

    return business, membership


def get_request_business(request):
    """Workspace selected by the request's X-Business-ID header / business param"""
    business_id = get_business_id_from_request(request)
    if not business_id:
        raise ValidationFailed(_('Workspace is required (X-Business-ID header)'), code='business_required')
    return resolve_business(request.user, business_id)


def require_role(membership, roles):
    if membership is None or membership.role not in roles:
        raise PermissionDeniedError(_('You do not have permission to perform this action'))
    return membership


def require_super_admin(user):
    if not is_super_admin(user):
        raise PermissionDeniedError(_('Super admin access required'))
