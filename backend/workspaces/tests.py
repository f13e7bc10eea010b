"""
Test suite for Workspaces module
Tests: provisioning, tenancy resolution, roles, members, invitations, super admin actions
"""
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.exceptions import ValidationFailed, NotFoundError, PermissionDeniedError, ConflictError
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.billing.models import BusinessBilling
from backend.orders.models import Status
from backend.orders.statuses import DEFAULT_STATUSES
from backend.workspaces.models import Business, BusinessMember, Invitation
from backend.workspaces import services
from backend.workspaces.tenancy import resolve_business, require_role, MANAGER_ROLES, EDITOR_ROLES


class WorkspaceProvisioningTests(TestCase):
    """create_workspace sets up everything a new workspace needs"""

    def setUp(self):
        self.user = TestDataFactory.create_user()

    def test_creates_admin_membership_trial_and_statuses(self):
        business = services.create_workspace(self.user, 'متجر الأمل')
        membership = BusinessMember.objects.get(business=business, user=self.user)
        self.assertEqual(membership.role, 'admin')
        billing = BusinessBilling.objects.get(business=business)
        self.assertTrue(billing.is_trial)
        self.assertEqual(billing.plan, 'free')
        self.assertEqual(billing.monthly_order_limit, 50)
        self.assertEqual(Status.objects.filter(business=business).count(), len(DEFAULT_STATUSES))

    def test_slug_is_unique(self):
        first = services.create_workspace(self.user, 'My Shop')
        second = services.create_workspace(self.user, 'My Shop')
        self.assertEqual(first.slug, 'my-shop')
        self.assertEqual(second.slug, 'my-shop-2')

    def test_name_too_short(self):
        with self.assertRaises(ValidationFailed):
            services.create_workspace(self.user, 'A')


class TenancyTests(TestCase):
    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.owner)

    def test_member_resolves(self):
        business, membership = resolve_business(self.owner, self.business.pk)
        self.assertEqual(business, self.business)
        self.assertEqual(membership.role, 'admin')

    def test_non_member_is_denied(self):
        stranger = TestDataFactory.create_user()
        with self.assertRaises(PermissionDeniedError):
            resolve_business(stranger, self.business.pk)

    def test_unknown_workspace(self):
        with self.assertRaises(NotFoundError):
            resolve_business(self.owner, 999999)
        with self.assertRaises(NotFoundError):
            resolve_business(self.owner, 'abc')

    def test_suspended_member_is_denied(self):
        user = TestDataFactory.add_member(self.business, role='agent', status='suspended')
        with self.assertRaises(PermissionDeniedError):
            resolve_business(user, self.business.pk)

    def test_suspended_workspace_is_denied(self):
        self.business.status = 'suspended'
        self.business.save()
        with self.assertRaises(PermissionDeniedError) as ctx:
            resolve_business(self.owner, self.business.pk)
        self.assertEqual(ctx.exception.code, 'business_suspended')

    def test_super_admin_bypasses_membership(self):
        admin = TestDataFactory.create_super_admin()
        business, membership = resolve_business(admin, self.business.pk)
        self.assertEqual(business, self.business)
        self.assertEqual(membership.role, 'admin')

    def test_require_role(self):
        viewer_user = TestDataFactory.add_member(self.business, role='viewer')
        viewer = BusinessMember.objects.get(business=self.business, user=viewer_user)
        with self.assertRaises(PermissionDeniedError):
            require_role(viewer, EDITOR_ROLES)
        agent_user = TestDataFactory.add_member(self.business, role='agent')
        agent = BusinessMember.objects.get(business=self.business, user=agent_user)
        self.assertEqual(require_role(agent, EDITOR_ROLES), agent)
        with self.assertRaises(PermissionDeniedError):
            require_role(agent, MANAGER_ROLES)

    def test_missing_business_header(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(self.owner)
        response = client.get('/api/v1/orders/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'business_required')


class MembershipTests(TestCase):
    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.owner)
        self.admin_membership = BusinessMember.objects.get(business=self.business, user=self.owner)

    def test_last_admin_cannot_be_demoted(self):
        with self.assertRaises(ValidationFailed):
            services.update_member(self.admin_membership, self.owner, role='agent')

    def test_last_admin_cannot_be_removed(self):
        with self.assertRaises(ValidationFailed):
            services.remove_member(self.admin_membership, self.owner)

    def test_admin_can_be_demoted_when_another_admin_exists(self):
        TestDataFactory.add_member(self.business, role='admin')
        membership = services.update_member(self.admin_membership, self.owner, role='manager')
        self.assertEqual(membership.role, 'manager')

    def test_invalid_role(self):
        user = TestDataFactory.add_member(self.business)
        membership = BusinessMember.objects.get(business=self.business, user=user)
        with self.assertRaises(ValidationFailed):
            services.update_member(membership, self.owner, role='owner')


class InvitationTests(TestCase):
    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.owner)

    def test_accept_invitation(self):
        invitation = services.create_invitation(self.business, self.owner, ' New@Member.com ', role='manager')
        self.assertEqual(invitation.email, 'new@member.com')
        user = TestDataFactory.create_user(email='new@member.com')
        membership = services.accept_invitation(invitation.token, user)
        self.assertEqual(membership.role, 'manager')
        invitation.refresh_from_db()
        self.assertIsNotNone(invitation.accepted_at)

    def test_invitation_cannot_be_accepted_twice(self):
        invitation = services.create_invitation(self.business, self.owner, 'a@b.com')
        services.accept_invitation(invitation.token, TestDataFactory.create_user())
        with self.assertRaises(ConflictError):
            services.accept_invitation(invitation.token, TestDataFactory.create_user())

    def test_expired_invitation(self):
        invitation = services.create_invitation(self.business, self.owner, 'late@b.com')
        invitation.expires_at = timezone.now() - timedelta(minutes=1)
        invitation.save()
        with self.assertRaises(ValidationFailed):
            services.accept_invitation(invitation.token, TestDataFactory.create_user())

    def test_existing_member_cannot_be_invited(self):
        with self.assertRaises(ConflictError):
            services.create_invitation(self.business, self.owner, self.owner.email)

    def test_unknown_token(self):
        with self.assertRaises(NotFoundError):
            services.get_invitation_by_token('missing')


class WorkspaceAPITests(TestCase):
    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.owner)

    def test_create_and_list(self):
        response = self.client.post('/api/v1/workspaces/', {'name': 'Shop One'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.get('/api/v1/workspaces/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['role'], 'admin')

    def test_only_owner_can_delete(self):
        business = TestDataFactory.create_business(owner=self.owner)
        other_admin = TestDataFactory.add_member(business, role='admin')
        client = AuthenticatedAPIClient()
        client.authenticate_user(other_admin)
        response = client.delete(f'/api/v1/workspaces/{business.pk}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(f'/api/v1/workspaces/{business.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Business.objects.filter(pk=business.pk).exists())

    def test_invite_and_accept_through_api(self):
        business = TestDataFactory.create_business(owner=self.owner)
        response = self.client.post(f'/api/v1/workspaces/{business.pk}/invitations/',
                                    {'email': 'agent@shop.com', 'role': 'agent'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        token = response.data['token']

        invitee = TestDataFactory.create_user(email='agent@shop.com')
        client = AuthenticatedAPIClient()
        client.authenticate_user(invitee)
        response = client.post(f'/api/v1/invitations/{token}/accept/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(BusinessMember.objects.filter(business=business, user=invitee, role='agent').exists())
        self.assertEqual(Invitation.objects.get(token=token).accepted_at is not None, True)

    def test_admin_endpoints_require_super_admin(self):
        response = self.client.get('/api/v1/admin/workspaces/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_super_admin_suspends_workspace(self):
        business = TestDataFactory.create_business()
        admin = TestDataFactory.create_super_admin()
        client = AuthenticatedAPIClient()
        client.authenticate_user(admin)
        response = client.post(f'/api/v1/admin/workspaces/{business.pk}/status/', {'status': 'suspended'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        business.refresh_from_db()
        self.assertTrue(business.is_suspended)

        response = client.get('/api/v1/admin/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertGreaterEqual(response.data['total_workspaces'], 1)


class SuperAdminActionTests(TestCase):
    def setUp(self):
        self.admin = TestDataFactory.create_super_admin()
        self.business = TestDataFactory.create_business()
        Business.objects.filter(pk=self.business.pk).update(manual_payment_status='pending')
        self.business.refresh_from_db()

    def test_approve_lifetime_deal(self):
        services.approve_lifetime_deal(self.business, self.admin, plan='starter')
        self.business.refresh_from_db()
        self.assertTrue(self.business.is_lifetime_deal)
        self.assertEqual(self.business.manual_payment_status, 'verified')
        self.assertEqual(self.business.plan_type, 'starter')
        billing = BusinessBilling.objects.get(business=self.business)
        self.assertEqual(billing.status, 'active')
        self.assertFalse(billing.is_trial)
        self.assertEqual(billing.monthly_order_limit, 1000)

    def test_reject_manual_payment(self):
        services.reject_manual_payment(self.business, self.admin)
        self.business.refresh_from_db()
        self.assertEqual(self.business.manual_payment_status, 'rejected')
        self.assertFalse(self.business.is_lifetime_deal)

    def test_admin_stats(self):
        other = TestDataFactory.create_business()
        services.approve_lifetime_deal(other, self.admin)
        TestDataFactory.create_order(self.business)
        stats = services.admin_stats()
        self.assertEqual(stats['total_workspaces'], 2)
        self.assertEqual(stats['pending_payments'], 1)
        self.assertEqual(stats['active_lifetime_deals'], 1)
        self.assertEqual(stats['total_orders'], 1)

    def test_invalid_workspace_status(self):
        with self.assertRaises(ValidationFailed):
            services.set_workspace_status(self.business, self.admin, 'frozen')

    def test_endpoints(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(self.admin)
        response = client.post(f'/api/v1/admin/workspaces/{self.business.pk}/reject-payment/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = client.post(f'/api/v1/admin/workspaces/{self.business.pk}/approve-lifetime/',
                               {'plan': 'pro'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.business.refresh_from_db()
        self.assertEqual(self.business.plan_type, 'pro')
        response = client.get('/api/v1/admin/stats/')
        self.assertEqual(response.data['active_lifetime_deals'], 1)

    def test_endpoints_require_super_admin(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(TestDataFactory.create_user())
        response = client.post(f'/api/v1/admin/workspaces/{self.business.pk}/approve-lifetime/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = client.post(f'/api/v1/admin/workspaces/{self.business.pk}/reject-payment/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = client.get('/api/v1/admin/stats/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.business.refresh_from_db()
        self.assertEqual(self.business.manual_payment_status, 'pending')
