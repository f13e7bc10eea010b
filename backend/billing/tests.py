"""
Test suite for Billing module
Tests: trial lifecycle, monthly usage, order limits, plan changes and super admin actions
"""
from datetime import date, timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.exceptions import LimitExceededError, ValidationFailed
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.billing import services
from backend.billing.models import BusinessBilling


class TrialTests(TestCase):
    def setUp(self):
        self.business = TestDataFactory.create_business()
        self.billing = BusinessBilling.objects.get(business=self.business)

    def test_new_workspace_trial_lasts_a_day(self):
        now = timezone.now()
        self.assertTrue(services.is_trial_active(self.billing, now))
        remaining = services.get_trial_time_remaining(self.billing, now)
        self.assertIn(remaining['hours'], (23, 24))

    def test_expired_trial(self):
        later = timezone.now() + timedelta(hours=25)
        self.assertFalse(services.is_trial_active(self.billing, later))
        self.assertTrue(services.is_trial_expired(self.billing, later))
        self.assertEqual(services.get_trial_time_remaining(self.billing, later),
                         {'hours': 0, 'minutes': 0, 'total_ms': 0})

    def test_expired_trial_blocks_orders(self):
        self.billing.trial_ends_at = timezone.now() - timedelta(minutes=1)
        self.billing.save()
        with self.assertRaises(LimitExceededError) as ctx:
            services.ensure_can_add_orders(self.business)
        self.assertEqual(ctx.exception.code, 'trial_expired')

    def test_activation_ends_trial(self):
        billing = services.activate_billing(self.business, plan='growth')
        self.assertEqual(billing.status, 'active')
        self.assertFalse(billing.is_trial)
        self.assertIsNone(billing.trial_ends_at)
        self.assertEqual(billing.monthly_order_limit, 3000)
        self.business.refresh_from_db()
        self.assertEqual(self.business.plan_type, 'growth')
        self.assertTrue(AuditLog.objects.filter(business=self.business, action='billing_change').exists())


class UsageTests(TestCase):
    def setUp(self):
        self.business = TestDataFactory.create_business()
        self.billing = BusinessBilling.objects.get(business=self.business)
        self.billing.monthly_order_limit = 3
        self.billing.save()

    def test_month_bounds(self):
        self.assertEqual(services.month_bounds(date(2024, 12, 15)), (date(2024, 12, 1), date(2025, 1, 1)))
        self.assertEqual(services.month_bounds(date(2024, 2, 29)), (date(2024, 2, 1), date(2024, 3, 1)))

    def test_usage_counts_orders_of_current_month(self):
        TestDataFactory.create_order(self.business)
        TestDataFactory.create_order(self.business, order_date=timezone.localdate() - timedelta(days=62))
        usage = services.get_usage_status(self.business)
        self.assertEqual(usage['current_month_count'], 1)
        self.assertEqual(usage['limit'], 3)
        self.assertEqual(usage['remaining'], 2)
        self.assertEqual(usage['percent_used'], 33.33)
        self.assertFalse(usage['is_exceeded'])

    def test_limit_blocks_batches_that_overflow(self):
        TestDataFactory.create_order(self.business)
        TestDataFactory.create_order(self.business)
        self.assertTrue(services.check_can_add_orders(self.business, 1)['allowed'])
        result = services.check_can_add_orders(self.business, 2)
        self.assertFalse(result['allowed'])
        with self.assertRaises(LimitExceededError) as ctx:
            services.ensure_can_add_orders(self.business, 2)
        self.assertEqual(ctx.exception.code, 'order_limit_exceeded')
        self.assertEqual(ctx.exception.extra, {'current': 2, 'limit': 3})

    def test_exceeded_usage(self):
        for _ in range(3):
            TestDataFactory.create_order(self.business)
        usage = services.get_usage_status(self.business)
        self.assertTrue(usage['is_exceeded'])
        self.assertEqual(usage['remaining'], 0)
        self.assertEqual(usage['percent_used'], 100.0)

    def test_unlimited_plan(self):
        services.set_plan(self.business, 'pro')
        usage = services.get_usage_status(self.business)
        self.assertIsNone(usage['limit'])
        self.assertIsNone(usage['remaining'])
        self.assertTrue(services.check_can_add_orders(self.business, 10000)['allowed'])

    def test_super_admin_owned_workspace_is_unlimited(self):
        TestDataFactory.create_super_admin(self.business.created_by)
        self.assertIsNone(services.get_order_limit(self.business))

    def test_unknown_plan(self):
        with self.assertRaises(ValidationFailed):
            services.set_plan(self.business, 'enterprise')


class BillingAPITests(TestCase):
    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.owner)
        self.client = AuthenticatedAPIClient()
        self.client.use_business(self.owner, self.business)

    def test_billing_detail(self):
        response = self.client.get('/api/v1/billing/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['billing']['plan'], 'free')
        self.assertEqual(response.data['usage']['limit'], 50)
        self.assertEqual([p['key'] for p in response.data['plans']], ['free', 'starter', 'growth', 'pro'])

    def test_plan_change_requires_super_admin(self):
        response = self.client.post(f'/api/v1/admin/workspaces/{self.business.pk}/billing/plan/',
                                    {'plan': 'pro'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_super_admin_activates(self):
        admin = TestDataFactory.create_super_admin()
        client = AuthenticatedAPIClient()
        client.authenticate_user(admin)
        response = client.post(f'/api/v1/admin/workspaces/{self.business.pk}/billing/activate/',
                               {'plan': 'starter'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'active')
        self.assertEqual(response.data['plan'], 'starter')

        response = client.post(f'/api/v1/admin/workspaces/{self.business.pk}/billing/refund/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
