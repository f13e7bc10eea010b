"""
Test suite for Advertising module
Tests: product split validation, cost allocation onto orders, deallocation, campaign API
"""
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.exceptions import ValidationFailed, ConflictError
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.advertising import services
from backend.advertising.models import AdCampaign, AdCostLog
from backend.orders.models import Order


class AllocationValidationTests(TestCase):
    def setUp(self):
        self.business = TestDataFactory.create_business()
        self.a = TestDataFactory.create_product(self.business)
        self.b = TestDataFactory.create_product(self.business)

    def test_no_products(self):
        with self.assertRaises(ValidationFailed) as ctx:
            services.validate_product_allocations(self.business, [])
        self.assertEqual(ctx.exception.code, 'no_products')

    def test_total_must_be_100(self):
        services.validate_product_allocations(self.business, [
            {'product': self.a, 'allocation_percentage': Decimal('66.67')},
            {'product': self.b, 'allocation_percentage': Decimal('33.33')},
        ])
        services.validate_product_allocations(self.business, [
            {'product': self.a, 'allocation_percentage': Decimal('66.66')},
            {'product': self.b, 'allocation_percentage': Decimal('33.33')},
        ])
        with self.assertRaises(ValidationFailed) as ctx:
            services.validate_product_allocations(self.business, [
                {'product': self.a, 'allocation_percentage': Decimal('60')},
                {'product': self.b, 'allocation_percentage': Decimal('30')},
            ])
        self.assertEqual(ctx.exception.code, 'invalid_allocation_total')

    def test_duplicate_and_foreign_products(self):
        with self.assertRaises(ValidationFailed):
            services.validate_product_allocations(self.business, [
                {'product': self.a, 'allocation_percentage': 50},
                {'product': self.a, 'allocation_percentage': 50},
            ])
        foreign = TestDataFactory.create_product(TestDataFactory.create_business())
        with self.assertRaises(ValidationFailed):
            services.validate_product_allocations(self.business, [{'product': foreign, 'allocation_percentage': 100}])

    def test_cost_amount_follows_percentage(self):
        campaign = TestDataFactory.create_campaign(self.business, [(self.a, 60), (self.b, 40)], total_cost=Decimal('250.00'))
        amounts = {link.product_id: link.cost_amount for link in campaign.products.all()}
        self.assertEqual(amounts[self.a.pk], Decimal('150.00'))
        self.assertEqual(amounts[self.b.pk], Decimal('100.00'))


class AllocationTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.user)
        self.day = timezone.localdate()
        self.a = TestDataFactory.create_product(self.business)
        self.b = TestDataFactory.create_product(self.business)
        self.order1 = TestDataFactory.create_order(self.business, order_date=self.day, products=[(self.a, 2)])
        self.order2 = TestDataFactory.create_order(self.business, order_date=self.day, products=[(self.a, 1), (self.b, 1)])
        self.deleted = TestDataFactory.create_order(self.business, status_key='deleted', order_date=self.day,
                                                    products=[(self.a, 5)])
        self.yesterday = TestDataFactory.create_order(self.business, order_date=self.day - timedelta(days=1),
                                                      products=[(self.a, 1)])
        self.campaign = TestDataFactory.create_campaign(
            self.business, [(self.a, 60), (self.b, 40)], total_cost=Decimal('100.00'), campaign_date=self.day,
        )

    def _ad_cost(self, order):
        return Order.objects.get(pk=order.pk).ad_cost

    def test_cost_is_split_by_quantity(self):
        result = services.allocate_campaign(self.campaign, self.user)
        self.assertTrue(result['success'])
        self.assertEqual(result['orders_updated'], 2)
        self.assertEqual(result['total_cost_allocated'], 100.0)
        self.assertEqual(self._ad_cost(self.order1), Decimal('40.00'))
        self.assertEqual(self._ad_cost(self.order2), Decimal('60.00'))
        self.assertEqual(self._ad_cost(self.deleted), Decimal('0.00'))
        self.assertEqual(self._ad_cost(self.yesterday), Decimal('0.00'))
        self.assertEqual(AdCostLog.objects.filter(campaign=self.campaign).count(), 3)

    def test_profit_includes_ad_cost(self):
        services.allocate_campaign(self.campaign, self.user)
        order = Order.objects.get(pk=self.order1.pk)
        self.assertEqual(order.profit, Decimal('60.00'))

    def test_allocate_twice(self):
        services.allocate_campaign(self.campaign, self.user)
        with self.assertRaises(ConflictError) as ctx:
            services.allocate_campaign(self.campaign, self.user)
        self.assertEqual(ctx.exception.code, 'campaign_already_allocated')

    def test_campaign_without_orders_is_marked_allocated(self):
        campaign = TestDataFactory.create_campaign(self.business, [(self.a, 100)],
                                                   campaign_date=self.day - timedelta(days=10))
        result = services.allocate_campaign(campaign, self.user)
        self.assertEqual(result['orders_updated'], 0)
        campaign.refresh_from_db()
        self.assertTrue(campaign.is_allocated)

    def test_deallocate(self):
        services.allocate_campaign(self.campaign, self.user)
        Order.objects.filter(pk=self.order1.pk).update(ad_cost=Decimal('10.00'))
        result = services.deallocate_campaign(self.campaign, self.user)
        self.assertEqual(result['orders_updated'], 2)
        self.assertEqual(self._ad_cost(self.order1), Decimal('0.00'))
        self.assertEqual(self._ad_cost(self.order2), Decimal('0.00'))
        self.assertFalse(AdCostLog.objects.filter(campaign=self.campaign).exists())
        self.campaign.refresh_from_db()
        self.assertFalse(self.campaign.is_allocated)

    def test_reallocate_picks_up_new_orders(self):
        services.allocate_campaign(self.campaign, self.user)
        late = TestDataFactory.create_order(self.business, order_date=self.day, products=[(self.b, 1)])
        services.reallocate_campaign(self.campaign, self.user)
        self.assertEqual(self._ad_cost(self.order2), Decimal('40.00'))
        self.assertEqual(self._ad_cost(late), Decimal('20.00'))

    def test_allocated_campaign_is_frozen(self):
        services.allocate_campaign(self.campaign, self.user)
        with self.assertRaises(ConflictError) as ctx:
            services.update_campaign(self.campaign, self.user, {'total_cost': Decimal('500.00')})
        self.assertEqual(ctx.exception.code, 'campaign_allocated')
        services.update_campaign(self.campaign, self.user, {'campaign_name': 'Ramadan'})

    def test_cost_change_updates_shares(self):
        services.update_campaign(self.campaign, self.user, {'total_cost': Decimal('200.00')})
        amounts = {link.product_id: link.cost_amount for link in self.campaign.products.all()}
        self.assertEqual(amounts[self.a.pk], Decimal('120.00'))

    def test_delete_allocated_campaign_returns_costs(self):
        services.allocate_campaign(self.campaign, self.user)
        services.delete_campaign(self.campaign, self.user)
        self.assertEqual(self._ad_cost(self.order2), Decimal('0.00'))
        self.assertFalse(AdCampaign.objects.filter(business=self.business).exists())

    def test_stats(self):
        services.allocate_campaign(self.campaign, self.user)
        stats = services.advertising_stats(self.business)
        self.assertEqual(stats['total_spent'], 100.0)
        self.assertEqual(stats['allocated_revenue'], 400.0)
        self.assertEqual(stats['roas'], 4.0)
        self.assertEqual(stats['by_platform'][0]['platform'], 'facebook')
        details = services.campaign_details(self.campaign)
        self.assertEqual(details['orders_count'], 2)
        self.assertEqual(details['allocated_cost'], 100.0)

    def test_roas_without_cost(self):
        self.assertEqual(services.roas(Decimal('100'), 0), 0.0)


class CampaignAPITests(TestCase):
    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.owner)
        self.product = TestDataFactory.create_product(self.business)
        self.other = TestDataFactory.create_product(self.business)
        self.client = AuthenticatedAPIClient()
        self.client.use_business(self.owner, self.business)

    def _payload(self, second_share='40'):
        return {
            'campaign_date': timezone.localdate().isoformat(),
            'platform': 'tiktok',
            'total_cost': '300.00',
            'products': [
                {'product': self.product.pk, 'allocation_percentage': '60'},
                {'product': self.other.pk, 'allocation_percentage': second_share},
            ],
        }

    def test_create(self):
        response = self.client.post('/api/v1/ad-campaigns/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['products']), 2)
        amounts = {p['product']: p['cost_amount'] for p in response.data['products']}
        self.assertEqual(amounts[self.product.pk], '180.00')
        self.assertEqual(amounts[self.other.pk], '120.00')

    def test_bad_split(self):
        response = self.client.post('/api/v1/ad-campaigns/', self._payload('39'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_allocation_total')

    def test_missing_products(self):
        payload = self._payload()
        del payload['products']
        response = self.client.post('/api/v1/ad-campaigns/', payload, format='json')
        self.assertEqual(response.data['code'], 'no_products')

    def test_allocate_actions(self):
        response = self.client.post('/api/v1/ad-campaigns/', self._payload(), format='json')
        campaign_id = response.data['id']
        TestDataFactory.create_order(self.business, products=[(self.product, 1)])

        response = self.client.post(f'/api/v1/ad-campaigns/{campaign_id}/allocate/')
        self.assertEqual(response.data['orders_updated'], 1)
        response = self.client.post(f'/api/v1/ad-campaigns/{campaign_id}/allocate/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        response = self.client.get(f'/api/v1/ad-campaigns/{campaign_id}/cost-logs/')
        self.assertEqual(len(response.data), 1)
        response = self.client.patch(f'/api/v1/ad-campaigns/{campaign_id}/', {'total_cost': '10.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        response = self.client.post(f'/api/v1/ad-campaigns/{campaign_id}/explode/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters(self):
        self.client.post('/api/v1/ad-campaigns/', self._payload(), format='json')
        response = self.client.get('/api/v1/ad-campaigns/?platform=tiktok&is_allocated=false')
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/ad-campaigns/?platform=google')
        self.assertEqual(response.data, [])
        response = self.client.get('/api/v1/ad-campaigns/?date_from=01-01-2024')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_agent_cannot_allocate(self):
        campaign = TestDataFactory.create_campaign(self.business, [(self.product, 100)])
        agent = TestDataFactory.add_member(self.business, role='agent')
        client = AuthenticatedAPIClient()
        client.use_business(agent, self.business)
        response = client.post(f'/api/v1/ad-campaigns/{campaign.pk}/allocate/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = client.get('/api/v1/ad-campaigns/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
