"""
Test suite for Carriers module
Tests: carrier CRUD, city prices, shipping cost resolution, performance thresholds, analytics
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backend.core.exceptions import ValidationFailed
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.carriers import services
from backend.carriers.models import CarrierCityPrice, CarrierSettings


class ShippingCostResolutionTests(TestCase):
    """Carrier city price > city cost > country cost > 0"""

    def setUp(self):
        self.business = TestDataFactory.create_business()
        self.country = TestDataFactory.create_country(self.business, shipping_cost=Decimal('30.00'))
        self.city = TestDataFactory.create_city(self.country, shipping_cost=Decimal('20.00'))
        self.carrier = services.create_carrier(self.business, name_ar='أرامكس')

    def test_carrier_city_price_wins(self):
        services.set_city_price(self.carrier, self.city, '12.50')
        self.assertEqual(services.resolve_shipping_cost(self.carrier, self.city, self.country), Decimal('12.50'))

    def test_city_cost_without_carrier_price(self):
        self.assertEqual(services.resolve_shipping_cost(self.carrier, self.city, self.country), Decimal('20.00'))

    def test_country_cost_when_city_has_none(self):
        city = TestDataFactory.create_city(self.country, shipping_cost=Decimal('0.00'))
        self.assertEqual(services.resolve_shipping_cost(self.carrier, city), Decimal('30.00'))

    def test_nothing_known(self):
        self.assertEqual(services.resolve_shipping_cost(), Decimal('0.00'))

    def test_set_city_price_upserts(self):
        services.set_city_price(self.carrier, self.city, '10')
        services.set_city_price(self.carrier, self.city, '11')
        self.assertEqual(CarrierCityPrice.objects.get(carrier=self.carrier, city=self.city).shipping_cost, Decimal('11.00'))

    def test_city_of_other_workspace_is_rejected(self):
        other_country = TestDataFactory.create_country(TestDataFactory.create_business())
        other_city = TestDataFactory.create_city(other_country)
        with self.assertRaises(ValidationFailed):
            services.set_city_price(self.carrier, other_city, '10')


class PerformanceTests(TestCase):
    def setUp(self):
        self.business = TestDataFactory.create_business()
        self.carrier = services.create_carrier(self.business, name_ar='سمسا')

    def test_create_carrier_creates_settings(self):
        self.assertTrue(CarrierSettings.objects.filter(carrier=self.carrier).exists())

    def test_performance_levels(self):
        settings_obj = services.get_carrier_settings(self.carrier)
        self.assertEqual(services.performance_level(85, settings_obj)['level'], 'good')
        self.assertEqual(services.performance_level(70, settings_obj)['level'], 'good')
        self.assertEqual(services.performance_level(55, settings_obj)['level'], 'warning')
        self.assertEqual(services.performance_level(10, settings_obj)['level'], 'poor')
        self.assertEqual(services.performance_level(10, settings_obj)['color'], '#EF4444')

    def test_threshold_order_is_enforced(self):
        with self.assertRaises(ValidationFailed):
            services.update_carrier_settings(self.carrier, good_threshold=40, warning_threshold=60)
        with self.assertRaises(ValidationFailed):
            services.update_carrier_settings(self.carrier, good_threshold=120)
        settings_obj = services.update_carrier_settings(self.carrier, good_threshold=80)
        self.assertEqual(settings_obj.good_threshold, Decimal('80'))

    def test_analytics(self):
        country = TestDataFactory.create_country(self.business)
        city = TestDataFactory.create_city(country)
        for key in ('delivered', 'delivered', 'delivered', 'returned'):
            TestDataFactory.create_order(self.business, status_key=key, carrier=self.carrier, city=city)
        TestDataFactory.create_order(self.business, status_key='shipping', carrier=self.carrier)

        data = services.carrier_analytics(self.carrier)
        self.assertEqual(data['total_orders'], 5)
        self.assertEqual(data['delivered'], 3)
        self.assertEqual(data['returned'], 1)
        self.assertEqual(data['in_transit'], 1)
        self.assertEqual(data['delivery_rate'], 60.0)
        self.assertEqual(data['revenue'], 600.0)
        self.assertEqual(data['performance']['level'], 'warning')
        self.assertEqual(len(data['cities']), 1)
        self.assertEqual(data['cities'][0]['delivery_rate'], 75.0)

    def test_analytics_skips_deleted_and_counts_active_in_transit(self):
        TestDataFactory.create_order(self.business, status_key='deleted', carrier=self.carrier)
        TestDataFactory.create_order(self.business, status_key='confirmed', carrier=self.carrier)

        data = services.carrier_analytics(self.carrier)
        self.assertEqual(data['total_orders'], 1)
        self.assertEqual(data['in_transit'], 1)
        self.assertEqual(data['delivery_rate'], 0.0)


class CarrierAPITests(TestCase):
    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.owner)
        self.client = AuthenticatedAPIClient()
        self.client.use_business(self.owner, self.business)

    def test_create_and_list(self):
        response = self.client.post('/api/v1/carriers/', {'name_ar': 'ناقل', 'name_en': 'Naqel'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.get('/api/v1/carriers/?search=naq')
        self.assertEqual(len(response.data), 1)

    def test_city_price_endpoints(self):
        carrier = services.create_carrier(self.business, name_ar='ناقل')
        country = TestDataFactory.create_country(self.business)
        city = TestDataFactory.create_city(country)
        url = f'/api/v1/carriers/{carrier.pk}/city-prices/'
        response = self.client.post(url, {'city': city.pk, 'shipping_cost': '18.00'}, format='json')
        self.assertIn(response.status_code, (status.HTTP_200_OK, status.HTTP_201_CREATED))
        response = self.client.get(url)
        self.assertEqual(len(response.data), 1)

        response = self.client.get(f'/api/v1/carriers/shipping-quote/?carrier={carrier.pk}&city={city.pk}')
        self.assertEqual(response.data['shipping_cost'], 18.0)

        response = self.client.delete(f'{url}{city.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(CarrierCityPrice.objects.filter(carrier=carrier).exists())

    def test_analytics_bad_date(self):
        carrier = services.create_carrier(self.business, name_ar='ناقل')
        response = self.client.get(f'/api/v1/carriers/{carrier.pk}/analytics/?date_from=yesterday')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
