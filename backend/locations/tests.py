"""
Test suite for Locations module
Tests: country/city CRUD, workspace isolation, bulk city creation, role checks
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.locations.models import Country, City


class CountryAPITests(TestCase):
    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.owner)
        self.client = AuthenticatedAPIClient()
        self.client.use_business(self.owner, self.business)

    def test_create_country_uppercases_code(self):
        response = self.client.post('/api/v1/countries/', {
            'name_ar': 'السعودية', 'name_en': 'Saudi Arabia', 'code': ' sa ', 'shipping_cost': '30.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['code'], 'SA')
        self.assertEqual(response.data['business'], self.business.pk)

    def test_duplicate_code_is_rejected(self):
        TestDataFactory.create_country(self.business, code='EG')
        response = self.client.post('/api/v1/countries/', {'name_ar': 'مصر', 'code': 'EG'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_multiple_countries_per_workspace(self):
        TestDataFactory.create_country(self.business, code='SA')
        TestDataFactory.create_country(self.business, code='AE')
        response = self.client.get('/api/v1/countries/')
        self.assertEqual(len(response.data), 2)

    def test_other_workspace_countries_are_hidden(self):
        other = TestDataFactory.create_business()
        country = TestDataFactory.create_country(other)
        response = self.client.get('/api/v1/countries/')
        self.assertEqual(response.data, [])
        response = self.client.get(f'/api/v1/countries/{country.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_viewer_cannot_create(self):
        viewer = TestDataFactory.add_member(self.business, role='viewer')
        client = AuthenticatedAPIClient()
        client.use_business(viewer, self.business)
        response = client.post('/api/v1/countries/', {'name_ar': 'قطر', 'code': 'QA'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = client.get('/api/v1/countries/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_toggle_active(self):
        country = TestDataFactory.create_country(self.business)
        response = self.client.post(f'/api/v1/countries/{country.pk}/toggle-active/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_active'])
        response = self.client.get('/api/v1/countries/?is_active=true')
        self.assertEqual(response.data, [])


class CityAPITests(TestCase):
    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.owner)
        self.country = TestDataFactory.create_country(self.business, shipping_cost=Decimal('25.00'))
        self.client = AuthenticatedAPIClient()
        self.client.use_business(self.owner, self.business)

    def test_create_and_search(self):
        response = self.client.post(f'/api/v1/countries/{self.country.pk}/cities/',
                                    {'name_ar': 'الرياض', 'name_en': 'Riyadh'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        TestDataFactory.create_city(self.country, name_ar='جدة')
        response = self.client.get(f'/api/v1/countries/{self.country.pk}/cities/?search=Riyadh')
        self.assertEqual([c['name_en'] for c in response.data], ['Riyadh'])

    def test_bulk_create_defaults_to_country_shipping(self):
        response = self.client.post(f'/api/v1/countries/{self.country.pk}/cities/bulk/', {
            'cities': [{'name_ar': 'الدمام'}, {'name_ar': 'مكة', 'shipping_cost': '15.00'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        costs = {c.name_ar: c.shipping_cost for c in City.objects.filter(country=self.country)}
        self.assertEqual(costs['الدمام'], Decimal('25.00'))
        self.assertEqual(costs['مكة'], Decimal('15.00'))

    def test_delete_country_cascades(self):
        TestDataFactory.create_city(self.country)
        response = self.client.delete(f'/api/v1/countries/{self.country.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Country.objects.filter(pk=self.country.pk).exists())
        self.assertEqual(City.objects.filter(country_id=self.country.pk).count(), 0)
