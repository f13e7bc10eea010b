"""
Test suite for Parties module
Tests: customer search/dedup/stats, customer API, employees, performance and export
"""
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from backend.core.exceptions import ValidationFailed
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.parties import services
from backend.parties.models import Customer, Employee


class CustomerServiceTests(TestCase):
    def setUp(self):
        self.business = TestDataFactory.create_business()

    def test_normalize_phone(self):
        self.assertEqual(services.normalize_phone('+966 (50) 123-4567'), '+966501234567')
        self.assertEqual(services.normalize_phone(None), '')

    def test_find_or_create_reuses_phone(self):
        first = services.find_or_create_customer(self.business, 'Ali', '050 111 2222')
        second = services.find_or_create_customer(self.business, 'Ali Hassan', '0501112222', city='Riyadh')
        self.assertEqual(first.pk, second.pk)
        second.refresh_from_db()
        self.assertEqual(second.city, 'Riyadh')
        self.assertEqual(second.name, 'Ali')

    def test_same_phone_in_two_workspaces(self):
        other = TestDataFactory.create_business()
        a = services.find_or_create_customer(self.business, 'Ali', '0501112222')
        b = services.find_or_create_customer(other, 'Ali', '0501112222')
        self.assertNotEqual(a.pk, b.pk)

    def test_phone_is_required(self):
        with self.assertRaises(ValidationFailed):
            services.find_or_create_customer(self.business, 'Ali', '---')

    def test_search_needs_two_characters(self):
        with self.assertRaises(ValidationFailed) as ctx:
            services.search_customers(self.business, 'a')
        self.assertEqual(ctx.exception.code, 'search_too_short')

    def test_search_orders_by_activity(self):
        quiet = TestDataFactory.create_customer(self.business, name='Omar Quiet')
        busy = TestDataFactory.create_customer(self.business, name='Omar Busy')
        Customer.objects.filter(pk=busy.pk).update(total_orders=5)
        results = services.search_customers(self.business, 'omar')
        self.assertEqual([c.pk for c in results], [busy.pk, quiet.pk])

    def test_recalculate_stats_counts_delivered_revenue_only(self):
        customer = TestDataFactory.create_customer(self.business)
        TestDataFactory.create_order(self.business, status_key='delivered', customer=customer, revenue=Decimal('150'))
        TestDataFactory.create_order(self.business, status_key='new', customer=customer, revenue=Decimal('99'))
        TestDataFactory.create_order(self.business, status_key='deleted', customer=customer, revenue=Decimal('500'))
        services.recalculate_customer_stats(customer)
        customer.refresh_from_db()
        self.assertEqual(customer.total_orders, 2)
        self.assertEqual(customer.total_revenue, Decimal('150.00'))

    def test_recalculate_command_dry_run(self):
        customer = TestDataFactory.create_customer(self.business)
        TestDataFactory.create_order(self.business, status_key='delivered', customer=customer)
        out = StringIO()
        call_command('recalculate_customer_stats', '--business', str(self.business.pk), '--dry-run', stdout=out)
        self.assertIn('1 customers would change', out.getvalue())
        customer.refresh_from_db()
        self.assertEqual(customer.total_orders, 0)


class CustomerAPITests(TestCase):
    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.owner)
        self.client = AuthenticatedAPIClient()
        self.client.use_business(self.owner, self.business)

    def test_create_normalizes_phone(self):
        response = self.client.post('/api/v1/customers/', {'name': 'Mona', 'phone': '050-123-4567'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['phone'], '0501234567')

    def test_short_phone_is_rejected(self):
        response = self.client.post('/api/v1/customers/', {'name': 'Mona', 'phone': '12345'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phone', response.data)

    def test_duplicate_phone(self):
        TestDataFactory.create_customer(self.business, phone='0509998888')
        response = self.client.post('/api/v1/customers/', {'name': 'Mona', 'phone': '0509998888'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search_endpoint(self):
        TestDataFactory.create_customer(self.business, name='Khaled')
        response = self.client.get('/api/v1/customers/search/?q=kh')
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/customers/search/?q=k')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_deactivates_customer_with_orders(self):
        customer = TestDataFactory.create_customer(self.business)
        TestDataFactory.create_order(self.business, customer=customer)
        response = self.client.delete(f'/api/v1/customers/{customer.pk}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        customer.refresh_from_db()
        self.assertFalse(customer.is_active)

    def test_delete_customer_without_orders(self):
        customer = TestDataFactory.create_customer(self.business)
        response = self.client.delete(f'/api/v1/customers/{customer.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Customer.objects.filter(pk=customer.pk).exists())

    def test_viewer_cannot_create(self):
        viewer = TestDataFactory.add_member(self.business, role='viewer')
        client = AuthenticatedAPIClient()
        client.use_business(viewer, self.business)
        response = client.post('/api/v1/customers/', {'name': 'Mona', 'phone': '0501234567'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class EmployeeTests(TestCase):
    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.owner)
        self.client = AuthenticatedAPIClient()
        self.client.use_business(self.owner, self.business)

    def test_filter_employees(self):
        TestDataFactory.create_employee(self.business, name_ar='أحمد', role='agent')
        TestDataFactory.create_employee(self.business, name_ar='سعيد', role='warehouse')
        queryset = services.filter_employees(Employee.objects.filter(business=self.business), {'role': 'warehouse'})
        self.assertEqual([e.name_ar for e in queryset], ['سعيد'])

    def test_performance(self):
        good = TestDataFactory.create_employee(self.business, name_ar='أحمد')
        idle = TestDataFactory.create_employee(self.business, name_ar='سعيد')
        TestDataFactory.create_order(self.business, status_key='delivered', employee=good)
        TestDataFactory.create_order(self.business, status_key='returned', employee=good)
        TestDataFactory.create_order(self.business, status_key='deleted', employee=good)

        rows = services.employee_performance(self.business)
        self.assertEqual(rows[0]['employee_id'], good.pk)
        self.assertEqual(rows[0]['orders'], 2)
        self.assertEqual(rows[0]['delivered'], 1)
        self.assertEqual(rows[0]['returned'], 1)
        self.assertEqual(rows[0]['delivery_rate'], 50.0)
        self.assertEqual(rows[0]['revenue'], 200.0)
        self.assertEqual(rows[1]['employee_id'], idle.pk)
        self.assertEqual(rows[1]['delivery_rate'], 0.0)

    def test_create_toggle_and_export(self):
        response = self.client.post('/api/v1/employees/', {'name_ar': 'ليلى', 'role': 'supervisor'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        employee_id = response.data['id']
        response = self.client.post(f'/api/v1/employees/{employee_id}/toggle-active/')
        self.assertFalse(response.data['is_active'])

        response = self.client.get('/api/v1/employees/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.content.decode('utf-8')
        self.assertTrue(body.startswith('\ufeff'))
        self.assertIn('"ليلى"', body)
