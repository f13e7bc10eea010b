"""
Test suite for Orders module
Tests: order creation, status changes, bulk updates, locking, statuses, import/export and the API
"""
import os
import tempfile
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO

from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.billing.models import BusinessBilling
from backend.core.exceptions import ValidationFailed, ConflictError, PermissionDeniedError, LimitExceededError
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.orders import services, statuses, importers
from backend.orders.models import Order, OrderLock, Status
from backend.parties.models import Customer


class OrderCreationTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.user)
        self.product = TestDataFactory.create_product(self.business, price=Decimal('120.00'), cost=Decimal('50.00'))

    def test_totals_come_from_items(self):
        order = services.create_order(self.business, self.user, {
            'customer_name': 'Ahmed', 'customer_phone': '0501234567',
            'items': [{'product': self.product, 'quantity': 2}],
        })
        self.assertEqual(order.revenue, Decimal('240.00'))
        self.assertEqual(order.cost, Decimal('100.00'))
        self.assertEqual(order.status.key, 'new')
        self.assertTrue(order.order_number.startswith('ORD-'))
        self.assertEqual(order.items.count(), 1)

    def test_profit(self):
        order = services.create_order(self.business, self.user, {
            'customer_name': 'Ahmed', 'customer_phone': '0501234567',
            'revenue': Decimal('300'), 'cost': Decimal('100'), 'shipping_cost': Decimal('25'),
            'cod_fees': Decimal('5'),
        })
        self.assertEqual(order.profit, Decimal('170.00'))

    def test_customer_is_linked_and_reused(self):
        first = services.create_order(self.business, self.user, {'customer_name': 'Sara', 'customer_phone': '050 765 4321'})
        second = services.create_order(self.business, self.user, {'customer_name': 'Sara', 'customer_phone': '0507654321'})
        self.assertEqual(first.customer_id, second.customer_id)
        customer = Customer.objects.get(pk=first.customer_id)
        self.assertEqual(customer.total_orders, 2)

    def test_shipping_cost_defaults_to_location_price(self):
        country = TestDataFactory.create_country(self.business, shipping_cost=Decimal('25.00'))
        city = TestDataFactory.create_city(country, shipping_cost=Decimal('0.00'))
        order = services.create_order(self.business, self.user, {
            'customer_name': 'Sara', 'customer_phone': '0507654321', 'country': country, 'city': city,
        })
        self.assertEqual(order.shipping_cost, Decimal('25.00'))

    def test_customer_fields_are_required(self):
        with self.assertRaises(ValidationFailed):
            services.create_order(self.business, self.user, {'customer_name': '', 'customer_phone': '0501234567'})

    def test_monthly_limit(self):
        BusinessBilling.objects.filter(business=self.business).update(monthly_order_limit=1)
        TestDataFactory.create_order(self.business)
        with self.assertRaises(LimitExceededError) as ctx:
            services.create_order(self.business, self.user, {'customer_name': 'Sara', 'customer_phone': '0507654321'})
        self.assertEqual(ctx.exception.code, 'order_limit_exceeded')

    def test_create_is_audited(self):
        order = services.create_order(self.business, self.user, {'customer_name': 'Sara', 'customer_phone': '0507654321'})
        log = AuditLog.objects.get(business=self.business, entity_type='order', entity_id=str(order.pk))
        self.assertEqual(log.action, 'create')
        self.assertEqual(log.after['customer_name'], 'Sara')


class OrderUpdateTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.user)
        self.order = TestDataFactory.create_order(self.business, revenue=Decimal('200.00'))

    def test_status_change_is_stamped_and_audited(self):
        delivered = TestDataFactory.get_status(self.business, 'delivered')
        services.update_order_status(self.order, self.user, delivered, note='handed over')
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, delivered)
        self.assertIsNotNone(self.order.delivered_at)
        log = AuditLog.objects.get(entity_type='order', entity_id=str(self.order.pk), action='status_change')
        self.assertEqual(log.before['status_key'], 'new')
        self.assertEqual(log.after['note'], 'handed over')

    def test_foreign_status_is_rejected(self):
        other_status = TestDataFactory.get_status(TestDataFactory.create_business(), 'confirmed')
        with self.assertRaises(ValidationFailed):
            services.update_order_status(self.order, self.user, other_status)

    def test_field_edits_only_record_changes(self):
        services.update_order_fields(self.order, self.user, {'notes': 'call after 5pm', 'revenue': Decimal('200.00')})
        log = AuditLog.objects.get(entity_type='order', entity_id=str(self.order.pk), action='update')
        self.assertEqual(list(log.after), ['notes'])

    def test_non_editable_fields(self):
        with self.assertRaises(ValidationFailed):
            services.update_order_fields(self.order, self.user, {'order_number': 'X-1'})

    def test_profit_follows_edits(self):
        services.update_order_fields(self.order, self.user, {'cod_fees': Decimal('10.00')})
        self.order.refresh_from_db()
        self.assertEqual(self.order.profit, Decimal('90.00'))

    def test_bulk_status(self):
        second = TestDataFactory.create_order(self.business)
        shipping = TestDataFactory.get_status(self.business, 'shipping')
        updated = services.bulk_update_status(self.business, self.user, [self.order.pk, second.pk], shipping)
        self.assertEqual(updated, 2)
        self.assertEqual(Order.objects.filter(status=shipping).count(), 2)
        self.assertEqual(services.bulk_update_status(self.business, self.user, [self.order.pk], shipping), 0)

    def test_bulk_tracking(self):
        result = services.bulk_update_tracking(self.business, self.user, [
            {'order_number': self.order.order_number, 'tracking_number': 'TRK-1'},
            {'order_number': 'MISSING', 'tracking_number': 'TRK-2'},
            {'order_number': '', 'tracking_number': 'TRK-3'},
        ])
        self.assertEqual(result['updated'], 1)
        self.assertEqual(result['not_found'], ['MISSING'])
        self.assertEqual(result['errors'][0]['row'], 3)
        self.order.refresh_from_db()
        self.assertEqual(self.order.tracking_number, 'TRK-1')

    def test_bulk_delivery(self):
        Order.objects.filter(pk=self.order.pk).update(tracking_number='TRK-9')
        result = services.bulk_update_delivery(self.business, self.user, [
            {'tracking_number': 'TRK-9', 'status_key': 'delivered', 'collected_amount': '200'},
            {'tracking_number': 'TRK-0', 'status_key': 'delivered'},
            {'tracking_number': 'TRK-9', 'status_key': 'lost'},
        ])
        self.assertEqual(result['updated'], 1)
        self.assertEqual(result['not_found'], ['TRK-0'])
        self.assertEqual(len(result['errors']), 1)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status.key, 'delivered')
        self.assertEqual(self.order.collection_status, 'collected')

    def test_collection_status(self):
        self.assertEqual(services.collection_status_for(self.order, Decimal('0')), 'pending')
        self.assertEqual(services.collection_status_for(self.order, Decimal('50')), 'partial')
        self.assertEqual(services.collection_status_for(self.order, Decimal('200')), 'collected')
        returned = TestDataFactory.create_order(self.business, status_key='returned')
        self.assertEqual(services.collection_status_for(returned, Decimal('200')), 'failed')

    def test_soft_and_hard_delete(self):
        services.delete_order(self.order, self.user)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status.key, 'deleted')
        services.delete_order(self.order, self.user, hard=True)
        self.assertFalse(Order.objects.filter(pk=self.order.pk).exists())


class OrderLockTests(TestCase):
    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.owner)
        self.agent = TestDataFactory.add_member(self.business, role='agent')
        self.order = TestDataFactory.create_order(self.business)

    def test_lock_and_conflict(self):
        result = services.lock_order(self.order, self.agent)
        self.assertTrue(result['success'])
        self.order.refresh_from_db()
        self.assertEqual(self.order.processing_status, 'processing')
        self.assertEqual(self.order.locked_by, self.agent)

        result = services.lock_order(self.order, self.owner)
        self.assertFalse(result['success'])
        self.assertEqual(result['error'], 'order_already_locked')
        self.assertEqual(result['locked_by'], self.agent.email)

    def test_lock_owner_can_refresh(self):
        services.lock_order(self.order, self.agent)
        self.assertTrue(services.lock_order(self.order, self.agent)['success'])
        self.assertEqual(OrderLock.objects.filter(order=self.order).count(), 1)

    def test_locked_order_rejects_other_editors(self):
        services.lock_order(self.order, self.agent)
        confirmed = TestDataFactory.get_status(self.business, 'confirmed')
        with self.assertRaises(ConflictError) as ctx:
            services.update_order_status(self.order, self.owner, confirmed)
        self.assertEqual(ctx.exception.code, 'order_already_locked')
        services.update_order_status(self.order, self.agent, confirmed)

    def test_unlock(self):
        services.lock_order(self.order, self.agent)
        with self.assertRaises(PermissionDeniedError):
            services.unlock_order(self.order, self.owner)
        services.unlock_order(self.order, self.owner, force=True)
        self.order.refresh_from_db()
        self.assertEqual(self.order.processing_status, 'pending')
        self.assertIsNone(self.order.locked_by)

    def test_expired_locks_are_released(self):
        services.lock_order(self.order, self.agent)
        OrderLock.objects.filter(order=self.order).update(expires_at=timezone.now() - timedelta(minutes=1))
        self.assertEqual(services.release_expired_locks(), 1)
        self.order.refresh_from_db()
        self.assertEqual(self.order.processing_status, 'pending')
        self.assertTrue(services.lock_order(self.order, self.owner)['success'])


class StatusCatalogueTests(TestCase):
    def setUp(self):
        self.business = TestDataFactory.create_business()

    def test_defaults_are_seeded_once(self):
        self.assertEqual(Status.objects.filter(business=self.business).count(), len(statuses.DEFAULT_STATUSES))
        self.assertEqual(statuses.ensure_default_statuses(self.business), 0)
        Status.objects.filter(business=self.business, key='restocked').delete()
        self.assertEqual(statuses.ensure_default_statuses(self.business), 1)

    def test_system_status_logic_is_locked(self):
        delivered = TestDataFactory.get_status(self.business, 'delivered')
        statuses.check_status_update(delivered, {'name_en': 'Done', 'color': '#000000'})
        with self.assertRaises(ValidationFailed) as ctx:
            statuses.check_status_update(delivered, {'counts_as_delivered': False})
        self.assertEqual(ctx.exception.code, 'system_status_locked')

    def test_system_status_cannot_be_deleted(self):
        with self.assertRaises(ValidationFailed) as ctx:
            statuses.delete_status(TestDataFactory.get_status(self.business, 'new'))
        self.assertEqual(ctx.exception.code, 'status_not_deletable')

    def test_custom_status_in_use(self):
        custom = Status.objects.create(business=self.business, key='callback', name_ar='اتصال لاحق', sort_order=15)
        order = TestDataFactory.create_order(self.business)
        Order.objects.filter(pk=order.pk).update(status=custom)
        allowed, reason = statuses.can_delete_status(custom)
        self.assertFalse(allowed)
        Order.objects.filter(pk=order.pk).delete()
        statuses.delete_status(custom)
        self.assertFalse(Status.objects.filter(pk=custom.pk).exists())

    def test_reorder(self):
        new = TestDataFactory.get_status(self.business, 'new')
        confirmed = TestDataFactory.get_status(self.business, 'confirmed')
        ordered = statuses.reorder_statuses(self.business, [confirmed.pk, new.pk])
        self.assertEqual(list(ordered)[:2], [confirmed, new])


class OrderImportTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.user)
        self.product = TestDataFactory.create_product(self.business, sku='TSHIRT', price=Decimal('60.00'))
        self.mug = TestDataFactory.create_product(self.business, sku='MUG', price=Decimal('25.00'))

    def test_header_aliases(self):
        info = importers.validate_headers(['Customer Name', 'Mobile', 'SKU', 'Qty', 'Price', 'Unknown'])
        self.assertTrue(info['is_valid'])
        self.assertEqual(info['column_mapping']['phone'], 1)
        self.assertIn('status', info['missing_optional'])

        info = importers.validate_headers(['اسم العميل', 'رقم الهاتف', 'رمز المنتج', 'الكمية'])
        self.assertFalse(info['is_valid'])
        self.assertEqual(info['missing_required'], ['price'])

    def test_date_formats(self):
        self.assertEqual(importers.parse_import_date('2024-03-05'), date(2024, 3, 5))
        self.assertEqual(importers.parse_import_date('05/03/2024'), date(2024, 3, 5))
        self.assertEqual(importers.parse_import_date('5.3.2024'), date(2024, 3, 5))
        self.assertIsNone(importers.parse_import_date('31/02/2024'))
        self.assertIsNone(importers.parse_import_date('March 5'))

    def test_validate_row(self):
        mapping = importers.validate_headers(['name', 'phone', 'sku', 'qty', 'price', 'status', 'date'])['column_mapping']
        result = importers.validate_row(['A', '123', '', '0', 'free', 'lost', 'soon'], mapping, 2)
        self.assertEqual(len(result['errors']), 6)
        self.assertEqual(len(result['warnings']), 1)

        result = importers.validate_row(['Ali', '050 123 4567', 'MUG', '2', '1,250', 'مؤكدة', ''], mapping, 3)
        self.assertEqual(result['errors'], [])
        self.assertEqual(result['data']['price'], Decimal('1250'))
        self.assertEqual(result['data']['status_key'], 'confirmed')
        self.assertEqual(result['data']['phone'], '0501234567')

    def test_status_labels(self):
        mapping = importers.validate_headers(['name', 'phone', 'sku', 'qty', 'price', 'status'])['column_mapping']
        expected = {
            'new': 'new', 'جديد': 'new',
            'confirmed': 'confirmed', 'مؤكد': 'confirmed',
            'processing': 'preparing', 'قيد التجهيز': 'preparing',
            'shipped': 'shipping', 'تم الشحن': 'shipping',
            'delivered': 'delivered', 'تم التسليم': 'delivered',
            'returned': 'returned', 'مرتجع': 'returned',
            'cancelled': 'canceled', 'ملغي': 'canceled',
            'Processing': 'preparing',
        }
        for label, key in expected.items():
            result = importers.validate_row(['Ali', '0501234567', 'MUG', '1', '25', label], mapping, 2)
            self.assertEqual(result['errors'], [], label)
            self.assertEqual(result['data']['status_key'], key, label)

    def _file(self):
        return (
            'Order Number,Customer Name,Phone,SKU,Quantity,Price,Status\n'
            'A-1,Ali Hassan,0501234567,TSHIRT,2,60,confirmed\n'
            'A-1,Ali Hassan,0501234567,MUG,1,25,confirmed\n'
            ',Mona Saad,0507654321,MUG,3,25,\n'
            ',Bad Row,12,MUG,1,25,\n'
            ',Unknown Sku,0509999999,NOPE,1,10,\n'
        ).encode('utf-8')

    def test_preview_writes_nothing(self):
        result = importers.import_orders(self.business, self.user, 'orders.csv', self._file())
        self.assertEqual(result['orders_count'], 4)
        self.assertEqual(result['failed'], 1)
        self.assertEqual(result['errors'][0]['row'], 5)
        self.assertFalse(Order.objects.filter(business=self.business).exists())

    def test_commit_groups_items(self):
        result = importers.import_orders(self.business, self.user, 'orders.csv', self._file(), commit=True)
        self.assertEqual(result['created'], 2)
        self.assertEqual(result['failed'], 2)
        order = Order.objects.get(business=self.business, order_number='A-1')
        self.assertEqual(order.items.count(), 2)
        self.assertEqual(order.revenue, Decimal('145.00'))
        self.assertEqual(order.status.key, 'confirmed')
        self.assertEqual(order.order_source, 'import')

    def test_duplicate_order_number(self):
        TestDataFactory.create_order(self.business, order_number='A-1')
        result = importers.import_orders(self.business, self.user, 'orders.csv', self._file(), commit=True)
        self.assertEqual(result['created'], 1)
        self.assertEqual(result['failed'], 3)

    def test_missing_columns(self):
        result = importers.import_orders(self.business, self.user, 'orders.csv', b'name,phone\nAli,0501234567\n')
        self.assertEqual(result['created'], 0)
        self.assertIn('Missing required columns', result['errors'][0]['errors'][0])

    def test_limit_blocks_whole_import(self):
        BusinessBilling.objects.filter(business=self.business).update(monthly_order_limit=1)
        with self.assertRaises(LimitExceededError):
            importers.import_orders(self.business, self.user, 'orders.csv', self._file(), commit=True)
        self.assertFalse(Order.objects.filter(business=self.business).exists())

    def test_template(self):
        english = importers.import_template()
        self.assertTrue(english.startswith('\ufeff"Order Number"'))
        self.assertIn('"اسم العميل"', importers.import_template('ar'))


class OrderStatisticsTests(TestCase):
    def test_statistics(self):
        business = TestDataFactory.create_business()
        TestDataFactory.create_order(business, status_key='new', revenue=Decimal('100'))
        TestDataFactory.create_order(business, status_key='confirmed', revenue=Decimal('50'))
        TestDataFactory.create_order(business, status_key='delivered', revenue=Decimal('70'))
        late = TestDataFactory.create_order(business, status_key='shipping', revenue=Decimal('30'))
        Order.objects.filter(pk=late.pk).update(created_at=timezone.now() - timedelta(days=6))

        stats = services.get_order_statistics(business)
        self.assertEqual(stats['today_count'], 3)
        self.assertEqual(stats['pending_value'], 180.0)
        self.assertEqual(stats['confirmation_rate'], 66.7)
        self.assertEqual(stats['late_orders_count'], 1)

    def test_deleted_orders_are_not_counted(self):
        business = TestDataFactory.create_business()
        TestDataFactory.create_order(business, status_key='confirmed')
        TestDataFactory.create_order(business, status_key='deleted')
        stats = services.get_order_statistics(business)
        self.assertEqual(stats['today_count'], 1)
        self.assertEqual(stats['confirmation_rate'], 100.0)


class OrderAPITests(TestCase):
    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.owner)
        self.client = AuthenticatedAPIClient()
        self.client.use_business(self.owner, self.business)

    def test_create_and_get(self):
        product = TestDataFactory.create_product(self.business, price=Decimal('80.00'))
        response = self.client.post('/api/v1/orders/', {
            'customer_name': 'Ahmed', 'customer_phone': '0501234567',
            'items': [{'product': product.pk, 'quantity': 2}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['revenue'], '160.00')
        self.assertEqual(len(response.data['items']), 1)
        response = self.client.get(f"/api/v1/orders/{response.data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_create_requires_customer(self):
        response = self.client.post('/api/v1/orders/', {'customer_name': 'Ahmed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('customer_phone', response.data)

    def test_foreign_product_is_rejected(self):
        product = TestDataFactory.create_product(TestDataFactory.create_business())
        response = self.client.post('/api/v1/orders/', {
            'customer_name': 'Ahmed', 'customer_phone': '0501234567',
            'items': [{'product': product.pk, 'quantity': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_limit_returns_402(self):
        BusinessBilling.objects.filter(business=self.business).update(monthly_order_limit=0)
        response = self.client.post('/api/v1/orders/', {
            'customer_name': 'Ahmed', 'customer_phone': '0501234567',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_402_PAYMENT_REQUIRED)
        self.assertEqual(response.data['code'], 'order_limit_exceeded')

    def test_list_filters(self):
        TestDataFactory.create_order(self.business, status_key='delivered', customer_name='Delivered Guy')
        TestDataFactory.create_order(self.business, status_key='new', customer_name='New Guy')
        TestDataFactory.create_order(TestDataFactory.create_business(), customer_name='Other Workspace')

        response = self.client.get('/api/v1/orders/')
        self.assertEqual(response.data['total_count'], 2)
        response = self.client.get('/api/v1/orders/?status_key=delivered')
        self.assertEqual([o['customer_name'] for o in response.data['results']], ['Delivered Guy'])
        response = self.client.get('/api/v1/orders/?search=new%20guy')
        self.assertEqual(response.data['total_count'], 1)
        response = self.client.get('/api/v1/orders/?page=x')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_endpoint(self):
        order = TestDataFactory.create_order(self.business)
        response = self.client.post(f'/api/v1/orders/{order.pk}/status/', {'status_key': 'confirmed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status_key'], 'confirmed')
        response = self.client.post(f'/api/v1/orders/{order.pk}/status/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_lock_conflict_returns_409(self):
        order = TestDataFactory.create_order(self.business)
        agent = TestDataFactory.add_member(self.business, role='agent')
        services.lock_order(order, agent)
        response = self.client.post(f'/api/v1/orders/{order.pk}/lock/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        response = self.client.post(f'/api/v1/orders/{order.pk}/unlock/', {'force': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_viewer_cannot_delete(self):
        order = TestDataFactory.create_order(self.business)
        viewer = TestDataFactory.add_member(self.business, role='viewer')
        client = AuthenticatedAPIClient()
        client.use_business(viewer, self.business)
        response = client.delete(f'/api/v1/orders/{order.pk}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(f'/api/v1/orders/{order.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_audit_log_endpoint(self):
        order = TestDataFactory.create_order(self.business)
        self.client.post(f'/api/v1/orders/{order.pk}/status/', {'status_key': 'confirmed'}, format='json')
        response = self.client.get(f'/api/v1/orders/{order.pk}/audit-logs/')
        self.assertEqual([log['action'] for log in response.data], ['status_change'])

    def test_export_csv(self):
        TestDataFactory.create_order(self.business, order_number='EXP-1')
        response = self.client.get('/api/v1/orders/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.content.decode('utf-8')
        self.assertTrue(body.startswith('\ufeff'))
        self.assertIn('"EXP-1"', body)

    def test_import_upload(self):
        TestDataFactory.create_product(self.business, sku='MUG')
        upload = SimpleUploadedFile(
            'orders.csv', b'name,phone,sku,qty,price\nAli Hassan,0501234567,MUG,1,25\n', content_type='text/csv'
        )
        response = self.client.post('/api/v1/orders/import/?commit=true', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], 1)
        self.assertTrue(response.data['committed'])

    def test_custom_status_endpoint(self):
        response = self.client.post('/api/v1/statuses/', {
            'key': 'Call Back', 'name_ar': 'اتصال لاحق', 'name_en': 'Call back',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['key'], 'call_back')
        self.assertFalse(response.data['is_system_default'])
        response = self.client.get('/api/v1/statuses/')
        self.assertEqual(len(response.data), len(statuses.DEFAULT_STATUSES) + 1)


class OrderCommandTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(email='importer@shop.com')
        self.business = TestDataFactory.create_business(owner=self.user)
        TestDataFactory.create_product(self.business, sku='MUG', price=Decimal('25.00'))

    def _write_file(self, content):
        handle = tempfile.NamedTemporaryFile(suffix='.csv', delete=False)
        handle.write(content.encode('utf-8'))
        handle.close()
        self.addCleanup(os.remove, handle.name)
        return handle.name

    def _import(self, path, *extra):
        out = StringIO()
        call_command('import_orders', path, '--business', str(self.business.pk),
                     '--user', 'importer@shop.com', *extra, stdout=out)
        return out.getvalue()

    def test_import_orders(self):
        path = self._write_file(
            'Customer Name,Phone,SKU,Quantity,Price,Status\n'
            'Ali Hassan,0501234567,MUG,2,25,تم الشحن\n'
            'Bad Row,12,MUG,1,25,\n'
        )
        output = self._import(path)
        self.assertIn('Created: 1', output)
        self.assertIn('Failed: 1', output)
        order = Order.objects.get(business=self.business)
        self.assertEqual(order.status.key, 'shipping')
        self.assertEqual(order.revenue, Decimal('50.00'))

    def test_import_orders_dry_run(self):
        path = self._write_file('Customer Name,Phone,SKU,Quantity,Price\nAli Hassan,0501234567,MUG,1,25\n')
        output = self._import(path, '--dry-run')
        self.assertIn('Orders in file: 1', output)
        self.assertFalse(Order.objects.filter(business=self.business).exists())

    def test_import_orders_bad_arguments(self):
        with self.assertRaises(CommandError):
            self._import('/nonexistent/orders.csv')
        path = self._write_file('Customer Name,Phone\nAli,0501234567\n')
        self.assertIn('Missing required columns', self._import(path))
        with self.assertRaises(CommandError):
            call_command('import_orders', path, '--business', str(self.business.pk),
                         '--user', 'nobody@shop.com', stdout=StringIO())

    def test_release_expired_locks(self):
        order = TestDataFactory.create_order(self.business)
        fresh = TestDataFactory.create_order(self.business)
        services.lock_order(order, self.user)
        services.lock_order(fresh, self.user)
        OrderLock.objects.filter(order=order).update(expires_at=timezone.now() - timedelta(minutes=1))

        out = StringIO()
        call_command('release_expired_locks', stdout=out)
        self.assertIn('Released 1 expired locks', out.getvalue())
        order.refresh_from_db()
        self.assertIsNone(order.locked_by)
        self.assertEqual(order.processing_status, 'pending')
        self.assertTrue(OrderLock.objects.filter(order=fresh).exists())
