"""
Test suite for Catalog module
Tests: categories and ordering, product CRUD/filters, SKU lookup, spreadsheet import/export
"""
import io
from decimal import Decimal

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from openpyxl import load_workbook
from rest_framework import status

from backend.core.exceptions import ValidationFailed
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.catalog import services
from backend.catalog.models import Product, ProductCategory


class CategoryTests(TestCase):
    def setUp(self):
        self.business = TestDataFactory.create_business()

    def test_new_categories_go_last(self):
        first = services.create_category(self.business, name_ar='ملابس')
        second = services.create_category(self.business, name_ar='أحذية')
        self.assertEqual((first.display_order, second.display_order), (1, 2))

    def test_reorder(self):
        a = services.create_category(self.business, name_ar='أ')
        b = services.create_category(self.business, name_ar='ب')
        services.reorder_categories(self.business, [b.pk, a.pk])
        a.refresh_from_db()
        b.refresh_from_db()
        self.assertEqual((b.display_order, a.display_order), (1, 2))

    def test_reorder_rejects_foreign_ids(self):
        a = services.create_category(self.business, name_ar='أ')
        foreign = TestDataFactory.create_category(TestDataFactory.create_business())
        with self.assertRaises(ValidationFailed):
            services.reorder_categories(self.business, [a.pk, foreign.pk])


class ProductImportTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.user)
        self.category = TestDataFactory.create_category(self.business, name_ar='عطور')

    def test_creates_and_updates_by_sku(self):
        TestDataFactory.create_product(self.business, sku='P-1', price=Decimal('10.00'))
        content = (
            'SKU,Product Name,Price,Cost,Category,Stock\n'
            'P-1,عطر ورد,55,20,عطور,7\n'
            'P-2,عطر عود,"1,200",300,,3\n'
        ).encode('utf-8')
        result = services.import_products(self.business, self.user, 'products.csv', content)
        self.assertEqual((result['created'], result['updated'], result['failed']), (1, 1, 0))
        updated = Product.objects.get(business=self.business, sku='P-1')
        self.assertEqual(updated.price, Decimal('55'))
        self.assertEqual(updated.category, self.category)
        self.assertEqual(updated.physical_stock, 7)
        self.assertEqual(Product.objects.get(business=self.business, sku='P-2').price, Decimal('1200'))
        self.assertTrue(AuditLog.objects.filter(business=self.business, action='import').exists())

    def test_arabic_headers(self):
        content = 'رمز المنتج;اسم المنتج;السعر\nA-1;قميص;40\n'.encode('utf-8')
        result = services.import_products(self.business, self.user, 'products.csv', content)
        self.assertEqual(result['created'], 1)
        self.assertTrue(Product.objects.filter(business=self.business, sku='A-1', name_ar='قميص').exists())

    def test_row_errors_are_reported(self):
        content = b'sku,name,price\n,No sku,10\nB-1,Bad price,abc\nB-2,Negative,-5\nB-3,Fine,5\n'
        result = services.import_products(self.business, self.user, 'products.csv', content)
        self.assertEqual(result['created'], 1)
        self.assertEqual(result['failed'], 3)
        self.assertEqual([e['row'] for e in result['errors']], [2, 3, 4])

    def test_missing_columns(self):
        with self.assertRaises(ValidationFailed) as ctx:
            services.import_products(self.business, self.user, 'products.csv', b'price,cost\n1,2\n')
        self.assertEqual(ctx.exception.code, 'missing_columns')
        self.assertEqual(ctx.exception.extra['missing'], ['sku', 'name_ar'])

    def test_dry_run_writes_nothing(self):
        result = services.import_products(self.business, self.user, 'products.csv', b'sku,name\nD-1,Dry\n', commit=False)
        self.assertEqual(result['created'], 1)
        self.assertFalse(Product.objects.filter(business=self.business, sku='D-1').exists())


class ProductAPITests(TestCase):
    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.owner)
        self.client = AuthenticatedAPIClient()
        self.client.use_business(self.owner, self.business)

    def test_create_product(self):
        response = self.client.post('/api/v1/products/', {
            'name_ar': 'ساعة', 'sku': ' W-1 ', 'price': '150.00', 'cost': '60.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['sku'], 'W-1')
        self.assertTrue(AuditLog.objects.filter(business=self.business, entity_type='product', action='create').exists())

    def test_duplicate_sku(self):
        TestDataFactory.create_product(self.business, sku='DUP')
        response = self.client.post('/api/v1/products/', {'name_ar': 'مكرر', 'sku': 'DUP'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_same_sku_in_other_workspace_is_allowed(self):
        TestDataFactory.create_product(TestDataFactory.create_business(), sku='SHARED')
        response = self.client.post('/api/v1/products/', {'name_ar': 'مشترك', 'sku': 'SHARED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_negative_price_is_rejected(self):
        response = self.client.post('/api/v1/products/', {'name_ar': 'x', 'sku': 'NEG', 'price': '-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_foreign_category_is_rejected(self):
        category = TestDataFactory.create_category(TestDataFactory.create_business())
        response = self.client.post('/api/v1/products/', {
            'name_ar': 'x', 'sku': 'CAT', 'category': category.pk,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters_and_pagination(self):
        TestDataFactory.create_product(self.business, sku='A-1', price=Decimal('10'))
        TestDataFactory.create_product(self.business, sku='A-2', price=Decimal('30'))
        TestDataFactory.create_product(self.business, sku='B-1', price=Decimal('20'))
        response = self.client.get('/api/v1/products/?search=A-&sort=-price')
        self.assertEqual([p['sku'] for p in response.data['results']], ['A-2', 'A-1'])
        response = self.client.get('/api/v1/products/?limit=2&page=2')
        self.assertEqual(response.data['total_count'], 3)
        self.assertEqual(response.data['page_count'], 2)
        self.assertEqual(len(response.data['results']), 1)

    def test_sort_by_available_stock(self):
        p1 = TestDataFactory.create_product(self.business, sku='S-1')
        p2 = TestDataFactory.create_product(self.business, sku='S-2')
        Product.objects.filter(pk=p1.pk).update(physical_stock=10, reserved_stock=8)
        Product.objects.filter(pk=p2.pk).update(physical_stock=5)
        response = self.client.get('/api/v1/products/?sort=-stock')
        self.assertEqual([p['sku'] for p in response.data['results']], ['S-2', 'S-1'])

    def test_by_sku(self):
        TestDataFactory.create_product(self.business, sku='LOOK-1')
        response = self.client.get('/api/v1/products/by-sku/LOOK-1/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get('/api/v1/products/by-sku/NOPE/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_agent_cannot_create(self):
        agent = TestDataFactory.add_member(self.business, role='agent')
        client = AuthenticatedAPIClient()
        client.use_business(agent, self.business)
        response = client.post('/api/v1/products/', {'name_ar': 'x', 'sku': 'AG'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_export(self):
        TestDataFactory.create_product(self.business, sku='EXP-1')
        response = self.client.get('/api/v1/products/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        sheet = load_workbook(io.BytesIO(response.content)).active
        self.assertEqual(sheet.cell(row=1, column=1).value, 'SKU')
        self.assertEqual(sheet.cell(row=2, column=1).value, 'EXP-1')

    def test_import_upload(self):
        upload = SimpleUploadedFile('products.csv', b'sku,name\nU-1,Uploaded\n', content_type='text/csv')
        response = self.client.post('/api/v1/products/import/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], 1)
        self.assertTrue(response.data['committed'])

    def test_category_endpoints(self):
        response = self.client.post('/api/v1/product-categories/', {'name_ar': 'إلكترونيات'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['display_order'], 1)
        self.assertEqual(ProductCategory.objects.filter(business=self.business).count(), 1)
