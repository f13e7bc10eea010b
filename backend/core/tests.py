"""
Test suite for core helpers
Tests: signup validators, tabular file parsing, audit logging, auth endpoints, platform settings
"""
import io

from django.test import TestCase, SimpleTestCase
from openpyxl import Workbook, load_workbook
from rest_framework import status

from backend.core.exceptions import ValidationFailed, LimitExceededError
from backend.core.models import AuditLog
from backend.core.platform import format_message, format_whatsapp_url
from backend.core.tabular import detect_delimiter, normalize_header, parse_tabular_file, build_workbook
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import create_audit_log, parse_bool, parse_date_range
from backend.core.validators import validate_signup, validate_email, validate_password


class ValidatorTests(SimpleTestCase):
    """Signup/login form rules"""

    def test_valid_signup(self):
        errors = validate_signup({
            'full_name': 'Sara Ahmed',
            'email': 'sara@example.com',
            'password': 'secret123',
            'password_confirm': 'secret123',
        })
        self.assertEqual(errors, {})

    def test_signup_reports_every_field(self):
        errors = validate_signup({'full_name': 'Al', 'email': 'bad', 'password': 'short', 'password_confirm': 'other'})
        self.assertEqual(set(errors), {'full_name', 'email', 'password', 'password_confirm'})

    def test_email_rules(self):
        self.assertIsNotNone(validate_email(''))
        self.assertIsNotNone(validate_email('no-at-sign.com'))
        self.assertIsNone(validate_email('user@shop.sa'))

    def test_password_minimum_length(self):
        self.assertIsNotNone(validate_password('1234567'))
        self.assertIsNone(validate_password('12345678'))


class TabularParserTests(SimpleTestCase):
    """CSV/Excel upload parsing"""

    def test_detect_delimiter(self):
        self.assertEqual(detect_delimiter('a;b;c'), ';')
        self.assertEqual(detect_delimiter('a,b,c'), ',')
        self.assertEqual(detect_delimiter('a\tb\tc'), '\t')
        self.assertEqual(detect_delimiter('single'), ',')

    def test_normalize_header(self):
        self.assertEqual(normalize_header('  Customer Name '), 'customer_name')
        self.assertEqual(normalize_header('Price (SAR)'), 'price_sar')
        self.assertEqual(normalize_header('اسم العميل'), 'اسم_العميل')

    def test_csv_with_bom_and_semicolons(self):
        content = '\ufeffname;phone\nAli;0500000001\n;\nSara;0500000002\n'.encode('utf-8')
        parsed = parse_tabular_file('orders.csv', content)
        self.assertEqual(parsed['headers'], ['name', 'phone'])
        self.assertEqual(parsed['rows'], [['Ali', '0500000001'], ['Sara', '0500000002']])

    def test_short_rows_are_padded(self):
        parsed = parse_tabular_file('orders.csv', b'a,b,c\n1\n')
        self.assertEqual(parsed['rows'], [['1', '', '']])

    def test_header_only_file_is_rejected(self):
        with self.assertRaises(ValidationFailed):
            parse_tabular_file('orders.csv', b'a,b,c\n')

    def test_unsupported_extension(self):
        with self.assertRaises(ValidationFailed):
            parse_tabular_file('orders.pdf', b'whatever')

    def test_non_utf8_csv_is_rejected(self):
        with self.assertRaises(ValidationFailed):
            parse_tabular_file('orders.csv', 'name\nعلي\n'.encode('cp1256'))

    def test_excel_file(self):
        wb = Workbook()
        ws = wb.active
        ws.append(['sku', 'quantity'])
        ws.append(['SKU-1', 3.0])
        buffer = io.BytesIO()
        wb.save(buffer)
        parsed = parse_tabular_file('orders.xlsx', buffer.getvalue())
        self.assertEqual(parsed['headers'], ['sku', 'quantity'])
        self.assertEqual(parsed['rows'], [['SKU-1', '3']])

    def test_build_workbook(self):
        wb = build_workbook('Orders', ['A', 'B'], [[1, 'x'], [2, None]])
        buffer = io.BytesIO()
        wb.save(buffer)
        sheet = load_workbook(io.BytesIO(buffer.getvalue())).active
        self.assertEqual(sheet.title, 'Orders')
        self.assertEqual(sheet.cell(row=1, column=1).value, 'A')
        self.assertTrue(sheet.cell(row=1, column=1).font.bold)
        self.assertEqual(sheet.cell(row=3, column=1).value, 2)


class RequestParsingTests(SimpleTestCase):
    def test_parse_bool(self):
        self.assertIsNone(parse_bool(None))
        self.assertIsNone(parse_bool(''))
        self.assertTrue(parse_bool('true'))
        self.assertTrue(parse_bool('1'))
        self.assertFalse(parse_bool('false'))

    def test_parse_date_range(self):
        date_from, date_to = parse_date_range({'date_from': '2024-01-01', 'date_to': '2024-01-31'})
        self.assertEqual((date_to - date_from).days, 30)
        with self.assertRaises(ValueError):
            parse_date_range({'date_from': '01/01/2024'})

    def test_default_range_is_thirty_days(self):
        date_from, date_to = parse_date_range({})
        self.assertEqual((date_to - date_from).days, 30)

    def test_service_error_response(self):
        response = LimitExceededError('Limit reached', code='order_limit_exceeded', extra={'limit': 50}).to_response()
        self.assertEqual(response.status_code, 402)
        self.assertEqual(response.data, {'error': 'Limit reached', 'code': 'order_limit_exceeded', 'limit': 50})


class PlatformHelperTests(SimpleTestCase):
    def test_format_message_leaves_unknown_placeholders(self):
        self.assertEqual(format_message('Hi {name}, plan {plan}', {'name': 'Ali'}), 'Hi Ali, plan {plan}')

    def test_whatsapp_url(self):
        self.assertEqual(format_whatsapp_url('+966 50 000'), 'https://wa.me/96650000')
        self.assertEqual(format_whatsapp_url('+966', 'hi there'), 'https://wa.me/966?text=hi%20there')
        self.assertIsNone(format_whatsapp_url(''))


class AuditLogTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.user)

    def test_create_audit_log(self):
        log = create_audit_log(self.business, self.user, 'order', 12, 'update', before={'a': 1}, after={'a': 2})
        self.assertIsNotNone(log)
        self.assertEqual(log.entity_id, '12')
        self.assertEqual(log.after, {'a': 2})

    def test_missing_fields_are_skipped(self):
        count = AuditLog.objects.count()
        self.assertIsNone(create_audit_log(self.business, self.user, 'order', None, 'update'))
        self.assertEqual(AuditLog.objects.count(), count)


class AuthEndpointTests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register(self):
        response = self.client.post('/api/v1/auth/register/', {
            'full_name': 'Sara Ahmed',
            'email': 'Sara@Example.com',
            'password': 'secret123',
            'password_confirm': 'secret123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['email'], 'sara@example.com')
        self.assertIn('access', response.data)

    def test_register_duplicate_email(self):
        TestDataFactory.create_user(email='taken@example.com')
        response = self.client.post('/api/v1/auth/register/', {
            'full_name': 'Someone',
            'email': 'taken@example.com',
            'password': 'secret123',
            'password_confirm': 'secret123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_me_lists_workspaces(self):
        user = TestDataFactory.create_user()
        business = TestDataFactory.create_business(owner=user)
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_super_admin'])
        self.assertEqual([w['id'] for w in response.data['workspaces']], [business.pk])

    def test_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login(self):
        user = TestDataFactory.create_user(email='login@example.com')
        response = self.client.post('/api/v1/auth/login/', {
            'email': 'Login@Example.com', 'password': 'testpass123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['id'], user.pk)

    def test_login_wrong_password(self):
        TestDataFactory.create_user(email='login@example.com')
        response = self.client.post('/api/v1/auth/login/', {
            'email': 'login@example.com', 'password': 'wrongpass1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_inactive_user(self):
        user = TestDataFactory.create_user(email='gone@example.com')
        user.is_active = False
        user.save()
        response = self.client.post('/api/v1/auth/login/', {
            'email': 'gone@example.com', 'password': 'testpass123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertNotIn('access', response.data)

    def test_refresh(self):
        TestDataFactory.create_user(email='login@example.com')
        login = self.client.post('/api/v1/auth/login/', {
            'email': 'login@example.com', 'password': 'testpass123',
        }, format='json')
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_refresh_after_user_was_deleted(self):
        user = TestDataFactory.create_user(email='login@example.com')
        login = self.client.post('/api/v1/auth/login/', {
            'email': 'login@example.com', 'password': 'testpass123',
        }, format='json')
        user.delete()
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_with_garbage_token(self):
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class PlatformSettingsEndpointTests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_anyone_signed_in_can_read(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/platform-settings/?plan=pro&workspace=Shop')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('Shop', response.data['contact']['message'])

    def test_regular_user_cannot_update(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.put('/api/v1/platform-settings/', {'whatsapp_number': '+966500000000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.patch('/api/v1/platform-settings/', {'cta_text': 'Hi'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_super_admin_can_update(self):
        admin = TestDataFactory.create_super_admin()
        self.client.authenticate_user(admin)
        response = self.client.patch('/api/v1/platform-settings/', {'whatsapp_number': '+966 500 000 000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get('/api/v1/platform-settings/')
        self.assertTrue(response.data['contact']['url'].startswith('https://wa.me/966500000000'))


class AuditLogEndpointTests(TestCase):
    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.owner)
        self.client = AuthenticatedAPIClient()
        self.client.use_business(self.owner, self.business)

    def test_list(self):
        create_audit_log(self.business, self.owner, 'order', 1, 'create')
        create_audit_log(self.business, self.owner, 'product', 2, 'update')
        response = self.client.get('/api/v1/audit-logs/?entity_type=order')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_count'], 1)

    def test_bad_page_size(self):
        response = self.client.get('/api/v1/audit-logs/?page_size=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/audit-logs/?page_size=0')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
