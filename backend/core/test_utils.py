"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.workspaces.models import BusinessMember, SuperAdmin
from backend.workspaces.services import create_workspace
from backend.locations.models import Country, City
from backend.carriers.models import Carrier
from backend.catalog.models import Product, ProductCategory
from backend.parties.models import Customer, Employee
from backend.orders.models import Order, OrderItem, Status
from backend.advertising.models import AdCampaign, AdCampaignProduct
from decimal import Decimal
from django.utils import timezone
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'.lower()
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_super_admin(user=None):
        """Create a platform super admin"""
        user = user or TestDataFactory.create_user()
        SuperAdmin.objects.create(user=user)
        return user

    @staticmethod
    def create_business(owner=None, name=None):
        """Create a workspace (admin membership, trial billing and default statuses included)"""
        if not owner:
            owner = TestDataFactory.create_user()
        if not name:
            name = f'Business {TestDataFactory.random_string(6)}'
        return create_workspace(owner, name)

    @staticmethod
    def add_member(business, user=None, role='agent', status='active'):
        """Add a user to a workspace with the given role"""
        user = user or TestDataFactory.create_user()
        BusinessMember.objects.create(business=business, user=user, role=role, status=status)
        return user

    @staticmethod
    def create_country(business, name_ar=None, code=None, shipping_cost=None):
        """Create a test country"""
        if not name_ar:
            name_ar = f'دولة {TestDataFactory.random_string(4)}'
        if not code:
            code = TestDataFactory.random_string(3).upper()
        return Country.objects.create(
            business=business,
            name_ar=name_ar,
            name_en=f'Country {code}',
            code=code,
            currency='SAR',
            shipping_cost=shipping_cost if shipping_cost is not None else Decimal('25.00')
        )

    @staticmethod
    def create_city(country, name_ar=None, shipping_cost=None):
        """Create a test city"""
        if not name_ar:
            name_ar = f'مدينة {TestDataFactory.random_string(4)}'
        return City.objects.create(
            country=country,
            name_ar=name_ar,
            shipping_cost=shipping_cost if shipping_cost is not None else Decimal('0.00')
        )

    @staticmethod
    def create_carrier(business, name_ar=None):
        """Create a test carrier"""
        if not name_ar:
            name_ar = f'شركة شحن {TestDataFactory.random_string(4)}'
        return Carrier.objects.create(business=business, name_ar=name_ar)

    @staticmethod
    def create_category(business, name_ar=None, display_order=0):
        """Create a test product category"""
        if not name_ar:
            name_ar = f'تصنيف {TestDataFactory.random_string(4)}'
        return ProductCategory.objects.create(business=business, name_ar=name_ar, display_order=display_order)

    @staticmethod
    def create_product(business, sku=None, name_ar=None, price=None, cost=None, category=None):
        """Create a test product"""
        if not sku:
            sku = f'SKU-{TestDataFactory.random_string(8).upper()}'
        if not name_ar:
            name_ar = f'منتج {TestDataFactory.random_string(4)}'
        return Product.objects.create(
            business=business,
            sku=sku,
            name_ar=name_ar,
            name_en=f'Product {sku}',
            price=price if price is not None else Decimal('100.00'),
            cost=cost if cost is not None else Decimal('40.00'),
            category=category
        )

    @staticmethod
    def create_customer(business, name=None, phone=None):
        """Create a test customer"""
        if not name:
            name = f'Customer {TestDataFactory.random_string(6)}'
        if not phone:
            phone = f'05{random.randint(10000000, 99999999)}'
        return Customer.objects.create(business=business, name=name, phone=phone)

    @staticmethod
    def create_employee(business, name_ar=None, role='agent', user=None):
        """Create a test employee"""
        if not name_ar:
            name_ar = f'موظف {TestDataFactory.random_string(4)}'
        return Employee.objects.create(business=business, name_ar=name_ar, role=role, user=user)

    @staticmethod
    def get_status(business, key='new'):
        return Status.objects.get(business=business, key=key)

    @staticmethod
    def create_order(business, status_key='new', revenue=None, cost=None, shipping_cost=None,
                     order_date=None, products=None, **fields):
        """
        Create a test order. `products` is a list of (product, quantity)
        tuples turned into order items at the product's price/cost.
        """
        if order_date is None:
            order_date = timezone.localdate()
        order = Order.objects.create(
            business=business,
            status=TestDataFactory.get_status(business, status_key),
            customer_name=fields.pop('customer_name', f'Customer {TestDataFactory.random_string(4)}'),
            customer_phone=fields.pop('customer_phone', f'05{random.randint(10000000, 99999999)}'),
            order_date=order_date,
            revenue=revenue if revenue is not None else Decimal('200.00'),
            cost=cost if cost is not None else Decimal('80.00'),
            shipping_cost=shipping_cost if shipping_cost is not None else Decimal('20.00'),
            **fields
        )
        for product, quantity in products or []:
            OrderItem.objects.create(
                order=order,
                product=product,
                product_name=product.name_ar,
                sku=product.sku,
                quantity=quantity,
                unit_price=product.price,
                unit_cost=product.cost
            )
        return order

    @staticmethod
    def create_campaign(business, products, total_cost=None, campaign_date=None, user=None):
        """
        Create an ad campaign. `products` is a list of (product, percentage)
        tuples; percentages should add up to 100.
        """
        campaign = AdCampaign.objects.create(
            business=business,
            campaign_date=campaign_date or timezone.localdate(),
            platform='facebook',
            total_cost=total_cost if total_cost is not None else Decimal('100.00'),
            created_by=user
        )
        for product, percentage in products:
            AdCampaignProduct.objects.create(
                campaign=campaign,
                product=product,
                allocation_percentage=Decimal(str(percentage))
            )
        return campaign


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication and workspace helpers"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def use_business(self, user, business):
        """Authenticate as `user` and scope every request to `business`"""
        refresh = RefreshToken.for_user(user)
        self.credentials(
            HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}',
            HTTP_X_BUSINESS_ID=str(business.pk),
        )
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
