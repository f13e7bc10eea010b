import random
import string
import time
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone


class Status(models.Model):
    """
    Workspace-configurable order status.

    The counts_as_* flags drive every report: an order is "delivered",
    "returned" or "active" purely according to its status flags.
    """
    STATUS_TYPE_CHOICES = [
        ('active', 'Active'),
        ('delivered', 'Delivered'),
        ('returned', 'Returned'),
        ('canceled', 'Canceled'),
    ]

    business = models.ForeignKey('workspaces.Business', on_delete=models.CASCADE, related_name='statuses')
    key = models.CharField(max_length=50)
    name_ar = models.CharField(max_length=100)
    name_en = models.CharField(max_length=100, blank=True)
    color = models.CharField(max_length=7, default='#64748b')
    sort_order = models.PositiveIntegerField(default=0)
    is_final = models.BooleanField(default=False)
    counts_as_delivered = models.BooleanField(default=False)
    counts_as_return = models.BooleanField(default=False)
    counts_as_active = models.BooleanField(default=True)
    is_system_default = models.BooleanField(default=False)
    status_type = models.CharField(max_length=20, choices=STATUS_TYPE_CHOICES, default='active')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name_en or self.name_ar

    @property
    def label(self):
        return self.name_ar or self.name_en or self.key

    class Meta:
        db_table = 'statuses'
        ordering = ['sort_order', 'id']
        unique_together = [['business', 'key']]
        verbose_name_plural = 'statuses'


def generate_order_number():
    """ORD-<unix ms>-<4 random uppercase alphanumerics>"""
    suffix = ''.join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


class Order(models.Model):
    """A cash-on-delivery order"""
    COLLECTION_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('collected', 'Collected'),
        ('partial', 'Partial'),
        ('failed', 'Failed'),
    ]
    PROCESSING_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('processing', 'Processing'),
        ('completed', 'Completed'),
    ]

    business = models.ForeignKey('workspaces.Business', on_delete=models.CASCADE, related_name='orders')
    order_number = models.CharField(max_length=60)
    order_date = models.DateField(default=timezone.localdate)

    customer = models.ForeignKey('parties.Customer', on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    customer_name = models.CharField(max_length=200)
    customer_phone = models.CharField(max_length=30)
    customer_address = models.TextField(blank=True)
    customer_email = models.EmailField(blank=True)

    country = models.ForeignKey('locations.Country', on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    city = models.ForeignKey('locations.City', on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    carrier = models.ForeignKey('carriers.Carrier', on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    employee = models.ForeignKey('parties.Employee', on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    status = models.ForeignKey(Status, on_delete=models.PROTECT, related_name='orders')

    revenue = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    cod_fees = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    ad_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    collected_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    profit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    collection_status = models.CharField(max_length=20, choices=COLLECTION_STATUS_CHOICES, default='pending')
    processing_status = models.CharField(max_length=20, choices=PROCESSING_STATUS_CHOICES, default='pending')

    notes = models.TextField(blank=True)
    tracking_number = models.CharField(max_length=100, blank=True)
    order_source = models.CharField(max_length=50, blank=True)
    callback_date = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)
    return_reason = models.TextField(blank=True)

    confirmed_at = models.DateTimeField(null=True, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    locked_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='locked_orders')
    locked_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.order_number

    def calculate_profit(self):
        def dec(value):
            return Decimal(str(value or 0))
        return dec(self.revenue) - dec(self.cost) - dec(self.shipping_cost) - dec(self.cod_fees) - dec(self.ad_cost)

    def save(self, *args, **kwargs):
        if not self.order_number:
            self.order_number = generate_order_number()
        self.profit = self.calculate_profit()
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'profit' not in update_fields:
            kwargs['update_fields'] = list(update_fields) + ['profit']
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        unique_together = [['business', 'order_number']]
        indexes = [
            models.Index(fields=['business', 'order_date'], name='order_business_date_idx'),
            models.Index(fields=['business', 'status'], name='order_business_status_idx'),
            models.Index(fields=['business', 'tracking_number'], name='order_business_tracking_idx'),
        ]


class OrderItem(models.Model):
    """Product line of an order"""
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('catalog.Product', on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    product_name = models.CharField(max_length=255, blank=True)
    sku = models.CharField(max_length=100, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    unit_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.order.order_number} - {self.product_name or self.sku} x {self.quantity}"

    @property
    def line_total(self):
        return self.unit_price * self.quantity

    @property
    def line_cost(self):
        return self.unit_cost * self.quantity

    class Meta:
        db_table = 'order_items'


class OrderLock(models.Model):
    """Exclusive processing lock on an order, expiring after a timeout"""
    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name='lock')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='order_locks')
    employee = models.ForeignKey('parties.Employee', on_delete=models.SET_NULL, null=True, blank=True, related_name='order_locks')
    locked_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField()

    def __str__(self):
        return f"Lock on {self.order} by {self.user}"

    @property
    def is_expired(self):
        return self.expires_at <= timezone.now()

    class Meta:
        db_table = 'order_locks'
