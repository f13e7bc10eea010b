from decimal import Decimal

from django.db import models

from .plans import PLAN_CHOICES, DEFAULT_PLAN, PLAN_CONFIG


class BusinessBilling(models.Model):
    """Plan, activation and trial state of one workspace"""
    STATUS_CHOICES = [
        ('inactive', 'Inactive'),
        ('active', 'Active'),
        ('trial', 'Trial'),
    ]

    business = models.OneToOneField('workspaces.Business', on_delete=models.CASCADE, related_name='billing')
    plan = models.CharField(max_length=20, choices=PLAN_CHOICES, default=DEFAULT_PLAN)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='inactive')
    activated_at = models.DateTimeField(null=True, blank=True)
    lifetime_price_usd = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    monthly_order_limit = models.PositiveIntegerField(null=True, blank=True, default=PLAN_CONFIG[DEFAULT_PLAN]['monthly_order_limit'])
    is_trial = models.BooleanField(default=False)
    trial_ends_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.business} - {self.plan} ({self.status})"

    class Meta:
        db_table = 'business_billing'
