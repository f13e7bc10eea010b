from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Platform account. Logs in with email, joins workspaces through memberships"""
    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    class Meta:
        db_table = 'users'

    def __str__(self):
        return self.email

    @property
    def display_name(self):
        return self.full_name or self.email


class PlatformSetting(models.Model):
    """Singleton row with platform-wide contact settings (sales WhatsApp etc.)"""
    DEFAULT_CTA_TEXT = 'Contact us on WhatsApp'
    DEFAULT_MESSAGE_TEMPLATE = 'Hello, I would like to activate the {plan} plan for workspace {workspace}.'

    whatsapp_number = models.CharField(max_length=30, blank=True)
    cta_text = models.CharField(max_length=200, default=DEFAULT_CTA_TEXT)
    message_template = models.TextField(default=DEFAULT_MESSAGE_TEMPLATE)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'platform_settings'

    def __str__(self):
        return f'Platform settings ({self.whatsapp_number or "no number"})'

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(pk=1)
        return obj


class AuditLog(models.Model):
    """Audit trail of workspace mutations with before/after snapshots"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('status_change', 'Status Change'),
        ('bulk_status_change', 'Bulk Status Change'),
        ('tracking_update', 'Tracking Update'),
        ('delivery_update', 'Delivery Update'),
        ('lock', 'Lock'),
        ('unlock', 'Unlock'),
        ('import', 'Import'),
        ('billing_change', 'Billing Change'),
        ('ad_allocation', 'Ad Cost Allocation'),
        ('ad_deallocation', 'Ad Cost Deallocation'),
        ('member_change', 'Member Change'),
    ]

    business = models.ForeignKey('workspaces.Business', on_delete=models.CASCADE, null=True, blank=True, related_name='audit_logs')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    entity_type = models.CharField(max_length=50)
    entity_id = models.CharField(max_length=100)
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    before = models.JSONField(null=True, blank=True)
    after = models.JSONField(null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['business', '-created_at'], name='audit_business_created_idx'),
            models.Index(fields=['entity_type', 'entity_id'], name='audit_entity_idx'),
            models.Index(fields=['action'], name='audit_action_idx'),
        ]

    def __str__(self):
        return f'{self.action} {self.entity_type}#{self.entity_id}'
