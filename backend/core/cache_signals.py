"""
Signal handlers that invalidate cached dashboard/report payloads
whenever order or ad-campaign data of a workspace changes.
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from backend.core.cache_utils import invalidate_business_cache
from backend.orders.models import Order, Status
from backend.advertising.models import AdCampaign


@receiver([post_save, post_delete], sender=Order)
def invalidate_on_order_change(sender, instance, **kwargs):
    invalidate_business_cache(instance.business_id)


@receiver([post_save, post_delete], sender=Status)
def invalidate_on_status_change(sender, instance, **kwargs):
    invalidate_business_cache(instance.business_id)


@receiver([post_save, post_delete], sender=AdCampaign)
def invalidate_on_campaign_change(sender, instance, **kwargs):
    invalidate_business_cache(instance.business_id)
