"""
Ad campaigns and the allocation of their cost onto orders.

A campaign's cost is split across targeted products by percentage; an
allocation run then charges each product's share to the orders of the
campaign date that contain it, proportionally to quantity.
"""
import logging
from collections import defaultdict
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.db.models import Count, Sum, DecimalField
from django.utils import timezone
from django.utils.translation import gettext as _

from backend.core.exceptions import ValidationFailed, ConflictError
from backend.core.utils import create_audit_log
from backend.orders.models import Order, OrderItem
from .models import AdCampaign, AdCampaignProduct, AdCostLog

logger = logging.getLogger('backend.advertising')

CENT = Decimal('0.01')
PERCENT_TOLERANCE = Decimal('0.01')
LOCKED_WHEN_ALLOCATED = ['total_cost', 'campaign_date']


def _money(value):
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def validate_product_allocations(business, allocations):
    """
    allocations: [{'product': Product, 'allocation_percentage': Decimal}, ...]
    Percentages must add up to 100 (+/- 0.01), products must be unique and
    belong to the workspace.
    """
    if not allocations:
        raise ValidationFailed(_('Select at least one product'), code='no_products')
    seen = set()
    total = Decimal('0')
    for allocation in allocations:
        product = allocation['product']
        if product.business_id != business.pk:
            raise ValidationFailed(_('Product %(sku)s does not belong to this workspace') % {'sku': product.sku})
        if product.pk in seen:
            raise ValidationFailed(_('Product %(sku)s is listed twice') % {'sku': product.sku})
        seen.add(product.pk)
        percentage = Decimal(str(allocation['allocation_percentage']))
        if percentage <= 0:
            raise ValidationFailed(_('Allocation percentages must be greater than 0'))
        total += percentage
    if abs(total - Decimal('100')) > PERCENT_TOLERANCE:
        raise ValidationFailed(
            _('Allocation percentages must add up to 100%% (got %(total)s%%)') % {'total': total},
            code='invalid_allocation_total',
        )


def _write_products(campaign, allocations):
    campaign.products.all().delete()
    for allocation in allocations:
        AdCampaignProduct.objects.create(
            campaign=campaign,
            product=allocation['product'],
            allocation_percentage=Decimal(str(allocation['allocation_percentage'])),
        )


def create_campaign(business, user, fields, allocations):
    validate_product_allocations(business, allocations)
    if Decimal(str(fields.get('total_cost', 0))) < 0:
        raise ValidationFailed(_('Total cost must not be negative'))
    with transaction.atomic():
        campaign = AdCampaign.objects.create(business=business, created_by=user, **fields)
        _write_products(campaign, allocations)
    create_audit_log(business, user, 'ad_campaign', campaign.pk, 'create',
                     after={'total_cost': str(campaign.total_cost), 'campaign_date': campaign.campaign_date.isoformat()})
    logger.info(f"Ad campaign {campaign.pk} created in business {business.pk}")
    return campaign


def update_campaign(campaign, user, fields, allocations=None):
    """Edit a campaign; cost, date and products are frozen while it is allocated"""
    if campaign.is_allocated:
        frozen = [f for f in LOCKED_WHEN_ALLOCATED if f in fields and fields[f] != getattr(campaign, f)]
        if frozen or allocations is not None:
            raise ConflictError(
                _('Deallocate the campaign before changing its cost, date or products'),
                code='campaign_allocated',
            )
    if allocations is not None:
        validate_product_allocations(campaign.business, allocations)

    with transaction.atomic():
        for field, value in fields.items():
            setattr(campaign, field, value)
        campaign.save()
        if allocations is not None:
            _write_products(campaign, allocations)
        elif 'total_cost' in fields:
            for link in campaign.products.all():
                link.save()
    create_audit_log(campaign.business, user, 'ad_campaign', campaign.pk, 'update',
                     after={k: str(v) for k, v in fields.items()})
    return campaign


def delete_campaign(campaign, user):
    with transaction.atomic():
        if campaign.is_allocated:
            deallocate_campaign(campaign, user)
        campaign_id = campaign.pk
        business = campaign.business
        campaign.delete()
    create_audit_log(business, user, 'ad_campaign', campaign_id, 'delete')


def allocate_campaign(campaign, user=None):
    """
    Charge the campaign's product shares to the orders of its date.

    For each targeted product, its cost_amount is spread across the orders
    containing it in proportion to the ordered quantity.
    """
    if campaign.is_allocated:
        raise ConflictError(_('This campaign has already been allocated'), code='campaign_already_allocated')

    shares = {link.product_id: link.cost_amount for link in campaign.products.all()}
    items = (
        OrderItem.objects.filter(
            order__business=campaign.business_id,
            order__order_date=campaign.campaign_date,
            product_id__in=list(shares),
        )
        .exclude(order__status__key='deleted')
        .values('order_id', 'product_id')
        .annotate(qty=Sum('quantity'))
    )

    per_order = defaultdict(dict)
    product_totals = defaultdict(int)
    for row in items:
        per_order[row['order_id']][row['product_id']] = row['qty']
        product_totals[row['product_id']] += row['qty']

    total_allocated = Decimal('0.00')
    with transaction.atomic():
        orders = Order.objects.select_for_update().filter(pk__in=list(per_order))
        for order in orders:
            order_cost = Decimal('0.00')
            for product_id, qty in per_order[order.pk].items():
                cost = _money(shares[product_id] * qty / product_totals[product_id])
                if cost <= 0:
                    continue
                AdCostLog.objects.create(
                    campaign=campaign, order=order, product_id=product_id,
                    allocated_cost=cost, allocation_method='product_based',
                )
                order_cost += cost
            if order_cost > 0:
                order.ad_cost = (order.ad_cost or Decimal('0.00')) + order_cost
                order.save(update_fields=['ad_cost', 'updated_at'])
                total_allocated += order_cost

        campaign.is_allocated = True
        campaign.allocated_at = timezone.now()
        campaign.save(update_fields=['is_allocated', 'allocated_at', 'updated_at'])

    create_audit_log(campaign.business, user, 'ad_campaign', campaign.pk, 'ad_allocation',
                     after={'orders_updated': len(per_order), 'total_cost_allocated': str(total_allocated)})
    logger.info(f"Campaign {campaign.pk} allocated {total_allocated} across {len(per_order)} orders")
    return {'success': True, 'orders_updated': len(per_order), 'total_cost_allocated': float(total_allocated)}


def deallocate_campaign(campaign, user=None):
    """Take back everything an allocation charged (order ad_cost never goes below 0)"""
    per_order = defaultdict(lambda: Decimal('0.00'))
    for log in AdCostLog.objects.filter(campaign=campaign):
        per_order[log.order_id] += log.allocated_cost

    total = Decimal('0.00')
    with transaction.atomic():
        for order in Order.objects.select_for_update().filter(pk__in=list(per_order)):
            amount = per_order[order.pk]
            order.ad_cost = max(Decimal('0.00'), (order.ad_cost or Decimal('0.00')) - amount)
            order.save(update_fields=['ad_cost', 'updated_at'])
            total += amount
        AdCostLog.objects.filter(campaign=campaign).delete()
        campaign.is_allocated = False
        campaign.allocated_at = None
        campaign.save(update_fields=['is_allocated', 'allocated_at', 'updated_at'])

    create_audit_log(campaign.business, user, 'ad_campaign', campaign.pk, 'ad_deallocation',
                     after={'orders_updated': len(per_order), 'total_cost_removed': str(total)})
    return {'success': True, 'orders_updated': len(per_order), 'total_cost_allocated': float(total)}


def reallocate_campaign(campaign, user=None):
    with transaction.atomic():
        if campaign.is_allocated:
            deallocate_campaign(campaign, user)
        return allocate_campaign(campaign, user)


def allocate_all_pending(business, user=None):
    """Allocate every unallocated campaign of the workspace, oldest first"""
    results = []
    for campaign in AdCampaign.objects.filter(business=business, is_allocated=False).order_by('campaign_date', 'id'):
        result = allocate_campaign(campaign, user)
        result['campaign_id'] = campaign.pk
        results.append(result)
    return results


def roas(revenue, cost):
    cost = Decimal(str(cost or 0))
    if cost == 0:
        return 0.0
    return round(float(Decimal(str(revenue or 0)) / cost), 2)


def campaign_details(campaign):
    logs = AdCostLog.objects.filter(campaign=campaign)
    order_ids = list(logs.values_list('order_id', flat=True).distinct())
    revenue = Order.objects.filter(pk__in=order_ids).aggregate(
        total=Sum('revenue', output_field=DecimalField())
    )['total'] or Decimal('0.00')
    return {
        'orders_count': len(order_ids),
        'revenue_generated': float(revenue),
        'allocated_cost': float(logs.aggregate(total=Sum('allocated_cost'))['total'] or 0),
        'roas': roas(revenue, campaign.total_cost),
    }


def filter_campaigns(queryset, date_from=None, date_to=None, platform=None, is_allocated=None):
    if date_from:
        queryset = queryset.filter(campaign_date__gte=date_from)
    if date_to:
        queryset = queryset.filter(campaign_date__lte=date_to)
    if platform:
        queryset = queryset.filter(platform=platform)
    if is_allocated is not None:
        queryset = queryset.filter(is_allocated=is_allocated)
    return queryset


def advertising_stats(business, date_from=None, date_to=None):
    campaigns = filter_campaigns(AdCampaign.objects.filter(business=business), date_from, date_to)
    totals = campaigns.aggregate(spent=Sum('total_cost'), count=Count('id'))
    spent = totals['spent'] or Decimal('0.00')

    order_ids = AdCostLog.objects.filter(campaign__in=campaigns).values_list('order_id', flat=True).distinct()
    revenue = Order.objects.filter(pk__in=list(order_ids)).aggregate(
        total=Sum('revenue', output_field=DecimalField())
    )['total'] or Decimal('0.00')

    by_platform = [
        {'platform': row['platform'], 'spent': float(row['spent'] or 0), 'campaigns': row['count']}
        for row in campaigns.values('platform').annotate(spent=Sum('total_cost'), count=Count('id')).order_by('-spent')
    ]
    return {
        'total_spent': float(spent),
        'campaigns_count': totals['count'],
        'allocated_revenue': float(revenue),
        'roas': roas(revenue, spent),
        'by_platform': by_platform,
    }
