"""Billing plan table and trial constants"""
from decimal import Decimal

TRIAL_HOURS = 24
DEFAULT_PLAN = 'free'

PLAN_CONFIG = {
    'free': {
        'name': 'Free',
        'monthly_order_limit': 50,
        'lifetime_price_usd': Decimal('0'),
    },
    'starter': {
        'name': 'Starter',
        'monthly_order_limit': 1000,
        'lifetime_price_usd': Decimal('25'),
    },
    'growth': {
        'name': 'Growth',
        'monthly_order_limit': 3000,
        'lifetime_price_usd': Decimal('35'),
    },
    'pro': {
        'name': 'Pro',
        'monthly_order_limit': None,  # unlimited
        'lifetime_price_usd': Decimal('50'),
    },
}

PLAN_CHOICES = [(key, value['name']) for key, value in PLAN_CONFIG.items()]


def get_plan(plan):
    return PLAN_CONFIG.get(plan)


def is_valid_plan(plan):
    return plan in PLAN_CONFIG
