"""
Caching utilities for expensive workspace queries (dashboard KPIs, reports).

Keys are namespaced by a per-workspace version number; bumping the version
invalidates every cached payload of that workspace without a key scan.
"""
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger('backend.core')

# Cache TTLs (in seconds)
DASHBOARD_KPI_CACHE_TTL = 300  # 5 minutes
REPORTS_CACHE_TTL = 600  # 10 minutes
VERSION_KEY_TTL = None  # never expires


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def _version_key(business_id):
    return f"business_cache_version:{business_id}"


def get_business_cache_version(business_id):
    version = cache.get(_version_key(business_id))
    if version is None:
        version = 1
        cache.set(_version_key(business_id), version, VERSION_KEY_TTL)
    return version


def invalidate_business_cache(business_id):
    """Drop every cached payload of a workspace by bumping its version"""
    key = _version_key(business_id)
    try:
        cache.incr(key)
    except ValueError:
        cache.set(key, 2, VERSION_KEY_TTL)
    logger.debug(f"Invalidated cached payloads for business {business_id}")


def business_cache_key(business_id, prefix, *args, **kwargs):
    version = get_business_cache_version(business_id)
    return make_cache_key(f"{prefix}:b{business_id}:v{version}", *args, **kwargs)


def cached_business_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator caching a function whose first argument is a Business

    Usage:
        @cached_business_query(cache_ttl=300, key_prefix="dashboard_kpis")
        def get_kpis(business, filters):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(business, *args, **kwargs):
            cache_key = business_cache_key(business.pk, key_prefix, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(business, *args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result
        wrapper.uncached = func
        return wrapper
    return decorator
