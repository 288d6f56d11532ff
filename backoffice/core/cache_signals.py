"""
Cache invalidation signals
Automatically invalidate cached aggregates when their source rows change
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_dashboard_cache, invalidate_vendor_analytics_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

PRICE_MODELS = ('VendorPriceHistory', 'VendorPriceChange')
DASHBOARD_MODELS = ('Task', 'ActivityLog', 'TeamMember', 'VendorPriceChange')


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Used by bulk imports; invalidate manually after the block.
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def invalidate_vendor_analytics_cache_manual():
    """Manually invalidate vendor analytics cache"""
    try:
        invalidate_vendor_analytics_cache()
        logger.info("Invalidated vendor analytics cache (Manual/Signal)")
    except Exception as e:
        logger.warning(f"Error invalidating vendor analytics cache: {e}")


def invalidate_dashboard_cache_manual():
    """Manually invalidate dashboard cache"""
    try:
        invalidate_dashboard_cache()
        logger.info("Invalidated dashboard cache (Manual/Signal)")
    except Exception as e:
        logger.warning(f"Error invalidating dashboard cache: {e}")


# --- Signal Handlers ---

@receiver([post_save, post_delete])
def invalidate_price_cache(sender, instance, **kwargs):
    """Invalidate vendor analytics when price rows change"""
    if is_suspended():
        return

    if sender.__name__ in PRICE_MODELS and sender._meta.app_label == 'vendors':
        # Invalidate after commit so the cache is not repopulated with stale rows
        transaction.on_commit(invalidate_vendor_analytics_cache_manual)


@receiver([post_save, post_delete])
def invalidate_summary_cache(sender, instance, **kwargs):
    """Invalidate dashboard summary when tasks, activity or team rows change"""
    if is_suspended():
        return

    if sender.__name__ in DASHBOARD_MODELS:
        transaction.on_commit(invalidate_dashboard_cache_manual)
