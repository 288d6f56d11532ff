"""
Vendor price recording, price-change derivation and analytics
"""
import logging
from collections import OrderedDict
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.utils import timezone

from backoffice.core.cache_utils import VENDOR_ANALYTICS_CACHE_TTL, VENDOR_ANALYTICS_PREFIX, cached_query
from backoffice.ingredients.models import MasterIngredient
from .models import VendorCode, VendorPriceChange, VendorPriceHistory

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')

PRICE_UP_COLOR = 'rose'
PRICE_DOWN_COLOR = 'emerald'
PRICE_FLAT_COLOR = 'gray'


def compute_change_percent(old_price, new_price):
    """(new - old) / old * 100, rounded to 2 decimals"""
    old_price = Decimal(str(old_price))
    new_price = Decimal(str(new_price))
    if old_price <= 0:
        raise ValueError("Previous price must be greater than zero")
    percent = (new_price - old_price) / old_price * Decimal('100')
    return percent.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_price_change(percent):
    """
    Presentation for a price-change percent.

    A price going up is bad for the kitchen (rose, arrow up), going down is
    good (emerald, arrow down). The display is the absolute value with one
    decimal; exactly zero renders as "0%".
    """
    value = float(percent or 0)
    if value == 0:
        return {'value': 0.0, 'display': '0%', 'direction': 'none', 'color': PRICE_FLAT_COLOR}
    if value > 0:
        return {'value': value, 'display': f"{abs(value):.1f}%", 'direction': 'up', 'color': PRICE_UP_COLOR}
    return {'value': value, 'display': f"{abs(value):.1f}%", 'direction': 'down', 'color': PRICE_DOWN_COLOR}


def previous_price(master_ingredient, vendor_id):
    """Latest recorded price, falling back to the ingredient's current price"""
    last = VendorPriceHistory.objects.filter(
        master_ingredient=master_ingredient,
        vendor_id=vendor_id,
    ).order_by('-effective_date', '-created_at', '-id').first()
    if last is not None:
        return last.price
    if master_ingredient.current_price and master_ingredient.current_price > 0:
        return master_ingredient.current_price
    return None


def current_vendor_code(master_ingredient, vendor_id):
    return VendorCode.objects.filter(
        master_ingredient=master_ingredient,
        vendor_id=vendor_id,
        is_current=True,
    ).first()


def record_price(master_ingredient, vendor_id, price, effective_date=None, vendor_code=None,
                 invoice=None, notes='', user=None):
    """
    Store a price for an ingredient from a vendor.

    Writes the history row, updates the ingredient's current price and, when
    a previous price exists and differs, stores a VendorPriceChange. Returns
    (history, change) where change may be None.
    """
    price = Decimal(str(price)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    if price < 0:
        raise ValueError("Price cannot be negative")
    effective_date = effective_date or timezone.localdate()

    with transaction.atomic():
        old_price = previous_price(master_ingredient, vendor_id)
        if vendor_code is None:
            vendor_code = current_vendor_code(master_ingredient, vendor_id)

        history = VendorPriceHistory.objects.create(
            organization_id=master_ingredient.organization_id,
            master_ingredient=master_ingredient,
            vendor_id=vendor_id,
            vendor_code=vendor_code,
            price=price,
            effective_date=effective_date,
            invoice=invoice,
            notes=notes or '',
            created_by=user,
        )
        MasterIngredient.objects.filter(pk=master_ingredient.pk).update(
            current_price=price, updated_at=timezone.now()
        )
        master_ingredient.current_price = price

        change = None
        if old_price is not None and old_price > 0 and old_price != price:
            change = VendorPriceChange.objects.create(
                organization_id=master_ingredient.organization_id,
                vendor_id=vendor_id,
                item_code=vendor_code.code if vendor_code else master_ingredient.item_code,
                product_name=master_ingredient.product,
                master_ingredient=master_ingredient,
                old_price=old_price,
                new_price=price,
                change_percent=compute_change_percent(old_price, price),
                invoice_date=effective_date,
            )
            logger.info(
                f"Price change for {master_ingredient.product} ({vendor_id}): "
                f"{old_price} -> {price} ({change.change_percent}%)"
            )

    return history, change


def set_current_code(vendor_code):
    """Make this code the only current one for its ingredient/vendor pair"""
    with transaction.atomic():
        VendorCode.objects.filter(
            master_ingredient_id=vendor_code.master_ingredient_id,
            vendor_id=vendor_code.vendor_id,
            is_current=True,
        ).exclude(pk=vendor_code.pk).update(is_current=False, updated_at=timezone.now())
        if not vendor_code.is_current:
            vendor_code.is_current = True
            vendor_code.save(update_fields=['is_current', 'updated_at'])
    return vendor_code


def recent_price_changes(organization, days=30):
    """Changes in the window, newest first, 0% changes excluded"""
    start = timezone.now() - timedelta(days=days)
    return VendorPriceChange.objects.filter(
        organization=organization,
        created_at__gte=start,
    ).exclude(change_percent=0).order_by('-created_at', '-id')


def price_trends(organization_id, start_date=None, end_date=None, vendor_id=None, master_ingredient_id=None):
    """
    Price history rows enriched with the previous price and the percent
    change against it, per ingredient and vendor.
    """
    queryset = VendorPriceHistory.objects.select_related('master_ingredient').filter(
        organization_id=organization_id,
    )
    if vendor_id:
        queryset = queryset.filter(vendor_id=vendor_id)
    if master_ingredient_id:
        queryset = queryset.filter(master_ingredient_id=master_ingredient_id)
    queryset = queryset.order_by('master_ingredient_id', 'vendor_id', 'effective_date', 'created_at', 'id')

    trends = []
    last_price = {}
    for row in queryset:
        key = (row.master_ingredient_id, row.vendor_id)
        previous = last_price.get(key)
        last_price[key] = row.price

        if start_date and row.effective_date < start_date:
            continue
        if end_date and row.effective_date > end_date:
            continue

        change = 0.0
        if previous is not None and previous > 0:
            change = float(compute_change_percent(previous, row.price))
        trends.append({
            'master_ingredient_id': row.master_ingredient_id,
            'ingredient_name': row.master_ingredient.product,
            'vendor_id': row.vendor_id,
            'price': float(row.price),
            'effective_date': row.effective_date.isoformat(),
            'previous_price': float(previous) if previous is not None else None,
            'price_change_percent': change,
        })
    return trends


def _mean(values):
    return sum(values) / len(values) if values else 0


def vendor_statistics(trends):
    """
    Per-vendor summary over loaded trend rows:
    total_items, avg_increase, avg_decrease (absolute), total_changes and
    overall_change (mean first-to-last change per ingredient, ingredients
    with fewer than two points counting as 0).
    """
    by_vendor = OrderedDict()
    for trend in trends:
        by_vendor.setdefault(trend['vendor_id'], []).append(trend)

    stats = {}
    for vendor, rows in by_vendor.items():
        ingredients = list(OrderedDict.fromkeys(t['master_ingredient_id'] for t in rows))
        increases = [t['price_change_percent'] for t in rows if t['price_change_percent'] > 0]
        decreases = [t['price_change_percent'] for t in rows if t['price_change_percent'] < 0]

        ingredient_changes = []
        for ingredient_id in ingredients:
            points = sorted(
                (t for t in rows if t['master_ingredient_id'] == ingredient_id),
                key=lambda t: t['effective_date'],
            )
            if len(points) < 2 or not points[0]['price']:
                ingredient_changes.append(0)
                continue
            first, last = points[0]['price'], points[-1]['price']
            ingredient_changes.append((last - first) / first * 100)

        stats[vendor] = {
            'total_items': len(ingredients),
            'avg_increase': round(_mean(increases), 2),
            'avg_decrease': round(abs(_mean(decreases)), 2),
            'total_changes': len(increases) + len(decreases),
            'overall_change': round(_mean(ingredient_changes), 2),
        }
    return stats


@cached_query(cache_ttl=VENDOR_ANALYTICS_CACHE_TTL, key_prefix=VENDOR_ANALYTICS_PREFIX)
def get_vendor_analytics(organization_id, start_date=None, end_date=None):
    """Cached vendor analytics for an organization and date range"""
    trends = price_trends(organization_id, start_date=start_date, end_date=end_date)
    return {
        'vendors': vendor_statistics(trends),
        'trends': trends,
        'start_date': start_date.isoformat() if start_date else None,
        'end_date': end_date.isoformat() if end_date else None,
    }
