"""
CSV invoice parsing and import
"""
import csv
import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from backoffice.core.cache_signals import invalidate_vendor_analytics_cache_manual, suspend_cache_signals
from backoffice.ingredients.models import MasterIngredient
from .models import VendorCode, VendorImport
from .pricing import record_price

logger = logging.getLogger(__name__)

NO_DATA_ERROR = "No valid data found in the file."
NO_COLUMNS_ERROR = "No valid columns found in the file."
NO_ROWS_ERROR = "File contains no valid data rows."

# (pattern, two-digit year)
SEPARATED_DATE_PATTERNS = [
    (re.compile(r'^(\d{1,2})-(\d{1,2})-(\d{4})$'), False),
    (re.compile(r'^(\d{1,2})-(\d{1,2})-(\d{2})$'), True),
    (re.compile(r'^(\d{1,2})_(\d{1,2})_(\d{4})$'), False),
    (re.compile(r'^(\d{1,2})_(\d{1,2})_(\d{2})$'), True),
    (re.compile(r'^(\d{2})(\d{2})(\d{4})$'), False),
    (re.compile(r'^(\d{2})(\d{2})(\d{2})$'), True),
]
ISO_DATE_PATTERN = re.compile(r'^(\d{4})-(\d{1,2})-(\d{1,2})$')


class CSVImportError(Exception):
    """Raised when an uploaded invoice file cannot be used"""
    pass


def detect_delimiter(first_line):
    """Comma unless tabs or semicolons strictly outnumber the other two"""
    first_line = first_line or ''
    commas = first_line.count(',')
    tabs = first_line.count('\t')
    semicolons = first_line.count(';')

    delimiter = ','
    if tabs > commas and tabs > semicolons:
        delimiter = '\t'
    if semicolons > commas and semicolons > tabs:
        delimiter = ';'
    return delimiter


def parse_invoice_csv(text):
    """
    Parse invoice CSV text into normalized rows.

    Returns a dict with 'headers', 'rows' (list of dicts keyed by the
    trimmed, lower-cased header names) and the detected 'delimiter'.
    Raises CSVImportError when the file has no usable content.
    """
    if text is None:
        raise CSVImportError(NO_DATA_ERROR)
    text = text.lstrip('\ufeff')

    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        raise CSVImportError(NO_DATA_ERROR)

    delimiter = detect_delimiter(lines[0])
    try:
        records = list(csv.reader(lines, delimiter=delimiter))
    except csv.Error as e:
        raise CSVImportError(f"Error parsing file: {e}")

    headers = [h.strip().lower() for h in records[0]]
    columns = [(index, name) for index, name in enumerate(headers) if name]
    if not columns:
        raise CSVImportError(NO_COLUMNS_ERROR)

    rows = []
    for record in records[1:]:
        row = {}
        for index, name in columns:
            value = record[index].strip() if index < len(record) else ''
            row[name] = value
        if any(value != '' for value in row.values()):
            rows.append(row)

    if not rows:
        raise CSVImportError(NO_ROWS_ERROR)

    logger.debug(f"Parsed invoice CSV: {len(rows)} rows, delimiter {delimiter!r}")
    return {
        'headers': [name for _, name in columns],
        'rows': rows,
        'delimiter': delimiter,
    }


def _safe_date(year, month, day):
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _two_years_before(today):
    try:
        return today.replace(year=today.year - 2)
    except ValueError:
        # Feb 29
        return today.replace(year=today.year - 2, day=28)


def detect_date_from_filename(filename, today=None):
    """
    Invoice date encoded in a file name such as '03-15-2024.csv'.

    Month-first is tried before day-first. Dates in the future or more than
    two years old are rejected. Returns a date or None.
    """
    if not filename:
        return None
    today = today or timezone.localdate()
    name = re.sub(r'\.[^/.]+$', '', filename.strip())

    detected = None
    match = ISO_DATE_PATTERN.match(name)
    if match:
        year, month, day = (int(part) for part in match.groups())
        detected = _safe_date(year, month, day)
    else:
        for pattern, short_year in SEPARATED_DATE_PATTERNS:
            match = pattern.match(name)
            if not match:
                continue
            part1, part2, year = (int(part) for part in match.groups())
            if short_year:
                year += 2000
            detected = _safe_date(year, part1, part2) or _safe_date(year, part2, part1)
            break

    if detected is None:
        return None
    if detected > today or detected < _two_years_before(today):
        return None
    return detected


def parse_price(value):
    """'$1,234.50' -> Decimal('1234.50'); anything unparsable is 0"""
    if value is None:
        return Decimal('0')
    cleaned = str(value).replace('$', '').replace(',', '').strip()
    if not cleaned:
        return Decimal('0')
    try:
        price = Decimal(cleaned)
    except InvalidOperation:
        return Decimal('0')
    if not price.is_finite():
        return Decimal('0')
    return price


def map_rows(rows, mapping):
    """
    Apply a vendor column mapping to parsed rows.

    mapping has the keys item_code, product_name, unit_price and
    unit_of_measure, each naming a CSV column (matched case-insensitively).
    Rows with neither an item code nor a product name are dropped.
    """
    columns = {key: (column or '').strip().lower() for key, column in mapping.items()}
    mapped = []
    for row in rows:
        item = {
            'item_code': row.get(columns.get('item_code'), '') if columns.get('item_code') else '',
            'product_name': row.get(columns.get('product_name'), '') if columns.get('product_name') else '',
            'unit_price': parse_price(row.get(columns.get('unit_price'))) if columns.get('unit_price') else Decimal('0'),
            'unit_of_measure': row.get(columns.get('unit_of_measure'), '') if columns.get('unit_of_measure') else '',
        }
        if not item['item_code'] and not item['product_name']:
            continue
        mapped.append(item)
    return mapped


def find_ingredient(organization, vendor_id, item_code):
    """Resolve an invoice item code through current vendor codes, then master ingredient codes"""
    if not item_code:
        return None, None
    vendor_code = VendorCode.objects.select_related('master_ingredient').filter(
        organization=organization,
        vendor_id=vendor_id,
        code=item_code,
        is_current=True,
    ).first()
    if vendor_code:
        return vendor_code.master_ingredient, vendor_code

    ingredient = MasterIngredient.objects.filter(
        organization=organization,
        item_code=item_code,
        vendor__iexact=vendor_id,
    ).first()
    return ingredient, None


def import_invoice_rows(organization, vendor_id, items, invoice_date=None, user=None, file_name=''):
    """
    Apply mapped invoice items.

    Known item codes get a price record; unknown ones are counted as new
    items. Returns the VendorImport row describing the run.
    """
    vendor_import = VendorImport.objects.create(
        organization=organization,
        vendor_id=vendor_id,
        import_type='csv',
        file_name=file_name or '',
        invoice_date=invoice_date,
        items_count=len(items),
        status='pending',
        created_by=user,
    )

    price_changes = 0
    new_items = 0
    try:
        with suspend_cache_signals(), transaction.atomic():
            for item in items:
                ingredient, vendor_code = find_ingredient(organization, vendor_id, item['item_code'])
                if ingredient is None:
                    new_items += 1
                    continue
                if item['unit_price'] <= 0:
                    logger.warning(f"Skipping zero price for {item['item_code']} in import {vendor_import.id}")
                    continue
                _, change = record_price(
                    ingredient,
                    vendor_id,
                    item['unit_price'],
                    effective_date=invoice_date,
                    vendor_code=vendor_code,
                    invoice=vendor_import,
                    user=user,
                )
                if change is not None and change.change_percent != 0:
                    price_changes += 1
    except Exception as e:
        vendor_import.status = 'failed'
        vendor_import.error_message = str(e)
        vendor_import.save(update_fields=['status', 'error_message'])
        logger.error(f"Invoice import {vendor_import.id} failed: {str(e)}")
        raise

    vendor_import.price_changes_count = price_changes
    vendor_import.new_items_count = new_items
    vendor_import.status = 'completed'
    vendor_import.save(update_fields=['price_changes_count', 'new_items_count', 'status'])
    invalidate_vendor_analytics_cache_manual()

    logger.info(
        f"Imported {len(items)} invoice items for {vendor_id}: "
        f"{price_changes} price changes, {new_items} new items"
    )
    return vendor_import
