"""
Comprehensive test suite for the vendors module
Tests: price recording and change derivation, vendor codes, CSV parsing, invoice import, analytics
"""
import shutil
import tempfile
from datetime import date
from decimal import Decimal

from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework import status

from backoffice.core.models import ActivityLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.vendors.csv_import import (
    NO_COLUMNS_ERROR, NO_DATA_ERROR, NO_ROWS_ERROR, CSVImportError, detect_date_from_filename,
    import_invoice_rows, map_rows, parse_invoice_csv, parse_price,
)
from backoffice.vendors.models import VendorCode, VendorImport, VendorPriceChange, VendorPriceHistory, VendorTemplate
from backoffice.vendors.pricing import (
    compute_change_percent, format_price_change, record_price, set_current_code, vendor_statistics,
)


class PriceChangeTests(TestCase):
    """Test price change math and presentation"""

    def test_change_percent(self):
        self.assertEqual(compute_change_percent(Decimal('10.00'), Decimal('11.00')), Decimal('10.00'))
        self.assertEqual(compute_change_percent(Decimal('3.00'), Decimal('1.00')), Decimal('-66.67'))

    def test_change_percent_requires_positive_old_price(self):
        with self.assertRaises(ValueError):
            compute_change_percent(Decimal('0'), Decimal('5.00'))

    def test_format_zero(self):
        self.assertEqual(format_price_change(0), {'value': 0.0, 'display': '0%', 'direction': 'none', 'color': 'gray'})

    def test_format_increase_is_rose(self):
        formatted = format_price_change(Decimal('12.34'))
        self.assertEqual(formatted['display'], '12.3%')
        self.assertEqual(formatted['direction'], 'up')
        self.assertEqual(formatted['color'], 'rose')

    def test_format_decrease_shows_absolute_value(self):
        formatted = format_price_change(Decimal('-8.00'))
        self.assertEqual(formatted['display'], '8.0%')
        self.assertEqual(formatted['direction'], 'down')
        self.assertEqual(formatted['color'], 'emerald')


class RecordPriceTests(TestCase):
    """Test price history and derived price changes"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.ingredient = TestDataFactory.create_ingredient(self.organization, product='Butter')

    def test_first_price_has_no_change(self):
        history, change = record_price(self.ingredient, 'Sysco', Decimal('40.00'))
        self.assertIsNone(change)
        self.assertEqual(history.price, Decimal('40.00'))
        self.ingredient.refresh_from_db()
        self.assertEqual(self.ingredient.current_price, Decimal('40.00'))

    def test_changed_price_creates_change(self):
        record_price(self.ingredient, 'Sysco', Decimal('40.00'), effective_date=date(2024, 1, 1))
        _, change = record_price(self.ingredient, 'Sysco', Decimal('44.00'), effective_date=date(2024, 2, 1))
        self.assertEqual(change.old_price, Decimal('40.00'))
        self.assertEqual(change.new_price, Decimal('44.00'))
        self.assertEqual(change.change_percent, Decimal('10.00'))
        self.assertEqual(change.product_name, 'Butter')

    def test_same_price_creates_no_change(self):
        record_price(self.ingredient, 'Sysco', Decimal('40.00'))
        _, change = record_price(self.ingredient, 'Sysco', Decimal('40.00'))
        self.assertIsNone(change)
        self.assertEqual(VendorPriceChange.objects.count(), 0)

    def test_previous_price_falls_back_to_current_price(self):
        ingredient = TestDataFactory.create_ingredient(self.organization, current_price=Decimal('10.00'))
        _, change = record_price(ingredient, 'Sysco', Decimal('12.00'))
        self.assertEqual(change.change_percent, Decimal('20.00'))

    def test_negative_price_rejected(self):
        with self.assertRaises(ValueError):
            record_price(self.ingredient, 'Sysco', Decimal('-1.00'))

    def test_history_uses_current_vendor_code(self):
        code = TestDataFactory.create_vendor_code(self.ingredient, code='BT-1')
        history, _ = record_price(self.ingredient, 'Sysco', Decimal('40.00'))
        self.assertEqual(history.vendor_code, code)


class VendorCodeTests(TestCase):
    """Test current vendor code bookkeeping"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.ingredient = TestDataFactory.create_ingredient(self.organization)

    def test_set_current_clears_others(self):
        old = TestDataFactory.create_vendor_code(self.ingredient, code='OLD')
        new = TestDataFactory.create_vendor_code(self.ingredient, code='NEW', is_current=False)
        set_current_code(new)
        old.refresh_from_db()
        new.refresh_from_db()
        self.assertFalse(old.is_current)
        self.assertTrue(new.is_current)

    def test_other_vendor_codes_untouched(self):
        sysco = TestDataFactory.create_vendor_code(self.ingredient, vendor_id='Sysco', code='S1')
        other = TestDataFactory.create_vendor_code(self.ingredient, vendor_id='US Foods', code='U1', is_current=False)
        set_current_code(other)
        sysco.refresh_from_db()
        self.assertTrue(sysco.is_current)


class CSVParsingTests(TestCase):
    """Test invoice CSV parsing helpers"""

    def test_semicolon_delimiter_and_bom(self):
        parsed = parse_invoice_csv("\ufeffItem Code;Description;Price\nA1;Butter;40.00\n")
        self.assertEqual(parsed['delimiter'], ';')
        self.assertEqual(parsed['headers'], ['item code', 'description', 'price'])
        self.assertEqual(parsed['rows'], [{'item code': 'A1', 'description': 'Butter', 'price': '40.00'}])

    def test_blank_lines_and_empty_rows_skipped(self):
        parsed = parse_invoice_csv("code,name\n\n  \nA1,Butter\n,\nB2,Milk\n")
        self.assertEqual([row['code'] for row in parsed['rows']], ['A1', 'B2'])

    def test_empty_header_columns_dropped(self):
        parsed = parse_invoice_csv("code,,name\nA1,x,Butter\n")
        self.assertEqual(parsed['headers'], ['code', 'name'])
        self.assertEqual(parsed['rows'][0], {'code': 'A1', 'name': 'Butter'})

    def test_error_messages(self):
        for text, message in (('', NO_DATA_ERROR), (',,\n1,2,3\n', NO_COLUMNS_ERROR), ('code,name\n', NO_ROWS_ERROR)):
            with self.assertRaises(CSVImportError) as ctx:
                parse_invoice_csv(text)
            self.assertEqual(str(ctx.exception), message)

    def test_parse_price(self):
        self.assertEqual(parse_price('$1,234.50'), Decimal('1234.50'))
        self.assertEqual(parse_price('n/a'), Decimal('0'))
        self.assertEqual(parse_price(None), Decimal('0'))

    def test_map_rows_drops_rows_without_code_or_name(self):
        rows = [
            {'code': 'A1', 'name': 'Butter', 'price': '$40.00'},
            {'code': '', 'name': '', 'price': '1.00'},
        ]
        items = map_rows(rows, {'item_code': 'Code', 'product_name': 'Name', 'unit_price': 'Price',
                                'unit_of_measure': ''})
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]['unit_price'], Decimal('40.00'))
        self.assertEqual(items[0]['unit_of_measure'], '')


class DateDetectionTests(TestCase):
    """Test invoice date detection from file names"""

    today = date(2024, 6, 1)

    def test_iso_date(self):
        self.assertEqual(detect_date_from_filename('2024-05-01.csv', self.today), date(2024, 5, 1))

    def test_month_first_then_day_first(self):
        self.assertEqual(detect_date_from_filename('03-15-2024.csv', self.today), date(2024, 3, 15))
        self.assertEqual(detect_date_from_filename('15-03-2024.csv', self.today), date(2024, 3, 15))
        self.assertEqual(detect_date_from_filename('03-04-2024.csv', self.today), date(2024, 3, 4))

    def test_compact_and_short_year(self):
        self.assertEqual(detect_date_from_filename('031524.csv', self.today), date(2024, 3, 15))
        self.assertEqual(detect_date_from_filename('3_15_24.csv', self.today), date(2024, 3, 15))

    def test_future_and_old_dates_rejected(self):
        self.assertIsNone(detect_date_from_filename('2024-07-01.csv', self.today))
        self.assertIsNone(detect_date_from_filename('2021-01-01.csv', self.today))

    def test_no_date(self):
        self.assertIsNone(detect_date_from_filename('invoice.csv', self.today))
        self.assertIsNone(detect_date_from_filename('', self.today))


class InvoiceImportTests(TestCase):
    """Test applying invoice items"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.user = TestDataFactory.create_user()
        self.butter = TestDataFactory.create_ingredient(self.organization, product='Butter',
                                                        current_price=Decimal('10.00'))
        TestDataFactory.create_vendor_code(self.butter, code='BT-1')
        self.milk = TestDataFactory.create_ingredient(self.organization, product='Milk', item_code='MK-1')

    def test_import_counts(self):
        items = [
            {'item_code': 'BT-1', 'product_name': 'Butter', 'unit_price': Decimal('11.00'), 'unit_of_measure': ''},
            {'item_code': 'MK-1', 'product_name': 'Milk', 'unit_price': Decimal('3.00'), 'unit_of_measure': ''},
            {'item_code': 'NEW-9', 'product_name': 'Saffron', 'unit_price': Decimal('90.00'), 'unit_of_measure': ''},
            {'item_code': 'MK-1', 'product_name': 'Milk', 'unit_price': Decimal('0'), 'unit_of_measure': ''},
        ]
        vendor_import = import_invoice_rows(self.organization, 'Sysco', items, invoice_date=date(2024, 5, 1),
                                            user=self.user, file_name='05-01-2024.csv')
        self.assertEqual(vendor_import.status, 'completed')
        self.assertEqual(vendor_import.items_count, 4)
        self.assertEqual(vendor_import.price_changes_count, 1)
        self.assertEqual(vendor_import.new_items_count, 1)
        self.assertEqual(VendorPriceHistory.objects.filter(invoice=vendor_import).count(), 2)
        self.butter.refresh_from_db()
        self.assertEqual(self.butter.current_price, Decimal('11.00'))


class VendorStatisticsTests(TestCase):
    """Test per-vendor analytics over trend rows"""

    def test_statistics(self):
        trends = [
            {'master_ingredient_id': 1, 'vendor_id': 'Sysco', 'price': 10.0, 'effective_date': '2024-01-01',
             'price_change_percent': 0.0},
            {'master_ingredient_id': 1, 'vendor_id': 'Sysco', 'price': 12.0, 'effective_date': '2024-02-01',
             'price_change_percent': 20.0},
            {'master_ingredient_id': 2, 'vendor_id': 'Sysco', 'price': 5.0, 'effective_date': '2024-01-01',
             'price_change_percent': -10.0},
        ]
        stats = vendor_statistics(trends)['Sysco']
        self.assertEqual(stats['total_items'], 2)
        self.assertEqual(stats['avg_increase'], 20.0)
        self.assertEqual(stats['avg_decrease'], 10.0)
        self.assertEqual(stats['total_changes'], 2)
        self.assertEqual(stats['overall_change'], 10.0)


class VendorAPITests(TestCase):
    """Test vendor endpoints"""

    def setUp(self):
        cache.clear()
        self.organization = TestDataFactory.create_organization()
        self.user, _ = TestDataFactory.create_user_with_role(self.organization, 'owner')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.ingredient = TestDataFactory.create_ingredient(self.organization, product='Butter')

    def test_create_current_code_replaces_previous(self):
        old = TestDataFactory.create_vendor_code(self.ingredient, code='OLD')
        response = self.client.post('/api/v1/vendor-codes/', {
            'master_ingredient': self.ingredient.id,
            'vendor_id': 'Sysco',
            'code': 'NEW',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        old.refresh_from_db()
        self.assertFalse(old.is_current)
        self.assertEqual(VendorCode.objects.filter(master_ingredient=self.ingredient, is_current=True).count(), 1)

    def test_update_code_to_current_replaces_previous(self):
        current = TestDataFactory.create_vendor_code(self.ingredient, code='A')
        other = TestDataFactory.create_vendor_code(self.ingredient, code='B', is_current=False)
        response = self.client.patch(f'/api/v1/vendor-codes/{other.id}/', {'is_current': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        current.refresh_from_db()
        self.assertFalse(current.is_current)
        self.assertEqual(VendorCode.objects.filter(master_ingredient=self.ingredient, is_current=True).get().id,
                         other.id)

    def test_set_current_endpoint(self):
        TestDataFactory.create_vendor_code(self.ingredient, code='A')
        other = TestDataFactory.create_vendor_code(self.ingredient, code='B', is_current=False)
        response = self.client.post(f'/api/v1/vendor-codes/{other.id}/set-current/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_current'])

    def test_record_price_logs_change(self):
        record_price(self.ingredient, 'Sysco', Decimal('20.00'))
        response = self.client.post('/api/v1/vendor-prices/', {
            'master_ingredient_id': self.ingredient.id,
            'vendor_id': 'Sysco',
            'price': '25.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['change']['formatted']['display'], '25.0%')
        self.assertTrue(ActivityLog.objects.filter(activity_type='price_changed').exists())

    def test_price_changes_exclude_zero(self):
        record_price(self.ingredient, 'Sysco', Decimal('20.00'))
        record_price(self.ingredient, 'Sysco', Decimal('22.00'))
        VendorPriceChange.objects.create(organization=self.organization, vendor_id='Sysco', product_name='Flat',
                                         old_price=Decimal('1'), new_price=Decimal('1'), change_percent=0)
        response = self.client.get('/api/v1/vendor-price-changes/')
        self.assertEqual([c['product_name'] for c in response.data], ['Butter'])

    def test_price_changes_days_bounds(self):
        for days in ('-5', '0', '1000000'):
            response = self.client.get(f'/api/v1/vendor-price-changes/?days={days}')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_analytics(self):
        record_price(self.ingredient, 'Sysco', Decimal('20.00'), effective_date=date(2024, 1, 1))
        record_price(self.ingredient, 'Sysco', Decimal('22.00'), effective_date=date(2024, 2, 1))
        response = self.client.get('/api/v1/vendor-analytics/?start_date=2024-01-01&end_date=2024-12-31')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['vendors']['Sysco']['total_changes'], 1)
        self.assertEqual(len(response.data['trends']), 2)

    def test_analytics_bad_date(self):
        response = self.client.get('/api/v1/vendor-analytics/?start_date=01/01/2024')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_upload_csv_preview_with_template(self):
        VendorTemplate.objects.create(organization=self.organization, vendor_id='Sysco', item_code_column='Code',
                                      product_name_column='Name', unit_price_column='Price')
        upload = SimpleUploadedFile('invoice.csv', b"Code,Name,Price\nA1,Butter,$40.00\n", content_type='text/csv')
        response = self.client.post('/api/v1/vendor-imports/upload-csv/', {
            'file': upload,
            'vendor_id': 'Sysco',
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['row_count'], 1)
        self.assertTrue(response.data['has_template'])
        self.assertEqual(response.data['items'][0]['unit_price'], '40.00')
        self.assertEqual(VendorImport.objects.count(), 0)

    def test_upload_empty_csv(self):
        upload = SimpleUploadedFile('invoice.csv', b"Code,Name\n", content_type='text/csv')
        response = self.client.post('/api/v1/vendor-imports/upload-csv/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], NO_ROWS_ERROR)

    def test_apply_rows_with_template(self):
        TestDataFactory.create_vendor_code(self.ingredient, code='A1')
        VendorTemplate.objects.create(organization=self.organization, vendor_id='Sysco', item_code_column='Code',
                                      product_name_column='Name', unit_price_column='Price')
        response = self.client.post('/api/v1/vendor-imports/import/', {
            'vendor_id': 'Sysco',
            'rows': [{'Code': 'A1', 'Name': 'Butter', 'Price': '40.00'}, {'Code': 'Z9', 'Name': 'New', 'Price': '1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(response.data['new_items_count'], 1)
        self.assertTrue(ActivityLog.objects.filter(activity_type='invoice_imported').exists())

    def test_apply_rows_without_template(self):
        response = self.client.post('/api/v1/vendor-imports/import/', {
            'vendor_id': 'Nobody',
            'rows': [{'Code': 'A1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_upload_pdf_creates_pending_import(self):
        media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, media_root, ignore_errors=True)
        upload = SimpleUploadedFile('scan.pdf', b'%PDF-1.4 test', content_type='application/pdf')
        with override_settings(MEDIA_ROOT=media_root):
            response = self.client.post('/api/v1/vendor-imports/upload-file/', {
                'file': upload,
                'vendor_id': 'Sysco',
                'import_type': 'pdf',
            }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['import_type'], 'pdf')

    def test_team_member_cannot_record_price(self):
        cook, _ = TestDataFactory.create_user_with_role(self.organization, 'team_member')
        client = AuthenticatedAPIClient().authenticate_user(cook)
        response = client.post('/api/v1/vendor-prices/', {
            'master_ingredient_id': self.ingredient.id, 'vendor_id': 'Sysco', 'price': '1.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
