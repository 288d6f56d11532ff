"""
Test suite for the reports module
Tests: dashboard summary numbers, per-user acknowledgement counts, caching
"""
from datetime import timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.vendors.models import VendorPriceChange
from backoffice.vendors.pricing import record_price


class DashboardSummaryTests(TestCase):
    """Test the dashboard summary endpoint"""

    def setUp(self):
        cache.clear()
        self.today = timezone.localdate()
        self.organization = TestDataFactory.create_organization()
        self.user, self.owner = TestDataFactory.create_user_with_role(self.organization, 'owner')
        TestDataFactory.create_member(self.organization)
        TestDataFactory.create_member(self.organization, is_active=False)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user, self.organization)
        self.url = f'/api/v1/reports/dashboard/?date={self.today.isoformat()}'

        TestDataFactory.create_task(self.organization, due_date=self.today)
        TestDataFactory.create_task(self.organization, due_date=self.today, status='completed')
        TestDataFactory.create_task(self.organization, due_date=self.today - timedelta(days=1))
        TestDataFactory.create_task(
            self.organization, due_date=self.today + timedelta(days=1), assignment_type='lottery', lottery=True,
        )
        # Completed overdue tasks are not overdue
        TestDataFactory.create_task(self.organization, due_date=self.today - timedelta(days=3), status='completed')

    def test_task_counts(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['date'], self.today.isoformat())
        self.assertEqual(response.data['tasks_today']['total'], 2)
        self.assertEqual(response.data['tasks_today']['by_status'],
                         {'pending': 1, 'in_progress': 0, 'completed': 1})
        self.assertEqual(response.data['overdue_tasks'], 1)
        self.assertEqual(response.data['lottery_pool'], 1)
        self.assertEqual(response.data['team_size'], 2)

    def test_unacknowledged_is_per_user(self):
        TestDataFactory.create_activity(self.organization)
        TestDataFactory.create_activity(self.organization, acknowledged_by=[str(self.user.id)])
        response = self.client.get(self.url)
        self.assertEqual(response.data['unacknowledged_activity'], 1)

        other_user, _ = TestDataFactory.create_user_with_role(self.organization, 'sous_chef')
        other_client = AuthenticatedAPIClient().authenticate_user(other_user, self.organization)
        response = other_client.get(self.url)
        self.assertEqual(response.data['unacknowledged_activity'], 2)

    def test_price_changes(self):
        ingredient = TestDataFactory.create_ingredient(self.organization)
        record_price(ingredient, 'Sysco', Decimal('10.00'))
        record_price(ingredient, 'Sysco', Decimal('12.00'))
        record_price(ingredient, 'Sysco', Decimal('11.00'))
        VendorPriceChange.objects.create(organization=self.organization, vendor_id='Sysco', product_name='Flat',
                                         old_price=Decimal('1'), new_price=Decimal('1'), change_percent=0)
        response = self.client.get(self.url)
        self.assertEqual(response.data['price_changes'],
                         {'days': 30, 'total': 2, 'increases': 1, 'decreases': 1})

    def test_summary_is_cached_until_invalidated(self):
        first = self.client.get(self.url).data
        TestDataFactory.create_task(self.organization, due_date=self.today)
        self.assertEqual(self.client.get(self.url).data['tasks_today']['total'], first['tasks_today']['total'])

        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_task(self.organization, due_date=self.today)
        self.assertEqual(self.client.get(self.url).data['tasks_today']['total'], 4)

    def test_bad_date(self):
        response = self.client.get('/api/v1/reports/dashboard/?date=tomorrow')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_requires_membership(self):
        outsider = TestDataFactory.create_user()
        client = AuthenticatedAPIClient().authenticate_user(outsider)
        response = client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
