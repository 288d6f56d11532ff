"""
Test suite for the core module
Tests: organization context, roles and permissions, team management, activity feed, caching helpers
"""
import os
import tempfile
from datetime import timedelta
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backoffice.core.activity import (
    acknowledge_activity, build_activity_feed, format_activity_details, format_activity_type,
    name_from_email, normalize_acknowledged, resolve_display_name,
)
from backoffice.core.cache_utils import cached_query, invalidate_cache_pattern, make_cache_key
from backoffice.core.models import ActivityLog, TeamMember
from backoffice.core.permissions import has_kitchen_permission, is_admin_role, role_permissions
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.core.utils import log_activity


class RolePermissionTests(TestCase):
    """Test the kitchen role matrix"""

    def test_admin_roles(self):
        self.assertTrue(is_admin_role('owner'))
        self.assertTrue(is_admin_role('dev'))
        self.assertFalse(is_admin_role('sous_chef'))

    def test_team_member_cannot_edit_settings(self):
        self.assertFalse(has_kitchen_permission('team_member', 'settings', 'edit'))
        self.assertTrue(has_kitchen_permission('team_member', 'production', 'create'))

    def test_sous_chef_cannot_delete_inventory(self):
        self.assertTrue(has_kitchen_permission('sous_chef', 'inventory', 'edit'))
        self.assertFalse(has_kitchen_permission('sous_chef', 'inventory', 'delete'))

    def test_unknown_role_has_no_permissions(self):
        self.assertEqual(role_permissions('chef_de_partie'), {})
        self.assertFalse(has_kitchen_permission('chef_de_partie', 'recipes', 'view'))


class OrganizationContextTests(TestCase):
    """Test organization resolution from the request"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.other_organization = TestDataFactory.create_organization()
        self.user, self.member = TestDataFactory.create_user_with_role(self.organization, 'owner')
        TestDataFactory.create_member(self.other_organization, user=self.user, kitchen_role='team_member',
                                      email='other@test.com')
        self.client = AuthenticatedAPIClient()

    def test_me_without_header_uses_first_membership(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['organization']['id'], self.organization.id)
        self.assertTrue(response.data['is_admin'])

    def test_me_with_header_selects_organization(self):
        self.client.authenticate_user(self.user, organization=self.other_organization)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.data['organization']['id'], self.other_organization.id)
        self.assertEqual(response.data['kitchen_role'], 'team_member')
        self.assertFalse(response.data['is_admin'])

    def test_user_without_membership_is_forbidden(self):
        outsider = TestDataFactory.create_user()
        self.client.authenticate_user(outsider)
        response = self.client.get('/api/v1/organizations/current/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unauthenticated_request_rejected(self):
        response = self.client.get('/api/v1/organizations/current/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_returns_tokens(self):
        response = self.client.post('/api/v1/auth/login/', {
            'username': self.user.username,
            'password': 'testpass123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)


class OrganizationSettingsTests(TestCase):
    """Test organization and operations settings endpoints"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization(name='Harbor Grill')
        self.owner, _ = TestDataFactory.create_user_with_role(self.organization, 'owner')
        self.cook, _ = TestDataFactory.create_user_with_role(self.organization, 'team_member')
        self.client = AuthenticatedAPIClient()

    def test_owner_updates_organization(self):
        self.client.authenticate_user(self.owner)
        response = self.client.patch('/api/v1/organizations/current/', {'currency': 'cad'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['currency'], 'CAD')
        self.assertTrue(ActivityLog.objects.filter(activity_type='settings_updated').exists())

    def test_invalid_currency_rejected(self):
        self.client.authenticate_user(self.owner)
        response = self.client.patch('/api/v1/organizations/current/', {'currency': 'dollars'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_team_member_cannot_update_organization(self):
        self.client.authenticate_user(self.cook)
        response = self.client.patch('/api/v1/organizations/current/', {'name': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_operations_settings_round_trip(self):
        self.client.authenticate_user(self.owner)
        response = self.client.patch('/api/v1/operations-settings/', {
            'kitchen_stations': ['Grill', 'Prep'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get('/api/v1/operations-settings/')
        self.assertEqual(response.data['kitchen_stations'], ['Grill', 'Prep'])

    def test_operations_settings_requires_list(self):
        self.client.authenticate_user(self.owner)
        response = self.client.patch('/api/v1/operations-settings/', {'vendors': 'Sysco'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_team_member_cannot_edit_operations_settings(self):
        self.client.authenticate_user(self.cook)
        response = self.client.patch('/api/v1/operations-settings/', {'vendors': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class TeamMemberAPITests(TestCase):
    """Test team member endpoints"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.owner, self.owner_member = TestDataFactory.create_user_with_role(self.organization, 'owner')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.owner)

    def test_create_member_logs_activity(self):
        response = self.client.post('/api/v1/team-members/', {
            'first_name': 'Ana',
            'last_name': 'Lopez',
            'email': 'Ana.Lopez@test.com',
            'kitchen_stations': ['Grill'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['email'], 'ana.lopez@test.com')
        self.assertEqual(response.data['role_label'], 'Team Member')
        log = ActivityLog.objects.get(activity_type='team_member_added')
        self.assertEqual(log.details['team_member']['first_name'], 'Ana')

    def test_duplicate_email_rejected(self):
        TestDataFactory.create_member(self.organization, email='dup@test.com')
        response = self.client.post('/api/v1/team-members/', {
            'first_name': 'Dup',
            'email': 'DUP@test.com',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)

    def test_same_email_allowed_in_other_organization(self):
        other = TestDataFactory.create_organization()
        TestDataFactory.create_member(other, email='shared@test.com')
        response = self.client.post('/api/v1/team-members/', {
            'first_name': 'Shared',
            'email': 'shared@test.com',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_filter_by_station(self):
        TestDataFactory.create_member(self.organization, first_name='Grillo', kitchen_stations=['Grill'])
        TestDataFactory.create_member(self.organization, first_name='Pastry', kitchen_stations=['Pastry'])
        response = self.client.get('/api/v1/team-members/?station=grill')
        names = [m['first_name'] for m in response.data]
        self.assertEqual(names, ['Grillo'])

    def test_cannot_remove_self(self):
        response = self.client.delete(f'/api/v1/team-members/{self.owner_member.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_remove_member(self):
        member = TestDataFactory.create_member(self.organization)
        response = self.client.delete(f'/api/v1/team-members/{member.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(TeamMember.objects.filter(pk=member.id).exists())
        self.assertTrue(ActivityLog.objects.filter(activity_type='team_member_removed').exists())

    def test_sous_chef_cannot_change_roles(self):
        chef, _ = TestDataFactory.create_user_with_role(self.organization, 'sous_chef')
        member = TestDataFactory.create_member(self.organization)
        client = AuthenticatedAPIClient().authenticate_user(chef)
        response = client.patch(f'/api/v1/team-members/{member.id}/', {'kitchen_role': 'owner'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_members_of_other_organization_not_visible(self):
        other = TestDataFactory.create_organization()
        stranger = TestDataFactory.create_member(other)
        response = self.client.get(f'/api/v1/team-members/{stranger.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class RoleAPITests(TestCase):
    """Test role listing and assignment"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.owner, _ = TestDataFactory.create_user_with_role(self.organization, 'owner')
        self.member = TestDataFactory.create_member(self.organization)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.owner)

    def test_role_list_ordered_by_level(self):
        response = self.client.get('/api/v1/roles/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([r['role'] for r in response.data],
                         ['dev', 'owner', 'sous_chef', 'supervisor', 'team_member'])

    def test_assign_role(self):
        response = self.client.post('/api/v1/roles/assign/', {
            'member_ids': [self.member.id],
            'role': 'supervisor',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.member.refresh_from_db()
        self.assertEqual(self.member.kitchen_role, 'supervisor')
        self.assertTrue(ActivityLog.objects.filter(activity_type='role_assigned').exists())

    def test_owner_cannot_assign_dev(self):
        response = self.client.post('/api/v1/roles/assign/', {
            'member_ids': [self.member.id],
            'role': 'dev',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_member_rejected(self):
        response = self.client.post('/api/v1/roles/assign/', {
            'member_ids': [self.member.id, 999999],
            'role': 'supervisor',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.member.refresh_from_db()
        self.assertEqual(self.member.kitchen_role, 'team_member')

    def test_non_admin_forbidden(self):
        cook, _ = TestDataFactory.create_user_with_role(self.organization, 'team_member')
        client = AuthenticatedAPIClient().authenticate_user(cook)
        self.assertEqual(client.get('/api/v1/roles/').status_code, status.HTTP_403_FORBIDDEN)


class ActivityHelperTests(TestCase):
    """Test activity formatting and name resolution"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()

    def test_normalize_acknowledged_shapes(self):
        self.assertEqual(normalize_acknowledged(None), [])
        self.assertEqual(normalize_acknowledged('["1", 2]'), ['1', '2'])
        self.assertEqual(normalize_acknowledged({'0': 5, '1': 5}), ['5'])
        self.assertEqual(normalize_acknowledged('not json'), [])

    def test_format_activity_type(self):
        self.assertEqual(format_activity_type('task_assigned_to_station'), 'Task Assigned To Station')
        self.assertEqual(format_activity_type(''), 'Activity')

    def test_format_activity_details_prefers_task_title(self):
        self.assertEqual(format_activity_details({'name': 'Onions', 'task_title': 'Dice onions'}), 'Dice onions')
        self.assertEqual(format_activity_details({}), '')

    def test_name_from_email(self):
        self.assertEqual(name_from_email('john.smith@example.com'), 'John Smith')

    def test_display_name_from_details(self):
        log = TestDataFactory.create_activity(self.organization, details={'user_name': 'Chef Ana'})
        self.assertEqual(resolve_display_name(log), 'Chef Ana')

    def test_display_name_from_team_member_row(self):
        user = TestDataFactory.create_user(email='cook@test.com')
        TestDataFactory.create_member(self.organization, user=user, first_name='Marco', last_name='Diaz')
        log = TestDataFactory.create_activity(self.organization, user=user)
        self.assertEqual(resolve_display_name(log, user_to_name={user.id: 'Marco Diaz'}), 'Marco Diaz')

    def test_display_name_falls_back_to_email_then_system(self):
        user = TestDataFactory.create_user(email='jane.doe@test.com')
        log = TestDataFactory.create_activity(self.organization, user=user)
        self.assertEqual(resolve_display_name(log), 'Jane Doe')
        system_log = TestDataFactory.create_activity(self.organization)
        self.assertEqual(resolve_display_name(system_log), 'System')

    def test_log_activity_never_raises(self):
        self.assertIsNone(log_activity(organization=None, activity_type='task_created'))
        self.assertIsNone(log_activity(organization=self.organization, activity_type=None))


class ActivityFeedTests(TestCase):
    """Test the activity feed and acknowledgement"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.user, _ = TestDataFactory.create_user_with_role(self.organization, 'owner')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def _backdate(self, log, days):
        ActivityLog.objects.filter(pk=log.pk).update(created_at=timezone.now() - timedelta(days=days))

    def test_feed_is_oldest_first_within_window(self):
        newest = TestDataFactory.create_activity(self.organization, details={'task_title': 'Newest'})
        oldest = TestDataFactory.create_activity(self.organization, details={'task_title': 'Oldest'})
        expired = TestDataFactory.create_activity(self.organization, details={'task_title': 'Expired'})
        self._backdate(newest, 1)
        self._backdate(oldest, 3)
        self._backdate(expired, 20)

        activities, review_count = build_activity_feed(self.organization, self.user, days=14)
        self.assertEqual([a['id'] for a in activities], [oldest.id, newest.id])
        self.assertEqual(review_count, 2)
        self.assertEqual(activities[0]['message'], 'Task Created: Oldest')

    def test_feed_keeps_latest_entries_when_over_limit(self):
        logs = [TestDataFactory.create_activity(self.organization) for _ in range(55)]
        for age, log in enumerate(reversed(logs)):
            ActivityLog.objects.filter(pk=log.pk).update(created_at=timezone.now() - timedelta(minutes=age + 1))

        activities, review_count = build_activity_feed(self.organization, self.user, days=14)
        ids = [a['id'] for a in activities]
        self.assertEqual(len(ids), 50)
        self.assertEqual(ids, [log.id for log in logs[5:]])
        self.assertNotIn(logs[0].id, ids)
        self.assertEqual(review_count, 50)

    def test_hide_acknowledged(self):
        seen = TestDataFactory.create_activity(self.organization, acknowledged_by=[str(self.user.id)])
        unseen = TestDataFactory.create_activity(self.organization)
        response = self.client.get('/api/v1/activity-logs/?show_acknowledged=false')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ids = [a['id'] for a in response.data['results']]
        self.assertEqual(ids, [unseen.id])
        self.assertNotIn(seen.id, ids)
        self.assertEqual(response.data['review_count'], 1)

    def test_invalid_days(self):
        response = self.client.get('/api/v1/activity-logs/?days=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_days_out_of_range(self):
        for days in ('0', '1000000'):
            response = self.client.get(f'/api/v1/activity-logs/?days={days}')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_acknowledge_is_idempotent(self):
        log = TestDataFactory.create_activity(self.organization)
        acknowledge_activity(log.id, self.user.id)
        acknowledge_activity(log.id, self.user.id)
        log.refresh_from_db()
        self.assertEqual(log.acknowledged_by, [str(self.user.id)])

    def test_acknowledge_endpoint(self):
        log = TestDataFactory.create_activity(self.organization)
        response = self.client.post(f'/api/v1/activity-logs/{log.id}/acknowledge/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_acknowledged'])

    def test_cannot_acknowledge_other_organization_activity(self):
        other = TestDataFactory.create_organization()
        log = TestDataFactory.create_activity(other)
        response = self.client.post(f'/api/v1/activity-logs/{log.id}/acknowledge/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class CacheUtilsTests(TestCase):
    """Test caching helpers on the local-memory backend"""

    def setUp(self):
        cache.clear()

    def test_make_cache_key_is_stable(self):
        self.assertEqual(make_cache_key('p', 1, a=2), make_cache_key('p', 1, a=2))
        self.assertNotEqual(make_cache_key('p', 1), make_cache_key('p', 2))
        self.assertTrue(make_cache_key('p', 1).startswith('p:'))

    def test_cached_query_hits_cache(self):
        calls = []

        @cached_query(cache_ttl=60, key_prefix='test_counter')
        def counter(value):
            calls.append(value)
            return value * 2

        self.assertEqual(counter(2), 4)
        self.assertEqual(counter(2), 4)
        self.assertEqual(calls, [2])

        invalidate_cache_pattern('test_counter')
        self.assertEqual(counter(2), 4)
        self.assertEqual(calls, [2, 2])


class ImportTeamMembersCommandTests(TestCase):
    """Test the import_team_members management command"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()

    def _write_csv(self, content):
        handle, path = tempfile.mkstemp(suffix='.csv')
        with os.fdopen(handle, 'w', encoding='utf-8') as f:
            f.write(content)
        self.addCleanup(os.remove, path)
        return path

    def test_imports_rows_and_skips_duplicates(self):
        path = self._write_csv(
            "first_name,last_name,email,kitchen_role,kitchen_stations\n"
            "Ana,Lopez,ana@test.com,sous_chef,Grill;Prep\n"
            "Ana,Again,ANA@test.com,,\n"
            ",,,,\n"
            "Ben,Ray,,wizard,\n"
        )
        call_command('import_team_members', path, organization=self.organization.id, stdout=StringIO())

        members = TeamMember.objects.filter(organization=self.organization).order_by('first_name')
        self.assertEqual(members.count(), 2)
        ana, ben = members
        self.assertEqual(ana.kitchen_role, 'sous_chef')
        self.assertEqual(ana.kitchen_stations, ['Grill', 'Prep'])
        self.assertEqual(ben.kitchen_role, 'team_member')

    def test_missing_file(self):
        with self.assertRaises(CommandError):
            call_command('import_team_members', '/nonexistent.csv', organization=self.organization.id,
                         stdout=StringIO())

    def test_unknown_organization(self):
        path = self._write_csv("first_name\nAna\n")
        with self.assertRaises(CommandError):
            call_command('import_team_members', path, organization=999999, stdout=StringIO())
