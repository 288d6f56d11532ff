"""
Comprehensive test suite for the production module
Tests: assignment, lottery claims, task timer, kanban board, prep systems, templates, prep lists, auto-advance
"""
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backoffice.core.models import ActivityLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.production import prep_systems, timer
from backoffice.production.assignment import (
    DirectAssignment, LotteryAssignment, StationAssignment, Unassigned, assign_to_lottery, assign_to_station,
    assign_to_team_member, assignment_from_task, claim_lottery_task, unassign,
)
from backoffice.production.board import (
    advance_overdue_tasks, auto_advance_note, board_days, group_tasks_by_day, move_task, parse_drag_id,
)
from backoffice.production.models import PrepList, PrepListTemplateTask, Task
from backoffice.production.templates import (
    complete_prep_list, create_task_from_template, create_task_from_template_task,
    generate_prep_list_from_template, generate_scheduled_prep_lists, reorder_template_tasks, scheduled_dates,
)


class AssignmentTests(TestCase):
    """Test that a task is held by exactly one assignment kind"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        TestDataFactory.create_operations_settings(self.organization, kitchen_stations=['Grill', 'Pastry'])
        self.member = TestDataFactory.create_member(self.organization, first_name='Ana')
        self.task = TestDataFactory.create_task(self.organization, title='Dice onions')

    def assertOnlyAssignment(self, task, expected):
        task.refresh_from_db()
        self.assertEqual(assignment_from_task(task), expected)
        set_fields = [
            bool(task.assignee_id),
            bool(task.assignee_station),
            task.lottery,
        ]
        self.assertLessEqual(sum(set_fields), 1)

    def test_station_then_member_then_lottery(self):
        assign_to_station(self.task, 'Grill')
        self.assertOnlyAssignment(self.task, StationAssignment('Grill'))

        assign_to_team_member(self.task, self.member)
        self.assertOnlyAssignment(self.task, DirectAssignment(self.member.id))

        assign_to_lottery(self.task)
        self.assertOnlyAssignment(self.task, LotteryAssignment())

        unassign(self.task)
        self.assertOnlyAssignment(self.task, Unassigned())

    def test_station_name_required_and_known(self):
        with self.assertRaises(ValueError) as ctx:
            assign_to_station(self.task, '   ')
        self.assertEqual(str(ctx.exception), "Station name is required")
        with self.assertRaises(ValueError):
            assign_to_station(self.task, 'Sauté')

    def test_member_from_other_organization_rejected(self):
        other = TestDataFactory.create_member(TestDataFactory.create_organization())
        with self.assertRaises(ValueError):
            assign_to_team_member(self.task, other)

    def test_inactive_member_rejected(self):
        inactive = TestDataFactory.create_member(self.organization, is_active=False)
        with self.assertRaises(ValueError):
            assign_to_team_member(self.task, inactive)

    def test_legacy_rows_inferred(self):
        legacy = TestDataFactory.create_task(self.organization, assignee_station='Pastry', lottery=True)
        self.assertEqual(assignment_from_task(legacy), StationAssignment('Pastry'))
        legacy = TestDataFactory.create_task(self.organization, assignee=self.member)
        self.assertEqual(assignment_from_task(legacy), DirectAssignment(self.member.id))
        legacy = TestDataFactory.create_task(self.organization, lottery=True)
        self.assertEqual(assignment_from_task(legacy), LotteryAssignment())

    def test_assignment_logged(self):
        assign_to_station(self.task, 'Grill')
        activity = ActivityLog.objects.get(activity_type='task_assigned_to_station')
        self.assertEqual(activity.details['station'], 'Grill')
        self.assertEqual(activity.details['task_id'], str(self.task.id))


class LotteryClaimTests(TestCase):
    """Test lottery pool claims"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.first = TestDataFactory.create_member(self.organization)
        self.second = TestDataFactory.create_member(self.organization)
        self.task = TestDataFactory.create_task(self.organization)
        assign_to_lottery(self.task)

    def test_claim_assigns_member(self):
        claim_lottery_task(self.task, self.first)
        self.task.refresh_from_db()
        self.assertEqual(self.task.assignment_type, 'direct')
        self.assertEqual(self.task.assignee_id, self.first.id)
        self.assertEqual(self.task.claimed_by_id, self.first.id)
        self.assertIsNotNone(self.task.claimed_at)
        self.assertFalse(self.task.lottery)

    def test_second_claim_loses(self):
        stale = Task.objects.get(pk=self.task.pk)
        claim_lottery_task(self.task, self.first)
        with self.assertRaises(ValueError) as ctx:
            claim_lottery_task(stale, self.second)
        self.assertEqual(str(ctx.exception), "Task has already been claimed")
        self.task.refresh_from_db()
        self.assertEqual(self.task.assignee_id, self.first.id)

    def test_non_lottery_task_cannot_be_claimed(self):
        task = TestDataFactory.create_task(self.organization)
        with self.assertRaises(ValueError):
            claim_lottery_task(task, self.first)

    def test_completed_task_cannot_enter_lottery(self):
        task = TestDataFactory.create_task(self.organization, status='completed')
        with self.assertRaises(ValueError):
            assign_to_lottery(task)


class TimerTests(TestCase):
    """Test the persisted task timer"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.member = TestDataFactory.create_member(self.organization)
        self.task = TestDataFactory.create_assigned_task(self.organization, self.member)

    def rewind_start(self, seconds):
        started_at = timezone.now() - timedelta(seconds=seconds)
        Task.objects.filter(pk=self.task.pk).update(started_at=started_at)
        self.task.refresh_from_db()

    def test_unassigned_task_rejected(self):
        task = TestDataFactory.create_task(self.organization)
        with self.assertRaises(ValueError) as ctx:
            timer.start(task)
        self.assertEqual(str(ctx.exception), "Task must be assigned before starting")
        with self.assertRaises(ValueError) as ctx:
            timer.complete(task)
        self.assertEqual(str(ctx.exception), "Task must be assigned before completing")

    def test_station_task_rejected(self):
        task = TestDataFactory.create_task(self.organization, assignment_type='station', assignee_station='Grill')
        with self.assertRaises(ValueError):
            timer.start(task)

    def test_start_sets_in_progress(self):
        timer.start(self.task)
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, 'in_progress')
        self.assertTrue(self.task.is_running)
        with self.assertRaises(ValueError):
            timer.start(self.task)

    def test_elapsed_survives_reload(self):
        timer.start(self.task)
        self.rewind_start(120)
        reloaded = Task.objects.get(pk=self.task.pk)
        self.assertGreaterEqual(timer.elapsed(reloaded), 120)
        self.assertLess(timer.elapsed(reloaded), 130)

    def test_pause_resume_complete_accumulates(self):
        timer.start(self.task)
        self.rewind_start(60)
        timer.pause(self.task)
        self.task.refresh_from_db()
        self.assertFalse(self.task.is_running)
        paused_elapsed = self.task.elapsed_seconds
        self.assertGreaterEqual(paused_elapsed, 60)
        self.assertEqual(timer.elapsed(self.task), paused_elapsed)

        with self.assertRaises(ValueError):
            timer.pause(self.task)

        timer.resume(self.task)
        self.task.refresh_from_db()
        self.assertTrue(self.task.is_running)
        self.assertEqual(self.task.elapsed_seconds, paused_elapsed)

        timer.complete(self.task, member=self.member)
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, 'completed')
        self.assertGreaterEqual(self.task.elapsed_seconds, paused_elapsed)
        self.assertEqual(self.task.completed_by_id, self.member.id)
        self.assertIsNotNone(self.task.completed_at)

    def test_resume_requires_pause(self):
        with self.assertRaises(ValueError):
            timer.resume(self.task)

    def test_stop_resets(self):
        timer.start(self.task)
        self.rewind_start(30)
        timer.stop(self.task)
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, 'pending')
        self.assertEqual(self.task.elapsed_seconds, 0)
        self.assertIsNone(self.task.started_at)
        self.assertIsNotNone(self.task.stopped_at)
        self.assertEqual(timer.elapsed(self.task), 0)

    def test_timer_activity(self):
        timer.start(self.task)
        timer.pause(self.task)
        timer.resume(self.task)
        types = list(ActivityLog.objects.order_by('created_at', 'id').values_list('activity_type', flat=True))
        self.assertEqual(types, ['task_started', 'task_paused', 'task_started'])

    def test_unknown_action(self):
        with self.assertRaises(ValueError):
            timer.run_action(self.task, 'rewind')


class BoardTests(TestCase):
    """Test the kanban board helpers"""

    def test_board_days(self):
        self.assertEqual(board_days(date(2024, 6, 30), 3), ['2024-06-30', '2024-07-01', '2024-07-02'])

    def test_group_orders_by_sequence_priority_title(self):
        days = ['2024-06-03', '2024-06-04']
        tasks = [
            {'id': 'a', 'title': 'zest', 'due_date': '2024-06-03', 'sequence': 0, 'priority': 'low'},
            {'id': 'b', 'title': 'Bake', 'due_date': '2024-06-03', 'sequence': 0, 'priority': 'high'},
            {'id': 'c', 'title': 'apples', 'due_date': date(2024, 6, 3), 'sequence': 0, 'priority': 'low'},
            {'id': 'd', 'title': 'First', 'due_date': '2024-06-03', 'sequence': -1, 'priority': 'low'},
            {'id': 'e', 'title': 'Elsewhere', 'due_date': '2024-06-09', 'sequence': 0, 'priority': 'low'},
        ]
        board = group_tasks_by_day(tasks, days)
        self.assertEqual([t['id'] for t in board['2024-06-03']], ['d', 'b', 'c', 'a'])
        self.assertEqual(board['2024-06-04'], [])
        self.assertNotIn('2024-06-09', board)

    def test_parse_drag_id(self):
        self.assertEqual(parse_drag_id('abc:2024-06-03:2'), ('abc', '2024-06-03', 2))
        for bad in ('abc:2024-06-03', 'abc:june:1', 'abc:2024-06-03:x', 'abc:2024-06-03:-1', ':2024-06-03:1',
                    'a:b:c:d', None):
            with self.assertRaises(ValueError):
                parse_drag_id(bad)

    def test_move_task(self):
        board = {
            '2024-06-03': [{'id': 'a', 'due_date': '2024-06-03'}, {'id': 'b', 'due_date': '2024-06-03'}],
            '2024-06-04': [],
        }
        move_task(board, 'a', '2024-06-03', '2024-06-04')
        self.assertEqual([t['id'] for t in board['2024-06-03']], ['b'])
        self.assertEqual(board['2024-06-04'], [{'id': 'a', 'due_date': '2024-06-04'}])

    def test_move_same_day_is_noop(self):
        board = {'2024-06-03': [{'id': 'a', 'due_date': '2024-06-03'}]}
        move_task(board, 'a', '2024-06-03', '2024-06-03')
        self.assertEqual(board, {'2024-06-03': [{'id': 'a', 'due_date': '2024-06-03'}]})

    def test_move_missing_task(self):
        with self.assertRaises(KeyError):
            move_task({'2024-06-03': []}, 'a', '2024-06-03', '2024-06-04')


class AutoAdvanceTests(TestCase):
    """Test moving overdue auto-advance tasks to today"""

    today = date(2024, 6, 10)

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.overdue = TestDataFactory.create_task(
            self.organization, title='Stock', due_date=date(2024, 6, 8), auto_advance=True, description='Veal',
        )
        self.not_flagged = TestDataFactory.create_task(self.organization, due_date=date(2024, 6, 8))
        self.completed = TestDataFactory.create_task(
            self.organization, due_date=date(2024, 6, 8), auto_advance=True, status='completed',
        )
        self.current = TestDataFactory.create_task(self.organization, due_date=self.today, auto_advance=True)

    def test_only_overdue_incomplete_flagged_tasks_move(self):
        advanced = advance_overdue_tasks(organization=self.organization, today=self.today)
        self.assertEqual([task.pk for task in advanced], [self.overdue.pk])

        self.overdue.refresh_from_db()
        self.assertEqual(self.overdue.due_date, self.today)
        self.assertEqual(
            self.overdue.description, f"Veal\n{auto_advance_note('2024-06-08', '2024-06-10')}"
        )
        self.not_flagged.refresh_from_db()
        self.completed.refresh_from_db()
        self.assertEqual(self.not_flagged.due_date, date(2024, 6, 8))
        self.assertEqual(self.completed.due_date, date(2024, 6, 8))
        self.assertTrue(ActivityLog.objects.filter(activity_type='task_auto_advanced').exists())

    def test_empty_description_gets_note_only(self):
        task = TestDataFactory.create_task(self.organization, due_date=date(2024, 6, 1), auto_advance=True)
        advance_overdue_tasks(organization=self.organization, today=self.today)
        task.refresh_from_db()
        self.assertEqual(task.description, '[Auto-advanced from 2024-06-01 to 2024-06-10]')

    def test_other_organization_untouched(self):
        other = TestDataFactory.create_task(
            TestDataFactory.create_organization(), due_date=date(2024, 6, 8), auto_advance=True,
        )
        advance_overdue_tasks(organization=self.organization, today=self.today)
        other.refresh_from_db()
        self.assertEqual(other.due_date, date(2024, 6, 8))

    def test_command(self):
        out = StringIO()
        call_command('advance_tasks', '--date', '2024-06-10', stdout=out)
        self.assertIn('Advanced 1 tasks', out.getvalue())

    def test_command_bad_date(self):
        with self.assertRaises(CommandError):
            call_command('advance_tasks', '--date', '10/06/2024', stdout=StringIO())


class PrepSystemTests(TestCase):
    """Test prep system quantities"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.task = TestDataFactory.create_task(self.organization)

    def test_amount_required_never_negative(self):
        self.assertEqual(prep_systems.compute_amount_required(10, 4), Decimal('6'))
        self.assertEqual(prep_systems.compute_amount_required(10, 12), Decimal('0'))

    def test_update_levels_writes_amount(self):
        self.task.prep_system = 'par'
        self.task.save()
        prep_systems.update_levels(self.task, '10', '4.5')
        self.task.refresh_from_db()
        self.assertEqual(self.task.par_level, Decimal('10.00'))
        self.assertEqual(self.task.current_level, Decimal('4.50'))
        self.assertEqual(self.task.amount_required, Decimal('5.50'))

    def test_update_levels_keeps_amount_outside_par(self):
        prep_systems.update_amount(self.task, '8')
        prep_systems.update_levels(self.task, '10', '4')
        self.task.refresh_from_db()
        self.assertEqual(self.task.par_level, Decimal('10.00'))
        self.assertEqual(self.task.amount_required, Decimal('8.00'))

    def test_update_levels_rejects_negative(self):
        with self.assertRaises(ValueError):
            prep_systems.update_levels(self.task, '-1', '0')
        with self.assertRaises(ValueError):
            prep_systems.update_levels(self.task, 'lots', '0')

    def test_update_cases(self):
        prep_systems.update_cases(self.task, 2, 3, units_per_case=12)
        self.task.refresh_from_db()
        self.assertEqual((self.task.cases, self.task.units, self.task.units_per_case), (2, 3, 12))
        self.assertEqual(self.task.amount_required, Decimal('27'))

    def test_change_to_par_recomputes(self):
        Task.objects.filter(pk=self.task.pk).update(par_level=8, current_level=3, amount_required=99)
        self.task.refresh_from_db()
        prep_systems.change_prep_system(self.task, 'par')
        self.task.refresh_from_db()
        self.assertEqual(self.task.prep_system, 'par')
        self.assertEqual(self.task.amount_required, Decimal('5.00'))
        self.assertEqual(self.task.par_level, Decimal('8.00'))
        self.assertTrue(ActivityLog.objects.filter(activity_type='task_prep_system_changed').exists())

    def test_unknown_prep_system(self):
        with self.assertRaises(ValueError):
            prep_systems.change_prep_system(self.task, 'just_in_time')


class TemplateTests(TestCase):
    """Test template copying, prep list generation and scheduling"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        TestDataFactory.create_operations_settings(self.organization, kitchen_stations=['Grill', 'Pastry'])
        self.user, self.member = TestDataFactory.create_user_with_role(self.organization, 'owner')
        self.template = TestDataFactory.create_template(
            self.organization, title='AM Prep', tasks=3, prep_system='par', station='Grill',
        )
        self.template_tasks = list(self.template.tasks.all())

    def test_task_from_template_task_uses_par_levels(self):
        first = self.template_tasks[0]
        self.template.par_levels = {str(first.id): '12'}
        self.template.save()
        first.refresh_from_db()

        task = create_task_from_template_task(first, date(2024, 6, 3), assigning_member=self.member)
        task.refresh_from_db()
        self.assertEqual(task.par_level, Decimal('12'))
        self.assertEqual(task.amount_required, Decimal('12'))
        self.assertEqual(task.assignment_type, 'station')
        self.assertEqual(task.assignee_station, 'Grill')
        self.assertEqual(task.source, 'prep_list')
        self.assertEqual(task.template_task, first)

    def test_template_as_single_task(self):
        self.template.station = ''
        self.template.kitchen_stations = ['Pastry']
        self.template.par_levels = {str(self.template.id): 4}
        self.template.save()
        task = create_task_from_template(self.template, date(2024, 6, 3))
        self.assertEqual(task.title, 'AM Prep')
        self.assertEqual(task.assignee_station, 'Pastry')
        self.assertEqual(task.source, 'production')
        self.assertEqual(task.amount_required, Decimal('4'))

    def test_generate_prep_list(self):
        prep_list, tasks = generate_prep_list_from_template(
            self.template, date(2024, 6, 3), assigned_to='Pastry', user=self.user,
        )
        self.assertEqual(prep_list.status, 'active')
        self.assertEqual(len(tasks), 3)
        self.assertEqual(len({task.id for task in tasks}), 3)
        self.assertEqual([task.sequence for task in tasks], [1, 2, 3])
        self.assertTrue(all(task.assignee_station == 'Pastry' for task in tasks))
        self.assertTrue(all(task.prep_list_id == prep_list.id for task in tasks))
        self.assertTrue(ActivityLog.objects.filter(activity_type='prep_list_generated').exists())

    def test_generate_for_member(self):
        _, tasks = generate_prep_list_from_template(self.template, date(2024, 6, 3), assigned_to=str(self.member.id))
        self.assertTrue(all(task.assignee_id == self.member.id for task in tasks))

    def test_generate_rejects_unknown_station_atomically(self):
        with self.assertRaises(ValueError):
            generate_prep_list_from_template(self.template, date(2024, 6, 3), assigned_to='Bar')
        self.assertEqual(PrepList.objects.count(), 0)
        self.assertEqual(Task.objects.count(), 0)

    def test_inactive_template(self):
        self.template.is_active = False
        self.template.save()
        with self.assertRaises(ValueError):
            generate_prep_list_from_template(self.template, date(2024, 6, 3))

    def test_reorder_is_contiguous(self):
        ids = [task.id for task in reversed(self.template_tasks)]
        reorder_template_tasks(self.template, ids)
        sequences = dict(PrepListTemplateTask.objects.filter(template=self.template).values_list('id', 'sequence'))
        self.assertEqual([sequences[task_id] for task_id in ids], [1, 2, 3])

    def test_partial_reorder_renumbers_remaining_tasks(self):
        first, second, third = self.template_tasks
        ordered = reorder_template_tasks(self.template, [third.id])
        self.assertEqual([task.id for task in ordered], [third.id, first.id, second.id])
        sequences = dict(PrepListTemplateTask.objects.filter(template=self.template).values_list('id', 'sequence'))
        self.assertEqual([sequences[third.id], sequences[first.id], sequences[second.id]], [1, 2, 3])

    def test_reorder_rejects_duplicates_and_foreign_ids(self):
        ids = [task.id for task in self.template_tasks]
        with self.assertRaises(ValueError):
            reorder_template_tasks(self.template, [ids[0], ids[0]])
        other = TestDataFactory.create_template(self.organization, tasks=1)
        with self.assertRaises(ValueError):
            reorder_template_tasks(self.template, ids + [other.tasks.first().id])

    def test_scheduled_dates_sunday_first(self):
        self.template.schedule_days = [0, 3]
        # 2024-06-02 is a Sunday
        self.assertEqual(
            scheduled_dates(self.template, date(2024, 6, 2), 7),
            [date(2024, 6, 2), date(2024, 6, 5)],
        )

    def test_generate_scheduled_prep_lists(self):
        self.template.schedule_days = [0, 3]
        self.template.advance_days = 1
        self.template.station = ''
        self.template.save()

        created = generate_scheduled_prep_lists(self.template, date(2024, 6, 2), 7)
        self.assertEqual([prep_list.date for prep_list in created], [date(2024, 6, 2), date(2024, 6, 5)])
        due_dates = sorted(set(Task.objects.filter(prep_list__in=created).values_list('due_date', flat=True)))
        self.assertEqual(due_dates, [date(2024, 6, 1), date(2024, 6, 4)])

        self.assertEqual(generate_scheduled_prep_lists(self.template, date(2024, 6, 2), 7), [])

    def test_complete_prep_list(self):
        prep_list, tasks = generate_prep_list_from_template(self.template, date(2024, 6, 3))
        Task.objects.filter(pk=tasks[0].pk).update(status='completed')

        prep_list, completed = complete_prep_list(prep_list, member=self.member, user=self.user)
        self.assertEqual(completed, 2)
        self.assertEqual(prep_list.status, 'completed')
        self.assertFalse(Task.objects.filter(prep_list=prep_list).exclude(status='completed').exists())
        with self.assertRaises(ValueError):
            complete_prep_list(prep_list)


class TaskAPITests(TestCase):
    """Test board task endpoints"""

    def setUp(self):
        cache.clear()
        self.organization = TestDataFactory.create_organization()
        TestDataFactory.create_operations_settings(self.organization, kitchen_stations=['Grill'])
        self.user, self.owner = TestDataFactory.create_user_with_role(self.organization, 'owner')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user, self.organization)
        self.cook_user, self.cook = TestDataFactory.create_user_with_role(self.organization, 'team_member')
        self.cook_client = AuthenticatedAPIClient().authenticate_user(self.cook_user, self.organization)

    def test_create_task_with_station(self):
        response = self.client.post('/api/v1/tasks/', {
            'title': 'Slice bread',
            'due_date': '2024-06-03',
            'priority': 'high',
            'assignment_type': 'station',
            'assignee_station': 'Grill',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['assignment_type'], 'station')
        self.assertEqual(response.data['assignee_station'], 'Grill')
        self.assertEqual(response.data['assigning_member'], self.owner.id)
        self.assertTrue(ActivityLog.objects.filter(activity_type='task_created').exists())

    def test_create_with_unknown_station_rolls_back(self):
        response = self.client.post('/api/v1/tasks/', {
            'title': 'Slice bread',
            'due_date': '2024-06-03',
            'assignment_type': 'station',
            'assignee_station': 'Bar',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Task.objects.exists())

    def test_create_from_template(self):
        template = TestDataFactory.create_template(self.organization, title='Close down')
        response = self.client.post('/api/v1/tasks/', {
            'template_id': template.id,
            'due_date': '2024-06-03',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['title'], 'Close down')
        self.assertEqual(response.data['template'], template.id)

    def test_team_member_can_create_not_edit(self):
        response = self.cook_client.post('/api/v1/tasks/', {'title': 'Peel', 'due_date': '2024-06-03'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.cook_client.patch(f"/api/v1/tasks/{response.data['id']}/", {'title': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_patch_cannot_change_assignment(self):
        task = TestDataFactory.create_task(self.organization)
        response = self.client.patch(f'/api/v1/tasks/{task.id}/', {
            'title': 'Renamed', 'assignee_station': 'Grill', 'status': 'completed',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        task.refresh_from_db()
        self.assertEqual(task.title, 'Renamed')
        self.assertEqual(task.assignee_station, '')
        self.assertEqual(task.status, 'pending')

    def test_filter_by_station(self):
        TestDataFactory.create_task(self.organization, assignment_type='station', assignee_station='Grill')
        TestDataFactory.create_task(self.organization)
        response = self.client.get('/api/v1/tasks/?station=grill')
        self.assertEqual(len(response.data), 1)

    def test_assign_direct(self):
        task = TestDataFactory.create_task(self.organization, assignment_type='station', assignee_station='Grill')
        response = self.client.post(f'/api/v1/tasks/{task.id}/assign/', {
            'assignment_type': 'direct', 'assignee': self.cook.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['assignee'], self.cook.id)
        self.assertEqual(response.data['assignee_station'], '')
        self.assertEqual(response.data['assignee_name'], self.cook.full_name)

    def test_claim_endpoint(self):
        task = TestDataFactory.create_task(self.organization)
        assign_to_lottery(task)
        response = self.cook_client.post(f'/api/v1/tasks/{task.id}/claim/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['claimed_by'], self.cook.id)

        response = self.client.post(f'/api/v1/tasks/{task.id}/claim/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_team_member_cannot_claim_for_others(self):
        task = TestDataFactory.create_task(self.organization)
        assign_to_lottery(task)
        response = self.cook_client.post(f'/api/v1/tasks/{task.id}/claim/', {'member_id': self.owner.id},
                                         format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_lottery_pool(self):
        task = TestDataFactory.create_task(self.organization)
        assign_to_lottery(task)
        TestDataFactory.create_task(self.organization)
        response = self.client.get('/api/v1/tasks/lottery/')
        self.assertEqual([item['id'] for item in response.data], [str(task.id)])

    def test_assignee_runs_own_timer(self):
        task = TestDataFactory.create_assigned_task(self.organization, self.cook)
        response = self.cook_client.post(f'/api/v1/tasks/{task.id}/timer/start/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_running'])
        self.assertEqual(response.data['status'], 'in_progress')

    def test_timer_requires_assignee(self):
        task = TestDataFactory.create_task(self.organization)
        response = self.client.post(f'/api/v1/tasks/{task.id}/timer/start/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Task must be assigned before starting')

    def test_other_member_cannot_run_timer(self):
        task = TestDataFactory.create_assigned_task(self.organization, self.owner)
        response = self.cook_client.post(f'/api/v1/tasks/{task.id}/timer/start/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_levels_endpoint(self):
        task = TestDataFactory.create_task(self.organization, prep_system='par')
        response = self.client.post(f'/api/v1/tasks/{task.id}/levels/', {
            'par_level': '10', 'current_level': '3',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['amount_required'], '7.00')

    def test_board(self):
        TestDataFactory.create_task(self.organization, title='Monday', due_date=date(2024, 6, 3))
        TestDataFactory.create_task(self.organization, title='Later', due_date=date(2024, 6, 20))
        response = self.client.get('/api/v1/tasks/board/?start=2024-06-03&days=3')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['days'], ['2024-06-03', '2024-06-04', '2024-06-05'])
        self.assertEqual([t['title'] for t in response.data['board']['2024-06-03']], ['Monday'])

    def test_board_days_bounds(self):
        response = self.client.get('/api/v1/tasks/board/?days=90')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_move_with_drag_ids_to_empty_column(self):
        task = TestDataFactory.create_task(self.organization, due_date=date(2024, 6, 3))
        response = self.client.post('/api/v1/tasks/move/', {
            'active_id': f'{task.id}:2024-06-03:0',
            'over_id': '2024-06-04',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['columns']['2024-06-03'], [])
        self.assertEqual(response.data['columns']['2024-06-04'][0]['id'], str(task.id))
        task.refresh_from_db()
        self.assertEqual(task.due_date, date(2024, 6, 4))
        self.assertTrue(ActivityLog.objects.filter(activity_type='task_moved').exists())

    def test_move_from_wrong_day(self):
        task = TestDataFactory.create_task(self.organization, due_date=date(2024, 6, 3))
        response = self.client.post('/api/v1/tasks/move/', {
            'task_id': str(task.id), 'from_day': '2024-06-01', 'to_day': '2024-06-04',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_move_prefers_drag_ids_without_from_day(self):
        task = TestDataFactory.create_task(self.organization, due_date=date(2024, 6, 3))
        response = self.client.post('/api/v1/tasks/move/', {
            'task_id': str(task.id),
            'active_id': f'{task.id}:2024-06-03:0',
            'over_id': '2024-06-05',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        task.refresh_from_db()
        self.assertEqual(task.due_date, date(2024, 6, 5))

    def test_move_malformed_drag_id(self):
        response = self.client.post('/api/v1/tasks/move/', {'active_id': 'nonsense', 'over_id': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_organization_task_hidden(self):
        task = TestDataFactory.create_task(TestDataFactory.create_organization())
        response = self.client.get(f'/api/v1/tasks/{task.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class PrepListAPITests(TestCase):
    """Test template and prep list endpoints"""

    def setUp(self):
        cache.clear()
        self.organization = TestDataFactory.create_organization()
        self.user, self.owner = TestDataFactory.create_user_with_role(self.organization, 'owner')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.template = TestDataFactory.create_template(self.organization, title='PM Prep', tasks=2)

    def test_create_template_validates_schedule(self):
        response = self.client.post('/api/v1/prep-templates/', {
            'title': 'Weekend', 'schedule_days': [6, 0, 6],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['schedule_days'], [0, 6])

        response = self.client.post('/api/v1/prep-templates/', {'title': 'Bad', 'schedule_days': [7]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_new_template_task_goes_last(self):
        response = self.client.post(f'/api/v1/prep-templates/{self.template.id}/tasks/', {'title': 'Wrap'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['sequence'], 3)

    def test_reorder_endpoint(self):
        ids = list(self.template.tasks.values_list('id', flat=True))
        response = self.client.post(f'/api/v1/prep-templates/{self.template.id}/reorder/',
                                    {'task_ids': ids[::-1]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([t['id'] for t in response.data], ids[::-1])
        self.assertEqual([t['sequence'] for t in response.data], [1, 2])

    def test_generate_and_complete(self):
        response = self.client.post('/api/v1/prep-lists/', {
            'template': self.template.id, 'date': '2024-06-03',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['generated_tasks']), 2)
        prep_list_id = response.data['id']

        response = self.client.post(f'/api/v1/prep-lists/{prep_list_id}/complete/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(response.data['tasks_completed'], 2)

        response = self.client.post(f'/api/v1/prep-lists/{prep_list_id}/complete/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_schedule_preview(self):
        self.template.schedule_days = [1]
        self.template.save()
        response = self.client.get(f'/api/v1/prep-templates/{self.template.id}/schedule/?start_date=2024-06-02&days=7')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['dates'], ['2024-06-03'])
