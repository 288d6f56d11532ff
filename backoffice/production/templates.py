"""
Prep list templates: copying template tasks onto the board, generating prep
lists, reordering and completing them.
"""
import logging
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from backoffice.core.cache_signals import invalidate_dashboard_cache_manual
from backoffice.core.utils import log_activity
from .assignment import DirectAssignment, StationAssignment, Unassigned
from .models import PrepList, Task
from .prep_systems import compute_amount_required
from .utils import organization_stations

logger = logging.getLogger(__name__)


def _par_for(template, key, default):
    par_levels = template.par_levels if isinstance(template.par_levels, dict) else {}
    value = par_levels.get(str(key))
    return default if value in (None, '') else value


def _station_assignment(station):
    return StationAssignment(station) if station else Unassigned()


def create_task_from_template_task(template_task, due_date, assigning_member=None, prep_list=None,
                                   assignment=None, user=None):
    """Copy a template task into a new board task with a fresh id"""
    template = template_task.template
    par_level = _par_for(template, template_task.id, template_task.par_level)
    station = template_task.station or template.station
    assignment = assignment or _station_assignment(station)

    if template.prep_system == 'par':
        amount_required = compute_amount_required(par_level, template_task.current_level)
    else:
        amount_required = template_task.amount_required

    return Task.objects.create(
        organization=template.organization,
        title=template_task.title,
        description=template_task.description,
        due_date=due_date,
        prep_system=template.prep_system,
        par_level=par_level,
        current_level=template_task.current_level,
        amount_required=amount_required,
        estimated_time=template_task.estimated_time,
        sequence=template_task.sequence,
        auto_advance=template_task.auto_advance or template.auto_advance,
        template=template,
        template_task=template_task,
        prep_list=prep_list,
        master_ingredient=template_task.master_ingredient,
        source='prep_list',
        assigning_member=assigning_member,
        created_by=user,
        **assignment.fields(),
    )


def create_task_from_template(template, due_date, assigning_member=None, user=None):
    """Put a whole template on the board as a single production task"""
    stations = template.kitchen_stations if isinstance(template.kitchen_stations, list) else []
    station = template.station or (stations[0] if stations else '')
    par_level = _par_for(template, template.id, 0)

    return Task.objects.create(
        organization=template.organization,
        title=template.title,
        description=template.description,
        due_date=due_date,
        prep_system=template.prep_system,
        par_level=par_level,
        amount_required=compute_amount_required(par_level, 0) if template.prep_system == 'par' else 0,
        estimated_time=template.estimated_time,
        auto_advance=template.auto_advance,
        template=template,
        source='production',
        assigning_member=assigning_member,
        created_by=user,
        **_station_assignment(station).fields(),
    )


def resolve_prep_list_assignment(organization, assigned_to):
    """
    A prep list may be handed to a team member (by id) or a station (by name).
    Returns None when nothing was given.
    """
    assigned_to = str(assigned_to or '').strip()
    if not assigned_to:
        return None
    if assigned_to.isdigit():
        member = organization.team_members.filter(pk=int(assigned_to), is_active=True).first()
        if member is None:
            raise ValueError(f"Unknown team member: {assigned_to}")
        return DirectAssignment(member.id)
    stations = organization_stations(organization)
    if stations and assigned_to not in stations:
        raise ValueError(f"Unknown kitchen station: {assigned_to}")
    return StationAssignment(assigned_to)


def generate_prep_list_from_template(template, date, assigned_to='', assigning_member=None, user=None):
    """Create an active prep list and one task per template task, all or nothing"""
    if not template.is_active:
        raise ValueError("Template is inactive")

    assignment = resolve_prep_list_assignment(template.organization, assigned_to)

    with transaction.atomic():
        prep_list = PrepList.objects.create(
            organization=template.organization,
            template=template,
            title=template.title,
            description=template.description,
            date=date,
            prep_system=template.prep_system,
            status='active',
            assigned_to=str(assigned_to or ''),
            created_by=user,
        )
        tasks = [
            create_task_from_template_task(
                template_task, date, assigning_member=assigning_member,
                prep_list=prep_list, assignment=assignment, user=user,
            )
            for template_task in template.tasks.all()
        ]

    log_activity(
        organization=template.organization,
        user=user,
        activity_type='prep_list_generated',
        details={'title': prep_list.title, 'prep_list_id': prep_list.id, 'date': str(date),
                 'tasks_count': len(tasks)},
    )
    return prep_list, tasks


def reorder_template_tasks(template, task_ids):
    """
    Put the given template tasks first, in order, and renumber the whole template.

    Tasks not listed keep their relative order after the given ones, so
    sequences always run 1..N without gaps or duplicates.
    """
    task_ids = [int(task_id) for task_id in task_ids]
    if len(set(task_ids)) != len(task_ids):
        raise ValueError("Duplicate task ids in ordering")

    tasks = {task.id: task for task in template.tasks.all()}
    unknown = [task_id for task_id in task_ids if task_id not in tasks]
    if unknown:
        raise ValueError(f"Tasks not in template: {unknown}")

    listed = set(task_ids)
    rest = sorted((task for task in tasks.values() if task.id not in listed),
                  key=lambda task: (task.sequence, task.id))
    ordered = [tasks[task_id] for task_id in task_ids] + rest

    with transaction.atomic():
        for index, task in enumerate(ordered):
            if task.sequence != index + 1:
                task.sequence = index + 1
                task.save(update_fields=['sequence', 'updated_at'])
    return ordered


def scheduled_dates(template, start, days=7):
    """
    Dates in [start, start + days) falling on the template's schedule days.

    schedule_days uses 0 = Sunday .. 6 = Saturday.
    """
    schedule = {int(day) for day in (template.schedule_days or [])}
    dates = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        if (day.weekday() + 1) % 7 in schedule:
            dates.append(day)
    return dates


def generate_scheduled_prep_lists(template, start, days=7, user=None):
    """
    Generate prep lists for every scheduled date that does not have one yet.

    Tasks are due advance_days before the scheduled date.
    """
    created = []
    existing = set(
        PrepList.objects.filter(template=template, date__gte=start, date__lt=start + timedelta(days=days))
        .values_list('date', flat=True)
    )
    for day in scheduled_dates(template, start, days):
        if day in existing:
            continue
        prep_date = day - timedelta(days=template.advance_days or 0)
        prep_list, _ = generate_prep_list_from_template(template, prep_date, user=user)
        if prep_date != day:
            prep_list.date = day
            prep_list.save(update_fields=['date', 'updated_at'])
        created.append(prep_list)
    return created


def complete_prep_list(prep_list, member=None, user=None):
    if prep_list.status == 'completed':
        raise ValueError("Prep list is already completed")

    now = timezone.now()
    with transaction.atomic():
        prep_list.status = 'completed'
        prep_list.completed_at = now
        prep_list.completed_by = user if user is not None and user.is_authenticated else None
        prep_list.save(update_fields=['status', 'completed_at', 'completed_by', 'updated_at'])
        tasks_completed = prep_list.tasks.exclude(status='completed').update(
            status='completed',
            completed_at=now,
            completed_by=member,
            paused_at=None,
            updated_at=now,
        )
        transaction.on_commit(invalidate_dashboard_cache_manual)

    log_activity(
        organization=prep_list.organization,
        user=user,
        activity_type='prep_list_completed',
        details={'title': prep_list.title, 'prep_list_id': prep_list.id, 'tasks_completed': tasks_completed},
    )
    return prep_list, tasks_completed
