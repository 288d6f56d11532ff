"""
Task assignment as a tagged union.

A task is held by exactly one of: a team member (direct), a station, or the
lottery pool; or it is unassigned. Every kind renders the full set of
assignment fields, so writing one kind always clears the others.
"""
import logging
from dataclasses import dataclass

from django.utils import timezone

from backoffice.core.utils import log_activity
from .utils import organization_stations, write_task_fields

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectAssignment:
    member_id: int
    kind = 'direct'

    def fields(self):
        return {
            'assignment_type': self.kind,
            'assignee_id': self.member_id,
            'assignee_station': '',
            'lottery': False,
        }


@dataclass(frozen=True)
class StationAssignment:
    station: str
    kind = 'station'

    def fields(self):
        return {
            'assignment_type': self.kind,
            'assignee_id': None,
            'assignee_station': self.station,
            'lottery': False,
        }


@dataclass(frozen=True)
class LotteryAssignment:
    kind = 'lottery'

    def fields(self):
        return {
            'assignment_type': self.kind,
            'assignee_id': None,
            'assignee_station': '',
            'lottery': True,
        }


@dataclass(frozen=True)
class Unassigned:
    kind = 'none'

    def fields(self):
        return {
            'assignment_type': self.kind,
            'assignee_id': None,
            'assignee_station': '',
            'lottery': False,
        }


def assignment_from_task(task):
    """
    Read a task row back into an assignment.

    Rows written before assignment_type existed are inferred from their
    fields, checking station, then assignee, then lottery.
    """
    kind = task.assignment_type
    if kind == 'direct' and task.assignee_id:
        return DirectAssignment(task.assignee_id)
    if kind == 'station' and task.assignee_station:
        return StationAssignment(task.assignee_station)
    if kind == 'lottery':
        return LotteryAssignment()
    if kind in ('direct', 'station'):
        return Unassigned()

    if task.assignee_station:
        return StationAssignment(task.assignee_station)
    if task.assignee_id:
        return DirectAssignment(task.assignee_id)
    if task.lottery:
        return LotteryAssignment()
    return Unassigned()


def apply_assignment(task, assignment, extra_fields=None, extra_filters=None):
    fields = assignment.fields()
    if extra_fields:
        fields.update(extra_fields)
    return write_task_fields(task, fields, extra_filters=extra_filters)


def assign_to_station(task, station, user=None):
    station = (station or '').strip()
    if not station:
        raise ValueError("Station name is required")
    stations = organization_stations(task.organization)
    if stations and station not in stations:
        raise ValueError(f"Unknown kitchen station: {station}")

    apply_assignment(task, StationAssignment(station))
    log_activity(
        organization=task.organization,
        user=user,
        activity_type='task_assigned_to_station',
        details={'task_id': str(task.id), 'task_title': task.title, 'station': station},
    )
    return task


def assign_to_team_member(task, member, user=None):
    if member.organization_id != task.organization_id:
        raise ValueError("Team member belongs to another organization")
    if not member.is_active:
        raise ValueError("Team member is not active")

    apply_assignment(task, DirectAssignment(member.id))
    log_activity(
        organization=task.organization,
        user=user,
        activity_type='task_assigned',
        details={'task_id': str(task.id), 'task_title': task.title, 'assignee_id': member.id,
                 'assignee_name': member.full_name},
    )
    return task


def assign_to_lottery(task, user=None):
    if task.status == 'completed':
        raise ValueError("Completed tasks cannot be put in the lottery")

    apply_assignment(task, LotteryAssignment(), extra_fields={'claimed_at': None, 'claimed_by_id': None})
    log_activity(
        organization=task.organization,
        user=user,
        activity_type='task_set_for_lottery',
        details={'task_id': str(task.id), 'task_title': task.title},
    )
    return task


def unassign(task, user=None):
    apply_assignment(task, Unassigned())
    log_activity(
        organization=task.organization,
        user=user,
        activity_type='task_unassigned',
        details={'task_id': str(task.id), 'task_title': task.title},
    )
    return task


def claim_lottery_task(task, member, user=None):
    """
    Claim a lottery task for a team member.

    The UPDATE only matches while the task is still in the lottery, so two
    members claiming at once cannot both win.
    """
    if task.assignment_type != 'lottery' or not task.lottery:
        raise ValueError("Task is not available in the lottery pool")
    if member.organization_id != task.organization_id:
        raise ValueError("Team member belongs to another organization")

    updated = apply_assignment(
        task,
        DirectAssignment(member.id),
        extra_fields={'claimed_at': timezone.now(), 'claimed_by_id': member.id},
        extra_filters={'assignment_type': 'lottery', 'lottery': True},
    )
    if not updated:
        raise ValueError("Task has already been claimed")

    log_activity(
        organization=task.organization,
        user=user,
        activity_type='task_claimed',
        details={'task_id': str(task.id), 'task_title': task.title, 'claimed_by': member.full_name},
    )
    return task


def assign(task, assignment_type, member=None, station=None, user=None):
    """Dispatch an assignment request by kind"""
    if assignment_type == 'direct':
        if member is None:
            raise ValueError("A team member is required for direct assignment")
        return assign_to_team_member(task, member, user=user)
    if assignment_type == 'station':
        return assign_to_station(task, station, user=user)
    if assignment_type == 'lottery':
        return assign_to_lottery(task, user=user)
    if assignment_type == 'none':
        return unassign(task, user=user)
    raise ValueError(f"Unknown assignment type: {assignment_type}")
