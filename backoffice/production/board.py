"""
Kanban board helpers.

The board is a dict of ISO day -> list of serialized tasks. Drag ids have the
form "taskId:day:index".
"""
import logging
from datetime import date, timedelta

from django.db import transaction
from django.utils import timezone

from backoffice.core.utils import log_activity
from .models import Task
from .utils import write_task_fields

logger = logging.getLogger(__name__)

DEFAULT_BOARD_DAYS = 7
MAX_BOARD_DAYS = 31
PRIORITY_RANK = {'high': 0, 'medium': 1, 'low': 2}


def board_days(start, days=DEFAULT_BOARD_DAYS):
    """ISO dates for `days` consecutive days beginning at start"""
    return [(start + timedelta(days=offset)).isoformat() for offset in range(days)]


def _task_sort_key(task):
    return (
        task.get('sequence') or 0,
        PRIORITY_RANK.get(task.get('priority'), len(PRIORITY_RANK)),
        (task.get('title') or '').lower(),
    )


def group_tasks_by_day(tasks, days):
    board = {day: [] for day in days}
    for task in tasks:
        due = task.get('due_date')
        if isinstance(due, date):
            due = due.isoformat()
        if due in board:
            board[due].append(task)
    for day in board:
        board[day].sort(key=_task_sort_key)
    return board


def parse_drag_id(drag_id):
    """Split "taskId:day:index" into (task_id, day, index)"""
    if not isinstance(drag_id, str):
        raise ValueError("Drag id must be a string")
    parts = drag_id.split(':')
    if len(parts) != 3 or not all(parts):
        raise ValueError(f"Malformed drag id: {drag_id}")

    task_id, day, index = parts
    try:
        date.fromisoformat(day)
    except ValueError:
        raise ValueError(f"Malformed day in drag id: {drag_id}")
    try:
        index = int(index)
    except ValueError:
        raise ValueError(f"Malformed index in drag id: {drag_id}")
    if index < 0:
        raise ValueError(f"Malformed index in drag id: {drag_id}")
    return task_id, day, index


def move_task(board, task_id, from_day, to_day):
    """
    Move one task between day columns.

    Raises KeyError when the task is not in the source column. Moving within
    the same day leaves the board unchanged.
    """
    if from_day == to_day:
        return board

    source = board.get(from_day, [])
    for position, task in enumerate(source):
        if str(task.get('id')) == str(task_id):
            break
    else:
        raise KeyError(task_id)

    task = source.pop(position)
    task['due_date'] = to_day
    board.setdefault(to_day, []).append(task)
    return board


def auto_advance_note(from_day, to_day):
    return f"[Auto-advanced from {from_day} to {to_day}]"


def advance_overdue_tasks(organization=None, today=None, user=None):
    """
    Move overdue auto-advance tasks to today.

    Only tasks flagged auto_advance that are not completed and due before
    today are touched. Returns the advanced tasks.
    """
    today = today or timezone.localdate()
    queryset = Task.objects.select_related('organization').filter(
        auto_advance=True, due_date__lt=today,
    ).exclude(status='completed')
    if organization is not None:
        queryset = queryset.filter(organization=organization)

    advanced = []
    with transaction.atomic():
        for task in queryset:
            from_day = task.due_date.isoformat()
            note = auto_advance_note(from_day, today.isoformat())
            description = f"{task.description}\n{note}" if task.description else note
            write_task_fields(task, {'due_date': today, 'description': description})
            log_activity(
                organization=task.organization,
                user=user,
                activity_type='task_auto_advanced',
                details={'task_id': str(task.id), 'task_title': task.title,
                         'from_date': from_day, 'to_date': today.isoformat()},
            )
            advanced.append(task)

    if advanced:
        logger.info(f"Auto-advanced {len(advanced)} tasks to {today}")
    return advanced
