"""
Persisted task timer.

elapsed_seconds holds the closed intervals; while the timer runs, the open
interval starts at started_at. Reading elapsed() after a reload therefore
gives the same answer as before it.
"""
import logging

from django.utils import timezone

from backoffice.core.utils import log_activity
from .utils import write_task_fields

logger = logging.getLogger(__name__)


def _require_assignee(task, action):
    if task.assignment_type != 'direct' or not task.assignee_id:
        raise ValueError(f"Task must be assigned before {action}")


def _open_interval(task, now):
    if not task.is_running:
        return 0
    return max(0, int((now - task.started_at).total_seconds()))


def elapsed(task, now=None):
    """Seconds worked on the task, including the running interval"""
    now = now or timezone.now()
    return (task.elapsed_seconds or 0) + _open_interval(task, now)


def _log(task, activity_type, user, **extra):
    details = {'task_id': str(task.id), 'task_title': task.title, 'elapsed_seconds': task.elapsed_seconds}
    details.update(extra)
    log_activity(organization=task.organization, user=user, activity_type=activity_type, details=details)


def start(task, user=None):
    _require_assignee(task, 'starting')
    if task.status == 'completed':
        raise ValueError("Completed tasks cannot be started")
    if task.is_running:
        raise ValueError("Task timer is already running")

    now = timezone.now()
    write_task_fields(task, {
        'status': 'in_progress',
        'started_at': now,
        'paused_at': None,
        'stopped_at': None,
    })
    _log(task, 'task_started', user)
    return task


def pause(task, user=None):
    _require_assignee(task, 'pausing')
    if not task.is_running:
        raise ValueError("Task timer is not running")

    now = timezone.now()
    write_task_fields(task, {
        'elapsed_seconds': elapsed(task, now),
        'paused_at': now,
    })
    _log(task, 'task_paused', user)
    return task


def resume(task, user=None):
    _require_assignee(task, 'resuming')
    if task.paused_at is None or task.status != 'in_progress':
        raise ValueError("Task timer is not paused")

    write_task_fields(task, {
        'started_at': timezone.now(),
        'paused_at': None,
    })
    _log(task, 'task_started', user, resumed=True)
    return task


def stop(task, user=None):
    """Abandon the current run: timer back to zero, task back to pending"""
    _require_assignee(task, 'stopping')
    if task.status == 'completed':
        raise ValueError("Completed tasks cannot be stopped")

    write_task_fields(task, {
        'status': 'pending',
        'elapsed_seconds': 0,
        'started_at': None,
        'paused_at': None,
        'stopped_at': timezone.now(),
    })
    _log(task, 'task_stopped', user)
    return task


def complete(task, member=None, user=None):
    _require_assignee(task, 'completing')
    if task.status == 'completed':
        raise ValueError("Task is already completed")

    now = timezone.now()
    write_task_fields(task, {
        'status': 'completed',
        'elapsed_seconds': elapsed(task, now),
        'paused_at': None,
        'completed_at': now,
        'completed_by_id': member.id if member else task.assignee_id,
    })
    _log(task, 'task_completed', user)
    logger.info(f"Task {task.id} completed after {task.elapsed_seconds}s")
    return task


TIMER_ACTIONS = {
    'start': start,
    'pause': pause,
    'resume': resume,
    'stop': stop,
}


def run_action(task, action, member=None, user=None):
    if action == 'complete':
        return complete(task, member=member, user=user)
    handler = TIMER_ACTIONS.get(action)
    if handler is None:
        raise ValueError(f"Unknown timer action: {action}")
    return handler(task, user=user)
