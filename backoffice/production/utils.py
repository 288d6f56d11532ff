import logging

from django.db import transaction
from django.utils import timezone

from backoffice.core.cache_signals import invalidate_dashboard_cache_manual
from backoffice.core.models import OperationsSettings
from .models import Task

logger = logging.getLogger(__name__)


def write_task_fields(task, fields, extra_filters=None):
    """
    Persist coupled task fields in a single UPDATE and mirror them on the instance.

    extra_filters narrows the UPDATE (e.g. to an expected current state);
    returns the number of rows written so callers can detect a lost race.
    """
    fields = dict(fields)
    fields['updated_at'] = timezone.now()
    queryset = Task.objects.filter(pk=task.pk)
    if extra_filters:
        queryset = queryset.filter(**extra_filters)
    updated = queryset.update(**fields)
    if updated:
        for name, value in fields.items():
            setattr(task, name, value)
        # Queryset updates skip post_save, so invalidate the summary explicitly
        transaction.on_commit(invalidate_dashboard_cache_manual)
    else:
        logger.warning(f"Task {task.pk} was not updated (filters: {extra_filters})")
    return updated


def organization_stations(organization):
    """Kitchen stations configured for the organization (may be empty)"""
    settings_obj = OperationsSettings.objects.filter(organization=organization).first()
    if settings_obj is None:
        return []
    return [s for s in (settings_obj.kitchen_stations or []) if isinstance(s, str) and s]
