import logging
from datetime import date, timedelta

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Count
from django.utils import timezone

from backoffice.core.activity import DEFAULT_FEED_DAYS, feed_queryset, normalize_acknowledged
from backoffice.core.cache_utils import DASHBOARD_CACHE_TTL, DASHBOARD_PREFIX, cached_query
from backoffice.core.models import TeamMember
from backoffice.core.permissions import IsOrganizationMember
from backoffice.core.utils import get_current_membership
from backoffice.production.models import Task
from backoffice.vendors.models import VendorPriceChange

logger = logging.getLogger(__name__)

PRICE_CHANGE_DAYS = 30


@cached_query(cache_ttl=DASHBOARD_CACHE_TTL, key_prefix=DASHBOARD_PREFIX)
def get_dashboard_summary(organization_id, user_id, today):
    """
    Aggregate the dashboard numbers for one organization.

    The acknowledgement count is per user, so the user is part of the cache key.
    """
    tasks = Task.objects.filter(organization_id=organization_id)

    # 1. Today's tasks by status
    today_by_status = {value: 0 for value, _ in Task.STATUS_CHOICES}
    for row in tasks.filter(due_date=today).values('status').annotate(count=Count('id')):
        today_by_status[row['status']] = row['count']

    # 2. Overdue and lottery pool
    open_tasks = tasks.exclude(status='completed')
    overdue = open_tasks.filter(due_date__lt=today).count()
    lottery_pool = open_tasks.filter(assignment_type='lottery', lottery=True).count()

    # 3. Activity still to review
    unacknowledged = 0
    for acknowledged_by in feed_queryset(organization_id, DEFAULT_FEED_DAYS).values_list('acknowledged_by', flat=True):
        if str(user_id) not in normalize_acknowledged(acknowledged_by):
            unacknowledged += 1

    # 4. Price movement
    since = timezone.now() - timedelta(days=PRICE_CHANGE_DAYS)
    changes = VendorPriceChange.objects.filter(
        organization_id=organization_id, created_at__gte=since,
    ).exclude(change_percent=0)
    increases = changes.filter(change_percent__gt=0).count()
    decreases = changes.filter(change_percent__lt=0).count()

    team_size = TeamMember.objects.filter(organization_id=organization_id, is_active=True).count()

    return {
        'date': today.isoformat(),
        'tasks_today': {
            'total': sum(today_by_status.values()),
            'by_status': today_by_status,
        },
        'overdue_tasks': overdue,
        'lottery_pool': lottery_pool,
        'unacknowledged_activity': unacknowledged,
        'price_changes': {
            'days': PRICE_CHANGE_DAYS,
            'total': increases + decreases,
            'increases': increases,
            'decreases': decreases,
        },
        'team_size': team_size,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def dashboard_summary(request):
    """Back-office dashboard numbers for the current organization"""
    membership = get_current_membership(request)

    today = request.query_params.get('date')
    try:
        today = date.fromisoformat(today) if today else timezone.localdate()
    except ValueError:
        return Response({'error': 'date must be YYYY-MM-DD'}, status=status.HTTP_400_BAD_REQUEST)

    summary = get_dashboard_summary(membership.organization_id, request.user.id, today)
    logger.debug(f"Dashboard summary for org {membership.organization_id} (user: {request.user.username})")
    return Response(summary)
