"""
Activity feed helpers: display-name resolution, message formatting and
acknowledgement bookkeeping.
"""
import json
import logging
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from .models import ActivityLog, TeamMember

logger = logging.getLogger(__name__)

DEFAULT_FEED_DAYS = 14
MAX_FEED_DAYS = 365
FEED_LIMIT = 50


def normalize_acknowledged(value):
    """
    Coerce a stored acknowledged_by value into a list of string ids.

    Older rows stored the list as a JSON string or as an object keyed by
    position; duplicates are dropped while keeping first-seen order.
    """
    if not value:
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return []
    if isinstance(value, dict):
        value = list(value.values())
    if not isinstance(value, (list, tuple)):
        return []

    seen = []
    for item in value:
        item = str(item)
        if item not in seen:
            seen.append(item)
    return seen


def acknowledge_activity(activity_id, user_id):
    """
    Add user_id to the activity's acknowledged_by list.

    The row is locked for the read-modify-write so concurrent acknowledgers
    cannot overwrite each other. Returns the updated ActivityLog.
    """
    user_id = str(user_id)
    with transaction.atomic():
        log = ActivityLog.objects.select_for_update().get(pk=activity_id)
        acknowledged = normalize_acknowledged(log.acknowledged_by)
        if user_id not in acknowledged:
            acknowledged.append(user_id)
        log.acknowledged_by = acknowledged
        log.save(update_fields=['acknowledged_by'])
    return log


def is_acknowledged_by(log, user_id):
    return str(user_id) in normalize_acknowledged(log.acknowledged_by)


def format_activity_type(activity_type):
    """'task_assigned_to_station' -> 'Task Assigned To Station'"""
    if not activity_type:
        return 'Activity'
    return ' '.join(part.capitalize() for part in activity_type.split('_') if part)


def format_activity_details(details):
    """Short human summary of the details payload"""
    if not isinstance(details, dict) or not details:
        return ''
    for key in ('task_title', 'name', 'title', 'product_name', 'description'):
        value = details.get(key)
        if value:
            return str(value)
    return ''


def name_from_email(email):
    """'john.smith@example.com' -> 'John Smith'"""
    local = email.split('@')[0]
    parts = [p for p in local.split('.') if p]
    if not parts:
        return email
    return ' '.join(p[:1].upper() + p[1:] for p in parts)


def build_email_name_map(organization):
    mapping = {}
    members = TeamMember.objects.filter(organization=organization).values('email', 'first_name', 'last_name')
    for member in members:
        if member['email'] and member['first_name'] and member['last_name']:
            mapping[member['email'].lower()] = f"{member['first_name']} {member['last_name']}"
    return mapping


def build_user_name_map(organization):
    mapping = {}
    members = TeamMember.objects.filter(organization=organization, user__isnull=False).values(
        'user_id', 'first_name', 'last_name'
    )
    for member in members:
        name = f"{member['first_name']} {member['last_name']}".strip()
        if name:
            mapping[member['user_id']] = name
    return mapping


def _full_name(data):
    if isinstance(data, dict) and data.get('first_name') and data.get('last_name'):
        return f"{data['first_name']} {data['last_name']}"
    return None


def resolve_display_name(log, email_to_name=None, user_to_name=None):
    """
    Pick the best display name for an activity log entry.

    Order: details.user_name, the acting user's team member name, the
    email-to-name map for the acting user's email, names or emails found in
    details.changes / details.team_member, a name derived from the acting
    user's email, and finally 'System'.
    """
    email_to_name = email_to_name or {}
    user_to_name = user_to_name or {}
    details = log.details if isinstance(log.details, dict) else {}

    if details.get('user_name'):
        return details['user_name']

    if log.user_id and log.user_id in user_to_name:
        return user_to_name[log.user_id]

    user_email = ''
    if log.user_id and log.user is not None:
        user_email = (log.user.email or '').lower()
        if user_email and user_email in email_to_name:
            return email_to_name[user_email]

    changes = details.get('changes') if isinstance(details.get('changes'), dict) else {}
    team_member = details.get('team_member') if isinstance(details.get('team_member'), dict) else {}

    name = _full_name(changes) or _full_name(team_member)
    if name:
        return name

    for email in (changes.get('email'), team_member.get('email')):
        if email and email.lower() in email_to_name:
            return email_to_name[email.lower()]

    if user_email:
        return name_from_email(user_email)
    if log.user_id and log.user is not None and log.user.username:
        return log.user.username

    return 'System'


def feed_queryset(organization, days=DEFAULT_FEED_DAYS):
    start = timezone.now() - timedelta(days=days)
    return ActivityLog.objects.select_related('user').filter(
        organization=organization,
        created_at__gte=start,
    ).order_by('created_at')


def build_activity_feed(organization, user, days=DEFAULT_FEED_DAYS, show_acknowledged=True, limit=FEED_LIMIT):
    """
    Return (activities, review_count) for the caller.

    Activities are the latest `limit` entries of the window, oldest first, each enriched with
    the resolved user name and the caller's acknowledgement state.
    """
    logs = list(feed_queryset(organization, days).order_by('-created_at', '-id')[:limit])
    logs.reverse()
    email_to_name = build_email_name_map(organization)
    user_to_name = build_user_name_map(organization)

    activities = []
    for log in logs:
        acknowledged_by = normalize_acknowledged(log.acknowledged_by)
        is_acknowledged = str(user.id) in acknowledged_by
        activity_type = format_activity_type(log.activity_type)
        summary = format_activity_details(log.details)
        activities.append({
            'id': log.id,
            'activity_type': log.activity_type,
            'type': activity_type,
            'message': f"{activity_type}: {summary}" if summary else activity_type,
            'timestamp': log.created_at,
            'user': resolve_display_name(log, email_to_name, user_to_name),
            'details': log.details,
            'acknowledged_by': acknowledged_by,
            'is_acknowledged': is_acknowledged,
        })

    review_count = sum(1 for a in activities if not a['is_acknowledged'])
    if not show_acknowledged:
        activities = [a for a in activities if not a['is_acknowledged']]
    logger.debug(f"Built activity feed for org {organization.id}: {len(activities)} items, {review_count} to review")
    return activities, review_count
