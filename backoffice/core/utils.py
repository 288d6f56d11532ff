"""Organization context and activity logging helpers"""
import logging

from .models import ActivityLog, TeamMember

logger = logging.getLogger(__name__)

ORGANIZATION_HEADER = 'HTTP_X_ORGANIZATION_ID'


def get_current_membership(request):
    """
    Resolve the caller's TeamMember row for this request.

    The organization comes from the X-Organization-ID header when present,
    otherwise the caller's first active membership is used. The result is
    memoized on the request.
    """
    if not request or not getattr(request, 'user', None) or not request.user.is_authenticated:
        return None

    if hasattr(request, '_backoffice_membership'):
        return request._backoffice_membership

    memberships = TeamMember.objects.select_related('organization').filter(
        user=request.user, is_active=True
    ).order_by('created_at', 'id')

    organization_id = request.META.get(ORGANIZATION_HEADER)
    if organization_id:
        try:
            memberships = memberships.filter(organization_id=int(organization_id))
        except (TypeError, ValueError):
            logger.warning(f"Ignoring malformed organization header: {organization_id!r}")
            memberships = memberships.none()

    membership = memberships.first()
    request._backoffice_membership = membership
    return membership


def get_current_organization(request):
    membership = get_current_membership(request)
    return membership.organization if membership else None


def get_member_name(organization, user):
    """Full name of the user's team member row in this organization, if any"""
    if not user:
        return None
    member = TeamMember.objects.filter(organization=organization, user=user).first()
    if member and member.full_name:
        return member.full_name
    return None


def log_activity(organization=None, user=None, activity_type=None, details=None, metadata=None):
    """
    Append an activity log entry.

    Args:
        organization: Organization the activity belongs to
        user: Acting user (optional for system activities)
        activity_type: Short snake_case type, e.g. 'task_assigned'
        details: Dictionary describing the activity
        metadata: Free-form extra data

    Logging must never break the calling operation, so failures are logged
    and None is returned.
    """
    try:
        if not organization or not activity_type:
            logger.warning(
                f"Activity log skipped: missing required fields "
                f"(organization={organization}, activity_type={activity_type})"
            )
            return None

        details = dict(details or {})
        if not details.get('user_name') and user is not None:
            name = get_member_name(organization, user)
            if name:
                details['user_name'] = name
            elif getattr(user, 'email', None):
                details['user_name'] = user.email

        return ActivityLog.objects.create(
            organization=organization,
            user=user if user is not None and user.is_authenticated else None,
            activity_type=activity_type,
            details=details,
            metadata=metadata or {},
        )
    except Exception as e:
        logger.error(f"Failed to log activity {activity_type}: {str(e)}")
        return None
