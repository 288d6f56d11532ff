import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from django.shortcuts import get_object_or_404

from .activity import DEFAULT_FEED_DAYS, MAX_FEED_DAYS, acknowledge_activity, build_activity_feed, is_acknowledged_by
from .filters import TeamMemberFilter
from .models import ActivityLog, OperationsSettings, TeamMember
from .permissions import (
    ROLE_DEFINITIONS, IsOrganizationAdmin, IsOrganizationMember,
    has_kitchen_permission, is_admin_role, role_permissions,
)
from .serializers import (
    UserSerializer, OrganizationSerializer, TeamMemberSerializer,
    OperationsSettingsSerializer, RoleAssignmentSerializer,
)
from .utils import get_current_membership, log_activity

logger = logging.getLogger(__name__)

User = get_user_model()


def forbidden(message='You do not have permission to perform this action.'):
    return Response({'error': message}, status=status.HTTP_403_FORBIDDEN)


def parse_bool(value, default=True):
    if value is None:
        return default
    return str(value).lower() in ('1', 'true', 'yes', 'on')


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        membership = user.memberships.filter(is_active=True).order_by('created_at', 'id').first()
        token['kitchen_role'] = membership.kitchen_role if membership else None
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh serializer that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with organization, kitchen role and the role's permission matrix"""
    user_data = UserSerializer(request.user).data
    membership = get_current_membership(request)

    if membership is None:
        user_data.update({
            'organization': None,
            'team_member': None,
            'kitchen_role': None,
            'is_admin': False,
            'permissions': {},
        })
        return Response(user_data)

    user_data.update({
        'organization': OrganizationSerializer(membership.organization).data,
        'team_member': TeamMemberSerializer(membership).data,
        'kitchen_role': membership.kitchen_role,
        'is_admin': is_admin_role(membership.kitchen_role),
        'permissions': role_permissions(membership.kitchen_role),
    })
    return Response(user_data)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def organization_current(request):
    """Read or update the current organization's settings"""
    membership = get_current_membership(request)
    organization = membership.organization

    if request.method == 'GET':
        return Response(OrganizationSerializer(organization).data)

    if not is_admin_role(membership.kitchen_role):
        return forbidden('Admin access required.')

    serializer = OrganizationSerializer(organization, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        log_activity(
            organization=organization,
            user=request.user,
            activity_type='settings_updated',
            details={'name': organization.name, 'changes': request.data},
        )
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def operations_settings(request):
    """Read or replace the organization's operations lists"""
    membership = get_current_membership(request)
    settings_obj, _ = OperationsSettings.objects.get_or_create(organization=membership.organization)

    if request.method == 'GET':
        return Response(OperationsSettingsSerializer(settings_obj).data)

    if not has_kitchen_permission(membership.kitchen_role, 'settings', 'edit'):
        return forbidden()

    serializer = OperationsSettingsSerializer(settings_obj, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save()
        log_activity(
            organization=membership.organization,
            user=request.user,
            activity_type='operations_settings_updated',
            details={'fields': sorted(request.data.keys())},
        )
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def team_member_list_create(request):
    """List team members or add one"""
    membership = get_current_membership(request)
    organization = membership.organization

    if request.method == 'GET':
        queryset = TeamMember.objects.filter(organization=organization)
        filterset = TeamMemberFilter(request.query_params, queryset=queryset)
        serializer = TeamMemberSerializer(filterset.qs, many=True)
        return Response(serializer.data)

    if not has_kitchen_permission(membership.kitchen_role, 'team', 'create'):
        return forbidden()

    serializer = TeamMemberSerializer(data=request.data, context={'organization': organization})
    if serializer.is_valid():
        member = serializer.save(organization=organization)
        log_activity(
            organization=organization,
            user=request.user,
            activity_type='team_member_added',
            details={
                'team_member': {
                    'first_name': member.first_name,
                    'last_name': member.last_name,
                    'email': member.email,
                },
            },
        )
        return Response(TeamMemberSerializer(member).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def team_member_detail(request, pk):
    """Retrieve, update or remove a team member"""
    membership = get_current_membership(request)
    member = get_object_or_404(TeamMember, pk=pk, organization=membership.organization)

    if request.method == 'GET':
        return Response(TeamMemberSerializer(member).data)

    if request.method == 'DELETE':
        if not has_kitchen_permission(membership.kitchen_role, 'team', 'delete'):
            return forbidden()
        if member.pk == membership.pk:
            return Response({'error': 'You cannot remove yourself'}, status=status.HTTP_400_BAD_REQUEST)
        details = {
            'team_member': {'first_name': member.first_name, 'last_name': member.last_name, 'email': member.email},
        }
        member.delete()
        log_activity(
            organization=membership.organization,
            user=request.user,
            activity_type='team_member_removed',
            details=details,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    if not has_kitchen_permission(membership.kitchen_role, 'team', 'edit'):
        return forbidden()
    # Role changes go through the permissions manager
    if 'kitchen_role' in request.data and not is_admin_role(membership.kitchen_role):
        return forbidden('Only admins can change roles.')

    serializer = TeamMemberSerializer(
        member, data=request.data, partial=request.method == 'PATCH',
        context={'organization': membership.organization},
    )
    if serializer.is_valid():
        member = serializer.save()
        log_activity(
            organization=membership.organization,
            user=request.user,
            activity_type='team_member_updated',
            details={
                'changes': {**request.data, 'first_name': member.first_name, 'last_name': member.last_name},
            },
        )
        return Response(TeamMemberSerializer(member).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOrganizationAdmin])
def role_list(request):
    """Role definitions with the members currently holding each role"""
    membership = get_current_membership(request)
    members = TeamMember.objects.filter(organization=membership.organization, is_active=True)

    by_role = {role: [] for role in ROLE_DEFINITIONS}
    for member in members:
        by_role.setdefault(member.kitchen_role, []).append(TeamMemberSerializer(member).data)

    roles = []
    for role, definition in sorted(ROLE_DEFINITIONS.items(), key=lambda item: item[1]['level']):
        roles.append({
            'role': role,
            'label': definition['label'],
            'description': definition['description'],
            'level': definition['level'],
            'permissions': definition['permissions'],
            'members': by_role.get(role, []),
        })
    return Response(roles)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOrganizationAdmin])
def role_assign(request):
    """Assign a role to a set of team members"""
    membership = get_current_membership(request)
    serializer = RoleAssignmentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    member_ids = serializer.validated_data['member_ids']
    role = serializer.validated_data['role']

    # Only developers can hand out the developer role
    if role == 'dev' and membership.kitchen_role != 'dev':
        return forbidden('Only developers can assign the developer role.')

    members = TeamMember.objects.filter(organization=membership.organization, id__in=member_ids)
    found = set(members.values_list('id', flat=True))
    missing = sorted(set(member_ids) - found)
    if missing:
        return Response({'error': f'Unknown team members: {missing}'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        updated = members.update(kitchen_role=role)

    log_activity(
        organization=membership.organization,
        user=request.user,
        activity_type='role_assigned',
        details={'role': role, 'member_ids': member_ids, 'description': ROLE_DEFINITIONS[role]['label']},
    )
    logger.info(f"Assigned role {role} to {updated} members in org {membership.organization_id}")
    return Response({'role': role, 'updated': updated})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def activity_feed(request):
    """Oldest-first activity feed for the last N days with review count"""
    membership = get_current_membership(request)
    try:
        days = int(request.query_params.get('days', DEFAULT_FEED_DAYS))
    except (TypeError, ValueError):
        return Response({'error': 'days must be an integer'}, status=status.HTTP_400_BAD_REQUEST)
    if not 1 <= days <= MAX_FEED_DAYS:
        return Response({'error': f'days must be between 1 and {MAX_FEED_DAYS}'},
                        status=status.HTTP_400_BAD_REQUEST)

    show_acknowledged = parse_bool(request.query_params.get('show_acknowledged'), default=True)
    activities, review_count = build_activity_feed(
        membership.organization, request.user, days=days, show_acknowledged=show_acknowledged,
    )
    return Response({
        'results': activities,
        'count': len(activities),
        'review_count': review_count,
        'days': days,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def activity_acknowledge(request, pk):
    """Mark an activity as reviewed by the caller"""
    membership = get_current_membership(request)
    get_object_or_404(ActivityLog, pk=pk, organization=membership.organization)

    log = acknowledge_activity(pk, request.user.id)
    return Response({
        'id': log.id,
        'acknowledged_by': log.acknowledged_by,
        'is_acknowledged': is_acknowledged_by(log, request.user.id),
    })
