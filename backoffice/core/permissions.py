"""
Kitchen role definitions and DRF permission classes.

Roles are ordered by level (lower is more privileged). Each role carries a
view/create/edit/delete matrix per kitchen feature.
"""
from rest_framework.permissions import BasePermission

from .utils import get_current_membership

KITCHEN_FEATURES = {
    'recipes': 'Recipe Management',
    'inventory': 'Inventory Management',
    'production': 'Production Planning',
    'team': 'Team Management',
    'settings': 'System Settings',
    'reports': 'Reports & Analytics',
}

ADMIN_ROLES = ('dev', 'owner')


def _matrix(**features):
    actions = ('view', 'create', 'edit', 'delete')
    return {
        feature: dict(zip(actions, flags))
        for feature, flags in features.items()
    }


ROLE_DEFINITIONS = {
    'dev': {
        'label': 'Developer',
        'description': 'Full system access with development capabilities',
        'level': -1,
        'permissions': _matrix(
            recipes=(True, True, True, True),
            inventory=(True, True, True, True),
            production=(True, True, True, True),
            team=(True, True, True, True),
            settings=(True, True, True, True),
            reports=(True, True, True, True),
            system=(True, True, True, True),
        ),
    },
    'owner': {
        'label': 'Owner/Chef',
        'description': 'Full access to all kitchen features',
        'level': 0,
        'permissions': _matrix(
            recipes=(True, True, True, True),
            inventory=(True, True, True, True),
            production=(True, True, True, True),
            team=(True, True, True, True),
            settings=(True, True, True, True),
            reports=(True, True, True, True),
        ),
    },
    'sous_chef': {
        'label': 'Sous Chef',
        'description': 'Kitchen operations and team supervision',
        'level': 1,
        'permissions': _matrix(
            recipes=(True, True, True, False),
            inventory=(True, True, True, False),
            production=(True, True, True, False),
            team=(True, False, True, False),
            settings=(True, False, False, False),
            reports=(True, True, False, False),
        ),
    },
    'supervisor': {
        'label': 'Supervisor',
        'description': 'Team supervision and daily operations',
        'level': 2,
        'permissions': _matrix(
            recipes=(True, False, False, False),
            inventory=(True, True, True, False),
            production=(True, True, True, False),
            team=(True, False, False, False),
            settings=(False, False, False, False),
            reports=(True, False, False, False),
        ),
    },
    'team_member': {
        'label': 'Team Member',
        'description': 'Basic kitchen duties and operations',
        'level': 3,
        'permissions': _matrix(
            recipes=(True, False, False, False),
            inventory=(True, False, False, False),
            production=(True, True, False, False),
            team=(True, False, False, False),
            settings=(False, False, False, False),
            reports=(False, False, False, False),
        ),
    },
}


def role_permissions(role):
    definition = ROLE_DEFINITIONS.get(role)
    if not definition:
        return {}
    return definition['permissions']


def has_kitchen_permission(role, feature, action):
    """Check the role matrix for a feature/action pair"""
    return bool(role_permissions(role).get(feature, {}).get(action, False))


def is_admin_role(role):
    return role in ADMIN_ROLES


class IsOrganizationMember(BasePermission):
    """Caller must belong to the organization resolved for this request"""
    message = 'You are not a member of this organization.'

    def has_permission(self, request, view):
        return get_current_membership(request) is not None


class IsOrganizationAdmin(BasePermission):
    """Caller must hold an admin kitchen role (dev/owner)"""
    message = 'Admin access required.'

    def has_permission(self, request, view):
        membership = get_current_membership(request)
        if membership is None:
            return False
        return is_admin_role(membership.kitchen_role)


class IsAdminOrReadOnly(BasePermission):
    """Members can read; only admins can write"""
    message = 'Admin access required.'

    def has_permission(self, request, view):
        membership = get_current_membership(request)
        if membership is None:
            return False
        if request.method in ('GET', 'HEAD', 'OPTIONS'):
            return True
        return is_admin_role(membership.kitchen_role)
