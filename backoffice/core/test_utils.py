"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backoffice.core.models import Organization, TeamMember, OperationsSettings, ActivityLog
from backoffice.ingredients.models import MasterIngredient, UmbrellaIngredient
from backoffice.vendors.models import VendorCode
from backoffice.production.models import PrepListTemplate, PrepListTemplateTask, Task
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_organization(name=None, **kwargs):
        """Create a test organization"""
        if not name:
            name = f'Kitchen_{TestDataFactory.random_string(6)}'
        return Organization.objects.create(name=name, **kwargs)

    @staticmethod
    def create_member(organization, user=None, kitchen_role='team_member', first_name=None, last_name='Cook',
                      email=None, kitchen_stations=None, is_active=True):
        """Create a team member, optionally linked to a login"""
        if not first_name:
            first_name = f'Member_{TestDataFactory.random_string(4)}'
        if email is None:
            email = user.email if user else f'{first_name.lower()}@test.com'
        return TeamMember.objects.create(
            organization=organization,
            user=user,
            first_name=first_name,
            last_name=last_name,
            email=email,
            kitchen_role=kitchen_role,
            kitchen_stations=kitchen_stations or [],
            is_active=is_active,
        )

    @staticmethod
    def create_user_with_role(organization, kitchen_role='owner'):
        """Create a login and its membership in one go; returns (user, member)"""
        user = TestDataFactory.create_user()
        member = TestDataFactory.create_member(organization, user=user, kitchen_role=kitchen_role)
        return user, member

    @staticmethod
    def create_operations_settings(organization, kitchen_stations=None, vendors=None):
        settings_obj, _ = OperationsSettings.objects.get_or_create(organization=organization)
        settings_obj.kitchen_stations = kitchen_stations or []
        settings_obj.vendors = vendors or []
        settings_obj.save()
        return settings_obj

    @staticmethod
    def create_activity(organization, activity_type='task_created', user=None, details=None, acknowledged_by=None):
        return ActivityLog.objects.create(
            organization=organization,
            user=user,
            activity_type=activity_type,
            details=details or {},
            acknowledged_by=acknowledged_by or [],
        )

    @staticmethod
    def create_ingredient(organization, product=None, item_code=None, vendor='Sysco', current_price=None, **kwargs):
        """Create a test master ingredient"""
        if not product:
            product = f'Product_{TestDataFactory.random_string(6)}'
        if not item_code:
            item_code = f'IC{TestDataFactory.random_string(6).upper()}'
        return MasterIngredient.objects.create(
            organization=organization,
            product=product,
            item_code=item_code,
            vendor=vendor,
            current_price=current_price if current_price is not None else Decimal('0.00'),
            **kwargs
        )

    @staticmethod
    def create_umbrella(organization, name=None):
        if not name:
            name = f'Umbrella_{TestDataFactory.random_string(6)}'
        return UmbrellaIngredient.objects.create(organization=organization, name=name)

    @staticmethod
    def create_vendor_code(ingredient, vendor_id='Sysco', code=None, is_current=True):
        if not code:
            code = f'VC{TestDataFactory.random_string(6).upper()}'
        return VendorCode.objects.create(
            organization=ingredient.organization,
            master_ingredient=ingredient,
            vendor_id=vendor_id,
            code=code,
            is_current=is_current,
        )

    @staticmethod
    def create_task(organization, title=None, due_date=None, **kwargs):
        """Create a test board task"""
        if not title:
            title = f'Task_{TestDataFactory.random_string(6)}'
        return Task.objects.create(
            organization=organization,
            title=title,
            due_date=due_date or timezone.localdate(),
            **kwargs
        )

    @staticmethod
    def create_assigned_task(organization, member, **kwargs):
        """Create a task directly assigned to a member"""
        return TestDataFactory.create_task(
            organization, assignment_type='direct', assignee=member, **kwargs
        )

    @staticmethod
    def create_template(organization, title=None, tasks=0, **kwargs):
        """Create a prep list template with `tasks` template tasks"""
        if not title:
            title = f'Template_{TestDataFactory.random_string(6)}'
        template = PrepListTemplate.objects.create(organization=organization, title=title, **kwargs)
        for index in range(tasks):
            PrepListTemplateTask.objects.create(
                template=template,
                title=f'{title} step {index + 1}',
                sequence=index + 1,
            )
        return template


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user, organization=None):
        """Authenticate the client with a user, optionally pinning the organization header"""
        refresh = RefreshToken.for_user(user)
        headers = {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}
        if organization is not None:
            headers['HTTP_X_ORGANIZATION_ID'] = str(organization.id)
        self.credentials(**headers)
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
