from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model with additional fields"""
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'


class Organization(models.Model):
    """Restaurant tenant - every domain row is scoped to one organization"""
    name = models.CharField(max_length=200)
    legal_name = models.CharField(max_length=200, blank=True)
    timezone = models.CharField(max_length=64, default='America/New_York')
    currency = models.CharField(max_length=3, default='USD')
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    website = models.URLField(blank=True)
    opening_hours = models.JSONField(default=dict, blank=True)
    settings = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'organizations'
        ordering = ['name']


class TeamMember(models.Model):
    """Organization membership with a kitchen role"""
    ROLE_CHOICES = [
        ('dev', 'Developer'),
        ('owner', 'Owner/Chef'),
        ('sous_chef', 'Sous Chef'),
        ('supervisor', 'Supervisor'),
        ('team_member', 'Team Member'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='team_members')
    # Imported staff may not have a login yet
    user = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='memberships')
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    kitchen_role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='team_member')
    kitchen_stations = models.JSONField(default=list, blank=True)
    avatar_url = models.URLField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.full_name

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    class Meta:
        db_table = 'organization_team_members'
        ordering = ['first_name', 'last_name']
        indexes = [
            models.Index(fields=['organization', 'kitchen_role'], name='idx_member_org_role'),
            models.Index(fields=['organization', 'email'], name='idx_member_org_email'),
        ]


class OperationsSettings(models.Model):
    """Per-organization lists used across screens (vendors, stations, storage areas)"""
    organization = models.OneToOneField(Organization, on_delete=models.CASCADE, related_name='operations_settings')
    vendors = models.JSONField(default=list, blank=True)
    storage_areas = models.JSONField(default=list, blank=True)
    storage_containers = models.JSONField(default=list, blank=True)
    kitchen_stations = models.JSONField(default=list, blank=True)
    category_groups = models.JSONField(default=list, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Operations settings for {self.organization}"

    class Meta:
        db_table = 'operations_settings'


class ActivityLog(models.Model):
    """Append-only record of user activity within an organization"""
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='activity_logs')
    user = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='activity_logs')
    activity_type = models.CharField(max_length=64)
    details = models.JSONField(default=dict, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    acknowledged_by = models.JSONField(default=list, blank=True, help_text="User ids that acknowledged this activity")
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.activity_type} @ {self.created_at:%Y-%m-%d %H:%M}"

    class Meta:
        db_table = 'activity_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['organization', '-created_at'], name='idx_activity_org_created'),
            models.Index(fields=['activity_type'], name='idx_activity_type'),
        ]
