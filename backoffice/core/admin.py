from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, Organization, TeamMember, OperationsSettings, ActivityLog


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'email', 'first_name', 'last_name', 'is_active', 'is_staff', 'date_joined']
    list_filter = ['is_active', 'is_staff', 'is_superuser', 'date_joined']
    search_fields = ['username', 'email', 'first_name', 'last_name']
    ordering = ['username']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Additional Info', {'fields': ('phone',)}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Additional Info', {'fields': ('phone',)}),
    )


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ['name', 'timezone', 'currency', 'email', 'created_at']
    search_fields = ['name', 'legal_name', 'email']
    ordering = ['name']


@admin.register(TeamMember)
class TeamMemberAdmin(admin.ModelAdmin):
    list_display = ['first_name', 'last_name', 'email', 'organization', 'kitchen_role', 'is_active']
    list_filter = ['kitchen_role', 'is_active', 'organization']
    search_fields = ['first_name', 'last_name', 'email']
    raw_id_fields = ['user']


@admin.register(OperationsSettings)
class OperationsSettingsAdmin(admin.ModelAdmin):
    list_display = ['organization', 'updated_at']
    readonly_fields = ['updated_at']


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ['activity_type', 'organization', 'user', 'created_at']
    list_filter = ['activity_type', 'created_at']
    search_fields = ['activity_type', 'user__username']
    ordering = ['-created_at']
    readonly_fields = ['organization', 'user', 'activity_type', 'details', 'metadata', 'acknowledged_by', 'created_at']
