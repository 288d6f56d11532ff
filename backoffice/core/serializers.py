from rest_framework import serializers
from .models import User, Organization, TeamMember, OperationsSettings, ActivityLog
from .permissions import ROLE_DEFINITIONS


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class OrganizationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Organization
        fields = ['id', 'name', 'legal_name', 'timezone', 'currency', 'address', 'phone', 'email',
                  'website', 'opening_hours', 'settings', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_currency(self, value):
        value = (value or '').upper()
        if len(value) != 3 or not value.isalpha():
            raise serializers.ValidationError("Currency must be a 3-letter ISO code")
        return value

    def validate_opening_hours(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Opening hours must be an object keyed by weekday")
        return value


class TeamMemberSerializer(serializers.ModelSerializer):
    full_name = serializers.ReadOnlyField()
    role_label = serializers.SerializerMethodField()

    class Meta:
        model = TeamMember
        fields = ['id', 'organization', 'user', 'first_name', 'last_name', 'full_name', 'email', 'phone',
                  'kitchen_role', 'role_label', 'kitchen_stations', 'avatar_url', 'is_active',
                  'created_at', 'updated_at']
        read_only_fields = ['organization', 'created_at', 'updated_at']

    def get_role_label(self, obj):
        definition = ROLE_DEFINITIONS.get(obj.kitchen_role)
        return definition['label'] if definition else obj.kitchen_role

    def validate_kitchen_stations(self, value):
        if not isinstance(value, list) or not all(isinstance(s, str) for s in value):
            raise serializers.ValidationError("Kitchen stations must be a list of names")
        return value

    def validate_email(self, value):
        value = (value or '').strip().lower()
        if not value:
            return value
        organization = self.context.get('organization')
        if organization is None and self.instance is not None:
            organization = self.instance.organization
        if organization is not None:
            duplicates = TeamMember.objects.filter(organization=organization, email__iexact=value)
            if self.instance is not None:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                raise serializers.ValidationError("A team member with this email already exists")
        return value


class OperationsSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = OperationsSettings
        fields = ['id', 'vendors', 'storage_areas', 'storage_containers', 'kitchen_stations',
                  'category_groups', 'updated_at']
        read_only_fields = ['updated_at']

    def validate(self, attrs):
        for field in ('vendors', 'storage_areas', 'storage_containers', 'kitchen_stations', 'category_groups'):
            if field in attrs and not isinstance(attrs[field], list):
                raise serializers.ValidationError({field: "Must be a list"})
        return attrs


class ActivityLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = ActivityLog
        fields = ['id', 'organization', 'user', 'activity_type', 'details', 'metadata',
                  'acknowledged_by', 'created_at']


class RoleAssignmentSerializer(serializers.Serializer):
    member_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    role = serializers.ChoiceField(choices=TeamMember.ROLE_CHOICES)
