from decimal import Decimal
from rest_framework import serializers
from .models import PREP_SYSTEM_CHOICES, PrepList, PrepListTemplate, PrepListTemplateTask, Task
from .prep_systems import compute_amount_required
from .timer import elapsed


class OrganizationScopedMixin:
    """Reject related rows that belong to another organization"""

    def _check_organization(self, value, label):
        organization = self.context.get('organization')
        if value is not None and organization is not None and value.organization_id != organization.id:
            raise serializers.ValidationError(f"{label} not found")
        return value


class TaskSerializer(OrganizationScopedMixin, serializers.ModelSerializer):
    assignee_name = serializers.SerializerMethodField()
    claimed_by_name = serializers.SerializerMethodField()
    elapsed = serializers.SerializerMethodField()
    is_running = serializers.BooleanField(read_only=True)

    class Meta:
        model = Task
        fields = ['id', 'organization', 'title', 'description', 'due_date',
                  'assignment_type', 'assignee', 'assignee_name', 'assignee_station', 'lottery',
                  'claimed_at', 'claimed_by', 'claimed_by_name', 'assigning_member',
                  'prep_system', 'par_level', 'current_level', 'amount_required', 'cases', 'units',
                  'units_per_case', 'status', 'priority', 'auto_advance', 'estimated_time', 'sequence',
                  'started_at', 'paused_at', 'stopped_at', 'elapsed_seconds', 'elapsed', 'is_running',
                  'completed_at', 'completed_by', 'template', 'template_task', 'prep_list',
                  'master_ingredient', 'source', 'created_by', 'created_at', 'updated_at']
        # Assignment and timer state only change through their own endpoints
        read_only_fields = ['organization', 'assignment_type', 'assignee', 'assignee_station', 'lottery',
                            'claimed_at', 'claimed_by', 'assigning_member', 'status', 'started_at',
                            'paused_at', 'stopped_at', 'elapsed_seconds', 'completed_at', 'completed_by',
                            'template', 'template_task', 'created_by', 'created_at', 'updated_at']

    def get_assignee_name(self, obj):
        return obj.assignee.full_name if obj.assignee_id else None

    def get_claimed_by_name(self, obj):
        return obj.claimed_by.full_name if obj.claimed_by_id else None

    def get_elapsed(self, obj):
        return elapsed(obj)

    def validate_title(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError("Title is required")
        return value

    def validate_master_ingredient(self, value):
        return self._check_organization(value, "Master ingredient")

    def validate_prep_list(self, value):
        return self._check_organization(value, "Prep list")

    def validate(self, attrs):
        for field in ('par_level', 'current_level', 'amount_required'):
            if field in attrs and attrs[field] < 0:
                raise serializers.ValidationError({field: "Cannot be negative"})
        if attrs.get('units_per_case') is not None and attrs['units_per_case'] < 1:
            raise serializers.ValidationError({'units_per_case': "Must be at least 1"})

        # Keep PAR tasks' amount in step with the levels written alongside it
        prep_system = attrs.get('prep_system', getattr(self.instance, 'prep_system', 'as_needed'))
        if prep_system == 'par' and ({'par_level', 'current_level', 'prep_system'} & set(attrs)):
            par_level = attrs.get('par_level', getattr(self.instance, 'par_level', Decimal('0')))
            current_level = attrs.get('current_level', getattr(self.instance, 'current_level', Decimal('0')))
            attrs['amount_required'] = compute_amount_required(par_level, current_level)
        return attrs


class TaskAssignSerializer(serializers.Serializer):
    assignment_type = serializers.ChoiceField(choices=[choice for choice, _ in Task.ASSIGNMENT_TYPE_CHOICES])
    assignee = serializers.IntegerField(required=False, allow_null=True)
    station = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs['assignment_type'] == 'direct' and not attrs.get('assignee'):
            raise serializers.ValidationError({'assignee': "A team member is required for direct assignment"})
        if attrs['assignment_type'] == 'station' and not (attrs.get('station') or '').strip():
            raise serializers.ValidationError({'station': "Station name is required"})
        return attrs


class TaskFromTemplateSerializer(serializers.Serializer):
    template_id = serializers.IntegerField(required=False)
    template_task_id = serializers.IntegerField(required=False)
    due_date = serializers.DateField()

    def validate(self, attrs):
        if not attrs.get('template_id') and not attrs.get('template_task_id'):
            raise serializers.ValidationError("template_id or template_task_id is required")
        return attrs


class PrepSystemSerializer(serializers.Serializer):
    prep_system = serializers.ChoiceField(choices=[choice for choice, _ in PREP_SYSTEM_CHOICES])


class LevelsSerializer(serializers.Serializer):
    par_level = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    current_level = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)


class CasesSerializer(serializers.Serializer):
    cases = serializers.IntegerField(min_value=0)
    units = serializers.IntegerField(min_value=0)
    units_per_case = serializers.IntegerField(min_value=1, required=False)


class AmountSerializer(serializers.Serializer):
    amount_required = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)


class MoveTaskSerializer(serializers.Serializer):
    """Either explicit task/day fields or the board's composite drag ids"""
    task_id = serializers.CharField(required=False)
    from_day = serializers.DateField(required=False)
    to_day = serializers.DateField(required=False)
    active_id = serializers.CharField(required=False)
    over_id = serializers.CharField(required=False)

    def validate(self, attrs):
        explicit = all(attrs.get(field) for field in ('task_id', 'from_day', 'to_day'))
        composite = attrs.get('active_id') and attrs.get('over_id')
        if not explicit and not composite:
            raise serializers.ValidationError("Provide task_id, from_day and to_day or active_id and over_id")
        return attrs


class PrepListTemplateTaskSerializer(OrganizationScopedMixin, serializers.ModelSerializer):
    class Meta:
        model = PrepListTemplateTask
        fields = ['id', 'template', 'title', 'description', 'sequence', 'estimated_time', 'station', 'required',
                  'par_level', 'current_level', 'amount_required', 'kitchen_role', 'master_ingredient',
                  'auto_advance', 'created_at', 'updated_at']
        read_only_fields = ['template', 'created_at', 'updated_at']

    def validate_master_ingredient(self, value):
        return self._check_organization(value, "Master ingredient")


class PrepListTemplateSerializer(serializers.ModelSerializer):
    tasks = PrepListTemplateTaskSerializer(many=True, read_only=True)
    task_count = serializers.SerializerMethodField()

    class Meta:
        model = PrepListTemplate
        fields = ['id', 'organization', 'title', 'description', 'category', 'prep_system', 'station',
                  'kitchen_stations', 'par_levels', 'schedule_days', 'advance_days', 'auto_advance',
                  'estimated_time', 'is_active', 'tasks', 'task_count', 'created_by', 'created_at', 'updated_at']
        read_only_fields = ['organization', 'created_by', 'created_at', 'updated_at']

    def get_task_count(self, obj):
        return len(obj.tasks.all())

    def validate_kitchen_stations(self, value):
        if not isinstance(value, list) or not all(isinstance(s, str) for s in value):
            raise serializers.ValidationError("Kitchen stations must be a list of names")
        return value

    def validate_par_levels(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("PAR levels must be an object keyed by task id")
        for key, level in value.items():
            try:
                if Decimal(str(level)) < 0:
                    raise serializers.ValidationError(f"PAR level for {key} cannot be negative")
            except (ArithmeticError, ValueError):
                raise serializers.ValidationError(f"PAR level for {key} must be a number")
        return value

    def validate_schedule_days(self, value):
        if not isinstance(value, list) or not all(isinstance(d, int) and 0 <= d <= 6 for d in value):
            raise serializers.ValidationError("Schedule days must be a list of 0 (Sunday) to 6")
        return sorted(set(value))

    def validate_advance_days(self, value):
        if value < 0:
            raise serializers.ValidationError("Advance days cannot be negative")
        return value


class ReorderSerializer(serializers.Serializer):
    task_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)


class ScheduleSerializer(serializers.Serializer):
    start_date = serializers.DateField(required=False)
    days = serializers.IntegerField(min_value=1, max_value=31, default=7)


class PrepListSerializer(serializers.ModelSerializer):
    template_title = serializers.CharField(source='template.title', read_only=True, default=None)
    tasks = serializers.SerializerMethodField()

    class Meta:
        model = PrepList
        fields = ['id', 'organization', 'template', 'template_title', 'title', 'description', 'date',
                  'prep_system', 'status', 'assigned_to', 'completed_at', 'completed_by', 'notes', 'tasks',
                  'created_by', 'created_at', 'updated_at']
        read_only_fields = ['organization', 'template', 'status', 'completed_at', 'completed_by',
                            'created_by', 'created_at', 'updated_at']

    def get_tasks(self, obj):
        return [
            {'id': str(task.id), 'title': task.title, 'status': task.status, 'sequence': task.sequence}
            for task in obj.tasks.all()
        ]


class GeneratePrepListSerializer(serializers.Serializer):
    template = serializers.IntegerField()
    date = serializers.DateField()
    assigned_to = serializers.CharField(required=False, allow_blank=True, default='')
