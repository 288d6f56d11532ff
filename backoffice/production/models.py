import uuid
from django.db import models
from decimal import Decimal
from backoffice.core.models import Organization, TeamMember, User
from backoffice.ingredients.models import MasterIngredient

PREP_SYSTEM_CHOICES = [
    ('par', 'PAR'),
    ('as_needed', 'As Needed'),
    ('scheduled_production', 'Scheduled Production'),
    ('hybrid', 'Hybrid'),
]


class PrepListTemplate(models.Model):
    """Reusable group of prep tasks"""
    CATEGORY_CHOICES = [
        ('opening', 'Opening'),
        ('closing', 'Closing'),
        ('prep', 'Prep'),
        ('production', 'Production'),
        ('custom', 'Custom'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='prep_list_templates')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='prep')
    prep_system = models.CharField(max_length=30, choices=PREP_SYSTEM_CHOICES, default='as_needed')
    station = models.CharField(max_length=100, blank=True)
    kitchen_stations = models.JSONField(default=list, blank=True)
    par_levels = models.JSONField(default=dict, blank=True, help_text="PAR level per template task id")
    schedule_days = models.JSONField(default=list, blank=True, help_text="Days of week (0=Sunday..6)")
    advance_days = models.IntegerField(default=0)
    auto_advance = models.BooleanField(default=False)
    estimated_time = models.IntegerField(default=0)  # minutes
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='prep_list_templates')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'prep_list_templates'
        ordering = ['title']


class PrepListTemplateTask(models.Model):
    """Task definition inside a template"""
    template = models.ForeignKey(PrepListTemplate, on_delete=models.CASCADE, related_name='tasks')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    sequence = models.IntegerField(default=0)
    estimated_time = models.IntegerField(default=0)  # minutes
    station = models.CharField(max_length=100, blank=True)
    required = models.BooleanField(default=True)
    par_level = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    current_level = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    amount_required = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    kitchen_role = models.CharField(max_length=50, blank=True)
    master_ingredient = models.ForeignKey(
        MasterIngredient, on_delete=models.SET_NULL, null=True, blank=True, related_name='template_tasks'
    )
    auto_advance = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.template.title} - {self.title}"

    class Meta:
        db_table = 'prep_list_template_tasks'
        ordering = ['sequence', 'id']


class PrepList(models.Model):
    """Concrete prep list for a day, generated from a template"""
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('active', 'Active'),
        ('completed', 'Completed'),
        ('archived', 'Archived'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='prep_lists')
    template = models.ForeignKey(PrepListTemplate, on_delete=models.SET_NULL, null=True, blank=True, related_name='prep_lists')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    date = models.DateField()
    prep_system = models.CharField(max_length=30, choices=PREP_SYSTEM_CHOICES, default='as_needed')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    assigned_to = models.CharField(max_length=100, blank=True, help_text="Team member id or station name")
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='completed_prep_lists')
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='prep_lists')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.title} ({self.date})"

    class Meta:
        db_table = 'prep_lists'
        ordering = ['-date', 'title']
        indexes = [
            models.Index(fields=['organization', 'date'], name='idx_prep_list_org_date'),
        ]


class Task(models.Model):
    """Production task shown on the kanban board"""
    ASSIGNMENT_TYPE_CHOICES = [
        ('direct', 'Direct'),
        ('station', 'Station'),
        ('lottery', 'Lottery'),
        ('none', 'Unassigned'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
    ]
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
    ]
    SOURCE_CHOICES = [
        ('manual', 'Manual'),
        ('prep_list', 'Prep List'),
        ('production', 'Production'),
        ('catering', 'Catering'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='tasks')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    due_date = models.DateField()

    # Assignment - only the field matching assignment_type is ever set
    assignment_type = models.CharField(max_length=10, choices=ASSIGNMENT_TYPE_CHOICES, default='none')
    assignee = models.ForeignKey(TeamMember, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_tasks')
    assignee_station = models.CharField(max_length=100, blank=True)
    lottery = models.BooleanField(default=False)
    claimed_at = models.DateTimeField(null=True, blank=True)
    claimed_by = models.ForeignKey(TeamMember, on_delete=models.SET_NULL, null=True, blank=True, related_name='claimed_tasks')
    assigning_member = models.ForeignKey(TeamMember, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_tasks')

    # Prep system
    prep_system = models.CharField(max_length=30, choices=PREP_SYSTEM_CHOICES, default='as_needed')
    par_level = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    current_level = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    amount_required = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    cases = models.IntegerField(default=0)
    units = models.IntegerField(default=0)
    units_per_case = models.IntegerField(default=1)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    auto_advance = models.BooleanField(default=False)
    estimated_time = models.IntegerField(default=0)  # minutes
    sequence = models.IntegerField(default=0)

    # Timer - elapsed_seconds accumulates closed intervals; started_at marks the open one
    started_at = models.DateTimeField(null=True, blank=True)
    paused_at = models.DateTimeField(null=True, blank=True)
    stopped_at = models.DateTimeField(null=True, blank=True)
    elapsed_seconds = models.IntegerField(default=0)
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(TeamMember, on_delete=models.SET_NULL, null=True, blank=True, related_name='completed_tasks')

    template = models.ForeignKey(PrepListTemplate, on_delete=models.SET_NULL, null=True, blank=True, related_name='generated_tasks')
    template_task = models.ForeignKey(PrepListTemplateTask, on_delete=models.SET_NULL, null=True, blank=True, related_name='generated_tasks')
    prep_list = models.ForeignKey(PrepList, on_delete=models.SET_NULL, null=True, blank=True, related_name='tasks')
    master_ingredient = models.ForeignKey(MasterIngredient, on_delete=models.SET_NULL, null=True, blank=True, related_name='tasks')
    source = models.CharField(max_length=20, choices=SOURCE_CHOICES, default='manual')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_tasks')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.title} ({self.due_date})"

    @property
    def is_running(self):
        return self.started_at is not None and self.paused_at is None and self.status == 'in_progress'

    class Meta:
        db_table = 'production_tasks'
        ordering = ['due_date', 'sequence', 'title']
        indexes = [
            models.Index(fields=['organization', 'due_date'], name='idx_task_org_due'),
            models.Index(fields=['organization', 'assignment_type'], name='idx_task_org_assignment'),
            models.Index(fields=['status'], name='idx_task_status'),
        ]
