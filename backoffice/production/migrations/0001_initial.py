# Generated manually
import uuid
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models

PREP_SYSTEM_CHOICES = [
    ('par', 'PAR'),
    ('as_needed', 'As Needed'),
    ('scheduled_production', 'Scheduled Production'),
    ('hybrid', 'Hybrid'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('ingredients', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='PrepListTemplate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('category', models.CharField(choices=[('opening', 'Opening'), ('closing', 'Closing'), ('prep', 'Prep'), ('production', 'Production'), ('custom', 'Custom')], default='prep', max_length=20)),
                ('prep_system', models.CharField(choices=PREP_SYSTEM_CHOICES, default='as_needed', max_length=30)),
                ('station', models.CharField(blank=True, max_length=100)),
                ('kitchen_stations', models.JSONField(blank=True, default=list)),
                ('par_levels', models.JSONField(blank=True, default=dict, help_text='PAR level per template task id')),
                ('schedule_days', models.JSONField(blank=True, default=list, help_text='Days of week (0=Sunday..6)')),
                ('advance_days', models.IntegerField(default=0)),
                ('auto_advance', models.BooleanField(default=False)),
                ('estimated_time', models.IntegerField(default=0)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='prep_list_templates', to=settings.AUTH_USER_MODEL)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='prep_list_templates', to='core.organization')),
            ],
            options={
                'db_table': 'prep_list_templates',
                'ordering': ['title'],
            },
        ),
        migrations.CreateModel(
            name='PrepListTemplateTask',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('sequence', models.IntegerField(default=0)),
                ('estimated_time', models.IntegerField(default=0)),
                ('station', models.CharField(blank=True, max_length=100)),
                ('required', models.BooleanField(default=True)),
                ('par_level', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('current_level', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('amount_required', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('kitchen_role', models.CharField(blank=True, max_length=50)),
                ('auto_advance', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('master_ingredient', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='template_tasks', to='ingredients.masteringredient')),
                ('template', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tasks', to='production.preplisttemplate')),
            ],
            options={
                'db_table': 'prep_list_template_tasks',
                'ordering': ['sequence', 'id'],
            },
        ),
        migrations.CreateModel(
            name='PrepList',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('date', models.DateField()),
                ('prep_system', models.CharField(choices=PREP_SYSTEM_CHOICES, default='as_needed', max_length=30)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('active', 'Active'), ('completed', 'Completed'), ('archived', 'Archived')], default='draft', max_length=20)),
                ('assigned_to', models.CharField(blank=True, help_text='Team member id or station name', max_length=100)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('completed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='completed_prep_lists', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='prep_lists', to=settings.AUTH_USER_MODEL)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='prep_lists', to='core.organization')),
                ('template', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='prep_lists', to='production.preplisttemplate')),
            ],
            options={
                'db_table': 'prep_lists',
                'ordering': ['-date', 'title'],
                'indexes': [
                    models.Index(fields=['organization', 'date'], name='idx_prep_list_org_date'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Task',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('due_date', models.DateField()),
                ('assignment_type', models.CharField(choices=[('direct', 'Direct'), ('station', 'Station'), ('lottery', 'Lottery'), ('none', 'Unassigned')], default='none', max_length=10)),
                ('assignee_station', models.CharField(blank=True, max_length=100)),
                ('lottery', models.BooleanField(default=False)),
                ('claimed_at', models.DateTimeField(blank=True, null=True)),
                ('prep_system', models.CharField(choices=PREP_SYSTEM_CHOICES, default='as_needed', max_length=30)),
                ('par_level', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('current_level', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('amount_required', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('cases', models.IntegerField(default=0)),
                ('units', models.IntegerField(default=0)),
                ('units_per_case', models.IntegerField(default=1)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('in_progress', 'In Progress'), ('completed', 'Completed')], default='pending', max_length=20)),
                ('priority', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High')], default='medium', max_length=10)),
                ('auto_advance', models.BooleanField(default=False)),
                ('estimated_time', models.IntegerField(default=0)),
                ('sequence', models.IntegerField(default=0)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('paused_at', models.DateTimeField(blank=True, null=True)),
                ('stopped_at', models.DateTimeField(blank=True, null=True)),
                ('elapsed_seconds', models.IntegerField(default=0)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('source', models.CharField(choices=[('manual', 'Manual'), ('prep_list', 'Prep List'), ('production', 'Production'), ('catering', 'Catering')], default='manual', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assignee', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_tasks', to='core.teammember')),
                ('assigning_member', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_tasks', to='core.teammember')),
                ('claimed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='claimed_tasks', to='core.teammember')),
                ('completed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='completed_tasks', to='core.teammember')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_tasks', to=settings.AUTH_USER_MODEL)),
                ('master_ingredient', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='tasks', to='ingredients.masteringredient')),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tasks', to='core.organization')),
                ('prep_list', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='tasks', to='production.preplist')),
                ('template', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='generated_tasks', to='production.preplisttemplate')),
                ('template_task', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='generated_tasks', to='production.preplisttemplatetask')),
            ],
            options={
                'db_table': 'production_tasks',
                'ordering': ['due_date', 'sequence', 'title'],
                'indexes': [
                    models.Index(fields=['organization', 'due_date'], name='idx_task_org_due'),
                    models.Index(fields=['organization', 'assignment_type'], name='idx_task_org_assignment'),
                    models.Index(fields=['status'], name='idx_task_status'),
                ],
            },
        ),
    ]
