from django.contrib import admin
from .models import PrepListTemplate, PrepListTemplateTask, PrepList, Task


class PrepListTemplateTaskInline(admin.TabularInline):
    model = PrepListTemplateTask
    extra = 0
    raw_id_fields = ['master_ingredient']


@admin.register(PrepListTemplate)
class PrepListTemplateAdmin(admin.ModelAdmin):
    list_display = ['title', 'organization', 'category', 'prep_system', 'station', 'is_active', 'updated_at']
    list_filter = ['category', 'prep_system', 'is_active']
    search_fields = ['title']
    inlines = [PrepListTemplateTaskInline]


@admin.register(PrepList)
class PrepListAdmin(admin.ModelAdmin):
    list_display = ['title', 'date', 'status', 'assigned_to', 'completed_at']
    list_filter = ['status', 'prep_system']
    date_hierarchy = 'date'


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['title', 'due_date', 'assignment_type', 'assignee', 'assignee_station', 'status', 'priority']
    list_filter = ['status', 'assignment_type', 'prep_system', 'priority']
    search_fields = ['title', 'description']
    raw_id_fields = ['assignee', 'claimed_by', 'assigning_member', 'completed_by', 'template', 'template_task',
                     'prep_list', 'master_ingredient']
    readonly_fields = ['id', 'created_at', 'updated_at']
