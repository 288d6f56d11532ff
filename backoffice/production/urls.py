from django.urls import path
from .views import (
    task_list_create, task_detail, task_assign, task_claim, task_prep_system, task_levels, task_cases,
    task_amount, task_timer, task_move, task_board, task_advance, task_lottery,
    prep_template_list_create, prep_template_detail, prep_template_task_list_create, prep_template_task_detail,
    prep_template_reorder, prep_template_schedule,
    prep_list_list_create, prep_list_detail, prep_list_complete,
)

urlpatterns = [
    # Board endpoints (fixed paths before <uuid:pk>)
    path('tasks/', task_list_create, name='task-list-create'),
    path('tasks/move/', task_move, name='task-move'),
    path('tasks/board/', task_board, name='task-board'),
    path('tasks/advance/', task_advance, name='task-advance'),
    path('tasks/lottery/', task_lottery, name='task-lottery'),

    # Task endpoints
    path('tasks/<uuid:pk>/', task_detail, name='task-detail'),
    path('tasks/<uuid:pk>/assign/', task_assign, name='task-assign'),
    path('tasks/<uuid:pk>/claim/', task_claim, name='task-claim'),
    path('tasks/<uuid:pk>/prep-system/', task_prep_system, name='task-prep-system'),
    path('tasks/<uuid:pk>/levels/', task_levels, name='task-levels'),
    path('tasks/<uuid:pk>/cases/', task_cases, name='task-cases'),
    path('tasks/<uuid:pk>/amount/', task_amount, name='task-amount'),
    path('tasks/<uuid:pk>/timer/<str:action>/', task_timer, name='task-timer'),

    # Template endpoints
    path('prep-templates/', prep_template_list_create, name='prep-template-list-create'),
    path('prep-templates/tasks/<int:pk>/', prep_template_task_detail, name='prep-template-task-detail'),
    path('prep-templates/<int:pk>/', prep_template_detail, name='prep-template-detail'),
    path('prep-templates/<int:pk>/tasks/', prep_template_task_list_create, name='prep-template-task-list-create'),
    path('prep-templates/<int:pk>/reorder/', prep_template_reorder, name='prep-template-reorder'),
    path('prep-templates/<int:pk>/schedule/', prep_template_schedule, name='prep-template-schedule'),

    # Prep list endpoints
    path('prep-lists/', prep_list_list_create, name='prep-list-list-create'),
    path('prep-lists/<int:pk>/', prep_list_detail, name='prep-list-detail'),
    path('prep-lists/<int:pk>/complete/', prep_list_complete, name='prep-list-complete'),
]
