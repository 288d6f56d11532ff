import logging
import uuid
from datetime import date

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Max
from django.http import Http404
from django.shortcuts import get_object_or_404
from django.utils import timezone

from backoffice.core.models import TeamMember
from backoffice.core.permissions import IsOrganizationMember, has_kitchen_permission
from backoffice.core.utils import get_current_membership, log_activity
from backoffice.core.views import forbidden
from . import prep_systems, timer
from .assignment import assign, claim_lottery_task
from .board import (
    DEFAULT_BOARD_DAYS, MAX_BOARD_DAYS, advance_overdue_tasks, board_days, group_tasks_by_day,
    move_task, parse_drag_id,
)
from .filters import PrepListFilter, PrepListTemplateFilter, TaskFilter
from .models import PrepList, PrepListTemplate, PrepListTemplateTask, Task
from .serializers import (
    TaskSerializer, TaskAssignSerializer, TaskFromTemplateSerializer, PrepSystemSerializer,
    LevelsSerializer, CasesSerializer, AmountSerializer, MoveTaskSerializer,
    PrepListTemplateSerializer, PrepListTemplateTaskSerializer, ReorderSerializer, ScheduleSerializer,
    PrepListSerializer, GeneratePrepListSerializer,
)
from .templates import (
    complete_prep_list, create_task_from_template, create_task_from_template_task,
    generate_prep_list_from_template, generate_scheduled_prep_lists, reorder_template_tasks, scheduled_dates,
)
from .utils import write_task_fields

logger = logging.getLogger(__name__)

TASK_RELATED = ('organization', 'assignee', 'claimed_by', 'completed_by')


def can_manage_production(membership, action='edit'):
    return has_kitchen_permission(membership.kitchen_role, 'production', action)


def error_response(message, code=status.HTTP_400_BAD_REQUEST):
    return Response({'error': message}, status=code)


def get_task(membership, pk):
    try:
        pk = uuid.UUID(str(pk))
    except ValueError:
        raise Http404("Task not found")
    return get_object_or_404(
        Task.objects.select_related(*TASK_RELATED), pk=pk, organization=membership.organization,
    )


def task_response(task, code=status.HTTP_200_OK):
    return Response(TaskSerializer(task).data, status=code)


# Task views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def task_list_create(request):
    """List board tasks or create one (optionally from a template)"""
    membership = get_current_membership(request)
    organization = membership.organization

    if request.method == 'GET':
        queryset = Task.objects.select_related(*TASK_RELATED).filter(organization=organization)
        filterset = TaskFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        return Response(TaskSerializer(filterset.qs, many=True).data)

    if not can_manage_production(membership, 'create'):
        return forbidden()

    if 'template_id' in request.data or 'template_task_id' in request.data:
        return create_task_from_template_request(request, membership)

    serializer = TaskSerializer(data=request.data, context={'organization': organization})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    assignment = None
    if request.data.get('assignment_type', 'none') != 'none':
        assignment = TaskAssignSerializer(data={
            'assignment_type': request.data.get('assignment_type'),
            'assignee': request.data.get('assignee'),
            'station': request.data.get('assignee_station', request.data.get('station', '')),
        })
        if not assignment.is_valid():
            return Response(assignment.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            task = serializer.save(organization=organization, created_by=request.user, assigning_member=membership)
            if assignment is not None:
                apply_assignment_request(task, assignment.validated_data, organization, request.user)
    except ValueError as e:
        return error_response(str(e))

    log_activity(
        organization=organization,
        user=request.user,
        activity_type='task_created',
        details={'task_id': str(task.id), 'task_title': task.title, 'due_date': str(task.due_date)},
    )
    return task_response(task, status.HTTP_201_CREATED)


def create_task_from_template_request(request, membership):
    serializer = TaskFromTemplateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    if data.get('template_task_id'):
        template_task = get_object_or_404(
            PrepListTemplateTask.objects.select_related('template__organization'),
            pk=data['template_task_id'], template__organization=membership.organization,
        )
        task = create_task_from_template_task(
            template_task, data['due_date'], assigning_member=membership, user=request.user,
        )
    else:
        template = get_object_or_404(PrepListTemplate, pk=data['template_id'], organization=membership.organization)
        task = create_task_from_template(template, data['due_date'], assigning_member=membership, user=request.user)

    log_activity(
        organization=membership.organization,
        user=request.user,
        activity_type='task_created',
        details={'task_id': str(task.id), 'task_title': task.title, 'due_date': str(task.due_date),
                 'template_id': task.template_id},
    )
    return task_response(task, status.HTTP_201_CREATED)


def apply_assignment_request(task, data, organization, user):
    member = None
    if data['assignment_type'] == 'direct':
        member = TeamMember.objects.filter(pk=data['assignee'], organization=organization).first()
        if member is None:
            raise ValueError("Unknown team member")
    return assign(task, data['assignment_type'], member=member, station=data.get('station'), user=user)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def task_detail(request, pk):
    """Retrieve, update or delete a task"""
    membership = get_current_membership(request)
    task = get_task(membership, pk)

    if request.method == 'GET':
        return task_response(task)

    if request.method == 'DELETE':
        if not can_manage_production(membership, 'delete'):
            return forbidden()
        details = {'task_id': str(task.id), 'task_title': task.title}
        task.delete()
        log_activity(
            organization=membership.organization,
            user=request.user,
            activity_type='task_deleted',
            details=details,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    if not can_manage_production(membership, 'edit'):
        return forbidden()

    serializer = TaskSerializer(
        task, data=request.data, partial=request.method == 'PATCH',
        context={'organization': membership.organization},
    )
    if serializer.is_valid():
        task = serializer.save()
        log_activity(
            organization=membership.organization,
            user=request.user,
            activity_type='task_updated',
            details={'task_id': str(task.id), 'task_title': task.title, 'fields': sorted(request.data.keys())},
        )
        return task_response(task)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def task_assign(request, pk):
    """Assign a task to a team member, a station, the lottery pool, or nobody"""
    membership = get_current_membership(request)
    if not can_manage_production(membership, 'edit'):
        return forbidden()
    task = get_task(membership, pk)

    serializer = TaskAssignSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        apply_assignment_request(task, serializer.validated_data, membership.organization, request.user)
    except ValueError as e:
        return error_response(str(e))
    return task_response(get_task(membership, pk))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def task_claim(request, pk):
    """Claim a lottery task; managers may claim on behalf of another member"""
    membership = get_current_membership(request)
    task = get_task(membership, pk)

    member = membership
    member_id = request.data.get('member_id')
    if member_id and str(member_id) != str(membership.id):
        if not can_manage_production(membership, 'edit'):
            return forbidden()
        member = get_object_or_404(TeamMember, pk=member_id, organization=membership.organization, is_active=True)

    try:
        claim_lottery_task(task, member, user=request.user)
    except ValueError as e:
        return error_response(str(e))
    return task_response(get_task(membership, pk))


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def task_prep_system(request, pk):
    membership = get_current_membership(request)
    if not can_manage_production(membership, 'edit'):
        return forbidden()
    task = get_task(membership, pk)

    serializer = PrepSystemSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        prep_systems.change_prep_system(task, serializer.validated_data['prep_system'], user=request.user)
    except ValueError as e:
        return error_response(str(e))
    return task_response(task)


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def task_levels(request, pk):
    """Write PAR and current level together with the recomputed amount"""
    membership = get_current_membership(request)
    if not can_manage_production(membership, 'edit'):
        return forbidden()
    task = get_task(membership, pk)

    serializer = LevelsSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        prep_systems.update_levels(task, **serializer.validated_data)
    except ValueError as e:
        return error_response(str(e))
    return task_response(task)


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def task_cases(request, pk):
    membership = get_current_membership(request)
    if not can_manage_production(membership, 'edit'):
        return forbidden()
    task = get_task(membership, pk)

    serializer = CasesSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        prep_systems.update_cases(task, **serializer.validated_data)
    except ValueError as e:
        return error_response(str(e))
    return task_response(task)


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def task_amount(request, pk):
    membership = get_current_membership(request)
    if not can_manage_production(membership, 'edit'):
        return forbidden()
    task = get_task(membership, pk)

    serializer = AmountSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        prep_systems.update_amount(task, serializer.validated_data['amount_required'])
    except ValueError as e:
        return error_response(str(e))
    return task_response(task)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def task_timer(request, pk, action):
    """Start, pause, resume, stop or complete the task timer"""
    membership = get_current_membership(request)
    task = get_task(membership, pk)

    # The assignee runs their own timer; others need edit rights
    if task.assignee_id != membership.id and not can_manage_production(membership, 'edit'):
        return forbidden()

    try:
        timer.run_action(task, action, member=membership, user=request.user)
    except ValueError as e:
        return error_response(str(e))
    return task_response(task)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def task_board(request):
    """Tasks grouped by day for the board's date range"""
    membership = get_current_membership(request)
    try:
        start = date.fromisoformat(request.query_params['start']) if request.query_params.get('start') \
            else timezone.localdate()
        days = int(request.query_params.get('days', DEFAULT_BOARD_DAYS))
    except ValueError:
        return error_response('start must be YYYY-MM-DD and days an integer')
    if not 1 <= days <= MAX_BOARD_DAYS:
        return error_response(f'days must be between 1 and {MAX_BOARD_DAYS}')

    day_list = board_days(start, days)
    queryset = Task.objects.select_related(*TASK_RELATED).filter(
        organization=membership.organization, due_date__gte=day_list[0], due_date__lte=day_list[-1],
    )
    filterset = TaskFilter(request.query_params, queryset=queryset)
    tasks = TaskSerializer(filterset.qs, many=True).data
    return Response({
        'days': day_list,
        'board': group_tasks_by_day(tasks, day_list),
    })


def resolve_move(data):
    """Turn a move request into (task_id, from_day, to_day)"""
    if all(data.get(field) for field in ('task_id', 'from_day', 'to_day')):
        return data['task_id'], data['from_day'].isoformat(), data['to_day'].isoformat()

    task_id, from_day, _ = parse_drag_id(data['active_id'])
    over_id = data['over_id']
    try:
        _, to_day, _ = parse_drag_id(over_id)
    except ValueError:
        # Dropped on an empty column: the id is the bare day
        to_day = date.fromisoformat(over_id).isoformat()
    return task_id, from_day, to_day


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def task_move(request):
    """Move a task to another day and return both affected columns"""
    membership = get_current_membership(request)
    if not can_manage_production(membership, 'edit'):
        return forbidden()

    serializer = MoveTaskSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        task_id, from_day, to_day = resolve_move(serializer.validated_data)
    except ValueError as e:
        return error_response(str(e))

    task = get_task(membership, task_id)
    if task.due_date.isoformat() != from_day:
        return error_response(f'Task is not scheduled on {from_day}')

    queryset = Task.objects.select_related(*TASK_RELATED).filter(
        organization=membership.organization, due_date__in=[from_day, to_day],
    )
    board = group_tasks_by_day(TaskSerializer(queryset, many=True).data, [from_day, to_day])
    try:
        move_task(board, str(task.id), from_day, to_day)
    except KeyError:
        return error_response('Task not found on the board', status.HTTP_404_NOT_FOUND)

    if from_day != to_day:
        write_task_fields(task, {'due_date': date.fromisoformat(to_day)})
        log_activity(
            organization=membership.organization,
            user=request.user,
            activity_type='task_moved',
            details={'task_id': str(task.id), 'task_title': task.title, 'from_date': from_day, 'to_date': to_day},
        )

    return Response({
        'task_id': str(task.id),
        'from_day': from_day,
        'to_day': to_day,
        'columns': {from_day: board.get(from_day, []), to_day: board.get(to_day, [])},
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def task_advance(request):
    """Move overdue auto-advance tasks to today"""
    membership = get_current_membership(request)
    if not can_manage_production(membership, 'edit'):
        return forbidden()

    advanced = advance_overdue_tasks(organization=membership.organization, user=request.user)
    return Response({
        'advanced': len(advanced),
        'tasks': TaskSerializer(advanced, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def task_lottery(request):
    """Open lottery pool"""
    membership = get_current_membership(request)
    queryset = Task.objects.select_related(*TASK_RELATED).filter(
        organization=membership.organization, assignment_type='lottery', lottery=True,
    ).exclude(status='completed').order_by('due_date', 'sequence', 'title')
    due_date = request.query_params.get('due_date')
    if due_date:
        queryset = queryset.filter(due_date=due_date)
    return Response(TaskSerializer(queryset, many=True).data)


# Prep list template views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def prep_template_list_create(request):
    membership = get_current_membership(request)
    organization = membership.organization

    if request.method == 'GET':
        queryset = PrepListTemplate.objects.filter(organization=organization).prefetch_related('tasks')
        filterset = PrepListTemplateFilter(request.query_params, queryset=queryset)
        return Response(PrepListTemplateSerializer(filterset.qs, many=True).data)

    if not can_manage_production(membership, 'create'):
        return forbidden()

    serializer = PrepListTemplateSerializer(data=request.data)
    if serializer.is_valid():
        template = serializer.save(organization=organization, created_by=request.user)
        log_activity(
            organization=organization,
            user=request.user,
            activity_type='prep_template_created',
            details={'title': template.title, 'template_id': template.id},
        )
        return Response(PrepListTemplateSerializer(template).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def prep_template_detail(request, pk):
    membership = get_current_membership(request)
    template = get_object_or_404(PrepListTemplate, pk=pk, organization=membership.organization)

    if request.method == 'GET':
        return Response(PrepListTemplateSerializer(template).data)

    if request.method == 'DELETE':
        if not can_manage_production(membership, 'delete'):
            return forbidden()
        title = template.title
        template.delete()
        log_activity(
            organization=membership.organization,
            user=request.user,
            activity_type='prep_template_deleted',
            details={'title': title},
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    if not can_manage_production(membership, 'edit'):
        return forbidden()

    serializer = PrepListTemplateSerializer(template, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        template = serializer.save()
        return Response(PrepListTemplateSerializer(template).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def prep_template_task_list_create(request, pk):
    """Tasks of a template; new tasks go to the end unless a sequence is given"""
    membership = get_current_membership(request)
    template = get_object_or_404(PrepListTemplate, pk=pk, organization=membership.organization)

    if request.method == 'GET':
        return Response(PrepListTemplateTaskSerializer(template.tasks.all(), many=True).data)

    if not can_manage_production(membership, 'edit'):
        return forbidden()

    serializer = PrepListTemplateTaskSerializer(data=request.data, context={'organization': membership.organization})
    if serializer.is_valid():
        sequence = serializer.validated_data.get('sequence')
        if not sequence:
            sequence = (template.tasks.aggregate(Max('sequence'))['sequence__max'] or 0) + 1
        template_task = serializer.save(template=template, sequence=sequence)
        return Response(PrepListTemplateTaskSerializer(template_task).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def prep_template_task_detail(request, pk):
    membership = get_current_membership(request)
    template_task = get_object_or_404(
        PrepListTemplateTask.objects.select_related('template'),
        pk=pk, template__organization=membership.organization,
    )

    if request.method == 'GET':
        return Response(PrepListTemplateTaskSerializer(template_task).data)

    if not can_manage_production(membership, 'edit'):
        return forbidden()

    if request.method == 'DELETE':
        template_task.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = PrepListTemplateTaskSerializer(
        template_task, data=request.data, partial=request.method == 'PATCH',
        context={'organization': membership.organization},
    )
    if serializer.is_valid():
        return Response(PrepListTemplateTaskSerializer(serializer.save()).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def prep_template_reorder(request, pk):
    membership = get_current_membership(request)
    if not can_manage_production(membership, 'edit'):
        return forbidden()
    template = get_object_or_404(PrepListTemplate, pk=pk, organization=membership.organization)

    serializer = ReorderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        tasks = reorder_template_tasks(template, serializer.validated_data['task_ids'])
    except ValueError as e:
        return error_response(str(e))
    return Response(PrepListTemplateTaskSerializer(tasks, many=True).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def prep_template_schedule(request, pk):
    """Preview or generate the template's prep lists for the coming days"""
    membership = get_current_membership(request)
    template = get_object_or_404(PrepListTemplate, pk=pk, organization=membership.organization)

    data = request.query_params if request.method == 'GET' else request.data
    serializer = ScheduleSerializer(data=data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    start = serializer.validated_data.get('start_date') or timezone.localdate()
    days = serializer.validated_data['days']

    if request.method == 'GET':
        return Response({
            'template_id': template.id,
            'schedule_days': template.schedule_days,
            'advance_days': template.advance_days,
            'dates': [day.isoformat() for day in scheduled_dates(template, start, days)],
        })

    if not can_manage_production(membership, 'create'):
        return forbidden()
    try:
        created = generate_scheduled_prep_lists(template, start, days, user=request.user)
    except ValueError as e:
        return error_response(str(e))
    return Response({'created': PrepListSerializer(created, many=True).data}, status=status.HTTP_201_CREATED)


# Prep list views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def prep_list_list_create(request):
    """List prep lists or generate one from a template"""
    membership = get_current_membership(request)
    organization = membership.organization

    if request.method == 'GET':
        queryset = PrepList.objects.select_related('template').prefetch_related('tasks').filter(
            organization=organization
        )
        filterset = PrepListFilter(request.query_params, queryset=queryset)
        return Response(PrepListSerializer(filterset.qs, many=True).data)

    if not can_manage_production(membership, 'create'):
        return forbidden()

    serializer = GeneratePrepListSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    template = get_object_or_404(PrepListTemplate, pk=serializer.validated_data['template'], organization=organization)
    try:
        prep_list, tasks = generate_prep_list_from_template(
            template,
            serializer.validated_data['date'],
            assigned_to=serializer.validated_data['assigned_to'],
            assigning_member=membership,
            user=request.user,
        )
    except ValueError as e:
        return error_response(str(e))

    data = PrepListSerializer(prep_list).data
    data['generated_tasks'] = TaskSerializer(tasks, many=True).data
    return Response(data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def prep_list_detail(request, pk):
    membership = get_current_membership(request)
    prep_list = get_object_or_404(PrepList, pk=pk, organization=membership.organization)

    if request.method == 'GET':
        return Response(PrepListSerializer(prep_list).data)

    if request.method == 'DELETE':
        if not can_manage_production(membership, 'delete'):
            return forbidden()
        prep_list.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    if not can_manage_production(membership, 'edit'):
        return forbidden()
    serializer = PrepListSerializer(prep_list, data=request.data, partial=True)
    if serializer.is_valid():
        return Response(PrepListSerializer(serializer.save()).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def prep_list_complete(request, pk):
    """Mark a prep list and all of its tasks completed"""
    membership = get_current_membership(request)
    if not can_manage_production(membership, 'edit'):
        return forbidden()
    prep_list = get_object_or_404(PrepList, pk=pk, organization=membership.organization)

    try:
        prep_list, tasks_completed = complete_prep_list(prep_list, member=membership, user=request.user)
    except ValueError as e:
        return error_response(str(e))

    data = PrepListSerializer(prep_list).data
    data['tasks_completed'] = tasks_completed
    return Response(data)
