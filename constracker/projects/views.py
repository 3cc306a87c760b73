import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from constracker.core.permissions import capability, require_capability
from constracker.core.utils import create_audit_log, diff_changes, snapshot
from .models import Project, ProjectAssignment, Milestone, Task
from .serializers import (
    ProjectSerializer, ProjectSelectionSerializer, PersonnelSerializer, PersonnelAssignSerializer,
    MilestoneSerializer, TaskSerializer,
)
from .utils import get_visible_project, visible_projects

logger = logging.getLogger(__name__)

PROJECT_AUDIT_FIELDS = ['name', 'location', 'budget', 'due_date', 'status', 'image']
MILESTONE_AUDIT_FIELDS = ['name', 'description', 'status', 'due_date']
TASK_AUDIT_FIELDS = ['name', 'description', 'status', 'due_date', 'assigned_to']


# Project views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability('project.view')])
def project_list_create(request):
    """List visible projects or create a new project (admin)"""
    if request.method == 'GET':
        projects = visible_projects(request.user).annotate(personnel_total=Count('assignments', distinct=True))

        search = request.query_params.get('search', '').strip()
        if search:
            projects = projects.filter(Q(name__icontains=search) | Q(location__icontains=search))
        project_status = request.query_params.get('status')
        if project_status:
            projects = projects.filter(status=project_status)

        return Response(ProjectSerializer(projects.order_by('name'), many=True).data)

    require_capability(request.user, 'project.manage')
    serializer = ProjectSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            project = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                entity_type='Project',
                object_id=project.pk,
                object_name=f"created project {project.name}",
                project=project,
            )
        logger.info(f"Project {project.pk} created by user {request.user.pk}")
        return Response(ProjectSerializer(project).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated, capability('project.view')])
def project_detail(request, pk):
    """Retrieve or update a project; projects are closed through their status, never deleted"""
    project = get_visible_project(request.user, pk)

    if request.method == 'GET':
        return Response(ProjectSerializer(project).data)

    require_capability(request.user, 'project.manage')

    serializer = ProjectSerializer(project, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        before = snapshot(project, PROJECT_AUDIT_FIELDS)
        with transaction.atomic():
            project = serializer.save()
            create_audit_log(
                request=request,
                action='edit',
                entity_type='Project',
                object_id=project.pk,
                object_name=f"edited project {project.name}",
                project=project,
                changes=diff_changes(before, snapshot(project, PROJECT_AUDIT_FIELDS)),
            )
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability('project.view')])
def project_selection(request):
    """Id/name pairs for project pickers"""
    projects = visible_projects(request.user).order_by('name')
    return Response(ProjectSelectionSerializer(projects, many=True).data)


# Personnel assignment views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability('project.view')])
def project_personnel(request, pk):
    """List or assign personnel of a project"""
    project = get_visible_project(request.user, pk)

    if request.method == 'GET':
        assignments = project.assignments.select_related('user').order_by('user__full_name')
        return Response(PersonnelSerializer(assignments, many=True).data)

    require_capability(request.user, 'project.manage')
    serializer = PersonnelAssignSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    user_ids = serializer.validated_data['user_ids']
    already = set(project.assignments.filter(user_id__in=user_ids).values_list('user_id', flat=True))
    with transaction.atomic():
        for user_id in user_ids:
            if user_id in already:
                continue
            ProjectAssignment.objects.create(project=project, user_id=user_id)
            create_audit_log(
                request=request,
                action='create',
                entity_type='ProjectAssignment',
                object_id=user_id,
                object_name=f"assigned personnel #{user_id} to {project.name}",
                project=project,
            )

    assignments = project.assignments.select_related('user').order_by('user__full_name')
    return Response(PersonnelSerializer(assignments, many=True).data, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, capability('project.manage')])
def project_personnel_remove(request, pk, user_id):
    project = get_object_or_404(Project, pk=pk)
    assignment = get_object_or_404(ProjectAssignment, project=project, user_id=user_id)
    with transaction.atomic():
        assignment.delete()
        create_audit_log(
            request=request,
            action='delete',
            entity_type='ProjectAssignment',
            object_id=user_id,
            object_name=f"removed personnel #{user_id} from {project.name}",
            project=project,
        )
    return Response(status=status.HTTP_204_NO_CONTENT)


# Milestone views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability('project.view')])
def milestone_list_create(request, project_pk):
    """List or create milestones of a project"""
    project = get_visible_project(request.user, project_pk)

    if request.method == 'GET':
        milestones = project.milestones.prefetch_related('tasks')
        milestone_status = request.query_params.get('status')
        if milestone_status:
            milestones = milestones.filter(status=milestone_status)
        return Response(MilestoneSerializer(milestones, many=True).data)

    require_capability(request.user, 'milestone.manage')
    serializer = MilestoneSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            milestone = serializer.save(project=project)
            create_audit_log(
                request=request,
                action='create',
                entity_type='Milestone',
                object_id=milestone.pk,
                object_name=f"created milestone {milestone.name}",
                project=project,
            )
        return Response(MilestoneSerializer(milestone).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, capability('project.view')])
def milestone_detail(request, pk):
    """Retrieve, update or delete a milestone"""
    milestone = get_object_or_404(Milestone.objects.select_related('project'), pk=pk)
    project = get_visible_project(request.user, milestone.project_id)

    if request.method == 'GET':
        return Response(MilestoneSerializer(milestone).data)

    require_capability(request.user, 'milestone.manage')

    if request.method in ('PUT', 'PATCH'):
        serializer = MilestoneSerializer(milestone, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            before = snapshot(milestone, MILESTONE_AUDIT_FIELDS)
            with transaction.atomic():
                milestone = serializer.save()
                create_audit_log(
                    request=request,
                    action='edit',
                    entity_type='Milestone',
                    object_id=milestone.pk,
                    object_name=f"edited milestone {milestone.name}",
                    project=project,
                    changes=diff_changes(before, snapshot(milestone, MILESTONE_AUDIT_FIELDS)),
                )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    milestone_id, name = milestone.pk, milestone.name
    with transaction.atomic():
        milestone.delete()
        create_audit_log(
            request=request,
            action='delete',
            entity_type='Milestone',
            object_id=milestone_id,
            object_name=f"deleted milestone {name}",
            project=project,
        )
    return Response(status=status.HTTP_204_NO_CONTENT)


# Task views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability('project.view')])
def task_list_create(request, milestone_pk):
    """List or create tasks under a milestone"""
    milestone = get_object_or_404(Milestone, pk=milestone_pk)
    project = get_visible_project(request.user, milestone.project_id)

    if request.method == 'GET':
        tasks = milestone.tasks.select_related('assigned_to')
        return Response(TaskSerializer(tasks, many=True).data)

    require_capability(request.user, 'task.manage')
    serializer = TaskSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            task = serializer.save(milestone=milestone)
            create_audit_log(
                request=request,
                action='create',
                entity_type='Task',
                object_id=task.pk,
                object_name=f"created task {task.name}",
                project=project,
            )
        return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, capability('project.view')])
def task_detail(request, pk):
    """Retrieve, update or delete a task"""
    task = get_object_or_404(Task.objects.select_related('milestone', 'assigned_to'), pk=pk)
    project = get_visible_project(request.user, task.milestone.project_id)

    if request.method == 'GET':
        return Response(TaskSerializer(task).data)

    require_capability(request.user, 'task.manage')

    if request.method in ('PUT', 'PATCH'):
        serializer = TaskSerializer(task, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            before = snapshot(task, TASK_AUDIT_FIELDS)
            with transaction.atomic():
                task = serializer.save()
                create_audit_log(
                    request=request,
                    action='edit',
                    entity_type='Task',
                    object_id=task.pk,
                    object_name=f"edited task {task.name}",
                    project=project,
                    changes=diff_changes(before, snapshot(task, TASK_AUDIT_FIELDS)),
                )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    task_id, name = task.pk, task.name
    with transaction.atomic():
        task.delete()
        create_audit_log(
            request=request,
            action='delete',
            entity_type='Task',
            object_id=task_id,
            object_name=f"deleted task {name}",
            project=project,
        )
    return Response(status=status.HTTP_204_NO_CONTENT)
