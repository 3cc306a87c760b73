from django.shortcuts import get_object_or_404
from constracker.core.exceptions import AuthorizationError
from constracker.core.utils import can_see_project
from .models import Project


def get_visible_project(user, pk):
    """Fetch a project, refusing callers who are not assigned to it"""
    project = get_object_or_404(Project, pk=pk)
    if not can_see_project(user, project.pk):
        raise AuthorizationError('You are not assigned to this project.')
    return project


def visible_projects(user):
    if user.is_admin:
        return Project.objects.all()
    return Project.objects.filter(assignments__user=user)
