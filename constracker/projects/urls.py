from django.urls import path
from .views import (
    project_list_create, project_detail, project_selection,
    project_personnel, project_personnel_remove,
    milestone_list_create, milestone_detail,
    task_list_create, task_detail,
)

urlpatterns = [
    # Project endpoints
    path('projects', project_list_create, name='project-list-create'),
    path('projects/<int:pk>', project_detail, name='project-detail'),
    path('selection/project', project_selection, name='project-selection'),

    # Personnel endpoints
    path('projects/<int:pk>/personnel', project_personnel, name='project-personnel'),
    path('projects/<int:pk>/personnel/<int:user_id>', project_personnel_remove, name='project-personnel-remove'),

    # Milestone endpoints
    path('projects/<int:project_pk>/milestones', milestone_list_create, name='milestone-list-create'),
    path('milestones/<int:pk>', milestone_detail, name='milestone-detail'),

    # Task endpoints
    path('milestones/<int:milestone_pk>/tasks', task_list_create, name='task-list-create'),
    path('tasks/<int:pk>', task_detail, name='task-detail'),
]
