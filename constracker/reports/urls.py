from django.urls import path
from . import views

urlpatterns = [
    path('dashboard/summary', views.dashboard_summary, name='dashboard-summary'),
    path('dashboard/project-status', views.project_status, name='dashboard-project-status'),
    path('dashboard/recent-requests', views.recent_requests, name='dashboard-recent-requests'),
]
