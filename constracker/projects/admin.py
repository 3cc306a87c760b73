from django.contrib import admin
from .models import Project, ProjectAssignment, Milestone, Task


class ProjectAssignmentInline(admin.TabularInline):
    model = ProjectAssignment
    extra = 0


class MilestoneInline(admin.TabularInline):
    model = Milestone
    extra = 0
    fields = ['name', 'status', 'due_date']


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ['name', 'location', 'status', 'budget', 'due_date', 'created_at']
    list_filter = ['status']
    search_fields = ['name', 'location']
    inlines = [ProjectAssignmentInline, MilestoneInline]


@admin.register(Milestone)
class MilestoneAdmin(admin.ModelAdmin):
    list_display = ['name', 'project', 'status', 'due_date']
    list_filter = ['status', 'project']
    search_fields = ['name', 'project__name']


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['name', 'milestone', 'status', 'assigned_to', 'due_date']
    list_filter = ['status']
    search_fields = ['name', 'milestone__name']
