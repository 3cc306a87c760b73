from django.db import models
from decimal import Decimal
from constracker.core.models import User


class Project(models.Model):
    """Construction projects"""
    STATUS_PLANNING = 'planning'
    STATUS_IN_PROGRESS = 'in progress'
    STATUS_COMPLETED = 'completed'
    STATUS_ON_HOLD = 'on hold'

    STATUS_CHOICES = [
        (STATUS_PLANNING, 'Planning'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_ON_HOLD, 'On Hold'),
    ]

    name = models.CharField(max_length=200, db_index=True)
    location = models.CharField(max_length=255, blank=True)
    budget = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    due_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PLANNING, db_index=True)
    image = models.CharField(max_length=255, blank=True, help_text="Stored image filename")
    personnel = models.ManyToManyField(User, through='ProjectAssignment', related_name='assigned_projects', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'projects'
        ordering = ['name']


class ProjectAssignment(models.Model):
    """Personnel assigned to a project"""
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='assignments')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='project_assignments')
    assigned_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user} @ {self.project}"

    class Meta:
        db_table = 'assigned_projects'
        unique_together = [['project', 'user']]


class Milestone(models.Model):
    """Project milestones"""
    STATUS_NOT_STARTED = 'not started'
    STATUS_IN_PROGRESS = 'in progress'
    STATUS_COMPLETED = 'completed'
    STATUS_OVERDUE = 'overdue'

    STATUS_CHOICES = [
        (STATUS_NOT_STARTED, 'Not Started'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_OVERDUE, 'Overdue'),
    ]

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='milestones')
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_NOT_STARTED)
    due_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.project} - {self.name}"

    def get_progress(self):
        """Percentage of tasks completed, 0 when there are none"""
        total = self.tasks.count()
        if not total:
            return 0
        done = self.tasks.filter(status=Task.STATUS_COMPLETED).count()
        return round(done * 100 / total)

    class Meta:
        db_table = 'project_milestones'
        ordering = ['due_date', 'id']


class Task(models.Model):
    """Work items under a milestone"""
    STATUS_NOT_STARTED = 'not started'
    STATUS_IN_PROGRESS = 'in progress'
    STATUS_COMPLETED = 'completed'

    STATUS_CHOICES = [
        (STATUS_NOT_STARTED, 'Not Started'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_COMPLETED, 'Completed'),
    ]

    milestone = models.ForeignKey(Milestone, on_delete=models.CASCADE, related_name='tasks')
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_NOT_STARTED)
    due_date = models.DateField(null=True, blank=True)
    assigned_to = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='tasks')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'milestone_tasks'
        ordering = ['due_date', 'id']
