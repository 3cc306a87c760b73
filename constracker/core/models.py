from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Site personnel. ``role`` drives every capability check."""
    ROLE_ADMIN = 'admin'
    ROLE_ENGINEER = 'engineer'
    ROLE_FOREMAN = 'foreman'
    ROLE_PROJECT_MANAGER = 'project_manager'

    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_ENGINEER, 'Engineer'),
        (ROLE_FOREMAN, 'Foreman'),
        (ROLE_PROJECT_MANAGER, 'Project Manager'),
    ]

    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=200, blank=True)
    role = models.CharField(max_length=30, choices=ROLE_CHOICES, default=ROLE_FOREMAN, db_index=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    # Presence flag: set on login, cleared on logout or when the session token expires
    is_online = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.full_name or self.username

    @property
    def is_admin(self):
        return self.is_superuser or self.role == self.ROLE_ADMIN

    class Meta:
        db_table = 'users'


class ImmutableRecordError(Exception):
    """Raised when code tries to change or remove an append-only record."""


class AppendOnlyQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise ImmutableRecordError(f"{self.model.__name__} rows cannot be updated")

    def delete(self):
        raise ImmutableRecordError(f"{self.model.__name__} rows cannot be deleted")


class AppendOnlyModel(models.Model):
    """
    Base class for history tables.

    Rows are inserted once and never touched again: saving an existing row,
    deleting a row and bulk update/delete through the manager all raise
    ImmutableRecordError. New history is represented by new rows.
    """
    objects = AppendOnlyQuerySet.as_manager()

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableRecordError(f"{self.__class__.__name__} #{self.pk} is append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordError(f"{self.__class__.__name__} #{self.pk} is append-only")

    class Meta:
        abstract = True


class AuditLog(AppendOnlyModel):
    """Who did what, when, to which project/entity"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('edit', 'Edit'),
        ('delete', 'Delete'),
        ('approved', 'Approved'),
        ('declined', 'Declined'),
        ('requests', 'Material Request'),
        ('submitted', 'Request Submitted'),
        ('ordered', 'Request Ordered'),
        ('delivered', 'Delivery Recorded'),
        ('verified', 'Delivery Verified'),
        ('reviewed', 'Request Reviewed'),
        ('adjusted', 'Stock Adjusted'),
    ]

    user = models.ForeignKey('core.User', on_delete=models.PROTECT, null=True, related_name='audit_logs')
    project = models.ForeignKey('projects.Project', on_delete=models.PROTECT, null=True, blank=True, related_name='logs')
    action = models.CharField(max_length=30, choices=ACTION_CHOICES)
    entity_type = models.CharField(max_length=50)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, help_text="Human-readable description shown in the activity feed")
    changes = models.JSONField(default=list, blank=True, help_text="List of {field, before, after} pairs for edits")
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.action} {self.entity_type} #{self.object_id}"

    class Meta:
        db_table = 'logs'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['-created_at'], name='logs_created_2b1f0e_idx'),
            models.Index(fields=['action'], name='logs_action_7c9d4a_idx'),
            models.Index(fields=['entity_type'], name='logs_entity__e3a5b1_idx'),
        ]
