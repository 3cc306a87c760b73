from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, AuditLog


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'email', 'full_name', 'role', 'is_active', 'is_online', 'date_joined']
    list_filter = ['role', 'is_active', 'is_online', 'is_superuser']
    search_fields = ['username', 'email', 'full_name']
    ordering = ['username']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Site Role', {'fields': ('full_name', 'role', 'phone', 'is_online')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Site Role', {'fields': ('email', 'full_name', 'role', 'phone')}),
    )


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['user', 'action', 'entity_type', 'object_id', 'project', 'ip_address', 'created_at']
    list_filter = ['action', 'entity_type', 'created_at']
    search_fields = ['user__username', 'user__full_name', 'entity_type', 'object_id', 'object_name']
    ordering = ['-created_at']
    readonly_fields = ['user', 'project', 'action', 'entity_type', 'object_id', 'object_name', 'changes', 'ip_address', 'created_at']

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
