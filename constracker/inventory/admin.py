from django.contrib import admin
from .models import InventoryMovement


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = ['item', 'project', 'direction', 'quantity', 'source', 'material_request', 'created_by', 'created_at']
    list_filter = ['direction', 'source', 'created_at']
    search_fields = ['item__name', 'project__name', 'remarks']
    ordering = ['-created_at']

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
