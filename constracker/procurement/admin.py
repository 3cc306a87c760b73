from django.contrib import admin
from .models import MaterialRequest, MaterialRequestItem, MaterialRequestAction, MaterialDelivery, MaterialVerification


class MaterialRequestItemInline(admin.TabularInline):
    model = MaterialRequestItem
    extra = 0
    readonly_fields = ['received_quantity', 'accepted_quantity', 'rejected_quantity']


class ReadOnlyInline(admin.TabularInline):
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class MaterialRequestActionInline(ReadOnlyInline):
    model = MaterialRequestAction
    fields = ['action', 'performed_by', 'from_stage', 'to_stage', 'remarks', 'created_at']
    readonly_fields = fields


class MaterialDeliveryInline(ReadOnlyInline):
    model = MaterialDelivery
    fields = ['delivered_by', 'delivery_date', 'delivery_status', 'acknowledged_by']
    readonly_fields = fields


@admin.register(MaterialRequest)
class MaterialRequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'project', 'request_type', 'supplier', 'current_stage', 'status', 'priority_level', 'requested_by', 'created_at']
    list_filter = ['current_stage', 'status', 'request_type', 'priority_level']
    search_fields = ['project__name', 'requested_by__full_name', 'requested_by__username']
    readonly_fields = ['current_stage', 'status', 'approved_by', 'approved_at', 'created_at', 'updated_at']
    inlines = [MaterialRequestItemInline, MaterialDeliveryInline, MaterialRequestActionInline]


@admin.register(MaterialVerification)
class MaterialVerificationAdmin(admin.ModelAdmin):
    list_display = ['request', 'request_item', 'accepted_quantity', 'rejected_quantity', 'verified_by', 'created_at']
    search_fields = ['request__id', 'request_item__item__name']

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
