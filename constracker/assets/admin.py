from django.contrib import admin
from .models import Asset


@admin.register(Asset)
class AssetAdmin(admin.ModelAdmin):
    list_display = ['serial_number', 'item', 'condition_status', 'usage_status', 'project', 'last_inspected_at']
    list_filter = ['condition_status', 'usage_status', 'project']
    search_fields = ['serial_number', 'item__name']
