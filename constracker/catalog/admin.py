from django.contrib import admin
from .models import Category, Unit, Supplier, Item


@admin.register(Unit)
class UnitAdmin(admin.ModelAdmin):
    list_display = ['name', 'abbreviation']
    search_fields = ['name', 'abbreviation']


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']
    filter_horizontal = ['units']


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ['name', 'contact_number', 'email']
    search_fields = ['name', 'email', 'contact_number']


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ['name', 'item_type', 'category', 'supplier', 'unit', 'price', 'approval_status', 'created_by']
    list_filter = ['approval_status', 'item_type', 'category']
    search_fields = ['name', 'description']
    raw_id_fields = ['created_by']
