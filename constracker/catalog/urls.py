from django.urls import path
from .views import (
    material_list_create, material_detail, material_approve, material_decline,
    category_list_create, category_detail, category_units,
    unit_list_create, unit_detail,
    supplier_list_create, supplier_detail,
)

urlpatterns = [
    # Material endpoints
    path('materials', material_list_create, name='material-list-create'),
    path('materials/<int:pk>', material_detail, name='material-detail'),
    path('materials/<int:pk>/approve', material_approve, name='material-approve'),
    path('materials/<int:pk>/decline', material_decline, name='material-decline'),

    # Category endpoints
    path('materials/categories', category_list_create, name='category-list-create'),
    path('materials/categories/<int:pk>', category_detail, name='category-detail'),
    path('materials/categories/<int:pk>/units', category_units, name='category-units'),

    # Unit endpoints
    path('materials/units', unit_list_create, name='unit-list-create'),
    path('materials/units/<int:pk>', unit_detail, name='unit-detail'),

    # Supplier endpoints
    path('materials/suppliers', supplier_list_create, name='supplier-list-create'),
    path('materials/suppliers/<int:pk>', supplier_detail, name='supplier-detail'),
]
